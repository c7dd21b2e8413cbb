"""Debounced search coordination with out-of-order result reconciliation.

The coordinator owns one live query string. ``update_query`` echoes the text
immediately and schedules a fetch once the query has been quiet for the
debounce window. Blank queries route to the popular slice, anything else to
the search slice; each slice carries its own loading/error status.

Ordering contract:
    A fetch result is applied only if the query it was issued for is still
    the current query when the result arrives. Results for superseded queries
    are dropped, whatever order the fetches complete in. The check lives in
    ``_is_current`` and nowhere else.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from promo_state.cache import QueryCache
from promo_state.entity_index import EntityIndex
from promo_state.errors import ErrorKind, FetchError, classify_exception
from promo_state.models import (
    DEFAULT_PAGE_SIZE,
    POPULAR_LIMIT,
    SEARCH_DEBOUNCE_DELAY,
    FetchRequest,
    PagedResult,
    PaginationRequest,
    SortBy,
)

if TYPE_CHECKING:
    from promo_state.services.interfaces import Fetcher

logger = logging.getLogger(__name__)


# ============================================================================
# Status variants
# ============================================================================


@dataclass(frozen=True, slots=True)
class Idle:
    """Nothing in flight."""


@dataclass(frozen=True, slots=True)
class Loading:
    """A fetch for the slice's query is in flight."""


@dataclass(frozen=True, slots=True)
class Failure:
    """The last fetch for the slice's query failed."""

    kind: ErrorKind


@dataclass(frozen=True, slots=True)
class Success:
    """Result IDs for ``query``, in server order."""

    query: str
    ids: tuple[str, ...]


IDLE = Idle()
LOADING = Loading()

SearchStatus = Idle | Loading | Failure | Success
PopularStatus = Idle | Loading | Failure


@dataclass(frozen=True, slots=True)
class SearchState:
    """Search slice: status for ``query`` plus the last successful result set.

    ``last_success`` survives failures so a failed query never wipes the
    results shown for a different, earlier query.
    """

    query: str = ""
    status: SearchStatus = IDLE
    last_success: Success | None = None


@dataclass(frozen=True, slots=True)
class PopularState:
    """Popular slice: default results for the empty query."""

    ids: tuple[str, ...] = ()
    status: PopularStatus = IDLE
    loaded: bool = False


@dataclass(frozen=True, slots=True)
class SearchSnapshot:
    """One reconciled emission of the coordinator."""

    query: str
    search: SearchState
    popular: PopularState

    @property
    def is_searching(self) -> bool:
        return bool(self.query.strip())

    @property
    def status(self) -> SearchStatus:
        """Status of whichever slice the current query routes to."""
        if self.is_searching:
            return self.search.status
        return self.popular.status


SnapshotListener = Callable[[SearchSnapshot], None]


# ============================================================================
# Coordinator
# ============================================================================


class SearchCoordinator:
    """Reconciles a mutable query with asynchronous fetch results.

    Must be driven from a running event loop. Holds no UI state; consumers
    read ``snapshot`` or ``subscribe`` to every change.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        index: EntityIndex | None = None,
        query_cache: QueryCache | None = None,
        debounce_seconds: float = SEARCH_DEBOUNCE_DELAY,
        popular_limit: int = POPULAR_LIMIT,
        page_size: int = DEFAULT_PAGE_SIZE,
        sort_by: SortBy = SortBy.POPULARITY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._fetcher = fetcher
        self._index = index
        self._query_cache = query_cache
        self._debounce = max(0.0, debounce_seconds)
        self._popular_limit = popular_limit
        self._page_size = page_size
        self._sort_by = sort_by
        self._sleep = sleep

        self._query = ""
        self._search = SearchState()
        self._popular = PopularState()
        self._active = False
        self._popular_generation = 0

        self._pending: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._listeners: list[SnapshotListener] = []

    # -- observation --------------------------------------------------------

    @property
    def query(self) -> str:
        return self._query

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def snapshot(self) -> SearchSnapshot:
        return SearchSnapshot(query=self._query, search=self._search, popular=self._popular)

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _publish(self) -> None:
        snapshot = self.snapshot
        for listener in list(self._listeners):
            listener(snapshot)

    # -- lifecycle ----------------------------------------------------------

    def activate(self) -> None:
        """Start issuing fetches; loads results for the current query."""
        if self._active:
            return
        self._active = True
        self._schedule(self._query)

    def deactivate(self) -> None:
        """Stop issuing fetches. Queries are still echoed."""
        self._active = False
        self._cancel_pending()

    async def aclose(self) -> None:
        """Cancel pending and in-flight work and drop all listeners."""
        self._active = False
        self._pending = None
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            _, still_pending = await asyncio.wait(pending, timeout=0.5)
            for task in still_pending:
                logger.debug("Search task did not cancel before close: %r", task)
        self._tasks.clear()
        self._listeners.clear()

    async def wait_idle(self) -> None:
        """Wait until no debounce timer or fetch is outstanding."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -- commands -----------------------------------------------------------

    def update_query(self, text: str) -> None:
        """Echo ``text`` now; fetch for it after the debounce window."""
        self._query = text
        self._cancel_pending()
        self._publish()
        if self._active:
            self._schedule(text)

    def clear_query(self) -> None:
        """Return to the popular slice, loading it if not cached yet."""
        self.update_query("")

    def retry_search(self) -> None:
        """Re-issue the current search immediately, bypassing the debounce."""
        if not self._active or not self._query.strip():
            return
        self._cancel_pending()
        self._track(self._dispatch(self._query, use_cache=False))

    def refresh_popular(self) -> None:
        """Force a fresh popular fetch, ignoring any cached result."""
        if not self._active:
            return
        self._track(self._load_popular(force=True))

    # -- scheduling ---------------------------------------------------------

    def _cancel_pending(self) -> None:
        # Atomic swap: capture and clear before cancelling.
        pending = self._pending
        self._pending = None
        if pending is not None and not pending.done():
            pending.cancel()

    def _schedule(self, text: str) -> None:
        self._pending = self._track(self._debounced_dispatch(text))

    def _track(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        """Create an asyncio task and track it to prevent garbage collection."""
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(self._on_task_done)
        return task

    @staticmethod
    def _on_task_done(task: asyncio.Task[None]) -> None:
        """Log unhandled exceptions from search tasks."""
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Unhandled exception in search task: %s", exc, exc_info=exc)

    async def _debounced_dispatch(self, text: str) -> None:
        await self._sleep(self._debounce)
        # Past the debounce window this task can no longer be superseded by
        # cancellation; staleness is caught by _is_current instead.
        if self._pending is asyncio.current_task():
            self._pending = None
        await self._dispatch(text, use_cache=True)

    def _is_current(self, text: str) -> bool:
        return text.strip() == self._query.strip()

    # -- fetching -----------------------------------------------------------

    async def _dispatch(self, text: str, *, use_cache: bool) -> None:
        if not text.strip():
            await self._load_popular(force=False)
            return
        await self._load_search(text, use_cache=use_cache)

    async def _fetch(self, term: str, limit: int, *, use_cache: bool) -> PagedResult:
        if use_cache and self._query_cache is not None:
            cached = self._query_cache.get(term, self._sort_by, None, None, True)
            if cached is not None:
                return cached
        request = FetchRequest(
            query=term,
            sort_by=self._sort_by,
            pagination=PaginationRequest.first_page(limit),
        )
        result = await self._fetcher.fetch(request)
        if self._query_cache is not None and not result.is_empty:
            self._query_cache.put(term, self._sort_by, None, None, True, result)
        return result

    async def _load_search(self, text: str, *, use_cache: bool) -> None:
        term = text.strip()
        if not self._is_current(text):
            return
        previous = self._search
        self._search = replace(self._search, query=text, status=LOADING)
        self._publish()
        try:
            result = await self._fetch(term, self._page_size, use_cache=use_cache)
        except asyncio.CancelledError:
            raise
        except FetchError as exc:
            logger.info("Search for %r failed: %s", term, exc.kind.value)
            self._apply_search_status(text, Failure(exc.kind), previous)
            return
        except Exception as exc:
            logger.warning("Search for %r failed unexpectedly", term, exc_info=True)
            self._apply_search_status(text, Failure(classify_exception(exc)), previous)
            return

        if self._index is not None:
            self._index.add_all(result.items)
        self._apply_search_status(text, Success(query=term, ids=result.ids), previous)

    def _apply_search_status(
        self, text: str, status: SearchStatus, previous: SearchState
    ) -> None:
        if not self._is_current(text):
            logger.debug("Discarded stale search result for %r (current %r)", text, self._query)
            self._settle_stale_search(text, previous)
            return
        last_success = status if isinstance(status, Success) else self._search.last_success
        self._search = SearchState(query=text, status=status, last_success=last_success)
        self._publish()

    def _settle_stale_search(self, text: str, previous: SearchState) -> None:
        """Undo the Loading set for ``text`` if no newer search replaced it."""
        if self._search.query != text or not isinstance(self._search.status, Loading):
            return
        status = IDLE if isinstance(previous.status, Loading) else previous.status
        self._search = replace(
            previous, status=status, last_success=self._search.last_success
        )
        self._publish()

    async def _load_popular(self, *, force: bool) -> None:
        if not force and isinstance(self._popular.status, Loading):
            # Join the fetch already in flight.
            return
        if not force and self._popular.loaded:
            if isinstance(self._popular.status, Failure):
                self._popular = replace(self._popular, status=IDLE)
                self._publish()
            return

        if not force and self._index is not None and len(self._index) >= self._popular_limit:
            ids = tuple(self._index.snapshot())[: self._popular_limit]
            self._popular = PopularState(ids=ids, status=IDLE, loaded=True)
            self._publish()
            return

        self._popular_generation += 1
        generation = self._popular_generation
        self._popular = replace(self._popular, status=LOADING)
        self._publish()
        try:
            result = await self._fetch("", self._popular_limit, use_cache=not force)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if not isinstance(exc, FetchError):
                logger.warning("Popular fetch failed unexpectedly", exc_info=True)
            if generation == self._popular_generation:
                self._popular = replace(self._popular, status=Failure(classify_exception(exc)))
                self._publish()
            return

        if self._index is not None:
            self._index.add_all(result.items)
        if generation != self._popular_generation:
            logger.debug("Discarded superseded popular result (generation %d)", generation)
            return
        self._popular = PopularState(ids=result.ids, status=IDLE, loaded=True)
        self._publish()


__all__ = [
    "IDLE",
    "LOADING",
    "Failure",
    "Idle",
    "Loading",
    "PopularState",
    "PopularStatus",
    "SearchCoordinator",
    "SearchSnapshot",
    "SearchState",
    "SearchStatus",
    "Success",
]

"""Service selection coordination: pure selection state plus live search.

Routes selection actions through the pure engine and turns the query-related
ones into search side effects; folds the search coordinator's snapshots back
into a single ``ServiceSelectionState`` without ever touching the selection.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace

from promo_state.entity_index import EntityIndex
from promo_state.models import Service
from promo_state.search import PopularState, SearchCoordinator, SearchSnapshot, SearchState
from promo_state.selection import (
    ClearQuery,
    LoadPopularServices,
    Multi,
    RetryPopularServices,
    RetrySearch,
    SelectionAction,
    SelectionState,
    SetSearchFocus,
    Single,
    UpdateQuery,
    apply_action,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ServiceSelectionState:
    """Everything a service picker needs to render, minus the entities."""

    selection: SelectionState = Single()
    query: str = ""
    search: SearchState = SearchState()
    popular: PopularState = PopularState()
    search_focused: bool = False

    @classmethod
    def single(cls, selected_id: str | None = None) -> ServiceSelectionState:
        return cls(selection=Single(selected_id=selected_id))

    @classmethod
    def multi(cls, selected_ids: frozenset[str] = frozenset()) -> ServiceSelectionState:
        return cls(selection=Multi(selected_ids=frozenset(selected_ids)))

    @property
    def is_searching(self) -> bool:
        return bool(self.query.strip())


class ServiceSelectionCoordinator:
    """Bridges selection actions, the search coordinator, and the entity index."""

    def __init__(self, search: SearchCoordinator, index: EntityIndex[Service]) -> None:
        self._search = search
        self._index = index

    @property
    def search(self) -> SearchCoordinator:
        return self._search

    def bind(
        self,
        get_state: Callable[[], ServiceSelectionState],
        on_update: Callable[[ServiceSelectionState], None],
    ) -> Callable[[], None]:
        """Push reconciled state to ``on_update`` on every search change.

        Activates the search coordinator; returns a callable that unbinds.
        """

        def _listener(snapshot: SearchSnapshot) -> None:
            on_update(self.reconcile(get_state(), snapshot))

        unsubscribe = self._search.subscribe(_listener)
        self._search.activate()
        return unsubscribe

    def deactivate(self) -> None:
        self._search.deactivate()

    def handle_action(
        self, state: ServiceSelectionState, action: SelectionAction
    ) -> ServiceSelectionState:
        """Apply an action and trigger its search side effect, if any."""
        new_state = replace(state, selection=apply_action(state.selection, action))
        logger.debug("Applied %s", type(action).__name__)

        if isinstance(action, UpdateQuery):
            new_state = replace(new_state, query=action.query)
            self._search.update_query(action.query)
        elif isinstance(action, (ClearQuery, LoadPopularServices)):
            new_state = replace(new_state, query="")
            self._search.clear_query()
        elif isinstance(action, RetryPopularServices):
            self._search.refresh_popular()
        elif isinstance(action, RetrySearch):
            if new_state.is_searching:
                self._search.retry_search()
        elif isinstance(action, SetSearchFocus):
            new_state = replace(new_state, search_focused=action.focused)
        return new_state

    def reconcile(
        self, state: ServiceSelectionState, snapshot: SearchSnapshot
    ) -> ServiceSelectionState:
        """Fold a search snapshot into the state; selection is left as is."""
        return replace(
            state,
            query=snapshot.query,
            search=snapshot.search,
            popular=snapshot.popular,
        )

    def selected_services(self, state: ServiceSelectionState) -> list[Service]:
        """Selected services known to the index, sorted by ID for stable output."""
        return self._index.get_many(sorted(state.selection.selected_ids))

    def visible_services(self, state: ServiceSelectionState) -> list[Service]:
        """Services for the active slice: search results, or popular ones."""
        if state.is_searching:
            success = state.search.last_success
            if success is None or success.query != state.query.strip():
                return []
            return self._index.get_many(success.ids)
        return self._index.get_many(state.popular.ids)


__all__ = [
    "ServiceSelectionCoordinator",
    "ServiceSelectionState",
]

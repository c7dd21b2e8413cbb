"""In-memory TTL cache and the first-page query cache built on it.

The cache is a best-effort accelerator, never a source of truth: reads
return ``None`` on a miss or an expired entry, writes never fail.

Invariants:
    - An entry is returned by ``get`` only while ``now - stored_at <= ttl``.
    - An expired entry is evicted when read (lazy eviction, no timer sweep).
    - After ``put`` returns, the cache never holds more than ``max_entries``.
    - The empty-string key marks an uncacheable query and is never stored.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar
from urllib.parse import quote

from promo_state.models import (
    CACHE_EVICTION_HEADROOM,
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_CACHE_TTL_SECONDS,
    PagedResult,
    SortBy,
)

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[V]):
    """A cached value and the clock reading at which it was stored."""

    value: V
    stored_at: float


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Entry counts for debugging; ``total == valid + expired``."""

    total: int
    valid: int
    expired: int


class TTLCache(Generic[V]):
    """Bounded key/value cache with per-entry time-to-live.

    All map mutation happens under a single lock per instance, so ``put``
    calls from a fetch-completion worker thread and from the event loop
    cannot both observe "under capacity" and overfill the map.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
        name: str = "cache",
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._name = name
        self._entries: dict[str, CacheEntry[V]] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _is_expired(self, entry: CacheEntry[V], now: float) -> bool:
        return now - entry.stored_at > self._ttl

    def get(self, key: str) -> V | None:
        """Return the cached value, or None when missing or expired."""
        if not key:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            now = self._clock()
            age = now - entry.stored_at
            if self._is_expired(entry, now):
                del self._entries[key]
                logger.debug("%s EXPIRED key=%s age=%.1fs", self._name, key, age)
                return None
            logger.debug("%s HIT key=%s age=%.1fs", self._name, key, age)
            return entry.value

    def put(self, key: str, value: V) -> None:
        """Store a value, evicting expired then oldest entries when full."""
        if not key:
            return
        with self._lock:
            now = self._clock()
            if len(self._entries) >= self._max_entries:
                self._evict_locked(now)
            # Re-insert so dict order tracks insertion time for equal clock readings.
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(value=value, stored_at=now)
            logger.debug("%s PUT key=%s size=%d", self._name, key, len(self._entries))

    def _evict_locked(self, now: float) -> None:
        expired = [k for k, entry in self._entries.items() if self._is_expired(entry, now)]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug("%s removed %d expired entries", self._name, len(expired))

        if len(self._entries) < self._max_entries:
            return
        excess = len(self._entries) - self._max_entries + CACHE_EVICTION_HEADROOM
        oldest = sorted(self._entries.items(), key=lambda item: item[1].stored_at)
        for k, _ in oldest[: min(excess, len(oldest))]:
            del self._entries[k]
        logger.debug("%s removed %d oldest entries", self._name, min(excess, len(oldest)))

    def clear(self) -> None:
        with self._lock:
            size = len(self._entries)
            self._entries.clear()
        logger.debug("%s cleared (%d entries)", self._name, size)

    def stats(self) -> CacheStats:
        with self._lock:
            now = self._clock()
            valid = sum(1 for entry in self._entries.values() if not self._is_expired(entry, now))
            total = len(self._entries)
        return CacheStats(total=total, valid=valid, expired=total - valid)


def build_cache_key(
    query: str | None,
    sort_by: SortBy | str,
    service_filter: str | None,
    category_filter: str | None,
    is_first_page: bool,
) -> str:
    """Compose a deterministic cache key for a query shape.

    Only first-page queries are cacheable; every other page maps to ``""``.
    Each component is percent-encoded, so no value can forge a separator.
    """
    if not is_first_page:
        return ""
    sort_value = sort_by.value if isinstance(sort_by, SortBy) else str(sort_by)
    parts = {
        "q": query or "",
        "sort": sort_value,
        "service": service_filter or "",
        "category": category_filter or "",
    }
    return "|".join(f"{name}={quote(value, safe='')}" for name, value in parts.items())


class QueryCache:
    """First-page result cache for listing queries, keyed by query shape."""

    def __init__(self, cache: TTLCache[PagedResult] | None = None) -> None:
        self._cache: TTLCache[PagedResult] = (
            cache if cache is not None else TTLCache(name="QueryCache")
        )

    def get(
        self,
        query: str | None,
        sort_by: SortBy | str,
        service_filter: str | None,
        category_filter: str | None,
        is_first_page: bool,
    ) -> PagedResult | None:
        key = build_cache_key(query, sort_by, service_filter, category_filter, is_first_page)
        return self._cache.get(key)

    def put(
        self,
        query: str | None,
        sort_by: SortBy | str,
        service_filter: str | None,
        category_filter: str | None,
        is_first_page: bool,
        result: PagedResult,
    ) -> None:
        key = build_cache_key(query, sort_by, service_filter, category_filter, is_first_page)
        self._cache.put(key, result)

    def clear(self) -> None:
        self._cache.clear()

    def stats(self) -> CacheStats:
        return self._cache.stats()


__all__ = [
    "CacheEntry",
    "CacheStats",
    "QueryCache",
    "TTLCache",
    "build_cache_key",
]

"""Promo code listing: serve first pages from the query cache, fetch otherwise."""

from __future__ import annotations

import logging
from dataclasses import replace

from promo_state.cache import QueryCache
from promo_state.models import FetchRequest, PagedResult
from promo_state.selection import FilterState, filter_key
from promo_state.services.interfaces import Fetcher

logger = logging.getLogger(__name__)


async def load_promo_codes(
    *,
    request: FetchRequest,
    filters: FilterState,
    cache: QueryCache | None,
    fetcher: Fetcher,
) -> PagedResult:
    """Load one page of promo codes for ``request`` narrowed by ``filters``.

    The filter state replaces any filter strings already on the request.
    Only non-empty first pages are cached; later pages always hit the
    fetcher. Fetch failures propagate as FetchError.
    """
    request = replace(
        request,
        query=request.query.strip(),
        service_filter=filter_key(filters.services),
        category_filter=filter_key(filters.categories),
    )
    shape = (
        request.query,
        request.sort_by,
        request.service_filter,
        request.category_filter,
        request.pagination.is_first_page,
    )
    if cache is not None:
        cached = cache.get(*shape)
        if cached is not None:
            logger.debug("Promo code page served from cache: %r", request.query)
            return cached

    result = await fetcher.fetch(request)
    if cache is not None and not result.is_empty:
        cache.put(*shape, result)
    logger.debug("Fetched %d promo codes for %r", len(result.items), request.query)
    return result


class PromoCodeListing:
    """Listing entry point bound to one fetcher and one query cache."""

    def __init__(self, fetcher: Fetcher, cache: QueryCache | None = None) -> None:
        self._fetcher = fetcher
        self._cache = cache

    @property
    def cache(self) -> QueryCache | None:
        return self._cache

    async def load(
        self, request: FetchRequest, filters: FilterState | None = None
    ) -> PagedResult:
        return await load_promo_codes(
            request=request,
            filters=filters if filters is not None else FilterState(),
            cache=self._cache,
            fetcher=self._fetcher,
        )

    def invalidate(self) -> None:
        """Drop cached pages, e.g. after the user submits a new code."""
        if self._cache is not None:
            self._cache.clear()


__all__ = [
    "PromoCodeListing",
    "load_promo_codes",
]

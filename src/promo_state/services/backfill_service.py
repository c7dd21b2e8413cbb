"""Entity index backfill: serve from the index, fetch by ID on a miss."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from promo_state.entity_index import EntityIndex
from promo_state.errors import ErrorKind, FetchError
from promo_state.services.interfaces import SingleEntityFetcher

logger = logging.getLogger(__name__)


async def load_or_fetch_entity(
    *,
    entity_id: str,
    index: EntityIndex,
    fetcher: SingleEntityFetcher | None,
) -> Any | None:
    """Load an entity from the index, or fetch and index it on a miss.

    Unknown IDs yield None; any other fetch failure propagates as FetchError.
    """
    cached = index.get(entity_id)
    if cached is not None:
        return cached
    if fetcher is None:
        return None

    try:
        entity = await fetcher.fetch_by_id(entity_id)
    except FetchError as exc:
        if exc.kind == ErrorKind.NOT_FOUND:
            return None
        raise
    if entity is not None:
        index.add_all([entity])
    return entity


async def load_or_fetch_many(
    *,
    entity_ids: Iterable[str],
    index: EntityIndex,
    fetcher: SingleEntityFetcher | None,
) -> list[Any]:
    """Resolve IDs in order, skipping ones that cannot be resolved.

    Missing entities are fetched concurrently. A failed lookup is logged and
    skipped so one bad ID does not hide the rest.
    """
    ids = list(dict.fromkeys(entity_ids))
    missing = [i for i in ids if i not in index]
    if missing and fetcher is not None:
        results = await asyncio.gather(
            *(load_or_fetch_entity(entity_id=i, index=index, fetcher=fetcher) for i in missing),
            return_exceptions=True,
        )
        for entity_id, result in zip(missing, results, strict=True):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.warning("Backfill for %s failed: %s", entity_id, result)
    return index.get_many(ids)


__all__ = [
    "load_or_fetch_entity",
    "load_or_fetch_many",
]

"""ID -> entity lookup table populated opportunistically by every fetch."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import Generic, Protocol, TypeVar

logger = logging.getLogger(__name__)


class Identified(Protocol):
    """Anything with a stable string ``id``."""

    @property
    def id(self) -> str: ...


E = TypeVar("E", bound=Identified)


class EntityIndex(Generic[E]):
    """Most-recently-seen copy of each entity, keyed by ID.

    Entries are replaced whole on every ``add_all``; partial records are never
    merged. A miss means "not seen yet", never an error. One instance is built
    in the composition root and shared by everything that needs it.
    """

    def __init__(self) -> None:
        self._entities: dict[str, E] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entities)

    def __contains__(self, entity_id: object) -> bool:
        with self._lock:
            return entity_id in self._entities

    def add_all(self, entities: Iterable[E]) -> None:
        batch = list(entities)
        if not batch:
            return
        with self._lock:
            for entity in batch:
                self._entities[entity.id] = entity
            size = len(self._entities)
        logger.debug("Indexed %d entities (size=%d)", len(batch), size)

    def get(self, entity_id: str) -> E | None:
        with self._lock:
            return self._entities.get(entity_id)

    def get_many(self, entity_ids: Iterable[str]) -> list[E]:
        """Return known entities in the order requested, skipping unknown IDs."""
        with self._lock:
            return [self._entities[i] for i in entity_ids if i in self._entities]

    def snapshot(self) -> dict[str, E]:
        """Copy of the current ID -> entity map."""
        with self._lock:
            return dict(self._entities)

    def clear(self) -> None:
        with self._lock:
            self._entities.clear()


__all__ = ["EntityIndex", "Identified"]

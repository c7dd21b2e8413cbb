"""Composition root and logging setup for the coordination core."""

from __future__ import annotations

import logging
import logging.handlers
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_config_dir

from promo_state.cache import QueryCache, TTLCache
from promo_state.config import CoreConfig
from promo_state.coordinator import ServiceSelectionCoordinator
from promo_state.entity_index import EntityIndex
from promo_state.models import CONFIG_APP_NAME, Service
from promo_state.search import SearchCoordinator
from promo_state.services.interaction_service import InteractionService
from promo_state.services.interfaces import AppServices
from promo_state.services.listing_service import PromoCodeListing

LOG_FILENAME = "debug.log"
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3


def configure_logging(debug: bool, log_dir: Path | None = None) -> None:
    """Configure logging. When debug=True, logs to file at DEBUG level."""
    if not debug:
        # Default: the host app owns stderr, stay silent
        logging.disable(logging.CRITICAL)
        return

    logging.disable(logging.NOTSET)
    if log_dir is None:
        log_dir = Path(user_config_dir(CONFIG_APP_NAME))
    log_dir.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        log_dir / LOG_FILENAME,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    logging.root.addHandler(handler)
    logging.root.setLevel(logging.DEBUG)


@dataclass(slots=True)
class CoreComponents:
    """Explicitly owned instances, built once per app process.

    ``service_index`` is the single process-wide entity index;
    ``promo_code_cache`` is owned by ``promo_codes``.
    """

    service_index: EntityIndex[Service]
    promo_code_cache: QueryCache
    promo_codes: PromoCodeListing
    service_search: SearchCoordinator
    service_selection: ServiceSelectionCoordinator
    interactions: InteractionService


def build_core(config: CoreConfig, services: AppServices) -> CoreComponents:
    """Wire the core from configuration and collaborators.

    Order matters: the index exists before any coordinator that feeds it.
    """
    service_index: EntityIndex[Service] = EntityIndex()
    promo_code_cache = QueryCache(
        TTLCache(
            ttl_seconds=config.cache_ttl_seconds,
            max_entries=config.cache_max_entries,
            name="PromoCodeQueryCache",
        )
    )
    service_search = SearchCoordinator(
        services.services,
        index=service_index,
        query_cache=QueryCache(
            TTLCache(
                ttl_seconds=config.cache_ttl_seconds,
                max_entries=config.cache_max_entries,
                name="ServiceQueryCache",
            )
        ),
        debounce_seconds=config.search_debounce_seconds,
        popular_limit=config.popular_limit,
        page_size=config.page_size,
    )
    return CoreComponents(
        service_index=service_index,
        promo_code_cache=promo_code_cache,
        promo_codes=PromoCodeListing(services.promo_codes, promo_code_cache),
        service_search=service_search,
        service_selection=ServiceSelectionCoordinator(service_search, service_index),
        interactions=InteractionService(sink=services.interactions, auth=services.auth),
    )


__all__ = [
    "CoreComponents",
    "build_core",
    "configure_logging",
]

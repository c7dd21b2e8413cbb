"""Client-side state coordination core for a promo code app."""

from promo_state.bootstrap import CoreComponents, build_core, configure_logging
from promo_state.cache import QueryCache, TTLCache, build_cache_key
from promo_state.config import CoreConfig, load_config, save_config
from promo_state.coordinator import ServiceSelectionCoordinator, ServiceSelectionState
from promo_state.entity_index import EntityIndex
from promo_state.errors import ErrorKind, FetchError
from promo_state.interactions import VoteUpdate, compute_bookmark_toggle, compute_vote_update
from promo_state.models import (
    ContentType,
    FetchRequest,
    PagedResult,
    PaginationRequest,
    Post,
    PromoCode,
    Service,
    SortBy,
    UserInteraction,
    VoteState,
)
from promo_state.search import SearchCoordinator, SearchSnapshot
from promo_state.selection import Multi, Single, apply_action

__all__ = [
    "ContentType",
    "CoreComponents",
    "CoreConfig",
    "EntityIndex",
    "ErrorKind",
    "FetchError",
    "FetchRequest",
    "Multi",
    "PagedResult",
    "PaginationRequest",
    "Post",
    "PromoCode",
    "QueryCache",
    "SearchCoordinator",
    "SearchSnapshot",
    "Service",
    "ServiceSelectionCoordinator",
    "ServiceSelectionState",
    "Single",
    "SortBy",
    "TTLCache",
    "UserInteraction",
    "VoteState",
    "VoteUpdate",
    "apply_action",
    "build_cache_key",
    "build_core",
    "compute_bookmark_toggle",
    "compute_vote_update",
    "configure_logging",
    "load_config",
    "save_config",
]

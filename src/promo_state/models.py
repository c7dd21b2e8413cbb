"""Data models and constants for the promo-state coordination core."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

# Application identity, used for platformdirs config paths
CONFIG_APP_NAME = "promo-state"

# Query cache defaults
DEFAULT_CACHE_TTL_SECONDS = 5 * 60
DEFAULT_CACHE_MAX_ENTRIES = 50
CACHE_EVICTION_HEADROOM = 10  # slots freed below capacity when evicting oldest

# Search defaults
SEARCH_DEBOUNCE_DELAY = 0.3
POPULAR_LIMIT = 20
DEFAULT_PAGE_SIZE = 20

T = TypeVar("T")


class VoteState(str, Enum):
    """A user's vote on a single piece of content."""

    NONE = "none"
    UPVOTE = "upvote"
    DOWNVOTE = "downvote"


class ContentType(str, Enum):
    """Kinds of content a user can vote on or bookmark."""

    PROMO_CODE = "promo_code"
    POST = "post"
    COMMENT = "comment"
    PROMO = "promo"


class SortBy(str, Enum):
    """Server-side sort modes for promo code listings."""

    POPULARITY = "popularity"
    NEWEST = "newest"
    OLDEST = "oldest"
    EXPIRING_SOON = "expiring_soon"
    MOST_VIEWED = "most_viewed"
    MOST_USED = "most_used"
    ALPHABETICAL = "alphabetical"


@dataclass(frozen=True, slots=True)
class Service:
    """A merchant/service promo codes belong to."""

    id: str
    name: str
    category: str = ""
    logo_url: str | None = None
    promo_code_count: int = 0


@dataclass(frozen=True, slots=True)
class PromoCode:
    """A user-submitted promo code."""

    id: str
    code: str
    service_id: str
    service_name: str = ""
    category: str = ""
    title: str = ""
    upvotes: int = 0
    downvotes: int = 0

    @property
    def vote_score(self) -> int:
        return self.upvotes - self.downvotes


@dataclass(frozen=True, slots=True)
class Post:
    """A community feed post."""

    id: str
    author_id: str
    title: str
    content: str = ""
    tags: tuple[str, ...] = ()
    upvotes: int = 0
    downvotes: int = 0


@dataclass(frozen=True, slots=True)
class PaginationRequest:
    """Cursor-based page request. ``cursor=None`` means the first page."""

    limit: int = DEFAULT_PAGE_SIZE
    cursor: str | None = None

    @property
    def is_first_page(self) -> bool:
        return self.cursor is None

    @classmethod
    def first_page(cls, limit: int = DEFAULT_PAGE_SIZE) -> PaginationRequest:
        return cls(limit=limit)

    @classmethod
    def next_page(cls, cursor: str, limit: int = DEFAULT_PAGE_SIZE) -> PaginationRequest:
        return cls(limit=limit, cursor=cursor)


@dataclass(frozen=True, slots=True)
class PagedResult(Generic[T]):
    """One page of results plus the cursor for the next page."""

    items: tuple[T, ...] = ()
    next_cursor: str | None = None
    has_more: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(item.id for item in self.items)  # type: ignore[attr-defined]


@dataclass(frozen=True, slots=True)
class FetchRequest:
    """Query shape handed to a Fetcher."""

    query: str = ""
    sort_by: SortBy = SortBy.POPULARITY
    service_filter: str | None = None
    category_filter: str | None = None
    pagination: PaginationRequest = field(default_factory=PaginationRequest)


_UNSAFE_ID_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def interaction_id(item_id: str, user_id: str) -> str:
    """Stable document ID for a (content, user) interaction."""
    return f"{_UNSAFE_ID_CHARS.sub('_', item_id)}_{_UNSAFE_ID_CHARS.sub('_', user_id)}"


@dataclass(frozen=True, slots=True)
class UserInteraction:
    """A user's vote and bookmark state on one piece of content."""

    item_id: str
    item_type: ContentType
    user_id: str
    vote_state: VoteState = VoteState.NONE
    is_bookmarked: bool = False

    @property
    def id(self) -> str:
        return interaction_id(self.item_id, self.user_id)


__all__ = [
    "CACHE_EVICTION_HEADROOM",
    "CONFIG_APP_NAME",
    "DEFAULT_CACHE_MAX_ENTRIES",
    "DEFAULT_CACHE_TTL_SECONDS",
    "DEFAULT_PAGE_SIZE",
    "POPULAR_LIMIT",
    "SEARCH_DEBOUNCE_DELAY",
    "ContentType",
    "FetchRequest",
    "PagedResult",
    "PaginationRequest",
    "Post",
    "PromoCode",
    "Service",
    "SortBy",
    "UserInteraction",
    "VoteState",
    "interaction_id",
]

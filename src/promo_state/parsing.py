"""JSON document parsing for entities returned by the remote store.

Parsers never raise on malformed documents: a document without an ``id``
yields ``None`` and wrong-typed fields fall back to defaults.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from promo_state.models import (
    ContentType,
    PagedResult,
    Post,
    PromoCode,
    Service,
    UserInteraction,
    VoteState,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _str(data: dict[str, Any], key: str, default: str = "") -> str:
    value = data.get(key)
    return value if isinstance(value, str) else default


def _count(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return max(0, value)


def parse_service(data: dict[str, Any]) -> Service | None:
    service_id = _str(data, "id")
    if not service_id:
        return None
    logo_url = data.get("logoUrl")
    return Service(
        id=service_id,
        name=_str(data, "name") or service_id,
        category=_str(data, "category"),
        logo_url=logo_url if isinstance(logo_url, str) else None,
        promo_code_count=_count(data, "promoCodeCount"),
    )


def parse_promo_code(data: dict[str, Any]) -> PromoCode | None:
    promo_id = _str(data, "id")
    code = _str(data, "code")
    if not promo_id or not code:
        return None
    return PromoCode(
        id=promo_id,
        code=code,
        service_id=_str(data, "serviceId"),
        service_name=_str(data, "serviceName"),
        category=_str(data, "category"),
        title=_str(data, "title"),
        upvotes=_count(data, "upvotes"),
        downvotes=_count(data, "downvotes"),
    )


def parse_post(data: dict[str, Any]) -> Post | None:
    post_id = _str(data, "id")
    if not post_id:
        return None
    tags_raw = data.get("tags") or []
    tags = tuple(t for t in tags_raw if isinstance(t, str)) if isinstance(tags_raw, list) else ()
    return Post(
        id=post_id,
        author_id=_str(data, "authorId"),
        title=_str(data, "title"),
        content=_str(data, "content"),
        tags=tags,
        upvotes=_count(data, "upvotes"),
        downvotes=_count(data, "downvotes"),
    )


def parse_paged_result(
    payload: dict[str, Any], parse_item: Callable[[dict[str, Any]], T | None]
) -> PagedResult[T]:
    """Parse ``{"items": [...], "nextCursor": ..., "hasMore": ...}``."""
    raw_items = payload.get("items")
    if not isinstance(raw_items, list):
        logger.warning("Page payload has non-list items")
        raw_items = []
    items: list[T] = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        item = parse_item(raw)
        if item is not None:
            items.append(item)
    next_cursor = payload.get("nextCursor")
    if not isinstance(next_cursor, str) or not next_cursor:
        next_cursor = None
    has_more = payload.get("hasMore")
    return PagedResult(
        items=tuple(items),
        next_cursor=next_cursor,
        has_more=has_more if isinstance(has_more, bool) else next_cursor is not None,
    )


def interaction_to_dict(interaction: UserInteraction) -> dict[str, Any]:
    """Serialize an interaction for the persistence endpoint."""
    return {
        "id": interaction.id,
        "itemId": interaction.item_id,
        "itemType": interaction.item_type.value,
        "userId": interaction.user_id,
        "voteState": interaction.vote_state.value,
        "isBookmarked": interaction.is_bookmarked,
    }


def parse_interaction(data: dict[str, Any]) -> UserInteraction | None:
    item_id = _str(data, "itemId")
    user_id = _str(data, "userId")
    if not item_id or not user_id:
        return None
    try:
        item_type = ContentType(_str(data, "itemType", ContentType.PROMO_CODE.value))
    except ValueError:
        item_type = ContentType.PROMO_CODE
    try:
        vote_state = VoteState(_str(data, "voteState", VoteState.NONE.value))
    except ValueError:
        vote_state = VoteState.NONE
    is_bookmarked = data.get("isBookmarked")
    return UserInteraction(
        item_id=item_id,
        item_type=item_type,
        user_id=user_id,
        vote_state=vote_state,
        is_bookmarked=is_bookmarked if isinstance(is_bookmarked, bool) else False,
    )


__all__ = [
    "interaction_to_dict",
    "parse_interaction",
    "parse_paged_result",
    "parse_post",
    "parse_promo_code",
    "parse_service",
]

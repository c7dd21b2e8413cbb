"""Optimistic vote/bookmark flow: compute locally, publish, then persist."""

from __future__ import annotations

import logging
from collections.abc import Callable

from promo_state.errors import ErrorKind, FetchError
from promo_state.interactions import (
    VoteUpdate,
    compute_bookmark_toggle,
    compute_vote_update,
    create_or_update_vote_interaction,
)
from promo_state.models import ContentType, UserInteraction, VoteState
from promo_state.services.interfaces import AuthContext, PersistenceSink

logger = logging.getLogger(__name__)

VoteListener = Callable[[VoteUpdate, UserInteraction], None]
BookmarkListener = Callable[[UserInteraction], None]


class InteractionService:
    """Applies interactions optimistically and delegates the durable write.

    The optimistic callback fires before the write starts. If the write fails
    the error is logged and re-raised; callers restore the snapshot they held
    before the action. Backend counters may lag behind the optimistic values.
    """

    def __init__(self, *, sink: PersistenceSink, auth: AuthContext) -> None:
        self._sink = sink
        self._auth = auth

    def _require_user(self) -> str:
        user_id = self._auth.current_user_id()
        if not user_id:
            raise FetchError(ErrorKind.PERMISSION_DENIED, "sign-in required")
        return user_id

    async def toggle_vote(
        self,
        *,
        item_id: str,
        item_type: ContentType,
        upvotes: int,
        downvotes: int,
        current: UserInteraction | None,
        target: VoteState,
        on_optimistic: VoteListener | None = None,
    ) -> tuple[VoteUpdate, UserInteraction]:
        user_id = self._require_user()
        current_state = current.vote_state if current is not None else VoteState.NONE
        update = compute_vote_update(upvotes, downvotes, current_state, target)
        interaction = create_or_update_vote_interaction(
            current,
            update.new_vote_state,
            item_id=item_id,
            item_type=item_type,
            user_id=user_id,
        )
        if on_optimistic is not None:
            on_optimistic(update, interaction)
        await self._persist(interaction)
        return update, interaction

    async def toggle_bookmark(
        self,
        *,
        item_id: str,
        item_type: ContentType,
        current: UserInteraction | None,
        on_optimistic: BookmarkListener | None = None,
    ) -> UserInteraction:
        user_id = self._require_user()
        interaction = compute_bookmark_toggle(
            current, item_id=item_id, item_type=item_type, user_id=user_id
        )
        if on_optimistic is not None:
            on_optimistic(interaction)
        await self._persist(interaction)
        return interaction

    async def _persist(self, interaction: UserInteraction) -> None:
        try:
            await self._sink.write_interaction(interaction)
        except FetchError as exc:
            logger.warning(
                "Persisting interaction %s failed: %s", interaction.id, exc.kind.value
            )
            raise


__all__ = ["InteractionService"]

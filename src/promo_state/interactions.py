"""Optimistic vote and bookmark computation, generic across content types.

Pure functions only. Callers apply the results to whatever entity is being
voted on (promo code, post, comment) and hand the finalized interaction to a
persistence sink.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TypeVar

from promo_state.models import ContentType, UserInteraction, VoteState

# (upvote delta, downvote delta) when casting ``target`` from NONE
_ADD = {VoteState.UPVOTE: (1, 0), VoteState.DOWNVOTE: (0, 1), VoteState.NONE: (0, 0)}


@dataclass(frozen=True, slots=True)
class VoteUpdate:
    """New counters and vote state after one vote click."""

    new_upvotes: int
    new_downvotes: int
    new_vote_state: VoteState


def compute_vote_update(
    current_upvotes: int,
    current_downvotes: int,
    current_vote_state: VoteState,
    target_vote_state: VoteState,
) -> VoteUpdate:
    """Compute counters and state for clicking ``target_vote_state``.

    Transition table:
        target == current       -> remove the vote (counter -1, state NONE)
        current == NONE         -> cast the vote (counter +1, state target)
        UPVOTE <-> DOWNVOTE     -> +1 target counter, -1 previous counter
    Counters never drop below zero.
    """
    if target_vote_state == current_vote_state:
        up, down = _ADD[target_vote_state]
        up_delta, down_delta = -up, -down
        new_state = VoteState.NONE
    elif current_vote_state == VoteState.NONE:
        up_delta, down_delta = _ADD[target_vote_state]
        new_state = target_vote_state
    else:
        add_up, add_down = _ADD[target_vote_state]
        remove_up, remove_down = _ADD[current_vote_state]
        up_delta, down_delta = add_up - remove_up, add_down - remove_down
        new_state = target_vote_state

    return VoteUpdate(
        new_upvotes=max(0, current_upvotes + up_delta),
        new_downvotes=max(0, current_downvotes + down_delta),
        new_vote_state=new_state,
    )


def create_or_update_vote_interaction(
    current: UserInteraction | None,
    new_vote_state: VoteState,
    *,
    item_id: str,
    item_type: ContentType,
    user_id: str,
) -> UserInteraction:
    """Patch the vote on an existing interaction, or create one."""
    if current is not None:
        return replace(current, vote_state=new_vote_state)
    return UserInteraction(
        item_id=item_id,
        item_type=item_type,
        user_id=user_id,
        vote_state=new_vote_state,
    )


def compute_bookmark_toggle(
    current: UserInteraction | None,
    *,
    item_id: str,
    item_type: ContentType,
    user_id: str,
) -> UserInteraction:
    """Flip the bookmark flag; a first interaction starts out bookmarked."""
    if current is not None:
        return replace(current, is_bookmarked=not current.is_bookmarked)
    return UserInteraction(
        item_id=item_id,
        item_type=item_type,
        user_id=user_id,
        vote_state=VoteState.NONE,
        is_bookmarked=True,
    )


Votable = TypeVar("Votable")


def apply_vote_update(entity: Votable, update: VoteUpdate) -> Votable:
    """Return a copy of a dataclass entity with ``upvotes``/``downvotes`` replaced."""
    return replace(  # type: ignore[type-var]
        entity,
        upvotes=update.new_upvotes,
        downvotes=update.new_downvotes,
    )


__all__ = [
    "VoteUpdate",
    "apply_vote_update",
    "compute_bookmark_toggle",
    "compute_vote_update",
    "create_or_update_vote_interaction",
]

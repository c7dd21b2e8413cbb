"""Tests for optimistic vote and bookmark computation."""

from __future__ import annotations

import pytest

from promo_state.interactions import (
    VoteUpdate,
    apply_vote_update,
    compute_bookmark_toggle,
    compute_vote_update,
    create_or_update_vote_interaction,
)
from promo_state.models import ContentType, UserInteraction, VoteState

NONE, UP, DOWN = VoteState.NONE, VoteState.UPVOTE, VoteState.DOWNVOTE


@pytest.mark.parametrize(
    ("up", "down", "current", "target", "expected"),
    [
        (5, 2, NONE, UP, VoteUpdate(6, 2, UP)),
        (5, 2, NONE, DOWN, VoteUpdate(5, 3, DOWN)),
        (5, 2, UP, UP, VoteUpdate(4, 2, NONE)),
        (5, 2, DOWN, DOWN, VoteUpdate(5, 1, NONE)),
        (5, 2, UP, DOWN, VoteUpdate(4, 3, DOWN)),
        (5, 2, DOWN, UP, VoteUpdate(6, 1, UP)),
        (5, 2, NONE, NONE, VoteUpdate(5, 2, NONE)),
        (5, 2, UP, NONE, VoteUpdate(4, 2, NONE)),
        (5, 2, DOWN, NONE, VoteUpdate(5, 1, NONE)),
    ],
)
def test_transition_table(up, down, current, target, expected) -> None:
    assert compute_vote_update(up, down, current, target) == expected


def test_double_click_restores_original_counts() -> None:
    first = compute_vote_update(5, 2, NONE, UP)
    second = compute_vote_update(first.new_upvotes, first.new_downvotes, first.new_vote_state, UP)
    assert second == VoteUpdate(5, 2, NONE)


@pytest.mark.parametrize(
    ("current", "target"),
    [(UP, UP), (DOWN, DOWN), (UP, DOWN), (DOWN, UP)],
)
def test_counters_never_go_negative(current, target) -> None:
    update = compute_vote_update(0, 0, current, target)
    assert update.new_upvotes >= 0
    assert update.new_downvotes >= 0


def test_create_vote_interaction_when_absent() -> None:
    interaction = create_or_update_vote_interaction(
        None, UP, item_id="p1", item_type=ContentType.PROMO_CODE, user_id="u1"
    )
    assert interaction == UserInteraction(
        item_id="p1", item_type=ContentType.PROMO_CODE, user_id="u1", vote_state=UP
    )
    assert not interaction.is_bookmarked


def test_update_vote_keeps_bookmark(make_interaction) -> None:
    current = make_interaction(vote_state=UP, is_bookmarked=True)
    interaction = create_or_update_vote_interaction(
        current, DOWN, item_id="ignored", item_type=ContentType.POST, user_id="ignored"
    )
    assert interaction.vote_state == DOWN
    assert interaction.is_bookmarked
    assert interaction.item_id == current.item_id


def test_first_bookmark_starts_bookmarked() -> None:
    interaction = compute_bookmark_toggle(
        None, item_id="p1", item_type=ContentType.PROMO_CODE, user_id="u1"
    )
    assert interaction.is_bookmarked
    assert interaction.vote_state == NONE


def test_bookmark_toggle_flips_and_keeps_vote(make_interaction) -> None:
    current = make_interaction(vote_state=UP, is_bookmarked=True)
    interaction = compute_bookmark_toggle(
        current, item_id="p1", item_type=ContentType.PROMO_CODE, user_id="u1"
    )
    assert not interaction.is_bookmarked
    assert interaction.vote_state == UP


def test_apply_vote_update_to_promo_code(make_promo_code) -> None:
    promo = make_promo_code(upvotes=5, downvotes=2)
    updated = apply_vote_update(promo, VoteUpdate(6, 2, UP))
    assert (updated.upvotes, updated.downvotes) == (6, 2)
    assert updated.code == promo.code
    assert updated.vote_score == 4


def test_interaction_id_is_sanitized() -> None:
    interaction = UserInteraction(
        item_id="promo/42", item_type=ContentType.PROMO_CODE, user_id="a.b@c"
    )
    assert interaction.id == "promo_42_a_b_c"


def test_down_then_up_never_goes_negative() -> None:
    first = compute_vote_update(0, 0, NONE, DOWN)
    assert first == VoteUpdate(0, 1, DOWN)
    second = compute_vote_update(first.new_upvotes, first.new_downvotes, DOWN, UP)
    assert second == VoteUpdate(1, 0, UP)

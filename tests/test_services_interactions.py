"""Tests for the optimistic interaction service."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from promo_state.errors import ErrorKind, FetchError
from promo_state.interactions import VoteUpdate
from promo_state.models import ContentType, VoteState
from promo_state.services.interaction_service import InteractionService
from promo_state.services.interfaces import StaticAuthContext


def _service(user_id: str | None = "u1", sink=None) -> tuple[InteractionService, AsyncMock]:
    sink = sink if sink is not None else AsyncMock()
    return InteractionService(sink=sink, auth=StaticAuthContext(user_id)), sink


@pytest.mark.asyncio
async def test_vote_publishes_before_persisting() -> None:
    order: list[str] = []
    sink = AsyncMock()
    sink.write_interaction.side_effect = lambda _i: order.append("persist")
    service, _ = _service(sink=sink)

    def _optimistic(update, interaction) -> None:
        order.append("optimistic")
        assert update == VoteUpdate(6, 2, VoteState.UPVOTE)
        assert interaction.vote_state == VoteState.UPVOTE

    update, interaction = await service.toggle_vote(
        item_id="p1",
        item_type=ContentType.PROMO_CODE,
        upvotes=5,
        downvotes=2,
        current=None,
        target=VoteState.UPVOTE,
        on_optimistic=_optimistic,
    )

    assert order == ["optimistic", "persist"]
    assert update.new_upvotes == 6
    assert interaction.user_id == "u1"
    sink.write_interaction.assert_awaited_once_with(interaction)


@pytest.mark.asyncio
async def test_vote_uses_existing_interaction(make_interaction) -> None:
    service, sink = _service()
    current = make_interaction(vote_state=VoteState.UPVOTE, is_bookmarked=True)

    update, interaction = await service.toggle_vote(
        item_id="p1",
        item_type=ContentType.PROMO_CODE,
        upvotes=5,
        downvotes=2,
        current=current,
        target=VoteState.DOWNVOTE,
    )

    assert update == VoteUpdate(4, 3, VoteState.DOWNVOTE)
    assert interaction.is_bookmarked
    assert interaction.vote_state == VoteState.DOWNVOTE


@pytest.mark.asyncio
async def test_signed_out_is_rejected_before_any_effect() -> None:
    service, sink = _service(user_id=None)
    optimistic = MagicMock()

    with pytest.raises(FetchError) as exc_info:
        await service.toggle_bookmark(
            item_id="p1",
            item_type=ContentType.POST,
            current=None,
            on_optimistic=optimistic,
        )

    assert exc_info.value.kind == ErrorKind.PERMISSION_DENIED
    optimistic.assert_not_called()
    sink.write_interaction.assert_not_awaited()


@pytest.mark.asyncio
async def test_persist_failure_is_raised_after_optimistic_update() -> None:
    sink = AsyncMock()
    sink.write_interaction.side_effect = FetchError(ErrorKind.OFFLINE)
    service, _ = _service(sink=sink)
    optimistic = MagicMock()

    with pytest.raises(FetchError) as exc_info:
        await service.toggle_bookmark(
            item_id="p1",
            item_type=ContentType.PROMO_CODE,
            current=None,
            on_optimistic=optimistic,
        )

    assert exc_info.value.kind == ErrorKind.OFFLINE
    optimistic.assert_called_once()
    assert optimistic.call_args.args[0].is_bookmarked


@pytest.mark.asyncio
async def test_bookmark_toggle_off(make_interaction) -> None:
    service, sink = _service()

    interaction = await service.toggle_bookmark(
        item_id="p1",
        item_type=ContentType.PROMO_CODE,
        current=make_interaction(is_bookmarked=True),
    )

    assert not interaction.is_bookmarked
    sink.write_interaction.assert_awaited_once_with(interaction)

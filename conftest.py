"""Shared test fixtures for promo-state tests."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from promo_state.models import (
    ContentType,
    FetchRequest,
    PagedResult,
    PromoCode,
    Service,
    UserInteraction,
    VoteState,
)

# ── Factories ────────────────────────────────────────────────────────────────


@pytest.fixture
def make_service():
    """Factory fixture for creating Service instances with sensible defaults."""

    def _make(
        service_id: str = "netflix",
        name: str | None = None,
        category: str = "streaming",
        promo_code_count: int = 0,
    ) -> Service:
        return Service(
            id=service_id,
            name=name if name is not None else service_id.title(),
            category=category,
            promo_code_count=promo_code_count,
        )

    return _make


@pytest.fixture
def make_promo_code():
    """Factory fixture for creating PromoCode instances."""

    def _make(
        promo_id: str = "p1",
        code: str = "SAVE10",
        service_id: str = "netflix",
        upvotes: int = 0,
        downvotes: int = 0,
    ) -> PromoCode:
        return PromoCode(
            id=promo_id,
            code=code,
            service_id=service_id,
            service_name=service_id.title(),
            upvotes=upvotes,
            downvotes=downvotes,
        )

    return _make


@pytest.fixture
def make_interaction():
    """Factory fixture for creating UserInteraction instances."""

    def _make(
        item_id: str = "p1",
        user_id: str = "u1",
        vote_state: VoteState = VoteState.NONE,
        is_bookmarked: bool = False,
        item_type: ContentType = ContentType.PROMO_CODE,
    ) -> UserInteraction:
        return UserInteraction(
            item_id=item_id,
            item_type=item_type,
            user_id=user_id,
            vote_state=vote_state,
            is_bookmarked=is_bookmarked,
        )

    return _make


# ── Fakes ────────────────────────────────────────────────────────────────────


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class ScriptedFetcher:
    """Fetcher whose responses are keyed by stripped query.

    A query mapped to an exception raises it. When ``gated`` is set, each
    fetch blocks until ``release(query)`` is called, so tests can control the
    order in which results arrive.
    """

    def __init__(
        self,
        responses: dict[str, Any] | None = None,
        *,
        gated: bool = False,
    ) -> None:
        self.responses: dict[str, Any] = dict(responses or {})
        self.requests: list[FetchRequest] = []
        self.gated = gated
        self._gates: dict[str, asyncio.Event] = {}
        self._started: dict[str, asyncio.Event] = {}

    @property
    def queries(self) -> list[str]:
        return [request.query for request in self.requests]

    def _event(self, table: dict[str, asyncio.Event], query: str) -> asyncio.Event:
        if query not in table:
            table[query] = asyncio.Event()
        return table[query]

    def release(self, query: str) -> None:
        self._event(self._gates, query).set()

    async def started(self, query: str) -> None:
        await self._event(self._started, query).wait()

    async def fetch(self, request: FetchRequest) -> PagedResult:
        self.requests.append(request)
        query = request.query.strip()
        self._event(self._started, query).set()
        if self.gated:
            await self._event(self._gates, query).wait()
        response = self.responses.get(query, PagedResult())
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def scripted_fetcher():
    """Factory fixture for ScriptedFetcher."""

    def _make(responses: dict[str, Any] | None = None, *, gated: bool = False):
        return ScriptedFetcher(responses, gated=gated)

    return _make
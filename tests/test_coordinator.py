"""Tests for the service selection coordinator."""

from __future__ import annotations

import pytest
import pytest_asyncio

from promo_state.coordinator import ServiceSelectionCoordinator, ServiceSelectionState
from promo_state.entity_index import EntityIndex
from promo_state.errors import ErrorKind, FetchError
from promo_state.models import PagedResult
from promo_state.search import Failure, SearchCoordinator, Success
from promo_state.selection import (
    ClearQuery,
    ClearSelection,
    LoadPopularServices,
    Multi,
    RetryPopularServices,
    RetrySearch,
    SetSearchFocus,
    Single,
    ToggleService,
    UpdateQuery,
)


def _page(*services) -> PagedResult:
    return PagedResult(items=tuple(services))


@pytest_asyncio.fixture
async def wired(scripted_fetcher, make_service):
    """A bound coordinator whose latest pushed state is kept in a holder."""
    fetcher = scripted_fetcher(
        {
            "": _page(make_service("netflix"), make_service("hulu")),
            "spo": _page(make_service("spotify")),
        }
    )
    index: EntityIndex = EntityIndex()
    search = SearchCoordinator(fetcher, index=index, debounce_seconds=0)
    coordinator = ServiceSelectionCoordinator(search, index)
    holder = {"state": ServiceSelectionState.multi()}

    def _on_update(state: ServiceSelectionState) -> None:
        holder["state"] = state

    unbind = coordinator.bind(lambda: holder["state"], _on_update)
    yield coordinator, fetcher, holder, unbind
    await search.aclose()


def _act(coordinator, holder, action) -> None:
    holder["state"] = coordinator.handle_action(holder["state"], action)


@pytest.mark.asyncio
async def test_bind_activates_and_loads_popular(wired) -> None:
    coordinator, _fetcher, holder, _unbind = wired
    await coordinator.search.wait_idle()

    state = holder["state"]
    assert state.popular.ids == ("netflix", "hulu")
    assert [s.id for s in coordinator.visible_services(state)] == ["netflix", "hulu"]


@pytest.mark.asyncio
async def test_search_then_select_keeps_selection(wired) -> None:
    coordinator, _fetcher, holder, _unbind = wired
    await coordinator.search.wait_idle()

    _act(coordinator, holder, ToggleService("netflix"))
    _act(coordinator, holder, UpdateQuery("spo"))
    await coordinator.search.wait_idle()

    state = holder["state"]
    assert state.query == "spo"
    assert state.search.status == Success(query="spo", ids=("spotify",))
    assert state.selection == Multi(frozenset({"netflix"}))
    assert [s.id for s in coordinator.visible_services(state)] == ["spotify"]

    _act(coordinator, holder, ToggleService("spotify"))
    assert [s.id for s in coordinator.selected_services(holder["state"])] == [
        "netflix",
        "spotify",
    ]


@pytest.mark.asyncio
async def test_clear_query_returns_to_popular(wired) -> None:
    coordinator, fetcher, holder, _unbind = wired
    _act(coordinator, holder, UpdateQuery("spo"))
    await coordinator.search.wait_idle()

    _act(coordinator, holder, ClearQuery())
    await coordinator.search.wait_idle()

    state = holder["state"]
    assert state.query == ""
    assert not state.is_searching
    assert [s.id for s in coordinator.visible_services(state)] == ["netflix", "hulu"]
    assert fetcher.queries.count("") == 1


@pytest.mark.asyncio
async def test_load_popular_action_clears_query(wired) -> None:
    coordinator, _fetcher, holder, _unbind = wired
    _act(coordinator, holder, UpdateQuery("spo"))
    _act(coordinator, holder, LoadPopularServices())
    await coordinator.search.wait_idle()

    assert holder["state"].query == ""


@pytest.mark.asyncio
async def test_retry_popular_refetches(wired) -> None:
    coordinator, fetcher, holder, _unbind = wired
    await coordinator.search.wait_idle()

    _act(coordinator, holder, RetryPopularServices())
    await coordinator.search.wait_idle()

    assert fetcher.queries.count("") == 2


@pytest.mark.asyncio
async def test_retry_search_only_when_searching(wired) -> None:
    coordinator, fetcher, holder, _unbind = wired
    await coordinator.search.wait_idle()
    before = len(fetcher.requests)

    _act(coordinator, holder, RetrySearch())
    await coordinator.search.wait_idle()
    assert len(fetcher.requests) == before

    fetcher.responses["spo"] = FetchError(ErrorKind.OFFLINE)
    _act(coordinator, holder, UpdateQuery("spo"))
    await coordinator.search.wait_idle()
    assert holder["state"].search.status == Failure(ErrorKind.OFFLINE)

    fetcher.responses.pop("spo")
    _act(coordinator, holder, RetrySearch())
    await coordinator.search.wait_idle()
    assert holder["state"].search.status == Success(query="spo", ids=())


@pytest.mark.asyncio
async def test_stale_results_hidden_while_new_query_loads(wired) -> None:
    coordinator, _fetcher, holder, _unbind = wired
    _act(coordinator, holder, UpdateQuery("spo"))
    await coordinator.search.wait_idle()

    state = ServiceSelectionState(query="other", search=holder["state"].search)
    assert coordinator.visible_services(state) == []


@pytest.mark.asyncio
async def test_unbind_and_deactivate(wired) -> None:
    coordinator, fetcher, holder, unbind = wired
    await coordinator.search.wait_idle()
    unbind()
    coordinator.deactivate()
    before = holder["state"]

    _act(coordinator, holder, UpdateQuery("spo"))
    await coordinator.search.wait_idle()

    assert "spo" not in fetcher.queries
    assert holder["state"].search == before.search


def test_focus_and_selection_without_search(scripted_fetcher) -> None:
    index: EntityIndex = EntityIndex()
    coordinator = ServiceSelectionCoordinator(SearchCoordinator(scripted_fetcher()), index)
    state = ServiceSelectionState.single("a")

    state = coordinator.handle_action(state, SetSearchFocus(True))
    assert state.search_focused
    state = coordinator.handle_action(state, ClearSelection())
    assert state.selection == Single()
    assert coordinator.selected_services(state) == []

"""Pure selection state transitions and listing filters.

Nothing here has side effects. ``apply_action`` is total: every state and
action pair yields a valid new state, and the selection mode (``Single`` or
``Multi``) chosen at construction is never changed by any action.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from urllib.parse import quote

# ============================================================================
# Selection state
# ============================================================================


@dataclass(frozen=True, slots=True)
class Single:
    """At most one selected ID."""

    selected_id: str | None = None

    def contains(self, entity_id: str) -> bool:
        return self.selected_id == entity_id

    @property
    def selected_ids(self) -> frozenset[str]:
        return frozenset() if self.selected_id is None else frozenset({self.selected_id})


@dataclass(frozen=True, slots=True)
class Multi:
    """Any number of selected IDs."""

    selected_ids: frozenset[str] = field(default_factory=frozenset)

    def contains(self, entity_id: str) -> bool:
        return entity_id in self.selected_ids


SelectionState = Single | Multi


# ============================================================================
# Actions
# ============================================================================


@dataclass(frozen=True, slots=True)
class UpdateQuery:
    query: str


@dataclass(frozen=True, slots=True)
class ClearQuery:
    pass


@dataclass(frozen=True, slots=True)
class ToggleService:
    service_id: str


@dataclass(frozen=True, slots=True)
class SelectService:
    service_id: str


@dataclass(frozen=True, slots=True)
class UnselectService:
    service_id: str


@dataclass(frozen=True, slots=True)
class ClearSelection:
    pass


@dataclass(frozen=True, slots=True)
class RetrySearch:
    pass


@dataclass(frozen=True, slots=True)
class LoadPopularServices:
    pass


@dataclass(frozen=True, slots=True)
class RetryPopularServices:
    pass


@dataclass(frozen=True, slots=True)
class SetSearchFocus:
    focused: bool


SelectionAction = (
    UpdateQuery
    | ClearQuery
    | ToggleService
    | SelectService
    | UnselectService
    | ClearSelection
    | RetrySearch
    | LoadPopularServices
    | RetryPopularServices
    | SetSearchFocus
)


def _select(state: SelectionState, entity_id: str) -> SelectionState:
    if isinstance(state, Single):
        return Single(selected_id=entity_id)
    return Multi(selected_ids=state.selected_ids | {entity_id})


def _unselect(state: SelectionState, entity_id: str) -> SelectionState:
    if isinstance(state, Single):
        return Single() if state.selected_id == entity_id else state
    return Multi(selected_ids=state.selected_ids - {entity_id})


def _toggle(state: SelectionState, entity_id: str) -> SelectionState:
    if state.contains(entity_id):
        return _unselect(state, entity_id)
    return _select(state, entity_id)


def _clear(state: SelectionState) -> SelectionState:
    return Single() if isinstance(state, Single) else Multi()


def apply_action(state: SelectionState, action: SelectionAction) -> SelectionState:
    """Apply one action to a selection state and return the new state.

    Query, retry, popular-loading, and focus actions leave the selection
    untouched; their effects belong to the coordinator.
    """
    if isinstance(action, ToggleService):
        return _toggle(state, action.service_id)
    if isinstance(action, SelectService):
        return _select(state, action.service_id)
    if isinstance(action, UnselectService):
        return _unselect(state, action.service_id)
    if isinstance(action, ClearSelection):
        return _clear(state)
    return state


# ============================================================================
# Listing filters
# ============================================================================


@dataclass(frozen=True, slots=True)
class AllItems:
    """No filtering."""

    def matches(self, value: str) -> bool:  # noqa: ARG002
        return True


@dataclass(frozen=True, slots=True)
class SelectedItems:
    """Filter to a non-empty set of values.

    Build through ``selected()`` or ``toggle_filter()``; an empty backing set
    is invalid and callers must collapse it with ``normalize_filter``.
    """

    values: frozenset[str]

    def matches(self, value: str) -> bool:
        return value in self.values


ItemFilter = AllItems | SelectedItems
ALL = AllItems()


def selected(values: Iterable[str]) -> ItemFilter:
    """Build a filter from values, collapsing an empty set to ``ALL``."""
    frozen = frozenset(values)
    return SelectedItems(frozen) if frozen else ALL


def normalize_filter(item_filter: ItemFilter) -> ItemFilter:
    """Collapse a ``SelectedItems`` with no values to ``ALL``."""
    if isinstance(item_filter, SelectedItems) and not item_filter.values:
        return ALL
    return item_filter


def toggle_filter(item_filter: ItemFilter, value: str) -> ItemFilter:
    """Add or remove ``value``; removing the last value yields ``ALL``."""
    if isinstance(item_filter, AllItems):
        return SelectedItems(frozenset({value}))
    if value in item_filter.values:
        return selected(item_filter.values - {value})
    return SelectedItems(item_filter.values | {value})


def filter_key(item_filter: ItemFilter) -> str | None:
    """Deterministic key component for a filter (None for ALL).

    Values are sorted, percent-encoded, then comma-joined; the server splits
    on commas and decodes each value.
    """
    item_filter = normalize_filter(item_filter)
    if isinstance(item_filter, AllItems):
        return None
    return ",".join(quote(value, safe="") for value in sorted(item_filter.values))


@dataclass(frozen=True, slots=True)
class FilterState:
    """Service and category filters applied to a listing."""

    services: ItemFilter = ALL
    categories: ItemFilter = ALL

    @property
    def has_active_filters(self) -> bool:
        return not (
            isinstance(normalize_filter(self.services), AllItems)
            and isinstance(normalize_filter(self.categories), AllItems)
        )

    def toggle_service(self, service_id: str) -> FilterState:
        return FilterState(toggle_filter(self.services, service_id), self.categories)

    def toggle_category(self, category: str) -> FilterState:
        return FilterState(self.services, toggle_filter(self.categories, category))

    def reset(self) -> FilterState:
        return FilterState()


__all__ = [
    "ALL",
    "AllItems",
    "ClearQuery",
    "ClearSelection",
    "FilterState",
    "ItemFilter",
    "LoadPopularServices",
    "Multi",
    "RetryPopularServices",
    "RetrySearch",
    "SelectService",
    "SelectedItems",
    "SelectionAction",
    "SelectionState",
    "SetSearchFocus",
    "Single",
    "ToggleService",
    "UnselectService",
    "UpdateQuery",
    "apply_action",
    "filter_key",
    "normalize_filter",
    "selected",
    "toggle_filter",
]

"""Collaborator interfaces + default adapters for dependency injection."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

import httpx

from promo_state.config import CoreConfig
from promo_state.models import FetchRequest, PagedResult, UserInteraction
from promo_state.parsing import parse_promo_code, parse_service
from promo_state.services import remote as _remote

T = TypeVar("T")


@runtime_checkable
class Fetcher(Protocol):
    """Remote listing/search source. Raises FetchError on failure."""

    async def fetch(self, request: FetchRequest) -> PagedResult:
        """Fetch one page of results for a query shape."""
        ...


@runtime_checkable
class SingleEntityFetcher(Protocol):
    """Remote lookup of one entity by ID."""

    async def fetch_by_id(self, entity_id: str) -> Any | None:
        """Return the entity, or None if it does not exist."""
        ...


@runtime_checkable
class AuthContext(Protocol):
    """Already-resolved identity of the signed-in user."""

    def current_user_id(self) -> str | None:
        """Return the current user ID, or None when signed out."""
        ...


@runtime_checkable
class PersistenceSink(Protocol):
    """Durable storage for finalized interactions."""

    async def write_interaction(self, interaction: UserInteraction) -> None:
        """Persist an interaction. Raises FetchError on failure."""
        ...


class HttpCollectionFetcher(Generic[T]):
    """Default Fetcher/SingleEntityFetcher backed by one remote collection."""

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        base_url: str,
        collection: str,
        parse_item: Callable[[dict[str, Any]], T | None],
        api_key: str = "",
        timeout: float = _remote.API_REQUEST_TIMEOUT,
        max_retries: int = _remote.API_MAX_RETRIES,
    ) -> None:
        self._client = client
        self._base_url = base_url
        self._collection = collection
        self._parse_item = parse_item
        self._api_key = api_key
        self._timeout = timeout
        self._max_retries = max_retries

    @property
    def collection(self) -> str:
        return self._collection

    async def fetch(self, request: FetchRequest) -> PagedResult[T]:
        return await _remote.fetch_page(
            self._client,
            base_url=self._base_url,
            collection=self._collection,
            request=request,
            parse_item=self._parse_item,
            api_key=self._api_key,
            timeout=self._timeout,
            max_retries=self._max_retries,
        )

    async def fetch_by_id(self, entity_id: str) -> T | None:
        return await _remote.fetch_document(
            self._client,
            base_url=self._base_url,
            collection=self._collection,
            entity_id=entity_id,
            parse_item=self._parse_item,
            api_key=self._api_key,
            timeout=self._timeout,
            max_retries=self._max_retries,
        )


class HttpInteractionSink:
    """Default PersistenceSink that PUTs interactions to the remote store."""

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        base_url: str,
        api_key: str = "",
        timeout: float = _remote.API_REQUEST_TIMEOUT,
        max_retries: int = _remote.API_MAX_RETRIES,
    ) -> None:
        self._client = client
        self._base_url = base_url
        self._api_key = api_key
        self._timeout = timeout
        self._max_retries = max_retries

    async def write_interaction(self, interaction: UserInteraction) -> None:
        await _remote.put_interaction(
            self._client,
            base_url=self._base_url,
            interaction=interaction,
            api_key=self._api_key,
            timeout=self._timeout,
            max_retries=self._max_retries,
        )


@dataclass(slots=True)
class StaticAuthContext:
    """AuthContext for an identity resolved once by the app shell."""

    user_id: str | None = None

    def current_user_id(self) -> str | None:
        return self.user_id


@dataclass(slots=True)
class AppServices:
    """Aggregated collaborators consumed by the core."""

    services: Fetcher
    service_lookup: SingleEntityFetcher
    promo_codes: Fetcher
    interactions: PersistenceSink
    auth: AuthContext


def build_default_app_services(
    config: CoreConfig,
    client: httpx.AsyncClient,
    auth: AuthContext | None = None,
) -> AppServices:
    """Build HTTP-backed collaborators from configuration."""
    common: dict[str, Any] = {
        "client": client,
        "base_url": config.api_base_url,
        "api_key": config.api_key,
        "timeout": config.request_timeout_seconds,
        "max_retries": config.max_retries,
    }
    services = HttpCollectionFetcher(collection="services", parse_item=parse_service, **common)
    return AppServices(
        services=services,
        service_lookup=services,
        promo_codes=HttpCollectionFetcher(
            collection="promocodes", parse_item=parse_promo_code, **common
        ),
        interactions=HttpInteractionSink(**common),
        auth=auth if auth is not None else StaticAuthContext(),
    )


__all__ = [
    "AppServices",
    "AuthContext",
    "Fetcher",
    "HttpCollectionFetcher",
    "HttpInteractionSink",
    "PersistenceSink",
    "SingleEntityFetcher",
    "StaticAuthContext",
    "build_default_app_services",
]

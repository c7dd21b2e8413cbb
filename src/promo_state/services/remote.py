"""HTTP client functions for the remote document store.

All functions accept an ``httpx.AsyncClient``. Transient failures (429, 5xx,
timeouts) are retried with exponential backoff and jitter; terminal failures
raise ``FetchError`` carrying the matching ``ErrorKind``.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx

from promo_state.errors import ErrorKind, FetchError, classify_exception, classify_status_code
from promo_state.models import FetchRequest, PagedResult, UserInteraction
from promo_state.parsing import interaction_to_dict, parse_paged_result

logger = logging.getLogger(__name__)

T = TypeVar("T")

API_REQUEST_TIMEOUT = 20  # seconds
API_MAX_RETRIES = 3
API_INITIAL_BACKOFF = 1.0  # seconds, doubles each retry
RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)
INTERACTIONS_COLLECTION = "interactions"


def _headers(api_key: str) -> dict[str, str]:
    headers = {"Accept": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    return headers


async def send_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    label: str,
    params: dict[str, str] | None = None,
    json_body: dict[str, Any] | None = None,
    api_key: str = "",
    timeout: float = API_REQUEST_TIMEOUT,
    max_retries: int = API_MAX_RETRIES,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> httpx.Response:
    """Send a request, retrying 429/5xx and timeouts with backoff.

    Returns the response on 2xx. Raises FetchError on terminal failure.
    """
    attempts = max(1, max_retries)
    backoff = API_INITIAL_BACKOFF
    for attempt in range(attempts):
        last_attempt = attempt == attempts - 1
        try:
            response = await client.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=_headers(api_key),
                timeout=timeout,
            )
        except httpx.TimeoutException:
            if not last_attempt:
                delay = backoff + random.uniform(0, backoff * 0.5)
                logger.info(
                    "%s timeout, retrying in %.1fs (attempt %d/%d)",
                    label,
                    delay,
                    attempt + 1,
                    attempts,
                )
                await sleep(delay)
                backoff *= 2
                continue
            logger.warning("%s timeout after %d attempts", label, attempts)
            raise FetchError(ErrorKind.SERVICE_UNAVAILABLE, f"{label} timed out") from None
        except httpx.HTTPError as exc:
            logger.warning("%s HTTP error", label, exc_info=True)
            raise FetchError(classify_exception(exc), f"{label} failed") from exc

        if 200 <= response.status_code < 300:
            return response
        if response.status_code in RETRYABLE_STATUS_CODES and not last_attempt:
            delay = backoff + random.uniform(0, backoff * 0.5)
            logger.info(
                "%s %d, retrying in %.1fs (attempt %d/%d)",
                label,
                response.status_code,
                delay,
                attempt + 1,
                attempts,
            )
            await sleep(delay)
            backoff *= 2
            continue
        kind = classify_status_code(response.status_code)
        if kind == ErrorKind.NOT_FOUND:
            logger.info("%s not found", label)
        else:
            logger.warning("%s returned %d", label, response.status_code)
        raise FetchError(kind, f"{label} returned {response.status_code}")

    raise FetchError(ErrorKind.UNKNOWN, f"{label} exhausted retries")


def _parse_json_object(response: httpx.Response, label: str) -> dict[str, Any]:
    """Parse a response body as a JSON object, raising FetchError if it is not one."""
    try:
        payload = response.json()
    except ValueError:
        logger.warning("%s returned invalid JSON", label, exc_info=True)
        raise FetchError(ErrorKind.UNKNOWN, f"{label} returned invalid JSON") from None
    if not isinstance(payload, dict):
        logger.warning("%s returned non-object JSON payload", label)
        raise FetchError(ErrorKind.UNKNOWN, f"{label} returned non-object JSON")
    return payload


def build_page_params(request: FetchRequest) -> dict[str, str]:
    """Translate a FetchRequest into query-string parameters."""
    params = {
        "sort": request.sort_by.value,
        "limit": str(request.pagination.limit),
    }
    if request.query.strip():
        params["q"] = request.query.strip()
    if request.service_filter:
        params["service"] = request.service_filter
    if request.category_filter:
        params["category"] = request.category_filter
    if request.pagination.cursor:
        params["cursor"] = request.pagination.cursor
    return params


async def fetch_page(
    client: httpx.AsyncClient,
    *,
    base_url: str,
    collection: str,
    request: FetchRequest,
    parse_item: Callable[[dict[str, Any]], T | None],
    api_key: str = "",
    timeout: float = API_REQUEST_TIMEOUT,
    max_retries: int = API_MAX_RETRIES,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> PagedResult[T]:
    """Fetch one page of a collection listing."""
    label = f"{collection} page q={request.query.strip()!r}"
    response = await send_with_retry(
        client,
        "GET",
        f"{base_url.rstrip('/')}/{collection}",
        label=label,
        params=build_page_params(request),
        api_key=api_key,
        timeout=timeout,
        max_retries=max_retries,
        sleep=sleep,
    )
    return parse_paged_result(_parse_json_object(response, label), parse_item)


async def fetch_document(
    client: httpx.AsyncClient,
    *,
    base_url: str,
    collection: str,
    entity_id: str,
    parse_item: Callable[[dict[str, Any]], T | None],
    api_key: str = "",
    timeout: float = API_REQUEST_TIMEOUT,
    max_retries: int = API_MAX_RETRIES,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T | None:
    """Fetch a single document by ID. Returns None when it does not exist."""
    label = f"{collection}/{entity_id}"
    try:
        response = await send_with_retry(
            client,
            "GET",
            f"{base_url.rstrip('/')}/{collection}/{entity_id}",
            label=label,
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            sleep=sleep,
        )
    except FetchError as exc:
        if exc.kind == ErrorKind.NOT_FOUND:
            return None
        raise
    return parse_item(_parse_json_object(response, label))


async def put_interaction(
    client: httpx.AsyncClient,
    *,
    base_url: str,
    interaction: UserInteraction,
    api_key: str = "",
    timeout: float = API_REQUEST_TIMEOUT,
    max_retries: int = API_MAX_RETRIES,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> None:
    """Persist a finalized interaction (idempotent PUT)."""
    await send_with_retry(
        client,
        "PUT",
        f"{base_url.rstrip('/')}/{INTERACTIONS_COLLECTION}/{interaction.id}",
        label=f"interaction {interaction.id}",
        json_body=interaction_to_dict(interaction),
        api_key=api_key,
        timeout=timeout,
        max_retries=max_retries,
        sleep=sleep,
    )


__all__ = [
    "API_MAX_RETRIES",
    "API_REQUEST_TIMEOUT",
    "build_page_params",
    "fetch_document",
    "fetch_page",
    "put_interaction",
    "send_with_retry",
]

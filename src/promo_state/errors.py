"""Failure taxonomy shared by the fetch boundary and the search state slices.

Every collaborator failure collapses into one ``ErrorKind``. Adapters raise
``FetchError``; the search coordinator turns it into a ``Failure`` status and
never lets it cross into the cache, selection, or interaction layers.
"""

from __future__ import annotations

from enum import Enum

import httpx


class ErrorKind(str, Enum):
    """Coarse failure categories a UI can render a retry affordance for."""

    OFFLINE = "offline"
    SERVICE_UNAVAILABLE = "service_unavailable"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


class FetchError(Exception):
    """Raised by a collaborator when a remote operation fails."""

    def __init__(self, kind: ErrorKind, message: str = "") -> None:
        super().__init__(message or kind.value)
        self.kind = kind


def classify_status_code(status_code: int) -> ErrorKind:
    """Map an HTTP status code to an ErrorKind."""
    if status_code in (401, 403):
        return ErrorKind.PERMISSION_DENIED
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    if status_code == 429 or 500 <= status_code <= 599:
        return ErrorKind.SERVICE_UNAVAILABLE
    return ErrorKind.UNKNOWN


def classify_exception(exc: BaseException) -> ErrorKind:
    """Map any exception raised at the fetch boundary to an ErrorKind."""
    if isinstance(exc, FetchError):
        return exc.kind
    if isinstance(exc, httpx.TimeoutException):
        return ErrorKind.SERVICE_UNAVAILABLE
    if isinstance(exc, (httpx.ConnectError, httpx.NetworkError)):
        return ErrorKind.OFFLINE
    if isinstance(exc, httpx.HTTPStatusError):
        return classify_status_code(exc.response.status_code)
    if isinstance(exc, PermissionError):
        return ErrorKind.PERMISSION_DENIED
    if isinstance(exc, ConnectionError):
        return ErrorKind.OFFLINE
    return ErrorKind.UNKNOWN


__all__ = [
    "ErrorKind",
    "FetchError",
    "classify_exception",
    "classify_status_code",
]

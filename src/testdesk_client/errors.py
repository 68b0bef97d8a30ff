"""Errors raised by the testdesk client.

Every failure surfaced to callers is a ``ResourceStoreError``; the subclass
says what kind of failure it was.
"""
from typing import Any, Optional, Union

import httpx


class ResourceStoreError(Exception):
    """A request to the Resource Store failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = detail


class ValidationError(ResourceStoreError):
    """Rejected input: HTTP 400/422, or a local precondition checked before sending."""
    pass


class NotFoundError(ResourceStoreError):
    """The addressed resource does not exist (HTTP 404)."""
    pass


class AuthorizationError(ResourceStoreError):
    """Missing identity or not allowed (HTTP 401/403, or a local ownership check)."""
    pass


class NetworkError(ResourceStoreError):
    """The request never produced a response (timeout, refused or reset connection)."""
    pass


class MoveFailedError(ResourceStoreError):
    """
    Persisting a board move failed.

    ``rolled_back`` tells whether the board was reverted; a failure that
    arrives after a newer move of the same item leaves the newer state in
    place. The underlying error is chained as ``__cause__``.
    """

    def __init__(
        self,
        item_id: Union[int, str],
        source_column_id: str,
        dest_column_id: str,
        cause: Optional[BaseException] = None,
        rolled_back: bool = True,
    ):
        status_code = getattr(cause, "status_code", None)
        super().__init__(
            f"Moving item {item_id} from {source_column_id!r} to {dest_column_id!r} failed"
            + (f": {cause}" if cause is not None else ""),
            status_code=status_code,
            detail=getattr(cause, "detail", None),
        )
        self.item_id = item_id
        self.source_column_id = source_column_id
        self.dest_column_id = dest_column_id
        self.rolled_back = rolled_back


class BoardStateError(Exception):
    """The board's columns no longer partition its items."""
    pass


_STATUS_ERRORS = {
    400: ValidationError,
    401: AuthorizationError,
    403: AuthorizationError,
    404: NotFoundError,
    422: ValidationError,
}


def error_for_response(response: httpx.Response) -> ResourceStoreError:
    """Build the taxonomy error for a non-2xx response, using FastAPI's ``detail`` when present."""
    try:
        body = response.json()
        detail = body.get("detail", body) if isinstance(body, dict) else body
    except ValueError:
        detail = response.text or None

    error_cls = _STATUS_ERRORS.get(response.status_code, ResourceStoreError)
    message = detail if isinstance(detail, str) else f"HTTP {response.status_code}"
    return error_cls(
        f"{response.request.method} {response.request.url.path}: {message}",
        status_code=response.status_code,
        detail=detail,
    )

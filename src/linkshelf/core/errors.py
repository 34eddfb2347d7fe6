"""HTTP-facing error taxonomy.

Every failure a client can observe is one of these exceptions. The
application registers a single handler that renders them as
``{"error": <message>, **extra}`` with the exception's headers, so no
internal exception text or traceback reaches a client.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from fastapi import status


class ApiError(Exception):
    """Base class for errors rendered directly to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_error: str = "internal error"

    def __init__(
        self,
        error: str | None = None,
        *,
        headers: Mapping[str, str] | None = None,
        extra: Mapping[str, Any] | None = None,
    ) -> None:
        self.error = error or self.default_error
        self.headers = dict(headers or {})
        self.extra = dict(extra or {})
        super().__init__(self.error)

    def to_body(self) -> dict[str, Any]:
        """Return the JSON body sent to the client."""
        return {"error": self.error, **self.extra}


class ConfigurationError(ApiError):
    """Operator-fixable misconfiguration (missing secret, admin or store)."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_error = "not configured"


class StoreUnavailableError(ApiError):
    """The durable store failed while serving the request."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_error = "store unavailable"


class AuthenticationError(ApiError):
    """Missing, invalid or expired credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_error = "unauthorized"


class RateLimitedError(ApiError):
    """Too many failed attempts; the caller must wait ``Retry-After`` seconds."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_error = "too many attempts"

    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(headers={"Retry-After": str(retry_after)})


class ConflictError(ApiError):
    """A conditional write lost against a newer version of the document."""

    status_code = status.HTTP_409_CONFLICT
    default_error = "conflict"

    def __init__(self, current_etag: str | None) -> None:
        self.current_etag = current_etag
        headers = {"ETag": current_etag} if current_etag else None
        super().__init__(headers=headers, extra={"etag": current_etag})


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_error = "not found"


class InvalidInputError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_error = "invalid request"


class UnsupportedMediaTypeError(ApiError):
    status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    default_error = "expected application/json"

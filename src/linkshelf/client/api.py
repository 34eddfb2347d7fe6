"""Async HTTP client for the linkshelf admin API.

Every call reports failures as values rather than raising, so UI code can
branch on the outcome without wrapping each request in error handling.
The underlying `httpx.AsyncClient` keeps the session cookie between calls.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# HTTP status codes
HTTP_OK = 200
HTTP_UNAUTHORIZED = 401
HTTP_CONFLICT = 409
HTTP_TOO_MANY_REQUESTS = 429


@dataclass(frozen=True)
class RemoteConfig:
    """A document fetched from the server with its entity tag."""

    document: Any
    etag: str | None


@dataclass(frozen=True)
class PutResult:
    """Outcome of a configuration write."""

    ok: bool
    etag: str | None = None
    error: str | None = None
    status_code: int | None = None


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a login attempt."""

    ok: bool
    username: str | None = None
    error: str | None = None
    retry_after: int | None = None


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"http_{response.status_code}"
    if isinstance(body, Mapping) and isinstance(body.get("error"), str):
        return str(body["error"])
    return f"http_{response.status_code}"


def _retry_after(response: httpx.Response) -> int | None:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class NavConfigClient:
    """Thin wrapper over the ``/api`` endpoints."""

    def __init__(
        self,
        base_url: str = "",
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds),
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response | None:
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            return None

    async def get_config_with_meta(self) -> RemoteConfig | None:
        """Fetch the document and its ETag; None when unavailable."""
        response = await self._request("GET", "/api/config")
        if response is None or response.status_code != HTTP_OK:
            return None
        try:
            document = response.json()
        except ValueError:
            return None
        return RemoteConfig(document=document, etag=response.headers.get("etag"))

    async def put_config_with_meta(self, document: Any, etag: str | None) -> PutResult:
        """Write the document, sending `etag` as the ``If-Match`` precondition.

        A 409 answer is reported with ``error="conflict"`` and the server's
        current tag in `etag`.
        """
        headers = {"If-Match": etag} if etag else {}
        response = await self._request("PUT", "/api/config", json=document, headers=headers)
        if response is None:
            return PutResult(ok=False, error="network")

        if response.status_code == HTTP_OK:
            return PutResult(
                ok=True,
                etag=response.headers.get("etag"),
                status_code=response.status_code,
            )
        if response.status_code == HTTP_CONFLICT:
            current: str | None = None
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, Mapping) and isinstance(body.get("etag"), str):
                current = body["etag"]
            return PutResult(
                ok=False,
                etag=current,
                error="conflict",
                status_code=response.status_code,
            )
        return PutResult(
            ok=False,
            error=_error_message(response),
            status_code=response.status_code,
        )

    async def login(self, username: str, password: str) -> LoginResult:
        response = await self._request(
            "POST",
            "/api/login",
            json={"username": username, "password": password},
        )
        if response is None:
            return LoginResult(ok=False, error="network")
        if response.status_code == HTTP_OK:
            body = response.json()
            name = body.get("username") if isinstance(body, Mapping) else None
            return LoginResult(ok=True, username=name if isinstance(name, str) else username)
        return LoginResult(
            ok=False,
            error=_error_message(response),
            retry_after=(
                _retry_after(response)
                if response.status_code == HTTP_TOO_MANY_REQUESTS
                else None
            ),
        )

    async def logout(self) -> bool:
        response = await self._request("POST", "/api/logout")
        return response is not None and response.status_code == HTTP_OK

    async def me(self) -> str | None:
        """Return the signed-in admin's username, or None."""
        response = await self._request("GET", "/api/me")
        if response is None or response.status_code != HTTP_OK:
            return None
        try:
            body = response.json()
        except ValueError:
            return None
        username = body.get("username") if isinstance(body, Mapping) else None
        return username if isinstance(username, str) else None

    async def close(self) -> None:
        await self._client.aclose()

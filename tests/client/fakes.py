# tests/client/fakes.py
"""In-process stand-ins for the config server, clock and scheduler."""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from linkshelf.client.api import NavConfigClient
from linkshelf.services.config_store import compute_etag, serialize_document


class FakeClock:
    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


class FakeHandle:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Record scheduled callbacks; tests run them explicitly."""

    def __init__(self) -> None:
        self.calls: list[tuple[float, Callable[[], Awaitable[None]], FakeHandle]] = []

    def __call__(self, delay: float, callback: Callable[[], Awaitable[None]]) -> FakeHandle:
        handle = FakeHandle()
        self.calls.append((delay, callback, handle))
        return handle


class FakeConfigServer:
    """Mimic the /api/config endpoints with the real ETag rules."""

    def __init__(self) -> None:
        self.raw: str | None = None
        self.fail_with: int | None = None
        self.offline = False
        self.requests: list[httpx.Request] = []

    @property
    def etag(self) -> str | None:
        return compute_etag(self.raw) if self.raw else None

    def store(self, document: Any) -> str:
        self.raw = serialize_document(document)
        return compute_etag(self.raw)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.offline:
            raise httpx.ConnectError("offline", request=request)
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, json={"error": "store unavailable"})

        if request.url.path != "/api/config":
            return httpx.Response(404, json={"error": "not found"})
        if request.method == "GET":
            if self.raw is None:
                return httpx.Response(404, json={"error": "not found"})
            return httpx.Response(
                200,
                content=self.raw.encode("utf-8"),
                headers={"etag": self.etag or "", "content-type": "application/json"},
            )

        if_match = request.headers.get("if-match")
        if if_match and if_match != self.etag:
            return httpx.Response(
                409,
                json={"error": "conflict", "etag": self.etag},
                headers={"etag": self.etag} if self.etag else {},
            )
        etag = self.store(json.loads(request.content))
        return httpx.Response(200, json={"ok": True, "username": "admin"}, headers={"etag": etag})

    def client(self) -> NavConfigClient:
        transport = httpx.MockTransport(self.handler)
        return NavConfigClient(
            http_client=httpx.AsyncClient(transport=transport, base_url="http://nav.test"),
        )

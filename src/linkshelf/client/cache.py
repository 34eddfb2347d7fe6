"""Client-side cache of the configuration document.

The cache keeps the last known document, its ETag and the time of the last
local save in a `CacheStorage`. Several caches sharing one storage area
converge through storage change notifications.

Reads that race ahead of a just-completed local save can return an older
document with a different ETag. For a short window after a local save such
reads are treated as likely stale: they are ignored and a single delayed
reload is scheduled instead. The window narrows the common lost-update
race; it does not close every one.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal, Protocol

from linkshelf.client.api import NavConfigClient
from linkshelf.client.storage import CacheStorage
from linkshelf.core.clock import Clock, now_ms
from linkshelf.schemas.nav import is_nav_config, sort_categories
from linkshelf.services.config_store import serialize_document

logger = logging.getLogger(__name__)

CACHE_STORAGE_KEY = "navDu_config_cache_v1"
STALE_WINDOW_SECONDS = 60.0
RETRY_DELAY_SECONDS = 2.0

ReloadOutcome = Literal["adopted", "stale", "unavailable"]


class Cancellable(Protocol):
    def cancel(self) -> Any: ...


Scheduler = Callable[[float, Callable[[], Awaitable[None]]], Cancellable]


@dataclass(frozen=True)
class CacheEntry:
    """The persisted cache state."""

    document: dict[str, Any]
    etag: str | None
    mutated_at_ms: int | None

    def to_json(self) -> str:
        return json.dumps(
            {
                "json": serialize_document(self.document),
                "etag": self.etag,
                "mutatedAtMs": self.mutated_at_ms,
            },
            ensure_ascii=False,
        )


def parse_cache_entry(raw: str | None) -> CacheEntry | None:
    """Parse and validate a stored cache entry; anything malformed is None."""
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(parsed, dict) or not isinstance(parsed.get("json"), str):
        return None

    etag = parsed.get("etag")
    if etag is not None and not isinstance(etag, str):
        return None
    mutated_at_ms = parsed.get("mutatedAtMs")
    if mutated_at_ms is not None and (
        isinstance(mutated_at_ms, bool) or not isinstance(mutated_at_ms, (int, float))
    ):
        return None

    try:
        document = json.loads(parsed["json"])
    except ValueError:
        return None
    if not is_nav_config(document):
        return None

    return CacheEntry(
        document=sort_categories(document),
        etag=etag,
        mutated_at_ms=int(mutated_at_ms) if mutated_at_ms is not None else None,
    )


@dataclass(frozen=True)
class SaveResult:
    ok: bool
    reason: Literal["conflict", "other"] | None = None


class AsyncioScheduler:
    """Run a coroutine function after a delay on the running event loop."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    def __call__(self, delay: float, callback: Callable[[], Awaitable[None]]) -> Cancellable:
        loop = asyncio.get_running_loop()

        def fire() -> None:
            task = loop.create_task(_as_coroutine(callback))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        return loop.call_later(delay, fire)

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()


async def _as_coroutine(callback: Callable[[], Awaitable[None]]) -> None:
    await callback()


class NavConfigCache:
    """Reconcile the local cache with the server's configuration document."""

    def __init__(
        self,
        client: NavConfigClient,
        storage: CacheStorage,
        base_config: dict[str, Any],
        *,
        clock: Clock = now_ms,
        scheduler: Scheduler | None = None,
        stale_window_seconds: float = STALE_WINDOW_SECONDS,
        retry_delay_seconds: float = RETRY_DELAY_SECONDS,
        storage_key: str = CACHE_STORAGE_KEY,
    ) -> None:
        self._client = client
        self._storage = storage
        self._clock = clock
        self._scheduler: Scheduler = scheduler or AsyncioScheduler()
        self._stale_window_ms = stale_window_seconds * 1000
        self._retry_delay_seconds = retry_delay_seconds
        self._storage_key = storage_key
        self._pending_retry: Cancellable | None = None

        self.base_config = sort_categories(base_config)
        self.is_remote_loaded = False

        cached = parse_cache_entry(storage.get_item(storage_key))
        if cached is not None:
            self.config = cached.document
            self.etag = cached.etag
            self.mutated_at_ms = cached.mutated_at_ms
        else:
            self.config = self.base_config
            self.etag = None
            self.mutated_at_ms = None

        self._unsubscribe = storage.subscribe(self._on_storage_change)

    def _persist(self) -> None:
        entry = CacheEntry(document=self.config, etag=self.etag, mutated_at_ms=self.mutated_at_ms)
        self._storage.set_item(self._storage_key, entry.to_json())

    def is_likely_stale(self, fetched_etag: str | None) -> bool:
        """Return True if a fetch with `fetched_etag` probably predates our last save."""
        if not self.mutated_at_ms:
            return False
        if not self.etag or not fetched_etag or self.etag == fetched_etag:
            return False
        age_ms = self._clock() - self.mutated_at_ms
        return 0 <= age_ms < self._stale_window_ms

    def _schedule_retry(self) -> None:
        if self._pending_retry is not None:
            return
        self._pending_retry = self._scheduler(self._retry_delay_seconds, self._run_retry)

    async def _run_retry(self) -> None:
        self._pending_retry = None
        await self.reload_remote(allow_retry=False)

    async def reload_remote(self, *, allow_retry: bool = True) -> ReloadOutcome:
        """Fetch the server document and adopt it unless it looks stale.

        Args:
            allow_retry: Schedule a delayed reload when the fetch is ignored as
                stale. The scheduled reload itself never schedules another.
        """
        remote = await self._client.get_config_with_meta()
        self.is_remote_loaded = True
        if remote is None or not is_nav_config(remote.document):
            return "unavailable"

        if self.is_likely_stale(remote.etag):
            logger.debug("Ignoring likely stale config (etag %s, ours %s)", remote.etag, self.etag)
            if allow_retry:
                self._schedule_retry()
            return "stale"

        self.config = sort_categories(remote.document)
        self.etag = remote.etag
        self._persist()
        return "adopted"

    async def save(self, document: dict[str, Any]) -> SaveResult:
        """Write `document` conditionally on the cached ETag.

        Local state only changes on success.
        """
        ordered = sort_categories(document)
        result = await self._client.put_config_with_meta(ordered, self.etag)
        if result.ok:
            self.config = ordered
            self.etag = result.etag or self.etag
            self.mutated_at_ms = self._clock()
            self._persist()
            return SaveResult(ok=True)
        if result.error == "conflict":
            return SaveResult(ok=False, reason="conflict")
        return SaveResult(ok=False, reason="other")

    async def reset_to_base(self) -> bool:
        """Overwrite the server document with the bundled base document."""
        result = await self.save(self.base_config)
        return result.ok

    def _on_storage_change(self, key: str, value: str | None) -> None:
        if key != self._storage_key or not value:
            return
        entry = parse_cache_entry(value)
        if entry is None:
            return
        self.config = entry.document
        self.etag = entry.etag
        self.mutated_at_ms = entry.mutated_at_ms

    def close(self) -> None:
        """Stop listening for storage changes and cancel any pending reload."""
        self._unsubscribe()
        if self._pending_retry is not None:
            self._pending_retry.cancel()
            self._pending_retry = None
        if isinstance(self._scheduler, AsyncioScheduler):
            self._scheduler.cancel_all()

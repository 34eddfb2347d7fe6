"""Key-value storage backends for the client cache.

`MemoryStorage` behaves like browser local storage shared by several tabs:
each `attach()`ed view sees the same data, and a write through one view
notifies the listeners of every *other* view. `JsonFileStorage` persists to
a single JSON file and has no change notifications.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path
from threading import Lock
from typing import Protocol

logger = logging.getLogger(__name__)

StorageListener = Callable[[str, str | None], None]
Unsubscribe = Callable[[], None]


class CacheStorage(Protocol):
    """String key-value storage with change notifications from other writers."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def subscribe(self, listener: StorageListener) -> Unsubscribe: ...


class _SharedArea:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.listeners: list[tuple[MemoryStorage, StorageListener]] = []
        self.lock = Lock()


class MemoryStorage:
    """In-process storage; views created with `attach` share one area."""

    def __init__(self, _area: _SharedArea | None = None) -> None:
        self._area = _area or _SharedArea()

    def attach(self) -> MemoryStorage:
        """Return another view of the same data, like a second browser tab."""
        return MemoryStorage(self._area)

    def get_item(self, key: str) -> str | None:
        with self._area.lock:
            return self._area.data.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._area.lock:
            self._area.data[key] = value
            listeners = [fn for owner, fn in self._area.listeners if owner is not self]
        for listener in listeners:
            listener(key, value)

    def subscribe(self, listener: StorageListener) -> Unsubscribe:
        entry = (self, listener)
        with self._area.lock:
            self._area.listeners.append(entry)

        def unsubscribe() -> None:
            with self._area.lock:
                if entry in self._area.listeners:
                    self._area.listeners.remove(entry)

        return unsubscribe


class JsonFileStorage:
    """Storage persisted as one JSON object on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = Lock()

    def _load(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring unreadable cache file %s", self.path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False)
            os.replace(tmp_name, self.path)

    def subscribe(self, listener: StorageListener) -> Unsubscribe:
        # Single writer per file; nothing to notify.
        return lambda: None

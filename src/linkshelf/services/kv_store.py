"""Durable key-value stores shared by the rate limiter and the config store.

The service never keeps mutable auth or document state in process globals.
Components receive a `KeyValueStore` explicitly; the application builds one
from settings at startup and hands it out through a FastAPI dependency.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from threading import Lock
from typing import Any, Protocol

import redis
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from linkshelf.core.clock import now_ms
from linkshelf.core.settings import Settings
from linkshelf.db.session import build_engine, build_session_factory, create_tables
from linkshelf.models import KVEntry

logger = logging.getLogger(__name__)


class KeyValueStoreError(RuntimeError):
    """Raised when the backing store cannot complete an operation."""


class KeyValueStore(Protocol):
    """Minimal get/put/delete interface over text values."""

    def get(self, key: str) -> str | None: ...

    def put(self, key: str, value: str, ttl_seconds: int | None = None) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    """Process-local store used for development and tests."""

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, int | None]] = {}
        self._lock = Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at_ms = entry
            if expires_at_ms is not None and expires_at_ms <= self._clock():
                self._data.pop(key, None)
                return None
            return value

    def put(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        expires_at_ms = self._clock() + ttl_seconds * 1000 if ttl_seconds else None
        with self._lock:
            self._data[key] = (value, expires_at_ms)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def ttl_ms(self, key: str) -> int | None:
        """Return the remaining lifetime of `key` in milliseconds, if it expires."""
        with self._lock:
            entry = self._data.get(key)
        if entry is None or entry[1] is None:
            return None
        return entry[1] - self._clock()


class RedisKeyValueStore:
    """Store backed by Redis, using native key expiry."""

    def __init__(self, client: Any) -> None:
        self._redis = client

    @classmethod
    def from_url(cls, url: str) -> RedisKeyValueStore:
        return cls(redis.from_url(url))  # type: ignore[no-untyped-call]

    def get(self, key: str) -> str | None:
        try:
            raw = self._redis.get(key)
        except redis.RedisError as err:
            raise KeyValueStoreError(f"redis get failed for {key!r}") from err
        if raw is None:
            return None
        return raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)

    def put(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        try:
            if ttl_seconds:
                self._redis.set(key, value, ex=int(ttl_seconds))
            else:
                self._redis.set(key, value)
        except redis.RedisError as err:
            raise KeyValueStoreError(f"redis set failed for {key!r}") from err

    def delete(self, key: str) -> None:
        try:
            self._redis.delete(key)
        except redis.RedisError as err:
            raise KeyValueStoreError(f"redis delete failed for {key!r}") from err


class SqlKeyValueStore:
    """Store backed by a single SQL table; expiry is checked on read."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        echo: bool = False,
        clock: Callable[[], int] = now_ms,
    ) -> SqlKeyValueStore:
        engine = build_engine(url, echo=echo)
        create_tables(engine)
        return cls(build_session_factory(engine), clock)

    def get(self, key: str) -> str | None:
        try:
            with self._session_factory() as db:
                entry = db.get(KVEntry, key)
                if entry is None:
                    return None
                if entry.is_expired(self._clock()):
                    db.delete(entry)
                    db.commit()
                    return None
                return entry.value
        except SQLAlchemyError as err:
            raise KeyValueStoreError(f"sql get failed for {key!r}") from err

    def put(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        expires_at_ms = self._clock() + ttl_seconds * 1000 if ttl_seconds else None
        try:
            with self._session_factory() as db:
                db.merge(KVEntry(key=key, value=value, expires_at_ms=expires_at_ms))
                db.commit()
        except SQLAlchemyError as err:
            raise KeyValueStoreError(f"sql put failed for {key!r}") from err

    def delete(self, key: str) -> None:
        try:
            with self._session_factory() as db:
                entry = db.get(KVEntry, key)
                if entry is not None:
                    db.delete(entry)
                    db.commit()
        except SQLAlchemyError as err:
            raise KeyValueStoreError(f"sql delete failed for {key!r}") from err


def build_kv_store(settings: Settings) -> KeyValueStore | None:
    """Create the durable store selected by `KV_BACKEND`, or None when disabled."""
    if settings.kv_backend == "redis":
        logger.info("Using Redis key-value store")
        return RedisKeyValueStore.from_url(settings.redis_url)
    if settings.kv_backend == "sql":
        logger.info("Using SQL key-value store")
        return SqlKeyValueStore.from_url(settings.kv_database_url, echo=settings.sql_debug)
    return None

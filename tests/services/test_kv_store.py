# tests/services/test_kv_store.py
"""Tests for the key-value store backends."""

from unittest.mock import MagicMock

import pytest
import redis
from sqlalchemy.exc import OperationalError

from linkshelf.services.kv_store import (
    InMemoryKeyValueStore,
    KeyValueStoreError,
    RedisKeyValueStore,
    SqlKeyValueStore,
    build_kv_store,
)
from tests.conftest import make_settings


class FakeClock:
    def __init__(self) -> None:
        self.now = 1_000_000

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store(clock):
    return InMemoryKeyValueStore(clock=clock)


@pytest.fixture
def sql_store(clock):
    return SqlKeyValueStore.from_url("sqlite://", clock=clock)


@pytest.fixture(params=["memory", "sql"])
def store(request, memory_store, sql_store):
    return memory_store if request.param == "memory" else sql_store


class TestStoreContract:
    def test_missing_key_is_none(self, store):
        assert store.get("absent") is None

    def test_put_get_delete(self, store):
        store.put("k", "value")
        assert store.get("k") == "value"
        store.put("k", "replaced")
        assert store.get("k") == "replaced"
        store.delete("k")
        assert store.get("k") is None

    def test_delete_missing_key_is_noop(self, store):
        store.delete("absent")

    def test_values_are_stored_verbatim(self, store):
        text = '{"title":"Ünïcode ✓","n":1}'
        store.put("doc", text)
        assert store.get("doc") == text

    def test_ttl_expiry(self, store, clock):
        store.put("k", "v", ttl_seconds=10)
        clock.now += 9_999
        assert store.get("k") == "v"
        clock.now += 1
        assert store.get("k") is None

    def test_no_ttl_never_expires(self, store, clock):
        store.put("k", "v")
        clock.now += 10**12
        assert store.get("k") == "v"


class TestRedisStore:
    def test_get_decodes_bytes(self):
        client = MagicMock()
        client.get.return_value = b"value"
        assert RedisKeyValueStore(client).get("k") == "value"
        client.get.assert_called_once_with("k")

    def test_put_with_ttl_uses_native_expiry(self):
        client = MagicMock()
        RedisKeyValueStore(client).put("k", "v", ttl_seconds=420)
        client.set.assert_called_once_with("k", "v", ex=420)

    def test_put_without_ttl(self):
        client = MagicMock()
        RedisKeyValueStore(client).put("k", "v")
        client.set.assert_called_once_with("k", "v")

    def test_delete(self):
        client = MagicMock()
        RedisKeyValueStore(client).delete("k")
        client.delete.assert_called_once_with("k")

    @pytest.mark.parametrize("method, args", [("get", ("k",)), ("put", ("k", "v")), ("delete", ("k",))])
    def test_redis_errors_are_wrapped(self, method, args):
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError("down")
        client.set.side_effect = redis.ConnectionError("down")
        client.delete.side_effect = redis.ConnectionError("down")
        with pytest.raises(KeyValueStoreError):
            getattr(RedisKeyValueStore(client), method)(*args)


class TestSqlStore:
    def test_database_errors_are_wrapped(self, mocker):
        session = MagicMock()
        session.__enter__.return_value = session
        session.get.side_effect = OperationalError("SELECT", {}, Exception("locked"))
        store = SqlKeyValueStore(mocker.Mock(return_value=session))
        with pytest.raises(KeyValueStoreError):
            store.get("k")


class TestBuildStore:
    def test_none_backend(self):
        assert build_kv_store(make_settings(KV_BACKEND="none")) is None

    def test_sql_backend(self):
        store = build_kv_store(make_settings(KV_BACKEND="sql", KV_DATABASE_URL="sqlite://"))
        assert isinstance(store, SqlKeyValueStore)

    def test_redis_backend(self, mocker):
        from_url = mocker.patch("linkshelf.services.kv_store.redis.from_url")
        store = build_kv_store(make_settings(KV_BACKEND="redis", REDIS_URL="redis://cache:6379/1"))
        assert isinstance(store, RedisKeyValueStore)
        from_url.assert_called_once_with("redis://cache:6379/1")

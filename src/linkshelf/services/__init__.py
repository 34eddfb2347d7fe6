# src/linkshelf/services/__init__.py
"""Business logic services for the linkshelf application."""

from .config_store import ConfigDocumentStore
from .kv_store import InMemoryKeyValueStore, RedisKeyValueStore, SqlKeyValueStore, build_kv_store
from .rate_limit import LoginRateLimiter

__all__ = [
    "ConfigDocumentStore",
    "InMemoryKeyValueStore",
    "LoginRateLimiter",
    "RedisKeyValueStore",
    "SqlKeyValueStore",
    "build_kv_store",
]

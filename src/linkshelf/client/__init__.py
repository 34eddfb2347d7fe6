# src/linkshelf/client/__init__.py
"""Async client library and local cache for the configuration API."""

from .api import LoginResult, NavConfigClient, PutResult, RemoteConfig
from .cache import CACHE_STORAGE_KEY, CacheEntry, NavConfigCache, SaveResult
from .storage import CacheStorage, JsonFileStorage, MemoryStorage

__all__ = [
    "CACHE_STORAGE_KEY",
    "CacheEntry",
    "CacheStorage",
    "JsonFileStorage",
    "LoginResult",
    "MemoryStorage",
    "NavConfigCache",
    "NavConfigClient",
    "PutResult",
    "RemoteConfig",
    "SaveResult",
]

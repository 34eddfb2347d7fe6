# src/linkshelf/models/__init__.py
"""SQLAlchemy models for linkshelf."""

from .kv_entry import KVEntry

__all__ = ["KVEntry"]

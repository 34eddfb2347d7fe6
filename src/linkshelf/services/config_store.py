"""Optimistic-concurrency storage for the configuration document.

The document lives under a single key as compact JSON text. Its entity tag
is a weak tag over the SHA-256 of those exact bytes, so identical text
always yields the identical tag. Writers may pass the tag they last saw;
a write whose tag no longer matches is rejected with the current tag so the
caller can reload and retry. There is no lock: two unconditional writers
simply race and the last one wins.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from linkshelf.core.security import hash_text
from linkshelf.schemas.nav import is_nav_config
from linkshelf.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

CONFIG_KEY = "nav_config_v1"


class ConfigStoreError(Exception):
    """Base class for configuration store failures."""


class ConfigNotFoundError(ConfigStoreError):
    """No document has been stored yet."""


class CorruptConfigError(ConfigStoreError):
    """The stored text is not a valid configuration document."""


class UnencodableConfigError(ConfigStoreError):
    """The document contains text that cannot be stored as UTF-8."""


class ConfigConflictError(ConfigStoreError):
    """A conditional write did not match the current document."""

    def __init__(self, current_etag: str | None) -> None:
        self.current_etag = current_etag
        super().__init__(f"If-Match precondition failed (current etag: {current_etag})")


@dataclass(frozen=True)
class StoredConfig:
    """A document as read from the store."""

    document: Any
    raw: str
    etag: str


def serialize_document(document: Any) -> str:
    """Return the canonical stored text for `document`."""
    return json.dumps(document, separators=(",", ":"), ensure_ascii=False)


def compute_etag(raw: str) -> str:
    """Return the weak entity tag for the exact stored text."""
    return f'W/"{hash_text(raw)}"'


def parse_if_match(header: str | None) -> str | None:
    """Normalize an If-Match header; blank values count as absent."""
    if not header:
        return None
    trimmed = header.strip()
    return trimmed or None


class ConfigDocumentStore:
    """Read and conditionally write the singleton configuration document."""

    def __init__(self, store: KeyValueStore, key: str = CONFIG_KEY) -> None:
        self._store = store
        self._key = key

    def current_etag(self) -> str | None:
        raw = self._store.get(self._key)
        return compute_etag(raw) if raw else None

    def read(self) -> StoredConfig:
        """Return the stored document and its entity tag.

        Raises:
            ConfigNotFoundError: Nothing has been stored.
            CorruptConfigError: The stored text is unparseable or fails validation.
        """
        raw = self._store.get(self._key)
        if not raw:
            raise ConfigNotFoundError(self._key)
        try:
            document = json.loads(raw)
        except ValueError as err:
            raise CorruptConfigError("stored config is not valid JSON") from err
        if not is_nav_config(document):
            raise CorruptConfigError("stored config failed validation")
        return StoredConfig(document=document, raw=raw, etag=compute_etag(raw))

    def write(self, document: Any, if_match: str | None = None) -> str:
        """Persist `document`, optionally only if the current tag equals `if_match`.

        Returns:
            The entity tag of the newly stored document.

        Raises:
            UnencodableConfigError: The document holds unpaired surrogates.
            ConfigConflictError: `if_match` was given and does not match the
                current document, or no document exists yet.
        """
        raw = serialize_document(document)
        try:
            etag = compute_etag(raw)
        except UnicodeEncodeError as err:
            raise UnencodableConfigError("config is not valid UTF-8 text") from err

        if if_match is not None:
            existing_etag = self.current_etag()
            if existing_etag is None or existing_etag != if_match:
                logger.info(
                    "Config write conflict: expected %s, current %s",
                    if_match,
                    existing_etag,
                )
                raise ConfigConflictError(existing_etag)

        self._store.put(self._key, raw)
        logger.info("Stored config document (%d bytes, etag %s)", len(raw), etag)
        return etag

# src/linkshelf/api/v1/endpoints/config.py
"""Configuration document endpoints."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Header, Request, Response
from fastapi.responses import JSONResponse

from linkshelf.api.v1.dependencies import AdminDep, KVStoreDep, require_json
from linkshelf.core.errors import (
    ConfigurationError,
    ConflictError,
    InvalidInputError,
    NotFoundError,
)
from linkshelf.schemas.nav import is_nav_config
from linkshelf.services.config_store import (
    ConfigConflictError,
    ConfigDocumentStore,
    ConfigNotFoundError,
    CorruptConfigError,
    UnencodableConfigError,
    parse_if_match,
)
from linkshelf.services.kv_store import KeyValueStore

router = APIRouter(tags=["config"])

NO_STORE = "no-store, max-age=0"


def _document_store(store: KeyValueStore | None) -> ConfigDocumentStore:
    if store is None:
        raise ConfigurationError("config store not configured")
    return ConfigDocumentStore(store)


@router.get("/config", summary="Fetch the stored configuration document")
async def get_config(store: KVStoreDep) -> Response:
    """Return the document with its ETag; responses are never cached."""
    documents = _document_store(store)
    try:
        stored = documents.read()
    except ConfigNotFoundError as err:
        raise NotFoundError() from err
    except CorruptConfigError as err:
        raise ConfigurationError("invalid stored config") from err

    # Serve the stored text itself so the body matches the ETag byte for byte.
    return Response(
        content=stored.raw,
        media_type="application/json",
        headers={"ETag": stored.etag, "Cache-Control": NO_STORE},
    )


@router.put("/config", summary="Replace the configuration document")
async def put_config(
    request: Request,
    admin: AdminDep,
    store: KVStoreDep,
    if_match: Annotated[str | None, Header(alias="If-Match")] = None,
) -> JSONResponse:
    """Store a new document, honoring ``If-Match`` for optimistic concurrency."""
    require_json(request)
    documents = _document_store(store)

    try:
        body: Any = await request.json()
    except ValueError as err:
        raise InvalidInputError("invalid json") from err
    if not is_nav_config(body):
        raise InvalidInputError("invalid config")

    try:
        etag = documents.write(body, parse_if_match(if_match))
    except UnencodableConfigError as err:
        raise InvalidInputError("invalid config") from err
    except ConfigConflictError as err:
        raise ConflictError(err.current_etag) from err

    return JSONResponse(
        content={"ok": True, "username": admin.username},
        headers={"ETag": etag, "Cache-Control": NO_STORE},
    )

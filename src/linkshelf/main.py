# src/linkshelf/main.py
"""Main entry point for the linkshelf application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from linkshelf.api.v1 import auth_router, config_router, system_router
from linkshelf.core.errors import ApiError, StoreUnavailableError
from linkshelf.core.settings import settings
from linkshelf.services.kv_store import InMemoryKeyValueStore, KeyValueStoreError, build_kv_store

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="linkshelf API",
    description="Admin session and configuration API for a link directory",
    version="1.0.0",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
    expose_headers=["ETag", "Retry-After"],
)

# Include API routers
app.include_router(auth_router, prefix="/api")
app.include_router(config_router, prefix="/api")
app.include_router(system_router, prefix="/api")


@app.exception_handler(ApiError)
async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(exc.to_body(), status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(KeyValueStoreError)
async def handle_store_error(request: Request, exc: KeyValueStoreError) -> JSONResponse:
    logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
    return await handle_api_error(request, StoreUnavailableError())


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse({"error": "invalid request"}, status_code=status.HTTP_400_BAD_REQUEST)


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        {"error": "internal error"},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


@app.on_event("startup")
async def on_startup() -> None:
    logging.basicConfig(level=settings.log_level.upper())
    app.state.kv_store = build_kv_store(settings)
    # Shared by opted-in loopback requests when no durable backend is set.
    app.state.dev_store = InMemoryKeyValueStore()
    if app.state.kv_store is None:
        logger.warning("No KV_BACKEND configured; config and rate limiting are disabled")


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("linkshelf.main:app", host="0.0.0.0", port=8000, reload=settings.debug)

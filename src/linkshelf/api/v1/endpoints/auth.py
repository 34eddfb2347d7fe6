# src/linkshelf/api/v1/endpoints/auth.py
"""Authentication endpoints for the admin dashboard."""

from __future__ import annotations

import asyncio
import hashlib
import logging
from typing import Any

from fastapi import APIRouter, Request, Response, status

from linkshelf.api.v1.dependencies import (
    SESSION_COOKIE_NAME,
    OptionalAdminDep,
    RateLimiterDep,
    SettingsDep,
    is_secure_request,
    request_host,
    require_json,
)
from linkshelf.core.errors import (
    AuthenticationError,
    ConfigurationError,
    InvalidInputError,
    RateLimitedError,
)
from linkshelf.core.security import padded_equal
from linkshelf.core.settings import Settings
from linkshelf.schemas.auth import LoginResponse, LogoutResponse, MeResponse
from linkshelf.services.admin_auth import (
    AdminAuth,
    DevelopmentAuth,
    resolve_admin_auth,
    resolve_session_secret,
)
from linkshelf.services.rate_limit import LoginRateLimiter, client_identity
from linkshelf.services.session_tokens import issue

logger = logging.getLogger(__name__)

router = APIRouter(tags=["authentication"])


async def _read_json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError as err:
        raise InvalidInputError("invalid json") from err


def _credential_fields(body: Any) -> tuple[str, str]:
    """Extract username/password, treating anything non-string as empty."""
    if not isinstance(body, dict):
        return "", ""
    username = body.get("username")
    password = body.get("password")
    return (
        username if isinstance(username, str) else "",
        password if isinstance(password, str) else "",
    )


def _credential_bytes(text: str) -> bytes:
    # Unpaired surrogates encode to bytes no configured UTF-8 value can equal.
    return text.encode("utf-8", "surrogatepass")


def _credentials_match(auth: AdminAuth, username: str, password: str) -> bool:
    """Check both fields without short-circuiting on the first mismatch."""
    username_ok = padded_equal(_credential_bytes(username), auth.username.encode("utf-8"))
    password_ok = padded_equal(
        hashlib.sha256(_credential_bytes(password)).hexdigest().encode("ascii"),
        auth.password_sha256.strip().lower().encode("utf-8"),
    )
    return username_ok & password_ok


async def _reject_failed_login(
    limiter: LoginRateLimiter,
    identity: str,
    settings: Settings,
) -> None:
    if limiter.is_active(identity):
        retry_after = limiter.register_failure(identity)
        if retry_after is not None:
            raise RateLimitedError(retry_after)
    elif settings.login_failure_delay_seconds:
        # No limiter for this caller: slow down trivial guessing instead.
        await asyncio.sleep(settings.login_failure_delay_seconds)

    logger.info("Failed admin login from %s", identity or "unknown client")
    raise AuthenticationError("invalid credentials")


@router.post(
    "/login",
    summary="Exchange admin credentials for a session cookie",
    response_model=LoginResponse,
)
async def login(
    request: Request,
    response: Response,
    settings: SettingsDep,
    limiter: RateLimiterDep,
) -> LoginResponse:
    """Authenticate the admin and set the signed session cookie."""
    require_json(request)

    host = request_host(request)
    auth = resolve_admin_auth(settings, host)
    if auth is None:
        raise ConfigurationError("admin not configured")
    if isinstance(auth, DevelopmentAuth):
        logger.warning("Login using development admin credentials (loopback only)")

    body = await _read_json_body(request)
    username, password = _credential_fields(body)

    identity = client_identity(request.headers)
    retry_after = limiter.check(identity)
    if retry_after is not None:
        raise RateLimitedError(retry_after)

    if not _credentials_match(auth, username, password):
        await _reject_failed_login(limiter, identity, settings)

    limiter.reset(identity)

    ttl = settings.session_ttl_seconds
    # Sign with the same secret the authorization gate verifies against.
    secret = resolve_session_secret(settings, host) or auth.session_secret
    token = issue(secret, username, ttl)
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        max_age=ttl,
        path="/",
        httponly=True,
        samesite="lax",
        secure=is_secure_request(request),
    )
    logger.info("Admin %s logged in", username)
    return LoginResponse(ok=True, username=username)


@router.post(
    "/logout",
    summary="Clear the session cookie",
    status_code=status.HTTP_200_OK,
    response_model=LogoutResponse,
)
async def logout(request: Request, response: Response) -> LogoutResponse:
    """Always succeeds; the token itself simply stops being presented."""
    response.delete_cookie(
        SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        samesite="lax",
        secure=is_secure_request(request),
    )
    return LogoutResponse(ok=True)


@router.get("/me", summary="Report the signed-in admin", response_model=MeResponse)
async def me(admin: OptionalAdminDep) -> MeResponse:
    """Return the admin's username, or null when there is no valid session."""
    return MeResponse(username=admin.username if admin is not None else None)

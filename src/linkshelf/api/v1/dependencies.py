"""Shared API dependencies for authentication and common functionality."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from linkshelf.core.errors import AuthenticationError, ConfigurationError, UnsupportedMediaTypeError
from linkshelf.core.settings import Settings, get_settings
from linkshelf.services.admin_auth import dev_mode_allowed, resolve_session_secret
from linkshelf.services.kv_store import KeyValueStore
from linkshelf.services.rate_limit import LoginRateLimiter
from linkshelf.services.session_tokens import verify_token

SESSION_COOKIE_NAME = "nav_admin"

# Type alias for settings dependency
SettingsDep = Annotated[Settings, Depends(get_settings)]


@dataclass(frozen=True)
class AdminIdentity:
    """The authenticated admin behind a request."""

    username: str


def request_host(request: Request) -> str | None:
    """Return the hostname the request was addressed to, without the port."""
    return request.url.hostname


def is_secure_request(request: Request) -> bool:
    """Return True if the client reached us over HTTPS.

    A reverse proxy's ``X-Forwarded-Proto`` takes precedence over the
    scheme of the URL the application sees.
    """
    proto = request.headers.get("x-forwarded-proto")
    if proto:
        return proto.strip().lower() == "https"
    return request.url.scheme == "https"


def is_json_request(request: Request) -> bool:
    return "application/json" in request.headers.get("content-type", "").lower()


def require_json(request: Request) -> None:
    """Reject requests whose body is not declared as JSON."""
    if not is_json_request(request):
        raise UnsupportedMediaTypeError()


def get_kv_store(request: Request, settings: SettingsDep) -> KeyValueStore | None:
    """Return the durable store for this request.

    The configured backend always wins. Without one, opted-in loopback
    requests share the application's in-memory development store; every
    other request gets None.
    """
    store: KeyValueStore | None = getattr(request.app.state, "kv_store", None)
    if store is not None:
        return store
    if dev_mode_allowed(settings, request_host(request)):
        dev_store: KeyValueStore | None = getattr(request.app.state, "dev_store", None)
        return dev_store
    return None


KVStoreDep = Annotated[KeyValueStore | None, Depends(get_kv_store)]


def get_rate_limiter(store: KVStoreDep, settings: SettingsDep) -> LoginRateLimiter:
    """Build the login rate limiter over the request's store."""
    return LoginRateLimiter(
        store,
        window_seconds=settings.login_rate_limit_window_seconds,
        max_fails=settings.login_rate_limit_max_fails,
        lock_seconds=settings.login_rate_limit_lock_seconds,
    )


RateLimiterDep = Annotated[LoginRateLimiter, Depends(get_rate_limiter)]


def _authenticate(request: Request, settings: Settings) -> AdminIdentity | None:
    secret = resolve_session_secret(settings, request_host(request))
    if not secret:
        raise ConfigurationError("session secret not configured")

    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return None
    payload = verify_token(secret, token)
    if payload is None:
        return None
    return AdminIdentity(username=payload.subject)


def require_admin(request: Request, settings: SettingsDep) -> AdminIdentity:
    """Authorization gate for admin-only operations.

    Raises:
        ConfigurationError: No session secret is available.
        AuthenticationError: The session cookie is missing, forged or expired.
    """
    identity = _authenticate(request, settings)
    if identity is None:
        raise AuthenticationError()
    return identity


def optional_admin(request: Request, settings: SettingsDep) -> AdminIdentity | None:
    """Like `require_admin`, but return None instead of raising for bad sessions."""
    return _authenticate(request, settings)


# Type aliases for authentication dependencies
AdminDep = Annotated[AdminIdentity, Depends(require_admin)]
OptionalAdminDep = Annotated[AdminIdentity | None, Depends(optional_admin)]

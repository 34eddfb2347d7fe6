"""Resolution of the single admin identity and session secret.

Two explicit variants exist:

- `ProductionAuth`: ``ADMIN_USERNAME``, ``ADMIN_PASSWORD_SHA256`` and
  ``SESSION_SECRET`` are all configured.
- `DevelopmentAuth`: built-in defaults, selected only when
  ``ALLOW_DEV_DEFAULT_ADMIN`` is set *and* the request targets a loopback
  host. It is never a silent fallback for remote requests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from linkshelf.core.security import hash_text
from linkshelf.core.settings import Settings

LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1", "[::1]"})

DEV_DEFAULT_USERNAME = "dev"
DEV_DEFAULT_PASSWORD = "dev2026"
DEV_DEFAULT_SESSION_SECRET = "dev-only-session-secret-nav-du-2026"


@dataclass(frozen=True)
class ProductionAuth:
    """Operator-configured admin credentials."""

    username: str
    password_sha256: str
    session_secret: str
    kind: Literal["production"] = "production"


@dataclass(frozen=True)
class DevelopmentAuth:
    """Loopback-only credentials for local development."""

    username: str
    password_sha256: str
    session_secret: str
    kind: Literal["development"] = "development"


AdminAuth = ProductionAuth | DevelopmentAuth


def is_loopback_host(host: str | None) -> bool:
    """Return True if `host` names the local machine."""
    if not host:
        return False
    return host.strip().lower() in LOOPBACK_HOSTS


def dev_mode_allowed(settings: Settings, host: str | None) -> bool:
    """Return True when the development variant may serve this request."""
    return settings.allow_dev_default_admin and is_loopback_host(host)


def _non_blank(value: str | None, default: str) -> str:
    stripped = (value or "").strip()
    return stripped or default


def resolve_admin_auth(settings: Settings, host: str | None) -> AdminAuth | None:
    """Return the admin credentials that apply to a request for `host`.

    Args:
        settings: Active application settings.
        host: Hostname the request was addressed to (no port).

    Returns:
        The production credentials when fully configured, development
        credentials for opted-in loopback requests, otherwise None.
    """
    if settings.has_admin_credentials:
        return ProductionAuth(
            username=settings.admin_username or "",
            password_sha256=settings.admin_password_sha256 or "",
            session_secret=settings.session_secret or "",
        )

    if not dev_mode_allowed(settings, host):
        return None

    password = _non_blank(settings.dev_admin_password, DEV_DEFAULT_PASSWORD)
    return DevelopmentAuth(
        username=_non_blank(settings.dev_admin_username, DEV_DEFAULT_USERNAME),
        password_sha256=hash_text(password),
        session_secret=_non_blank(settings.dev_session_secret, DEV_DEFAULT_SESSION_SECRET),
    )


def resolve_session_secret(settings: Settings, host: str | None) -> str | None:
    """Return the secret used to sign and verify session tokens for `host`."""
    if settings.session_secret:
        return settings.session_secret
    auth = resolve_admin_auth(settings, host)
    return auth.session_secret if auth is not None else None

"""Application settings and configuration.

This module defines all configuration options for the linkshelf service.
Settings are loaded from environment variables with sensible defaults.
"""

import math
from typing import Any, Literal

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_POSITIVE_INT_DEFAULTS: dict[str, int] = {
    "session_ttl_seconds": 60 * 60 * 24,
    "login_rate_limit_window_seconds": 60,
    "login_rate_limit_max_fails": 8,
    "login_rate_limit_lock_seconds": 5 * 60,
}

_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    Admin credentials are optional: a deployment without them answers
    "admin not configured" instead of failing at import time.
    """

    # Application metadata
    app_name: str = Field(default="linkshelf", alias="APP_NAME")
    app_version: str | None = Field(default=None, alias="APP_VERSION")
    app_commit: str | None = Field(default=None, alias="APP_COMMIT")
    build_time: str | None = Field(default=None, alias="BUILD_TIME")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Admin identity and session signing
    admin_username: str | None = Field(default=None, alias="ADMIN_USERNAME")
    admin_password_sha256: str | None = Field(default=None, alias="ADMIN_PASSWORD_SHA256")
    session_secret: str | None = Field(default=None, alias="SESSION_SECRET")
    session_ttl_seconds: int = Field(default=60 * 60 * 24, alias="SESSION_TTL_SECONDS")

    # Login throttling
    login_rate_limit_window_seconds: int = Field(
        default=60,
        alias="LOGIN_RATE_LIMIT_WINDOW_SECONDS",
    )
    login_rate_limit_max_fails: int = Field(default=8, alias="LOGIN_RATE_LIMIT_MAX_FAILS")
    login_rate_limit_lock_seconds: int = Field(
        default=5 * 60,
        alias="LOGIN_RATE_LIMIT_LOCK_SECONDS",
    )
    login_failure_delay_seconds: float = Field(
        default=0.25,
        alias="LOGIN_FAILURE_DELAY_SECONDS",
    )

    # Local development fallback (loopback requests only)
    allow_dev_default_admin: bool = Field(default=False, alias="ALLOW_DEV_DEFAULT_ADMIN")
    dev_admin_username: str | None = Field(default=None, alias="DEV_ADMIN_USERNAME")
    dev_admin_password: str | None = Field(default=None, alias="DEV_ADMIN_PASSWORD")
    dev_session_secret: str | None = Field(default=None, alias="DEV_SESSION_SECRET")

    # Durable key-value store
    kv_backend: Literal["redis", "sql", "none"] = Field(default="none", alias="KV_BACKEND")
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")
    kv_database_url: str = Field(default="sqlite:///./linkshelf.db", alias="KV_DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator(*_POSITIVE_INT_DEFAULTS, mode="before")
    @classmethod
    def _positive_int_or_default(cls, value: Any, info: ValidationInfo) -> int:
        """Fall back to the default for non-numeric or non-positive values."""
        default = _POSITIVE_INT_DEFAULTS[info.field_name]
        if isinstance(value, bool):
            return default
        try:
            number = float(value)
        except (TypeError, ValueError):
            return default
        if not math.isfinite(number) or number <= 0:
            return default
        return int(number)

    @field_validator("allow_dev_default_admin", mode="before")
    @classmethod
    def _truthy_flag(cls, value: Any) -> bool:
        """Accept only explicit opt-in spellings for the development flag."""
        if isinstance(value, bool):
            return value
        if value is None:
            return False
        return str(value).strip().lower() in _TRUTHY

    @field_validator("login_failure_delay_seconds", mode="before")
    @classmethod
    def _non_negative_delay(cls, value: Any) -> float:
        try:
            delay = float(value)
        except (TypeError, ValueError):
            return 0.25
        if not math.isfinite(delay):
            return 0.25
        return max(0.0, delay)

    @property
    def has_admin_credentials(self) -> bool:
        """Return True when the production admin identity is fully configured."""
        return bool(self.admin_username and self.admin_password_sha256 and self.session_secret)


settings = Settings()


def get_settings() -> Settings:
    """Return the active settings; overridden in tests via dependency overrides."""
    return settings

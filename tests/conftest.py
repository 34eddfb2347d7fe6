# tests/conftest.py
from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from linkshelf.core.security import hash_text
from linkshelf.core.settings import Settings, get_settings
from linkshelf.main import app as fastapi_app
from linkshelf.services.kv_store import InMemoryKeyValueStore
from linkshelf.services.session_tokens import issue

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "correct horse battery staple"
SESSION_SECRET = "test-session-secret"


def make_settings(**overrides: Any) -> Settings:
    """Build isolated settings; keyword arguments (env var names) override the test defaults."""
    values: dict[str, Any] = {
        "ADMIN_USERNAME": ADMIN_USERNAME,
        "ADMIN_PASSWORD_SHA256": hash_text(ADMIN_PASSWORD),
        "SESSION_SECRET": SESSION_SECRET,
        "LOGIN_FAILURE_DELAY_SECONDS": 0,
        "ALLOW_DEV_DEFAULT_ADMIN": False,
        "KV_BACKEND": "none",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def sample_config(title: str = "Links") -> dict[str, Any]:
    return {
        "site": {"title": title, "defaultTheme": "system"},
        "categories": [
            {
                "id": "tools",
                "name": "Tools",
                "order": 2,
                "items": [{"id": "gh", "name": "GitHub", "url": "https://github.com"}],
            },
            {
                "id": "docs",
                "name": "Docs",
                "order": 1,
                "items": [
                    {
                        "id": "py",
                        "name": "Python",
                        "url": "https://docs.python.org",
                        "tags": ["lang"],
                    }
                ],
            },
        ],
    }


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def test_settings() -> Settings:
    """Production-style admin settings with the failure delay disabled."""
    return make_settings()


@pytest.fixture()
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture()
def override_settings(app: FastAPI, test_settings: Settings) -> Iterator[Settings]:
    app.dependency_overrides[get_settings] = lambda: test_settings
    try:
        yield test_settings
    finally:
        app.dependency_overrides.pop(get_settings, None)


@pytest.fixture()
def client(
    app: FastAPI,
    override_settings: Settings,
    kv_store: InMemoryKeyValueStore | None,
) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        # Startup builds stores from the process settings; replace them.
        app.state.kv_store = kv_store
        app.state.dev_store = InMemoryKeyValueStore()
        yield test_client


@pytest.fixture()
def admin_cookie(test_settings: Settings) -> dict[str, str]:
    """Return a valid session cookie for the configured admin."""
    token = issue(test_settings.session_secret or "", ADMIN_USERNAME, 3600)
    return {"nav_admin": token}


@pytest.fixture()
def admin_client(client: TestClient, admin_cookie: dict[str, str]) -> TestClient:
    client.cookies.update(admin_cookie)
    return client

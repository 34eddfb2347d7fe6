# tests/v1/test_config_api.py
"""Tests for the configuration document endpoints."""

from __future__ import annotations

import pytest
from fastapi import status

from linkshelf.services.config_store import CONFIG_KEY, compute_etag, serialize_document
from linkshelf.services.kv_store import KeyValueStoreError
from tests.conftest import ADMIN_USERNAME, sample_config


def _put(client, config, if_match=None):
    headers = {"If-Match": if_match} if if_match else {}
    return client.put("/api/config", json=config, headers=headers)


class TestGetConfig:
    def test_not_found_before_first_write(self, client):
        response = client.get("/api/config")
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"error": "not found"}

    def test_returns_stored_bytes_with_etag(self, client, kv_store):
        raw = serialize_document(sample_config())
        kv_store.put(CONFIG_KEY, raw)

        response = client.get("/api/config")
        assert response.status_code == status.HTTP_200_OK
        assert response.content.decode("utf-8") == raw
        assert response.headers["etag"] == compute_etag(raw)
        assert "no-store" in response.headers["cache-control"]

    def test_corrupt_document_is_500(self, client, kv_store):
        kv_store.put(CONFIG_KEY, '{"site": "broken"')
        response = client.get("/api/config")
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"error": "invalid stored config"}

    def test_store_failure_is_500(self, client, kv_store, mocker):
        mocker.patch.object(kv_store, "get", side_effect=KeyValueStoreError("down"))
        response = client.get("/api/config")
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"error": "store unavailable"}


class TestPutConfig:
    def test_write_then_read_round_trip(self, admin_client):
        put = _put(admin_client, sample_config())
        assert put.status_code == status.HTTP_200_OK
        assert put.json() == {"ok": True, "username": ADMIN_USERNAME}

        get = admin_client.get("/api/config")
        assert get.json() == sample_config()
        assert get.headers["etag"] == put.headers["etag"]

    def test_same_bytes_same_etag(self, admin_client):
        first = _put(admin_client, sample_config()).headers["etag"]
        second = _put(admin_client, sample_config()).headers["etag"]
        assert first == second
        assert first.startswith('W/"')

    def test_conflict_law(self, admin_client):
        e0 = _put(admin_client, sample_config("base")).headers["etag"]
        e1 = _put(admin_client, sample_config("from B"), if_match=e0).headers["etag"]
        assert e1 != e0

        response = _put(admin_client, sample_config("from A"), if_match=e0)
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json() == {"error": "conflict", "etag": e1}
        assert response.headers["etag"] == e1
        assert admin_client.get("/api/config").json()["site"]["title"] == "from B"

    def test_if_match_without_document_is_conflict(self, admin_client):
        response = _put(admin_client, sample_config(), if_match='W/"stale"')
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json() == {"error": "conflict", "etag": None}
        assert "etag" not in response.headers

    def test_blank_if_match_is_unconditional(self, admin_client):
        _put(admin_client, sample_config("one"))
        response = admin_client.put("/api/config", json=sample_config("two"), headers={"If-Match": "  "})
        assert response.status_code == status.HTTP_200_OK

    def test_non_json_is_415(self, admin_client):
        response = admin_client.put(
            "/api/config",
            content="title: links",
            headers={"content-type": "text/yaml"},
        )
        assert response.status_code == status.HTTP_415_UNSUPPORTED_MEDIA_TYPE

    @pytest.mark.parametrize(
        "body",
        [{"site": {"title": "x"}}, {"categories": []}, [], {"site": {"title": 1}, "categories": []}],
    )
    def test_invalid_config_is_400(self, admin_client, body):
        response = admin_client.put("/api/config", json=body)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "invalid config"}

    def test_unpaired_surrogate_is_400_and_keeps_document(self, admin_client):
        etag = _put(admin_client, sample_config("kept")).headers["etag"]

        response = admin_client.put(
            "/api/config",
            content='{"site":{"title":"\\ud800"},"categories":[]}',
            headers={"content-type": "application/json"},
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "invalid config"}

        get = admin_client.get("/api/config")
        assert get.status_code == status.HTTP_200_OK
        assert get.json() == sample_config("kept")
        assert _put(admin_client, sample_config("next"), if_match=etag).status_code == status.HTTP_200_OK

    def test_store_failure_on_write_is_500(self, admin_client, kv_store, mocker):
        mocker.patch.object(kv_store, "put", side_effect=KeyValueStoreError("down"))
        response = _put(admin_client, sample_config())
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"error": "store unavailable"}


class TestWithoutStore:
    @pytest.fixture
    def kv_store(self):
        return None

    def test_get_reports_missing_store(self, client):
        response = client.get("/api/config")
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"error": "config store not configured"}

    def test_put_reports_missing_store(self, admin_client):
        response = _put(admin_client, sample_config())
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"error": "config store not configured"}

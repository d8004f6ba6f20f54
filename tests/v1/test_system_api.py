"""Tests for system and transparency endpoints."""

from unittest.mock import MagicMock

from fastapi import status

from assembly_stage.api.v1.dependencies import get_presence_store_dep
from assembly_stage.core.errors import StoreUnavailable


def test_public_config_excludes_secrets(client, test_settings) -> None:
    response = client.get("/api/v1/system/config")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["presence"]["heartbeat_ttl_seconds"] == 60
    assert body["votes"]["hash_algorithm"] == test_settings.vote_hash_algorithm
    assert body["votes"]["server_secret_configured"] is True
    serialized = response.text
    assert test_settings.vote_server_secret not in serialized
    assert test_settings.admin_secret not in serialized


def test_system_health_reports_both_stores(client) -> None:
    response = client.get("/api/v1/system/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok", "presence_store": "ok", "record_store": "ok"}


def test_system_health_degrades_when_presence_store_down(client, app) -> None:
    store = MagicMock()
    store.ping.side_effect = StoreUnavailable("presence store unavailable: refused")
    app.dependency_overrides[get_presence_store_dep] = lambda: store

    response = client.get("/api/v1/system/health")

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json()["presence_store"] == "unavailable"

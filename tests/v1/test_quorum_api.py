"""Tests for the quorum endpoint."""

import json
from unittest.mock import MagicMock

from fastapi import status

from assembly_stage.api.v1.dependencies import get_presence_store_dep
from assembly_stage.core.errors import StoreUnavailable


def _activate_and_connect(client, admin_headers, voter_headers, assembly_id, payload, count):
    client.post(f"/api/v1/assemblies/{assembly_id}/roster", json=payload, headers=admin_headers)
    for index in range(1, count + 1):
        unit_id = f"U{index}"
        response = client.post(
            "/api/v1/heartbeat",
            json={"assembly_id": assembly_id, "unit_id": unit_id},
            headers=voter_headers(assembly_id, unit_id),
        )
        assert response.status_code == status.HTTP_200_OK


def test_quorum_defaults_totals_to_session_snapshot(
    client, admin_headers, voter_headers, assembly, ten_unit_payload
) -> None:
    _activate_and_connect(client, admin_headers, voter_headers, assembly.id, ten_unit_payload, 5)

    response = client.get("/api/v1/quorum", params={"assembly_id": assembly.id})

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["connected_units"] == 5
    assert body["total_units"] == 10
    assert body["presence_percentage"] == 50.0
    assert body["required_quorum"] == 50.0
    assert body["reached"] is True
    assert body["coefficient_total"] == 100.0


def test_quorum_with_coefficient_map(
    client, admin_headers, voter_headers, assembly, ten_unit_payload
) -> None:
    _activate_and_connect(client, admin_headers, voter_headers, assembly.id, ten_unit_payload, 2)
    weights = {"U1": 25.0, "U2": 25.0, "U3": 50.0}

    response = client.get(
        "/api/v1/quorum",
        params={
            "assembly_id": assembly.id,
            "required_quorum": 30,
            "total_units": 3,
            "agenda_point_id": "P1",
            "coefficients": json.dumps(weights),
        },
    )

    body = response.json()
    assert response.status_code == status.HTTP_200_OK
    assert body["agenda_point_id"] == "P1"
    assert body["reached"] is True
    assert body["coefficient_voted"] == 50.0
    assert body["coefficient_total"] == 100.0
    assert body["approval_reached"] is False


def test_quorum_rejects_malformed_coefficients(client, assembly) -> None:
    response = client.get(
        "/api/v1/quorum",
        params={"assembly_id": assembly.id, "coefficients": "{not json"},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_quorum_rejects_non_numeric_coefficients(client, assembly) -> None:
    response = client.get(
        "/api/v1/quorum",
        params={"assembly_id": assembly.id, "coefficients": json.dumps({"U1": "ten"})},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_quorum_for_inactive_assembly_reports_nothing_reached(client, assembly) -> None:
    response = client.get("/api/v1/quorum", params={"assembly_id": assembly.id})

    body = response.json()
    assert response.status_code == status.HTTP_200_OK
    assert body["total_units"] == 0
    assert body["reached"] is False
    assert body["coefficient_total"] is None


def test_quorum_reports_unavailable_store(client, app, assembly) -> None:
    store = MagicMock()
    store.get.side_effect = StoreUnavailable("presence store unavailable: timeout")
    store.keys_matching.side_effect = StoreUnavailable("presence store unavailable: timeout")
    app.dependency_overrides[get_presence_store_dep] = lambda: store

    response = client.get("/api/v1/quorum", params={"assembly_id": assembly.id, "total_units": 10})

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

"""Tests for vote endpoints."""

import pytest
from fastapi import status


@pytest.fixture()
def active_assembly(client, admin_headers, assembly, ten_unit_payload):
    response = client.post(
        f"/api/v1/assemblies/{assembly.id}/roster",
        json=ten_unit_payload,
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    return assembly


def _vote_body(assembly_id: str, **overrides) -> dict:
    body = {
        "assembly_id": assembly_id,
        "agenda_point_id": "P1",
        "unit_id": "U1",
        "choice": "for",
        "coefficient": 10.0,
    }
    body.update(overrides)
    return body


def test_cast_vote_returns_receipt(client, voter_headers, active_assembly) -> None:
    response = client.post(
        "/api/v1/votes",
        json=_vote_body(active_assembly.id),
        headers=voter_headers(active_assembly.id, "U1"),
    )

    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["choice"] == "for"
    assert body["hash_algorithm"] == "sha256"
    assert len(body["vote_hash"]) == 64
    assert len(body["nonce"]) == 32


def test_retried_vote_returns_original_receipt(client, voter_headers, active_assembly) -> None:
    headers = voter_headers(active_assembly.id, "U1")
    body = _vote_body(active_assembly.id, client_request_id="req-42")

    first = client.post("/api/v1/votes", json=body, headers=headers)
    second = client.post("/api/v1/votes", json=body, headers=headers)

    assert first.status_code == status.HTTP_201_CREATED
    assert second.status_code == status.HTTP_200_OK
    assert second.json()["id"] == first.json()["id"]


def test_invalid_choice_is_rejected(client, voter_headers, active_assembly) -> None:
    response = client.post(
        "/api/v1/votes",
        json=_vote_body(active_assembly.id, choice="maybe"),
        headers=voter_headers(active_assembly.id, "U1"),
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_vote_rejected_without_census(client, voter_headers, assembly) -> None:
    response = client.post(
        "/api/v1/votes",
        json=_vote_body(assembly.id),
        headers=voter_headers(assembly.id, "U1"),
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_vote_for_another_unit_is_forbidden(client, voter_headers, active_assembly) -> None:
    response = client.post(
        "/api/v1/votes",
        json=_vote_body(active_assembly.id, unit_id="U2"),
        headers=voter_headers(active_assembly.id, "U1"),
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_list_and_verify_votes(client, voter_headers, active_assembly) -> None:
    for unit_id, choice in (("U1", "for"), ("U2", "a_favor"), ("U3", "against")):
        client.post(
            "/api/v1/votes",
            json=_vote_body(active_assembly.id, unit_id=unit_id, choice=choice),
            headers=voter_headers(active_assembly.id, unit_id),
        )

    listed = client.get(
        "/api/v1/votes",
        params={"assembly_id": active_assembly.id, "agenda_point_id": "P1"},
    )

    assert listed.status_code == status.HTTP_200_OK
    tickets = listed.json()
    assert sorted(ticket["choice"] for ticket in tickets) == ["against", "for", "for"]

    verification = client.get(f"/api/v1/votes/{tickets[0]['id']}/verify")
    assert verification.status_code == status.HTTP_200_OK
    assert verification.json()["valid"] is True


def test_verify_unknown_vote(client) -> None:
    response = client.get("/api/v1/votes/does-not-exist/verify")

    assert response.status_code == status.HTTP_404_NOT_FOUND

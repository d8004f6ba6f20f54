"""Tests for vote submission, idempotency and verification."""

import pytest

from assembly_stage.core.errors import GateRejected, InputValidationError, RecordNotFound
from assembly_stage.models import VoteRecord
from assembly_stage.schemas.vote import VoteChoice, VoteCreate
from assembly_stage.services.roster import RosterImportService
from assembly_stage.services.vote_service import VoteService


@pytest.fixture()
def active_assembly(db_session, gate, assembly, ten_unit_roster):
    RosterImportService(db_session, gate).import_roster(assembly.id, ten_unit_roster)
    return assembly


@pytest.fixture()
def vote_service(db_session, gate, integrity_engine) -> VoteService:
    return VoteService(db_session, gate, integrity_engine)


def _vote(assembly_id: str, **overrides) -> VoteCreate:
    payload = {
        "assembly_id": assembly_id,
        "agenda_point_id": "P1",
        "unit_id": "U1",
        "choice": "for",
        "coefficient": 10.0,
    }
    payload.update(overrides)
    return VoteCreate(**payload)


def test_cast_records_vote_with_commitment(vote_service, active_assembly, db_session) -> None:
    ticket, created = vote_service.cast(_vote(active_assembly.id))

    assert created is True
    assert ticket.choice is VoteChoice.FOR
    assert ticket.voter_id == "U1"
    assert len(ticket.vote_hash) == 64
    stored = db_session.get(VoteRecord, ticket.id)
    assert stored is not None
    assert stored.nonce == ticket.nonce


def test_cast_normalises_choice_aliases(vote_service, active_assembly) -> None:
    ticket, _ = vote_service.cast(_vote(active_assembly.id, choice="en_contra"))

    assert ticket.choice is VoteChoice.AGAINST


def test_cast_is_rejected_without_census(vote_service, assembly, db_session) -> None:
    with pytest.raises(GateRejected):
        vote_service.cast(_vote(assembly.id))

    assert db_session.query(VoteRecord).count() == 0


def test_cast_is_rejected_after_close(vote_service, active_assembly, gate) -> None:
    gate.close(active_assembly.id)

    with pytest.raises(GateRejected):
        vote_service.cast(_vote(active_assembly.id))


def test_invalid_choice_is_rejected(vote_service, active_assembly, db_session) -> None:
    with pytest.raises(InputValidationError):
        vote_service.cast(_vote(active_assembly.id, choice="maybe"))

    assert db_session.query(VoteRecord).count() == 0


def test_retried_request_returns_original_ticket(vote_service, active_assembly, db_session) -> None:
    first, first_created = vote_service.cast(_vote(active_assembly.id, client_request_id="req-1"))
    second, second_created = vote_service.cast(
        _vote(active_assembly.id, client_request_id="req-1")
    )

    assert first_created is True
    assert second_created is False
    assert second.id == first.id
    assert second.vote_hash == first.vote_hash
    assert db_session.query(VoteRecord).count() == 1


def test_votes_without_request_id_are_recorded_separately(vote_service, active_assembly) -> None:
    first, _ = vote_service.cast(_vote(active_assembly.id))
    second, _ = vote_service.cast(_vote(active_assembly.id))

    assert first.id != second.id
    assert first.vote_hash != second.vote_hash


def test_list_votes_for_agenda_point(vote_service, active_assembly) -> None:
    vote_service.cast(_vote(active_assembly.id, unit_id="U1"))
    vote_service.cast(_vote(active_assembly.id, unit_id="U2", choice="against"))
    vote_service.cast(_vote(active_assembly.id, unit_id="U3", agenda_point_id="P2"))

    tickets = vote_service.list_votes(active_assembly.id, "P1")

    assert sorted(ticket.unit_id for ticket in tickets) == ["U1", "U2"]


def test_verify_detects_tampering(vote_service, active_assembly, db_session) -> None:
    ticket, _ = vote_service.cast(_vote(active_assembly.id))

    assert vote_service.verify(ticket.id).valid is True

    stored = db_session.get(VoteRecord, ticket.id)
    stored.choice = "against"
    db_session.commit()

    assert vote_service.verify(ticket.id).valid is False


def test_verify_unknown_vote(vote_service) -> None:
    with pytest.raises(RecordNotFound):
        vote_service.verify("missing")

"""Vote submission and verification."""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from assembly_stage.core.errors import InputValidationError, RecordNotFound, StoreUnavailable
from assembly_stage.db.time import utcnow_iso
from assembly_stage.models.vote import VoteRecord
from assembly_stage.repositories.vote_repo import VoteRepository
from assembly_stage.schemas.vote import VoteChoice, VoteCreate, VoteTicket, VoteVerification
from assembly_stage.services.session_gate import AssemblySessionGate
from assembly_stage.services.vote_integrity import VoteIntegrityEngine, parse_choice
from assembly_stage.utils.validation import require_identifier, require_non_negative

logger = logging.getLogger(__name__)


def ticket_from_record(record: VoteRecord) -> VoteTicket:
    """Build the voter receipt for a stored vote."""
    return VoteTicket(
        id=record.id,
        assembly_id=record.assembly_id,
        agenda_point_id=record.agenda_point_id,
        unit_id=record.unit_id,
        voter_id=record.voter_id,
        choice=VoteChoice(record.choice),
        coefficient=float(record.coefficient),
        vote_hash=record.vote_hash,
        nonce=record.nonce,
        hash_algorithm=record.hash_algorithm,
        timestamp=record.timestamp,
    )


class VoteService:
    """Gates, hashes and records votes.

    Votes are never retried here: a failure is reported to the caller, who
    must re-submit explicitly.
    """

    def __init__(
        self,
        db: Session,
        gate: AssemblySessionGate,
        engine: VoteIntegrityEngine,
    ) -> None:
        self._db = db
        self._repo = VoteRepository(db)
        self._gate = gate
        self._engine = engine

    def cast(self, vote: VoteCreate) -> tuple[VoteTicket, bool]:
        """Record a vote and return its ticket plus whether it was newly created.

        Raises:
            InputValidationError: If a field is missing or the choice is invalid.
            GateRejected: If the assembly is not accepting votes.
            StoreUnavailable: If the record store could not be written.
        """
        assembly_id = require_identifier("assembly_id", vote.assembly_id)
        agenda_point_id = require_identifier("agenda_point_id", vote.agenda_point_id)
        unit_id = require_identifier("unit_id", vote.unit_id)
        voter_id = require_identifier("voter_id", vote.voter_id or unit_id)
        choice = parse_choice(vote.choice)
        coefficient = require_non_negative("coefficient", vote.coefficient)
        request_id = vote.client_request_id.strip() if vote.client_request_id else None

        self._gate.ensure_accepting(assembly_id)

        if request_id:
            existing = self._repo.get_by_request_id(assembly_id, request_id)
            if existing is not None:
                return ticket_from_record(existing), False

        timestamp = utcnow_iso()
        commitment = self._engine.commit(timestamp, unit_id, agenda_point_id, choice, coefficient)
        record = VoteRecord(
            assembly_id=assembly_id,
            agenda_point_id=agenda_point_id,
            unit_id=unit_id,
            voter_id=voter_id,
            choice=choice.value,
            coefficient=coefficient,
            vote_hash=commitment.vote_hash,
            nonce=commitment.nonce,
            hash_algorithm=commitment.algorithm,
            timestamp=timestamp,
            client_request_id=request_id,
        )

        try:
            stored, created = self._repo.create(record)
            self._db.commit()
        except IntegrityError as err:
            self._db.rollback()
            raise InputValidationError("Vote conflicts with an existing record") from err
        except SQLAlchemyError as err:
            self._db.rollback()
            logger.warning("Could not persist vote for assembly %s: %s", assembly_id, err)
            raise StoreUnavailable(f"record store unavailable: {err}") from err

        if created:
            logger.info(
                "Recorded vote %s on %s/%s", stored.id, assembly_id, agenda_point_id
            )
        return ticket_from_record(stored), created

    def list_votes(self, assembly_id: str, agenda_point_id: str) -> list[VoteTicket]:
        """Return the tickets of one agenda point while the assembly is active."""
        assembly_id = require_identifier("assembly_id", assembly_id)
        agenda_point_id = require_identifier("agenda_point_id", agenda_point_id)
        self._gate.ensure_accepting(assembly_id)
        return [
            ticket_from_record(record)
            for record in self._repo.list_for_point(assembly_id, agenda_point_id)
        ]

    def verify(self, vote_id: str) -> VoteVerification:
        """Recompute a stored vote's commitment and compare it with the stored hash."""
        record = self._repo.get(vote_id)
        if record is None:
            raise RecordNotFound(f"Vote {vote_id} not found")
        valid = self._engine.verify(
            record.vote_hash,
            record.timestamp,
            record.unit_id,
            record.agenda_point_id,
            record.choice,
            float(record.coefficient),
            record.nonce,
            algorithm=record.hash_algorithm,
        )
        if not valid:
            logger.warning("Vote %s failed integrity verification", record.id)
        return VoteVerification(id=record.id, vote_hash=record.vote_hash, valid=valid)

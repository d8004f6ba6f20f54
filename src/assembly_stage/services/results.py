"""Agenda point tallies and the final assembly report."""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from collections.abc import Iterable, Mapping
from typing import Protocol, assert_never

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from assembly_stage.core.errors import GateRejected, RecordNotFound, StoreUnavailable
from assembly_stage.db.time import utcnow_iso
from assembly_stage.models.assembly import Assembly
from assembly_stage.repositories.assembly_repo import AssemblyRepository
from assembly_stage.repositories.vote_repo import VoteRepository
from assembly_stage.schemas.results import AgendaPointResult, ApprovalOutcome, FinalReport
from assembly_stage.schemas.session import AssemblySession
from assembly_stage.schemas.vote import VoteChoice
from assembly_stage.services.quorum import approval_reached
from assembly_stage.services.session_gate import AssemblySessionGate
from assembly_stage.utils.validation import require_identifier

logger = logging.getLogger(__name__)


class CastVote(Protocol):
    """Minimal view of a stored vote needed for tallying."""

    unit_id: str
    choice: str
    coefficient: float


class StoredVote(CastVote, Protocol):
    agenda_point_id: str


def classify_outcome(coefficient_for: float, coefficient_total: float) -> ApprovalOutcome:
    """Classify a motion against half of the total coefficient."""
    if approval_reached(coefficient_for, coefficient_total):
        return ApprovalOutcome.APPROVED
    if coefficient_for < coefficient_total / 2:
        return ApprovalOutcome.REJECTED
    return ApprovalOutcome.TIED


def tally_agenda_point(
    agenda_point_id: str,
    votes: Iterable[CastVote],
    coefficient_total: float,
    coefficient_map: Mapping[str, float] | None = None,
) -> AgendaPointResult:
    """Aggregate the votes of one agenda point.

    When a roster ``coefficient_map`` is given, each vote is weighted by the
    unit's roster coefficient (0 for units not on the roster) rather than the
    coefficient submitted with the vote.

    Every submission stays on record, but a unit is counted once: ``votes``
    must arrive in submission order and the last one per unit wins.
    """
    latest: dict[str, CastVote] = {}
    for vote in votes:
        latest[vote.unit_id] = vote

    counts: dict[VoteChoice, int] = defaultdict(int)
    weights: dict[VoteChoice, list[float]] = defaultdict(list)
    for vote in latest.values():
        choice = VoteChoice(vote.choice)
        if coefficient_map is not None:
            weight = float(coefficient_map.get(vote.unit_id, 0.0))
        else:
            weight = float(vote.coefficient)
        match choice:
            case VoteChoice.FOR | VoteChoice.AGAINST | VoteChoice.ABSTAIN:
                counts[choice] += 1
                weights[choice].append(weight)
            case _ as unreachable:
                assert_never(unreachable)

    coefficient_for = math.fsum(weights[VoteChoice.FOR])
    return AgendaPointResult(
        agenda_point_id=agenda_point_id,
        votes_for=counts[VoteChoice.FOR],
        votes_against=counts[VoteChoice.AGAINST],
        votes_abstain=counts[VoteChoice.ABSTAIN],
        coefficient_for=coefficient_for,
        coefficient_against=math.fsum(weights[VoteChoice.AGAINST]),
        coefficient_abstain=math.fsum(weights[VoteChoice.ABSTAIN]),
        coefficient_total=coefficient_total,
        approved=approval_reached(coefficient_for, coefficient_total),
        outcome=classify_outcome(coefficient_for, coefficient_total),
    )


def build_final_report(
    assembly: Assembly,
    votes: Iterable[StoredVote],
    coefficient_total: float,
    coefficient_map: Mapping[str, float] | None = None,
) -> FinalReport:
    """Group an assembly's votes by agenda point and tally each one."""
    by_point: dict[str, list[StoredVote]] = defaultdict(list)
    for vote in votes:
        by_point[vote.agenda_point_id].append(vote)

    return FinalReport(
        assembly_id=assembly.id,
        assembly_name=assembly.name,
        generated_at=utcnow_iso(),
        total_units=len(coefficient_map) if coefficient_map is not None else 0,
        total_coefficient=coefficient_total,
        agenda_points=[
            tally_agenda_point(point_id, by_point[point_id], coefficient_total, coefficient_map)
            for point_id in sorted(by_point)
        ],
    )


class FinalReportService:
    """Builds assembly results from the record store and drives closure."""

    def __init__(self, db: Session, gate: AssemblySessionGate) -> None:
        self._db = db
        self._assemblies = AssemblyRepository(db)
        self._votes = VoteRepository(db)
        self._gate = gate

    def build_report(self, assembly_id: str) -> FinalReport:
        """Aggregate every agenda point of an assembly."""
        assembly_id = require_identifier("assembly_id", assembly_id)
        assembly = self._assemblies.get(assembly_id)
        if assembly is None:
            raise RecordNotFound(f"Assembly {assembly_id} not found")

        coefficient_map = self._assemblies.coefficient_map(assembly_id)
        return build_final_report(
            assembly,
            self._votes.list_for_assembly(assembly_id),
            math.fsum(coefficient_map.values()),
            coefficient_map,
        )

    def close_assembly(self, assembly_id: str) -> tuple[FinalReport, AssemblySession]:
        """Produce the final report, close the session, then record the closure.

        The closure is stamped on the assembly row so the assembly stays closed
        after the session record expires from the presence store.

        Raises:
            RecordNotFound: If the assembly does not exist.
            GateRejected: If the assembly is not active or was already closed.
            ReportGenerationError: If the report failed; the session stays active.
            StoreUnavailable: If the closure could not be recorded.
        """
        assembly_id = require_identifier("assembly_id", assembly_id)
        assembly = self._assemblies.get(assembly_id)
        if assembly is None:
            raise RecordNotFound(f"Assembly {assembly_id} not found")
        if assembly.closed_at is not None:
            raise GateRejected(assembly_id, "Assembly session is closed")

        report, session = self._gate.close_after_report(
            assembly_id, lambda: self.build_report(assembly_id)
        )
        try:
            self._assemblies.mark_closed(assembly)
            self._db.commit()
        except SQLAlchemyError as err:
            self._db.rollback()
            logger.error("Could not record closure of assembly %s: %s", assembly_id, err)
            raise StoreUnavailable(f"record store unavailable: {err}") from err
        except StoreUnavailable:
            self._db.rollback()
            logger.error("Could not record closure of assembly %s", assembly_id)
            raise
        return report, session

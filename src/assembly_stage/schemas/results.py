"""Agenda point results and final report schemas."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from .session import AssemblySession


class ApprovalOutcome(str, Enum):
    """Outcome of an agenda point measured against half the total coefficient."""

    APPROVED = "approved"
    REJECTED = "rejected"
    TIED = "tied"


class AgendaPointResult(BaseModel):
    """Aggregated votes for one agenda point."""

    agenda_point_id: str
    votes_for: int = 0
    votes_against: int = 0
    votes_abstain: int = 0
    coefficient_for: float = 0.0
    coefficient_against: float = 0.0
    coefficient_abstain: float = 0.0
    coefficient_total: float
    approved: bool
    outcome: ApprovalOutcome


class FinalReport(BaseModel):
    """Data handed to the external document renderer when an assembly ends."""

    assembly_id: str
    assembly_name: str
    generated_at: str
    total_units: int
    total_coefficient: float
    agenda_points: list[AgendaPointResult]


class AssemblyClosure(BaseModel):
    """Final report together with the session it closed."""

    report: FinalReport
    session: AssemblySession

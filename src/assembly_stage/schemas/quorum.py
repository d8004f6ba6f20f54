"""Quorum status schema."""

from __future__ import annotations

from pydantic import BaseModel, Field


class QuorumStatus(BaseModel):
    """Freshly computed quorum snapshot; never stored."""

    assembly_id: str
    agenda_point_id: str | None = None
    connected_units: int = Field(..., ge=0)
    total_units: int = Field(..., ge=0)
    presence_percentage: float
    required_quorum: float
    reached: bool = Field(..., description="Presence quorum met (inclusive threshold)")
    coefficient_voted: float | None = None
    coefficient_total: float | None = None
    approval_reached: bool | None = Field(
        default=None,
        description="Present coefficient strictly exceeds half of the total",
    )
    last_update: str

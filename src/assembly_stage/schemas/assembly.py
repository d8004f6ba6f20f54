"""Assembly and roster schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .session import AssemblySession


class AssemblyCreate(BaseModel):
    """Schema for creating an assembly."""

    name: str = Field(..., min_length=1)
    required_quorum: float = Field(default=50.0, ge=0, le=100)


class AssemblyRead(BaseModel):
    """Assembly as returned by the admin API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    required_quorum: float
    created_at: datetime
    closed_at: datetime | None = None


class RosterEntry(BaseModel):
    """One validated row of an imported roster."""

    unit_id: str = Field(..., min_length=1)
    owner_name: str = ""
    email: str | None = None
    coefficient: float


class RosterImport(BaseModel):
    """Validated roster produced by the external spreadsheet importer."""

    units: list[RosterEntry]


class RosterImportResult(BaseModel):
    """Outcome of a roster import followed by session activation."""

    assembly_id: str
    total_units: int
    total_coefficient: float
    session: AssemblySession


class VoterAccess(BaseModel):
    """Voting credentials issued to one roster unit."""

    unit_id: str
    owner_name: str
    email: str | None = None
    token: str
    voting_url: str
    expires_at: datetime

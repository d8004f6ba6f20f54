"""Assembly session schemas."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class SessionStatus(str, Enum):
    """Lifecycle state of an assembly session."""

    INACTIVE = "inactive"
    ACTIVE = "active"
    CLOSED = "closed"


class AssemblySession(BaseModel):
    """Session record kept in the presence store under a bounded TTL."""

    assembly_id: str
    status: SessionStatus = SessionStatus.INACTIVE
    census_loaded: bool = False
    total_units: int = Field(default=0, ge=0)
    total_coefficient: float = Field(default=0.0, ge=0)
    activated_at: str | None = None
    closed_at: str | None = None


class SessionActivate(BaseModel):
    """Payload for an explicit session activation."""

    total_units: int = Field(..., ge=0)
    total_coefficient: float = Field(..., ge=0)

"""Vote-related Pydantic schemas."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class VoteChoice(str, Enum):
    """The three admissible options on an agenda point."""

    FOR = "for"
    AGAINST = "against"
    ABSTAIN = "abstain"


class VoteCreate(BaseModel):
    """Schema for casting a vote."""

    assembly_id: str = Field(..., min_length=1)
    agenda_point_id: str = Field(..., min_length=1)
    unit_id: str = Field(..., min_length=1)
    voter_id: str | None = Field(default=None, description="Defaults to the unit id")
    choice: str = Field(..., description="for, against or abstain")
    coefficient: float = Field(..., ge=0)
    client_request_id: str | None = Field(
        default=None,
        max_length=64,
        description="Client-generated id so retried requests do not duplicate the vote",
    )


class VoteTicket(BaseModel):
    """Receipt returned to the voter."""

    id: str
    assembly_id: str
    agenda_point_id: str
    unit_id: str
    voter_id: str
    choice: VoteChoice
    coefficient: float
    vote_hash: str
    nonce: str
    hash_algorithm: str
    timestamp: str


class VoteVerification(BaseModel):
    """Result of recomputing a stored vote's commitment."""

    id: str
    vote_hash: str
    valid: bool

"""Vote endpoints for the Assembly Stage API."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from assembly_stage.schemas.vote import VoteCreate, VoteTicket, VoteVerification
from assembly_stage.services.vote_service import VoteService

from ..dependencies import (
    CurrentVoterDep,
    SessionDep,
    SessionGateDep,
    VoteIntegrityEngineDep,
    ensure_voter_matches,
)

router = APIRouter(prefix="/votes", tags=["votes"])


def get_vote_service(
    db: SessionDep,
    gate: SessionGateDep,
    engine: VoteIntegrityEngineDep,
) -> VoteService:
    """Return a vote service bound to the request's database session."""
    return VoteService(db, gate, engine)


VoteServiceDep = Annotated[VoteService, Depends(get_vote_service)]


@router.post("", response_model=VoteTicket, status_code=status.HTTP_201_CREATED)
async def cast_vote(
    vote_data: VoteCreate,
    voter: CurrentVoterDep,
    service: VoteServiceDep,
    response: Response,
) -> VoteTicket:
    """Cast a vote on an agenda point and return its receipt.

    Re-sending a request with the same ``client_request_id`` returns the
    original receipt with status 200 instead of recording a second vote.
    """
    ensure_voter_matches(voter, vote_data.assembly_id, vote_data.unit_id)
    ticket, created = service.cast(vote_data)
    if not created:
        response.status_code = status.HTTP_200_OK
    return ticket


@router.get("", response_model=list[VoteTicket])
async def list_votes(
    service: VoteServiceDep,
    assembly_id: str = Query(..., min_length=1),
    agenda_point_id: str = Query(..., min_length=1),
) -> list[VoteTicket]:
    """Return the receipts recorded for one agenda point."""
    return service.list_votes(assembly_id, agenda_point_id)


@router.get("/{vote_id}/verify", response_model=VoteVerification)
async def verify_vote(vote_id: str, service: VoteServiceDep) -> VoteVerification:
    """Recompute a vote's commitment hash and report whether it still matches."""
    return service.verify(vote_id)

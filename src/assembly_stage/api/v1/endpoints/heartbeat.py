"""Heartbeat endpoints keeping a unit's presence alive."""

from fastapi import APIRouter, Query, status

from assembly_stage.schemas.heartbeat import HeartbeatAck, HeartbeatRequest

from ..dependencies import CurrentVoterDep, HeartbeatTrackerDep, ensure_voter_matches

router = APIRouter(prefix="/heartbeat", tags=["heartbeat"])


@router.post("", response_model=HeartbeatAck)
async def send_heartbeat(
    payload: HeartbeatRequest,
    voter: CurrentVoterDep,
    tracker: HeartbeatTrackerDep,
) -> HeartbeatAck:
    """Create or refresh the presence of the calling unit.

    Clients call this every ``refresh_interval`` seconds while the voting page
    is open; presence lapses ``ttl`` seconds after the last call.
    """
    ensure_voter_matches(voter, payload.assembly_id, payload.unit_id)
    return tracker.refresh(payload.assembly_id, payload.unit_id)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def end_presence(
    voter: CurrentVoterDep,
    tracker: HeartbeatTrackerDep,
    assembly_id: str = Query(..., min_length=1),
    unit_id: str = Query(..., min_length=1),
) -> None:
    """Drop the calling unit's presence immediately (explicit logout)."""
    ensure_voter_matches(voter, assembly_id, unit_id)
    tracker.remove(assembly_id, unit_id)

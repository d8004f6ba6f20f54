"""Shared API dependencies for authentication and service wiring."""

import hmac
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from assembly_stage.core.security import InvalidVoterToken, VoterIdentity, decode_voter_token
from assembly_stage.core.settings import settings
from assembly_stage.db.session import get_db
from assembly_stage.services.heartbeat import HeartbeatTracker, get_heartbeat_tracker
from assembly_stage.services.presence import PresenceStore, get_presence_store
from assembly_stage.services.quorum import QuorumCalculator, get_quorum_calculator
from assembly_stage.services.session_gate import AssemblySessionGate, get_session_gate
from assembly_stage.services.vote_integrity import (
    VoteIntegrityEngine,
    get_vote_integrity_engine,
)

# HTTP Bearer scheme for voter tokens
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_presence_store_dep() -> PresenceStore:
    """Return the shared presence store."""
    return get_presence_store()


PresenceStoreDep = Annotated[PresenceStore, Depends(get_presence_store_dep)]


def get_session_gate_dep(store: PresenceStoreDep) -> AssemblySessionGate:
    """Return a session gate over the request's presence store."""
    return get_session_gate(store)


def get_heartbeat_tracker_dep(store: PresenceStoreDep) -> HeartbeatTracker:
    """Return a heartbeat tracker over the request's presence store."""
    return get_heartbeat_tracker(store)


def get_quorum_calculator_dep(store: PresenceStoreDep) -> QuorumCalculator:
    """Return a quorum calculator over the request's presence store."""
    return get_quorum_calculator(store)


def get_vote_integrity_engine_dep() -> VoteIntegrityEngine:
    """Return the configured vote integrity engine."""
    return get_vote_integrity_engine()


SessionGateDep = Annotated[AssemblySessionGate, Depends(get_session_gate_dep)]
HeartbeatTrackerDep = Annotated[HeartbeatTracker, Depends(get_heartbeat_tracker_dep)]
QuorumCalculatorDep = Annotated[QuorumCalculator, Depends(get_quorum_calculator_dep)]
VoteIntegrityEngineDep = Annotated[VoteIntegrityEngine, Depends(get_vote_integrity_engine_dep)]


def get_current_voter(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> VoterIdentity:
    """Decode the voter token sent as a Bearer credential.

    Args:
        credentials: HTTP Bearer token credentials

    Returns:
        Identity of the unit the token was issued to

    Raises:
        HTTPException: If the token is invalid or expired
    """
    try:
        return decode_voter_token(credentials.credentials)
    except InvalidVoterToken as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from err


CurrentVoterDep = Annotated[VoterIdentity, Depends(get_current_voter)]


def ensure_voter_matches(voter: VoterIdentity, assembly_id: str, unit_id: str) -> None:
    """Reject requests that act for a different unit or assembly than the token."""
    if voter.assembly_id != assembly_id or voter.unit_id != unit_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Token does not grant access to this unit",
        )


def require_admin(
    x_admin_secret: Annotated[str | None, Header()] = None,
) -> None:
    """Check the ``X-Admin-Secret`` header against the configured secret."""
    expected = settings.admin_secret
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Administrator access is not configured",
        )
    if x_admin_secret is None or not hmac.compare_digest(
        x_admin_secret.encode("utf-8"),
        expected.encode("utf-8"),
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid administrator credentials",
        )


AdminDep = Depends(require_admin)

"""Issue voting links for the units of a loaded roster."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from assembly_stage.core.errors import InputValidationError, RecordNotFound
from assembly_stage.core.security import create_voter_token, voting_url
from assembly_stage.repositories.assembly_repo import AssemblyRepository
from assembly_stage.schemas.assembly import VoterAccess
from assembly_stage.services.session_gate import AssemblySessionGate
from assembly_stage.utils.validation import require_identifier

logger = logging.getLogger(__name__)


def issue_voter_access(
    db: Session,
    gate: AssemblySessionGate,
    assembly_id: str,
) -> list[VoterAccess]:
    """Return one signed voting link per roster unit of an active assembly.

    Raises:
        RecordNotFound: If the assembly does not exist.
        GateRejected: If the assembly is not accepting activity.
        InputValidationError: If the roster is empty.
    """
    assembly_id = require_identifier("assembly_id", assembly_id)
    repo = AssemblyRepository(db)
    if repo.get(assembly_id) is None:
        raise RecordNotFound(f"Assembly {assembly_id} not found")
    gate.ensure_accepting(assembly_id)

    units = repo.roster(assembly_id)
    if not units:
        raise InputValidationError("No roster has been imported for this assembly")

    issued: list[VoterAccess] = []
    for unit in units:
        token, expires_at = create_voter_token(assembly_id, unit.unit_id)
        issued.append(
            VoterAccess(
                unit_id=unit.unit_id,
                owner_name=unit.owner_name,
                email=unit.email,
                token=token,
                voting_url=voting_url(token),
                expires_at=expires_at,
            )
        )
    logger.info("Issued %d voter links for assembly %s", len(issued), assembly_id)
    return issued

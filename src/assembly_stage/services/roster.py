"""Roster (census) import and session activation.

Persisting the roster and activating the assembly session happen as one step:
roster rows are flushed, the session is activated (with retries), and only
then is the transaction committed. If activation cannot be written the rows
are rolled back, so a roster never sits in the record store while voting
stays blocked. If the commit itself fails, the session returns to what it was
before the import: a previously active session is written back, a new one is
revoked.

An assembly whose closure was recorded is never reactivated.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from assembly_stage.core.errors import (
    GateRejected,
    InputValidationError,
    RecordNotFound,
    StoreUnavailable,
)
from assembly_stage.core.settings import settings
from assembly_stage.models.assembly import Assembly
from assembly_stage.repositories.assembly_repo import AssemblyRepository
from assembly_stage.schemas.assembly import RosterEntry, RosterImportResult
from assembly_stage.schemas.session import AssemblySession, SessionStatus
from assembly_stage.services.session_gate import AssemblySessionGate
from assembly_stage.utils.validation import require_identifier

logger = logging.getLogger(__name__)


def validate_roster(entries: Sequence[RosterEntry]) -> list[RosterEntry]:
    """Return the roster with normalised unit ids, or raise listing every bad row."""
    if not entries:
        raise InputValidationError("Roster is empty")

    errors: list[str] = []
    seen: set[str] = set()
    cleaned: list[RosterEntry] = []
    for index, entry in enumerate(entries, start=1):
        try:
            unit_id = require_identifier("unit_id", entry.unit_id)
        except InputValidationError as err:
            errors.append(f"Row {index}: {err}")
            continue
        if unit_id in seen:
            errors.append(f"Row {index}: duplicate unit_id {unit_id!r}")
            continue
        if not math.isfinite(entry.coefficient) or entry.coefficient <= 0:
            errors.append(f"Row {index}: invalid coefficient")
            continue
        seen.add(unit_id)
        cleaned.append(entry.model_copy(update={"unit_id": unit_id}))

    if errors:
        raise InputValidationError("; ".join(errors))
    return cleaned


class RosterImportService:
    """Loads a validated roster and opens the assembly for activity."""

    def __init__(
        self,
        db: Session,
        gate: AssemblySessionGate,
        *,
        retry_attempts: int = 3,
        backoff_seconds: float = 0.2,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._db = db
        self._repo = AssemblyRepository(db)
        self._gate = gate
        self._retry_attempts = max(1, retry_attempts)
        self._backoff_seconds = max(0.0, backoff_seconds)
        self._sleep = sleep

    def import_roster(self, assembly_id: str, entries: Sequence[RosterEntry]) -> RosterImportResult:
        """Replace the roster and activate the session atomically.

        Raises:
            RecordNotFound: If the assembly does not exist.
            InputValidationError: If any roster row is invalid.
            GateRejected: If the assembly session is already closed.
            StoreUnavailable: If the session could not be activated; no roster
                rows are kept in that case.
        """
        assembly_id = require_identifier("assembly_id", assembly_id)
        self._get_open_assembly(assembly_id)
        units = validate_roster(entries)
        total_units = len(units)
        total_coefficient = math.fsum(unit.coefficient for unit in units)
        previous = self._gate.get(assembly_id)

        try:
            self._repo.replace_roster(assembly_id, units)
            session = self._activate_with_retry(assembly_id, total_units, total_coefficient)
        except Exception:
            self._db.rollback()
            raise

        try:
            self._db.commit()
        except SQLAlchemyError as err:
            self._db.rollback()
            # The previous roster is back in the record store; match it.
            if previous.status is SessionStatus.ACTIVE:
                self._gate.restore(previous)
            else:
                self._gate.revoke_activation(assembly_id)
            raise StoreUnavailable(f"record store unavailable: {err}") from err

        logger.info(
            "Imported roster for assembly %s: %d units, coefficient %.4f",
            assembly_id,
            total_units,
            total_coefficient,
        )
        return RosterImportResult(
            assembly_id=assembly_id,
            total_units=total_units,
            total_coefficient=total_coefficient,
            session=session,
        )

    def reactivate(self, assembly_id: str) -> AssemblySession:
        """Activate a session from the roster already in the record store.

        Used to retry an activation that failed or to renew the session TTL.
        """
        assembly_id = require_identifier("assembly_id", assembly_id)
        self._get_open_assembly(assembly_id)
        total_units, total_coefficient = self._repo.roster_totals(assembly_id)
        if total_units == 0:
            raise InputValidationError("No roster has been imported for this assembly")
        return self._activate_with_retry(assembly_id, total_units, total_coefficient)

    def _get_open_assembly(self, assembly_id: str) -> Assembly:
        assembly = self._repo.get(assembly_id)
        if assembly is None:
            raise RecordNotFound(f"Assembly {assembly_id} not found")
        if assembly.closed_at is not None:
            raise GateRejected(
                assembly_id,
                "Assembly was closed; a new assembly must be created to reopen voting",
            )
        return assembly

    def _activate_with_retry(
        self,
        assembly_id: str,
        total_units: int,
        total_coefficient: float,
    ) -> AssemblySession:
        for attempt in range(1, self._retry_attempts + 1):
            try:
                return self._gate.activate(assembly_id, total_units, total_coefficient)
            except StoreUnavailable:
                if attempt == self._retry_attempts:
                    logger.error(
                        "Activation of assembly %s failed after %d attempts",
                        assembly_id,
                        attempt,
                    )
                    raise
                logger.warning(
                    "Activation of assembly %s failed (attempt %d/%d); retrying",
                    assembly_id,
                    attempt,
                    self._retry_attempts,
                )
                self._sleep(self._backoff_seconds * attempt)
        raise AssertionError("unreachable")


def build_roster_service(db: Session, gate: AssemblySessionGate) -> RosterImportService:
    """Return a roster import service using configured retry settings."""
    return RosterImportService(
        db,
        gate,
        retry_attempts=settings.activation_retry_attempts,
        backoff_seconds=settings.activation_retry_backoff_seconds,
    )

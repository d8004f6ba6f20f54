"""Assembly session gate.

An assembly moves through ``inactive -> active -> closed``. Heartbeats and
votes are only accepted while the session is active with its census loaded.
Closing is the last step of the final-report workflow and is never reached
when the report could not be produced.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar, assert_never

from pydantic import ValidationError as PydanticValidationError

from assembly_stage.core.errors import (
    GateRejected,
    InputValidationError,
    ReportGenerationError,
)
from assembly_stage.core.settings import settings
from assembly_stage.db.time import utcnow_iso
from assembly_stage.schemas.session import AssemblySession, SessionStatus
from assembly_stage.services.keys import presence_prefix, session_key
from assembly_stage.services.presence import PresenceStore, get_presence_store
from assembly_stage.utils.validation import require_identifier, require_non_negative

logger = logging.getLogger(__name__)

ReportT = TypeVar("ReportT")


class AssemblySessionGate:
    """State machine deciding whether an assembly accepts activity."""

    def __init__(
        self,
        store: PresenceStore,
        *,
        session_ttl_seconds: int = 14_400,
        closed_retention_seconds: int = 3_600,
    ) -> None:
        self._store = store
        self._session_ttl = session_ttl_seconds
        self._closed_retention = closed_retention_seconds

    def get(self, assembly_id: str) -> AssemblySession:
        """Return the current session, or an inactive placeholder."""
        assembly_id = require_identifier("assembly_id", assembly_id)
        raw = self._store.get(session_key(assembly_id))
        if raw is None:
            return AssemblySession(assembly_id=assembly_id)
        try:
            return AssemblySession.model_validate_json(raw)
        except PydanticValidationError:
            # Unreadable state keeps the gate shut.
            logger.warning("Discarding unreadable session record for assembly %s", assembly_id)
            return AssemblySession(assembly_id=assembly_id)

    def activate(
        self,
        assembly_id: str,
        total_units: int,
        total_coefficient: float,
    ) -> AssemblySession:
        """Mark the census as loaded and open the assembly for activity.

        Re-activating an active session rewrites it and renews its TTL, so the
        call can be retried safely.

        Raises:
            GateRejected: If the session is already closed.
            StoreUnavailable: If the session record could not be written; the
                census must then be treated as not loaded.
        """
        assembly_id = require_identifier("assembly_id", assembly_id)
        if isinstance(total_units, bool) or not isinstance(total_units, int) or total_units < 0:
            raise InputValidationError("total_units must be an integer >= 0")
        coefficient = require_non_negative("total_coefficient", total_coefficient)

        current = self.get(assembly_id)
        match current.status:
            case SessionStatus.CLOSED:
                raise GateRejected(
                    assembly_id,
                    "Assembly session is closed; a new assembly must be created to reopen voting",
                )
            case SessionStatus.ACTIVE:
                activated_at = current.activated_at or utcnow_iso()
            case SessionStatus.INACTIVE:
                activated_at = utcnow_iso()
            case _ as unreachable:
                assert_never(unreachable)

        session = AssemblySession(
            assembly_id=assembly_id,
            status=SessionStatus.ACTIVE,
            census_loaded=True,
            total_units=total_units,
            total_coefficient=coefficient,
            activated_at=activated_at,
        )
        self._store.set(session_key(assembly_id), session.model_dump_json(), self._session_ttl)
        logger.info(
            "Activated assembly %s with %d units (coefficient %.4f)",
            assembly_id,
            total_units,
            coefficient,
        )
        return session

    def revoke_activation(self, assembly_id: str) -> bool:
        """Undo an activation whose roster never got persisted.

        Only an active session is removed; a closed one is left untouched.
        """
        current = self.get(assembly_id)
        if current.status is not SessionStatus.ACTIVE:
            return False
        self._store.delete(session_key(current.assembly_id))
        self._purge_presence(current.assembly_id)
        logger.warning("Revoked activation of assembly %s", current.assembly_id)
        return True

    def restore(self, session: AssemblySession) -> AssemblySession:
        """Write back an active session read before a failed update.

        Presence keys are left alone so connected units stay counted.
        """
        if session.status is not SessionStatus.ACTIVE:
            raise InputValidationError("Only an active session can be restored")
        self._store.set(
            session_key(session.assembly_id),
            session.model_dump_json(),
            self._session_ttl,
        )
        logger.warning("Restored previous session of assembly %s", session.assembly_id)
        return session

    def is_accepting_activity(self, assembly_id: str) -> bool:
        """Return True only while the session is active with its census loaded."""
        session = self.get(assembly_id)
        return session.status is SessionStatus.ACTIVE and session.census_loaded

    def ensure_accepting(self, assembly_id: str) -> AssemblySession:
        """Return the active session or raise ``GateRejected`` with the reason."""
        session = self.get(assembly_id)
        match session.status:
            case SessionStatus.ACTIVE:
                if session.census_loaded:
                    return session
                reason = "No census is loaded for this assembly"
            case SessionStatus.INACTIVE:
                reason = (
                    "No census is loaded for this assembly; "
                    "the administrator must import the roster first"
                )
            case SessionStatus.CLOSED:
                reason = "Assembly session is closed"
            case _ as unreachable:
                assert_never(unreachable)
        logger.warning("Rejected activity for assembly %s: %s", session.assembly_id, reason)
        raise GateRejected(session.assembly_id, reason)

    def close(self, assembly_id: str) -> AssemblySession:
        """Close an active session, keep it briefly for reference, purge presence.

        Only call this once the final report exists; prefer
        ``close_after_report`` which enforces that ordering.
        """
        current = self.get(assembly_id)
        match current.status:
            case SessionStatus.CLOSED:
                return current
            case SessionStatus.INACTIVE:
                raise GateRejected(current.assembly_id, "Assembly session is not active")
            case SessionStatus.ACTIVE:
                pass
            case _ as unreachable:
                assert_never(unreachable)

        closed = current.model_copy(
            update={"status": SessionStatus.CLOSED, "closed_at": utcnow_iso()}
        )
        self._store.set(
            session_key(closed.assembly_id),
            closed.model_dump_json(),
            self._closed_retention,
        )
        purged = self._purge_presence(closed.assembly_id)
        logger.info("Closed assembly %s and purged %d presence keys", closed.assembly_id, purged)
        return closed

    def close_after_report(
        self,
        assembly_id: str,
        generate_report: Callable[[], ReportT],
    ) -> tuple[ReportT, AssemblySession]:
        """Produce the final report, then close the session.

        If the report fails the session stays active so the report can be
        retried; the failure propagates as ``ReportGenerationError``.
        """
        self.ensure_accepting(assembly_id)
        try:
            report = generate_report()
        except ReportGenerationError:
            logger.error("Final report failed for assembly %s; session left active", assembly_id)
            raise
        except Exception as err:
            logger.error(
                "Final report failed for assembly %s; session left active",
                assembly_id,
                exc_info=True,
            )
            raise ReportGenerationError(f"final report generation failed: {err}") from err
        return report, self.close(assembly_id)

    def _purge_presence(self, assembly_id: str) -> int:
        keys = self._store.keys_matching(presence_prefix(assembly_id))
        return self._store.delete(*keys) if keys else 0


def get_session_gate(store: PresenceStore | None = None) -> AssemblySessionGate:
    """Return a session gate bound to ``store`` or the shared presence store."""
    return AssemblySessionGate(
        store if store is not None else get_presence_store(),
        session_ttl_seconds=settings.session_ttl_seconds,
        closed_retention_seconds=settings.closed_session_retention_seconds,
    )

"""Heartbeat presence tracking.

Each connected unit owns one presence key per assembly. Clients refresh it
roughly every ``interval`` seconds (half the TTL), so a single missed call does
not drop a unit while two consecutive misses let the key expire. There is no
explicit disconnect signal: a crashed client simply stops refreshing.
"""

from __future__ import annotations

import logging

from assembly_stage.core.settings import settings
from assembly_stage.db.time import utcnow_iso
from assembly_stage.schemas.heartbeat import HeartbeatAck
from assembly_stage.services.keys import presence_key, presence_prefix
from assembly_stage.services.presence import PresenceStore, get_presence_store
from assembly_stage.services.session_gate import AssemblySessionGate, get_session_gate
from assembly_stage.utils.validation import require_identifier

logger = logging.getLogger(__name__)

HEARTBEAT_TTL_SECONDS = 60


class HeartbeatTracker:
    """Maintains TTL-bound presence keys scoped by assembly and unit."""

    def __init__(
        self,
        store: PresenceStore,
        gate: AssemblySessionGate,
        *,
        ttl_seconds: int = HEARTBEAT_TTL_SECONDS,
        interval_seconds: int | None = None,
    ) -> None:
        self._store = store
        self._gate = gate
        self._ttl = ttl_seconds
        self._interval = interval_seconds or max(1, ttl_seconds // 2)

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def refresh(self, assembly_id: str, unit_id: str) -> HeartbeatAck:
        """Create or extend a unit's presence.

        Raises:
            GateRejected: If the assembly is not accepting activity.
            StoreUnavailable: If the presence store could not be reached.
        """
        assembly_id = require_identifier("assembly_id", assembly_id)
        unit_id = require_identifier("unit_id", unit_id)
        self._gate.ensure_accepting(assembly_id)

        refreshed_at = utcnow_iso()
        self._store.set(presence_key(assembly_id, unit_id), refreshed_at, self._ttl)
        return HeartbeatAck(
            assembly_id=assembly_id,
            unit_id=unit_id,
            ttl=self._ttl,
            refresh_interval=self._interval,
            refreshed_at=refreshed_at,
        )

    def is_present(self, assembly_id: str, unit_id: str) -> bool:
        """Return True while the unit's heartbeat has not expired."""
        key = presence_key(
            require_identifier("assembly_id", assembly_id),
            require_identifier("unit_id", unit_id),
        )
        return self._store.get(key) is not None

    def present_units(self, assembly_id: str) -> set[str]:
        """Return the ids of every unit with a live heartbeat."""
        prefix = presence_prefix(require_identifier("assembly_id", assembly_id))
        return {key[len(prefix):] for key in self._store.keys_matching(prefix)}

    def count_present(self, assembly_id: str) -> int:
        """Return the number of distinct units currently present."""
        return len(self.present_units(assembly_id))

    def remove(self, assembly_id: str, unit_id: str) -> bool:
        """Drop a unit's presence immediately (explicit logout)."""
        key = presence_key(
            require_identifier("assembly_id", assembly_id),
            require_identifier("unit_id", unit_id),
        )
        return self._store.delete(key) > 0

    def purge(self, assembly_id: str) -> int:
        """Remove every presence key of an assembly and return how many were live."""
        prefix = presence_prefix(require_identifier("assembly_id", assembly_id))
        keys = self._store.keys_matching(prefix)
        removed = self._store.delete(*keys) if keys else 0
        logger.info("Purged %d presence keys for assembly %s", removed, assembly_id)
        return removed


def get_heartbeat_tracker(store: PresenceStore | None = None) -> HeartbeatTracker:
    """Return a heartbeat tracker bound to ``store`` or the shared presence store."""
    store = store if store is not None else get_presence_store()
    return HeartbeatTracker(
        store,
        get_session_gate(store),
        ttl_seconds=settings.heartbeat_ttl_seconds,
        interval_seconds=settings.heartbeat_interval_seconds,
    )

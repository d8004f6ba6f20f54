"""Quorum computation over live heartbeat presence.

Two different questions are answered from the same presence snapshot:

- presence quorum: may voting begin? ``percentage >= required`` (inclusive).
- coefficient approval: does the present weight carry a motion?
  ``coefficient_voted > coefficient_total / 2`` (strict, an exact half fails).
"""

from __future__ import annotations

import math
from collections.abc import Mapping

from assembly_stage.core.errors import InputValidationError
from assembly_stage.db.time import utcnow_iso
from assembly_stage.schemas.quorum import QuorumStatus
from assembly_stage.services.heartbeat import HeartbeatTracker, get_heartbeat_tracker
from assembly_stage.services.presence import PresenceStore
from assembly_stage.utils.validation import require_non_negative


def presence_percentage(connected: int, total_units: int) -> float:
    """Return the share of connected units in percent; 0 for an empty roster."""
    if total_units <= 0:
        return 0.0
    return connected * 100 / total_units


def presence_quorum_reached(percentage: float, required_quorum: float, total_units: int) -> bool:
    """Return True when presence meets the required threshold (inclusive)."""
    return total_units > 0 and percentage >= required_quorum


def approval_reached(coefficient_for: float, coefficient_total: float) -> bool:
    """Return True when a coefficient strictly exceeds half of the total."""
    return coefficient_for > coefficient_total / 2


class QuorumCalculator:
    """Aggregates live presence against quorum and approval thresholds."""

    def __init__(self, tracker: HeartbeatTracker) -> None:
        self._tracker = tracker

    def status(
        self,
        assembly_id: str,
        required_quorum: float,
        total_units: int,
        total_coefficient: float | None = None,
        agenda_point_id: str | None = None,
        coefficient_map: Mapping[str, float] | None = None,
    ) -> QuorumStatus:
        """Compute a fresh quorum snapshot.

        ``agenda_point_id`` is echoed back; presence is tracked per assembly.

        Raises:
            InputValidationError: If a threshold or total is malformed.
            StoreUnavailable: If presence cannot be read. Never reported as zero.
        """
        required = require_non_negative("required_quorum", required_quorum)
        if isinstance(total_units, bool) or not isinstance(total_units, int) or total_units < 0:
            raise InputValidationError("total_units must be an integer >= 0")

        present = self._tracker.present_units(assembly_id)
        connected = len(present)
        percentage = presence_percentage(connected, total_units)

        coefficient_voted: float | None = None
        coefficient_total: float | None = None
        approved: bool | None = None
        if coefficient_map is not None:
            weights = {
                unit: require_non_negative(f"coefficient[{unit}]", value)
                for unit, value in coefficient_map.items()
            }
            coefficient_voted = math.fsum(weights.get(unit, 0.0) for unit in present)
            if total_coefficient is None:
                coefficient_total = math.fsum(weights.values())
            else:
                coefficient_total = require_non_negative("total_coefficient", total_coefficient)
            approved = approval_reached(coefficient_voted, coefficient_total)
        elif total_coefficient is not None:
            coefficient_total = require_non_negative("total_coefficient", total_coefficient)

        return QuorumStatus(
            assembly_id=assembly_id,
            agenda_point_id=agenda_point_id,
            connected_units=connected,
            total_units=total_units,
            presence_percentage=percentage,
            required_quorum=required,
            reached=presence_quorum_reached(percentage, required, total_units),
            coefficient_voted=coefficient_voted,
            coefficient_total=coefficient_total,
            approval_reached=approved,
            last_update=utcnow_iso(),
        )


def get_quorum_calculator(store: PresenceStore | None = None) -> QuorumCalculator:
    """Return a quorum calculator over the heartbeat tracker for ``store``."""
    return QuorumCalculator(get_heartbeat_tracker(store))

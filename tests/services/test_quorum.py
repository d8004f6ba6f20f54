"""Tests for quorum and approval computation."""

from __future__ import annotations

import pytest

from assembly_stage.core.errors import InputValidationError, StoreUnavailable
from assembly_stage.services.heartbeat import HeartbeatTracker
from assembly_stage.services.quorum import (
    QuorumCalculator,
    approval_reached,
    presence_percentage,
    presence_quorum_reached,
)
from assembly_stage.services.session_gate import AssemblySessionGate

ASSEMBLY_ID = "A1"


class UnreachableStore:
    """Presence store whose reads always fail."""

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        raise StoreUnavailable("presence store unavailable: timeout")

    def get(self, key: str) -> str | None:
        raise StoreUnavailable("presence store unavailable: timeout")

    def keys_matching(self, prefix: str) -> set[str]:
        raise StoreUnavailable("presence store unavailable: timeout")

    def delete(self, *keys: str) -> int:
        raise StoreUnavailable("presence store unavailable: timeout")

    def ping(self) -> bool:
        raise StoreUnavailable("presence store unavailable: timeout")


@pytest.fixture()
def ten_units_active(gate):
    gate.activate(ASSEMBLY_ID, total_units=10, total_coefficient=100.0)
    return gate


def _connect(tracker: HeartbeatTracker, count: int) -> None:
    for index in range(1, count + 1):
        tracker.refresh(ASSEMBLY_ID, f"U{index}")


def test_presence_percentage_handles_empty_roster() -> None:
    assert presence_percentage(0, 0) == 0.0
    assert presence_percentage(3, 0) == 0.0
    assert presence_quorum_reached(0.0, 0.0, 0) is False


def test_presence_threshold_is_inclusive() -> None:
    assert presence_quorum_reached(presence_percentage(5, 10), 50.0, 10) is True
    assert presence_quorum_reached(presence_percentage(4, 10), 50.0, 10) is False
    assert presence_quorum_reached(presence_percentage(10, 10), 100.0, 10) is True


def test_approval_threshold_is_strict() -> None:
    assert approval_reached(50.0, 100.0) is False
    assert approval_reached(50.01, 100.0) is True


def test_status_counts_live_units(ten_units_active, tracker, calculator) -> None:
    _connect(tracker, 5)

    status = calculator.status(ASSEMBLY_ID, required_quorum=50.0, total_units=10)

    assert status.connected_units == 5
    assert status.presence_percentage == 50.0
    assert status.reached is True
    assert status.coefficient_voted is None
    assert status.approval_reached is None


def test_status_drops_units_whose_heartbeat_lapsed(
    ten_units_active, tracker, calculator, clock
) -> None:
    _connect(tracker, 6)
    clock.advance(30)
    for unit in ("U1", "U2", "U3", "U4", "U5"):
        tracker.refresh(ASSEMBLY_ID, unit)
    clock.advance(31)

    status = calculator.status(ASSEMBLY_ID, required_quorum=50.0, total_units=10)

    assert status.connected_units == 5
    assert status.reached is True


def test_status_with_empty_roster_is_never_reached(calculator) -> None:
    status = calculator.status(ASSEMBLY_ID, required_quorum=0.0, total_units=0)

    assert status.presence_percentage == 0.0
    assert status.reached is False


def test_status_sums_coefficients_of_present_units(ten_units_active, tracker, calculator) -> None:
    _connect(tracker, 3)
    weights = {"U1": 20.0, "U2": 20.0, "U3": 10.01, "U4": 49.99}

    status = calculator.status(
        ASSEMBLY_ID,
        required_quorum=50.0,
        total_units=10,
        total_coefficient=100.0,
        coefficient_map=weights,
    )

    assert status.coefficient_voted == pytest.approx(50.01)
    assert status.coefficient_total == 100.0
    assert status.approval_reached is True


def test_exact_half_coefficient_is_not_approval(ten_units_active, tracker, calculator) -> None:
    _connect(tracker, 2)

    status = calculator.status(
        ASSEMBLY_ID,
        required_quorum=50.0,
        total_units=10,
        total_coefficient=100.0,
        coefficient_map={"U1": 25.0, "U2": 25.0},
    )

    assert status.coefficient_voted == 50.0
    assert status.approval_reached is False


def test_total_coefficient_defaults_to_map_sum(ten_units_active, tracker, calculator) -> None:
    _connect(tracker, 1)

    status = calculator.status(
        ASSEMBLY_ID,
        required_quorum=50.0,
        total_units=3,
        coefficient_map={"U1": 60.0, "U2": 30.0, "U3": 10.0},
    )

    assert status.coefficient_total == 100.0
    assert status.approval_reached is True


def test_unknown_present_units_weigh_nothing(ten_units_active, tracker, calculator) -> None:
    _connect(tracker, 2)

    status = calculator.status(
        ASSEMBLY_ID,
        required_quorum=50.0,
        total_units=10,
        coefficient_map={"U1": 10.0},
    )

    assert status.coefficient_voted == 10.0


def test_agenda_point_is_echoed(calculator) -> None:
    status = calculator.status(ASSEMBLY_ID, 50.0, 10, agenda_point_id="P1")

    assert status.agenda_point_id == "P1"


@pytest.mark.parametrize(
    ("required_quorum", "total_units"),
    [(-1.0, 10), (float("nan"), 10), (50.0, -1), (50.0, True)],
)
def test_status_rejects_malformed_thresholds(calculator, required_quorum, total_units) -> None:
    with pytest.raises(InputValidationError):
        calculator.status(ASSEMBLY_ID, required_quorum, total_units)


def test_unreachable_store_is_not_reported_as_zero() -> None:
    store = UnreachableStore()
    calculator = QuorumCalculator(HeartbeatTracker(store, AssemblySessionGate(store)))

    with pytest.raises(StoreUnavailable):
        calculator.status(ASSEMBLY_ID, required_quorum=50.0, total_units=10)

"""Quorum status endpoint."""

from __future__ import annotations

import json
import math
from collections.abc import Mapping

from fastapi import APIRouter, HTTPException, Query, status

from assembly_stage.core.settings import settings
from assembly_stage.schemas.quorum import QuorumStatus

from ..dependencies import QuorumCalculatorDep, SessionGateDep

router = APIRouter(prefix="/quorum", tags=["quorum"])


def _parse_coefficients(raw: str | None) -> Mapping[str, float] | None:
    """Decode the ``coefficients`` query parameter (a JSON object of unit weights)."""
    if raw is None:
        return None
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="coefficients must be a JSON object",
        ) from err
    if not isinstance(decoded, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="coefficients must be a JSON object",
        )
    weights: dict[str, float] = {}
    for unit_id, value in decoded.items():
        if isinstance(value, bool) or not isinstance(value, int | float) or not math.isfinite(value):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"coefficient for {unit_id!r} must be a number",
            )
        weights[str(unit_id)] = float(value)
    return weights


@router.get("", response_model=QuorumStatus)
async def get_quorum(
    calculator: QuorumCalculatorDep,
    gate: SessionGateDep,
    assembly_id: str = Query(..., min_length=1),
    agenda_point_id: str | None = Query(default=None),
    required_quorum: float | None = Query(default=None, ge=0),
    total_units: int | None = Query(default=None, ge=0),
    total_coefficient: float | None = Query(default=None, ge=0),
    coefficients: str | None = Query(
        default=None,
        description='JSON object mapping unit ids to coefficients, e.g. {"101": 2.5}',
    ),
) -> QuorumStatus:
    """Return a fresh presence snapshot for an assembly.

    ``total_units`` and ``total_coefficient`` default to the figures captured
    when the roster was activated.
    """
    coefficient_map = _parse_coefficients(coefficients)
    if total_units is None or (total_coefficient is None and coefficient_map is None):
        session = gate.get(assembly_id)
        if total_units is None:
            total_units = session.total_units
        if total_coefficient is None and coefficient_map is None and session.census_loaded:
            total_coefficient = session.total_coefficient

    return calculator.status(
        assembly_id,
        required_quorum if required_quorum is not None else settings.default_required_quorum,
        total_units,
        total_coefficient=total_coefficient,
        agenda_point_id=agenda_point_id,
        coefficient_map=coefficient_map,
    )

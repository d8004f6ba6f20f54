"""Data access helpers for assemblies and their roster."""
from __future__ import annotations

import math
from collections.abc import Iterable

from sqlalchemy import delete, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from assembly_stage.core.errors import StoreUnavailable
from assembly_stage.db.time import utcnow
from assembly_stage.models.assembly import Assembly, RosterUnit
from assembly_stage.schemas.assembly import RosterEntry

__all__ = ["AssemblyRepository"]


class AssemblyRepository:
    """Thin wrapper around database access for assemblies and roster units.

    Methods flush but never commit; the calling service owns the transaction.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, *, name: str, required_quorum: float) -> Assembly:
        """Insert a new assembly and return the persisted ORM instance."""
        assembly = Assembly(name=name, required_quorum=required_quorum)
        self.session.add(assembly)
        try:
            self.session.flush()
        except OperationalError as err:
            raise StoreUnavailable(f"record store unavailable: {err}") from err
        return assembly

    def get(self, assembly_id: str) -> Assembly | None:
        """Return an assembly by identifier."""
        try:
            return self.session.get(Assembly, assembly_id)
        except OperationalError as err:
            raise StoreUnavailable(f"record store unavailable: {err}") from err

    def list_recent(self) -> list[Assembly]:
        """Return assemblies, newest first."""
        try:
            result = self.session.execute(select(Assembly).order_by(Assembly.created_at.desc()))
        except OperationalError as err:
            raise StoreUnavailable(f"record store unavailable: {err}") from err
        return list(result.scalars())

    def mark_closed(self, assembly: Assembly) -> Assembly:
        """Stamp ``closed_at`` on an assembly that has not been closed yet."""
        if assembly.closed_at is None:
            assembly.closed_at = utcnow()
        try:
            self.session.flush()
        except OperationalError as err:
            raise StoreUnavailable(f"record store unavailable: {err}") from err
        return assembly

    def replace_roster(self, assembly_id: str, entries: Iterable[RosterEntry]) -> list[RosterUnit]:
        """Swap the assembly's roster for ``entries`` inside the current transaction."""
        units = [
            RosterUnit(
                assembly_id=assembly_id,
                unit_id=entry.unit_id,
                owner_name=entry.owner_name,
                email=entry.email,
                coefficient=entry.coefficient,
            )
            for entry in entries
        ]
        try:
            self.session.execute(delete(RosterUnit).where(RosterUnit.assembly_id == assembly_id))
            self.session.add_all(units)
            self.session.flush()
        except OperationalError as err:
            raise StoreUnavailable(f"record store unavailable: {err}") from err
        return units

    def roster(self, assembly_id: str) -> list[RosterUnit]:
        """Return the roster units of an assembly ordered by unit id."""
        try:
            result = self.session.execute(
                select(RosterUnit)
                .where(RosterUnit.assembly_id == assembly_id)
                .order_by(RosterUnit.unit_id)
            )
        except OperationalError as err:
            raise StoreUnavailable(f"record store unavailable: {err}") from err
        return list(result.scalars())

    def coefficient_map(self, assembly_id: str) -> dict[str, float]:
        """Return ``unit_id -> coefficient`` for the loaded roster."""
        return {unit.unit_id: float(unit.coefficient) for unit in self.roster(assembly_id)}

    def roster_totals(self, assembly_id: str) -> tuple[int, float]:
        """Return the unit count and summed coefficient of the roster."""
        coefficients = self.coefficient_map(assembly_id)
        return len(coefficients), math.fsum(coefficients.values())


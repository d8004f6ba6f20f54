# src/assembly_stage/models/assembly.py
"""Models describing assemblies and their loaded roster (census)."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from assembly_stage.db.session import Base
from assembly_stage.db.time import utcnow


def _new_id() -> str:
    return str(uuid.uuid4())


class Assembly(Base):
    """A convened neighborhood assembly.

    The live session state (active/closed) is ephemeral and lives in the
    presence store; this row is the durable reference.
    """

    __tablename__ = "assembly"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    # Presence percentage required before voting may begin.
    required_quorum: Mapped[float] = mapped_column(Float, nullable=False, default=50)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    # Set once the final report was produced; the assembly never reopens.
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    units: Mapped[list["RosterUnit"]] = relationship(
        back_populates="assembly",
        cascade="all, delete-orphan",
        order_by="RosterUnit.unit_id",
    )


class RosterUnit(Base):
    """One property unit of the loaded roster with its ownership coefficient."""

    __tablename__ = "roster_unit"
    __table_args__ = (
        UniqueConstraint("assembly_id", "unit_id", name="uq_roster_unit_assembly_unit"),
        Index("ix_roster_unit_assembly_id", "assembly_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    assembly_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("assembly.id", ondelete="CASCADE"),
        nullable=False,
    )
    unit_id: Mapped[str] = mapped_column(String(64), nullable=False)
    owner_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Ownership share in percentage points.
    coefficient: Mapped[float] = mapped_column(Float, nullable=False)

    assembly: Mapped[Assembly] = relationship(back_populates="units")

# src/assembly_stage/models/vote.py
"""Models capturing votes cast on agenda points."""

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from assembly_stage.db.session import Base
from assembly_stage.db.time import utcnow


class VoteRecord(Base):
    """A single cast vote with its integrity commitment.

    Rows are write-once. The nonce is kept next to the hash so the commitment
    can be recomputed and compared later.
    """

    __tablename__ = "vote_record"
    __table_args__ = (
        CheckConstraint(
            "choice IN ('for', 'against', 'abstain')",
            name="ck_vote_record_choice",
        ),
        # Retried submissions carrying the same request id map to one row.
        UniqueConstraint(
            "assembly_id",
            "client_request_id",
            name="uq_vote_record_client_request",
        ),
        Index("ix_vote_record_assembly_point", "assembly_id", "agenda_point_id"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    assembly_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("assembly.id", ondelete="CASCADE"),
        nullable=False,
    )
    agenda_point_id: Mapped[str] = mapped_column(String(64), nullable=False)
    unit_id: Mapped[str] = mapped_column(String(64), nullable=False)
    voter_id: Mapped[str] = mapped_column(String(64), nullable=False)
    choice: Mapped[str] = mapped_column(String(16), nullable=False)
    coefficient: Mapped[float] = mapped_column(Float, nullable=False)

    vote_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    nonce: Mapped[str] = mapped_column(String(64), nullable=False)
    hash_algorithm: Mapped[str] = mapped_column(String(16), nullable=False, default="sha256")
    # Exact timestamp string that was fed into the hash.
    timestamp: Mapped[str] = mapped_column(Text, nullable=False)

    client_request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

"""initial schema

Revision ID: 5b1c2e7d9a40
Revises:
Create Date: 2026-10-19 09:12:40.518233

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5b1c2e7d9a40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create assemblies, roster units and vote records."""
    op.create_table(
        "assembly",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("required_quorum", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "roster_unit",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("assembly_id", sa.String(length=36), nullable=False),
        sa.Column("unit_id", sa.String(length=64), nullable=False),
        sa.Column("owner_name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("coefficient", sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(["assembly_id"], ["assembly.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("assembly_id", "unit_id", name="uq_roster_unit_assembly_unit"),
    )
    op.create_index("ix_roster_unit_assembly_id", "roster_unit", ["assembly_id"])
    op.create_table(
        "vote_record",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("assembly_id", sa.String(length=36), nullable=False),
        sa.Column("agenda_point_id", sa.String(length=64), nullable=False),
        sa.Column("unit_id", sa.String(length=64), nullable=False),
        sa.Column("voter_id", sa.String(length=64), nullable=False),
        sa.Column("choice", sa.String(length=16), nullable=False),
        sa.Column("coefficient", sa.Float(), nullable=False),
        sa.Column("vote_hash", sa.String(length=64), nullable=False),
        sa.Column("nonce", sa.String(length=64), nullable=False),
        sa.Column("hash_algorithm", sa.String(length=16), nullable=False),
        sa.Column("timestamp", sa.Text(), nullable=False),
        sa.Column("client_request_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "choice IN ('for', 'against', 'abstain')",
            name="ck_vote_record_choice",
        ),
        sa.ForeignKeyConstraint(["assembly_id"], ["assembly.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("vote_hash"),
        sa.UniqueConstraint(
            "assembly_id",
            "client_request_id",
            name="uq_vote_record_client_request",
        ),
    )
    op.create_index(
        "ix_vote_record_assembly_point",
        "vote_record",
        ["assembly_id", "agenda_point_id"],
    )


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_index("ix_vote_record_assembly_point", table_name="vote_record")
    op.drop_table("vote_record")
    op.drop_index("ix_roster_unit_assembly_id", table_name="roster_unit")
    op.drop_table("roster_unit")
    op.drop_table("assembly")

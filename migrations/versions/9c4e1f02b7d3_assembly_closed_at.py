"""assembly closed_at

Revision ID: 9c4e1f02b7d3
Revises: 5b1c2e7d9a40
Create Date: 2026-10-20 14:03:11.204871

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "9c4e1f02b7d3"
down_revision: Union[str, Sequence[str], None] = "5b1c2e7d9a40"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Record when an assembly was closed."""
    op.add_column("assembly", sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True))


def downgrade() -> None:
    """Drop the closure timestamp."""
    op.drop_column("assembly", "closed_at")

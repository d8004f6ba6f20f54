# src/assembly_stage/models/__init__.py
"""SQLAlchemy models for the Assembly Stage record store."""

from .assembly import Assembly, RosterUnit
from .vote import VoteRecord

__all__ = [
    "Assembly", "RosterUnit",
    "VoteRecord",
]

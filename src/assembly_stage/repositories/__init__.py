"""Data access helpers for the record store."""

from .assembly_repo import AssemblyRepository
from .vote_repo import VoteRepository

__all__ = ["AssemblyRepository", "VoteRepository"]

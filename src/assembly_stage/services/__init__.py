# src/assembly_stage/services/__init__.py
"""Business logic services for the Assembly Stage application."""

from .heartbeat import HeartbeatTracker
from .presence import InMemoryPresenceStore, PresenceStore, RedisPresenceStore
from .quorum import QuorumCalculator
from .results import FinalReportService
from .roster import RosterImportService
from .session_gate import AssemblySessionGate
from .vote_integrity import VoteIntegrityEngine
from .vote_service import VoteService

__all__ = [
    "AssemblySessionGate",
    "FinalReportService",
    "HeartbeatTracker",
    "InMemoryPresenceStore",
    "PresenceStore",
    "QuorumCalculator",
    "RedisPresenceStore",
    "RosterImportService",
    "VoteIntegrityEngine",
    "VoteService",
]

"""Presence-store key layout."""

from __future__ import annotations

PRESENCE_PREFIX = "presence"
SESSION_PREFIX = "assembly"


def presence_prefix(assembly_id: str) -> str:
    """Return the prefix shared by every presence key of an assembly."""
    return f"{PRESENCE_PREFIX}:{assembly_id}:"


def presence_key(assembly_id: str, unit_id: str) -> str:
    """Return the heartbeat key for one unit of an assembly."""
    return f"{presence_prefix(assembly_id)}{unit_id}"


def session_key(assembly_id: str) -> str:
    """Return the key holding an assembly's session record."""
    return f"{SESSION_PREFIX}:{assembly_id}:session"

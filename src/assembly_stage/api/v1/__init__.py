"""Version 1 API endpoints."""

from .endpoints import (
    assemblies_router,
    heartbeat_router,
    quorum_router,
    system_router,
    votes_router,
)

__all__ = [
    "assemblies_router",
    "heartbeat_router",
    "quorum_router",
    "system_router",
    "votes_router",
]

"""API endpoint modules."""

from .assemblies import router as assemblies_router
from .heartbeat import router as heartbeat_router
from .quorum import router as quorum_router
from .system import router as system_router
from .votes import router as votes_router

__all__ = [
    "assemblies_router",
    "heartbeat_router",
    "quorum_router",
    "system_router",
    "votes_router",
]

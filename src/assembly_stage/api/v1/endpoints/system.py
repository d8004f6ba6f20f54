"""System and transparency endpoints for the Assembly Stage API."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from assembly_stage.core.errors import StoreUnavailable
from assembly_stage.core.settings import settings

from ..dependencies import PresenceStoreDep, SessionDep, VoteIntegrityEngineDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/system", tags=["system", "transparency"])


@router.get("/config")
async def get_public_config(engine: VoteIntegrityEngineDep) -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes secrets and connection strings; suitable for transparency UIs.
    """
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
            "debug": settings.debug,
        },
        "presence": {
            "backend": settings.presence_backend,
            "heartbeat_ttl_seconds": settings.heartbeat_ttl_seconds,
            "heartbeat_interval_seconds": settings.heartbeat_interval_seconds,
        },
        "session": {
            "ttl_seconds": settings.session_ttl_seconds,
            "closed_retention_seconds": settings.closed_session_retention_seconds,
        },
        "quorum": {
            "default_required_quorum": settings.default_required_quorum,
        },
        "votes": {
            "hash_algorithm": engine.algorithm,
            "server_secret_configured": engine.has_server_secret,
            "voter_token_expire_minutes": settings.voter_token_expire_minutes,
        },
    }


@router.get("/health")
async def get_system_health(
    db: SessionDep,
    store: PresenceStoreDep,
    response: Response,
) -> dict[str, str]:
    """Report whether the presence store and the record store are reachable."""
    checks: dict[str, str] = {}

    try:
        store.ping()
        checks["presence_store"] = "ok"
    except StoreUnavailable as err:
        logger.warning("Presence store health check failed: %s", err)
        checks["presence_store"] = "unavailable"

    try:
        db.execute(text("SELECT 1"))
        checks["record_store"] = "ok"
    except SQLAlchemyError as err:
        logger.warning("Record store health check failed: %s", err)
        checks["record_store"] = "unavailable"

    healthy = all(value == "ok" for value in checks.values())
    if not healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {"status": "ok" if healthy else "degraded", **checks}

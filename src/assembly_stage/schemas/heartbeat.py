"""Heartbeat schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


class HeartbeatRequest(BaseModel):
    """Heartbeat submitted by a connected unit."""

    assembly_id: str = Field(..., min_length=1)
    unit_id: str = Field(..., min_length=1)


class HeartbeatAck(BaseModel):
    """Acknowledgement of a refreshed heartbeat."""

    success: bool = True
    assembly_id: str
    unit_id: str
    ttl: int = Field(..., description="Seconds until presence expires without a refresh")
    refresh_interval: int = Field(..., description="Recommended seconds between heartbeats")
    refreshed_at: str

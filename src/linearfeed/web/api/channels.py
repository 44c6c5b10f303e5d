"""
REST API endpoints for channels and their schedules.

Tenant resolution is by ``Host`` header. Listing from ``localhost`` is the
operator view over every tenant; any other host lists its own channels only.
Creating a channel always requires the body tenant to equal the host, and a
request without a host is rejected.
Schedules are read-only here; only the auto-scheduler writes them.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, ConfigDict, Field

from ...infra.exceptions import PersistenceError, ValidationError
from ...usecases import channel_add, channel_list, schedule_query
from ...usecases.scheduler_runtime import SchedulerRuntime
from ..dependencies import get_runtime

logger = logging.getLogger(__name__)

router = APIRouter(tags=["channels"])


# ============================================================================
# Pydantic Models for Request/Response
# ============================================================================


class ChannelCreate(BaseModel):
    """Request model for creating a channel."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Channel ID (unique)")
    tenant: str = Field(..., description="Owning tenant; must match the request host")
    title: str = Field(..., description="Channel title")
    type: str = Field("mrss", description="Channel type (mrss, playlist)")
    feed_urls: list[str] = Field(default_factory=list, alias="feedUrls", description="MRSS feed URLs")
    horizon_minutes: int | None = Field(
        None, alias="horizonMinutes", gt=0, description="Rolling horizon (defaults to server setting)"
    )


class ChannelResponse(BaseModel):
    """Response model for a channel."""
    id: str
    tenant: str
    title: str
    type: str
    feedUrls: list[str]
    horizonMinutes: int | None


class ScheduleEventResponse(BaseModel):
    """Response model for one schedule event (times in epoch ms, UTC)."""
    channelId: str
    sequence: int
    start: int
    end: int
    itemGuid: str
    title: str
    loop: int
    status: str


# ============================================================================
# Channel Endpoints
# ============================================================================


@router.get("/channels", response_model=list[ChannelResponse])
def list_channels(
    request: Request,
    runtime: SchedulerRuntime = Depends(get_runtime),
) -> list[dict[str, Any]]:
    """Get a list of all available channels (tenant specific)."""
    try:
        tenant = channel_list.tenant_from_host(request.headers.get("host"))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if tenant is not None:
        logger.info("Listing channels for tenant '%s'", tenant)
    try:
        return channel_list.list_channels(runtime.channel_store, tenant)
    except PersistenceError as e:
        logger.error("Failed to list channels: %s", e)
        raise HTTPException(status_code=500, detail="Failed to list channels")


@router.post("/channels", response_model=ChannelResponse)
def create_channel(
    body: ChannelCreate,
    request: Request,
    runtime: SchedulerRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    """Add a new channel (tenant specific).

    The body tenant must equal the request host, localhost included.
    """
    host = (request.headers.get("host") or "").strip()
    if not host:
        raise HTTPException(status_code=400, detail="Missing Host header")
    if body.tenant != host:
        raise HTTPException(status_code=400, detail=f"Expected tenant to be {host}")
    try:
        return channel_add.add_channel(
            runtime.channel_store,
            channel_id=body.id,
            tenant=body.tenant,
            title=body.title,
            type=body.type,
            feed_urls=body.feed_urls,
            horizon_minutes=body.horizon_minutes,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PersistenceError as e:
        logger.error("Failed to add channel %s: %s", body.id, e)
        raise HTTPException(status_code=500, detail="Failed to add channel")


@router.get("/channels/{channel_id}/schedule", response_model=list[ScheduleEventResponse])
def get_channel_schedule(
    channel_id: str,
    date: str | None = Query(None, description="A specific date (YYYY-MM-DD, UTC)", examples=["2021-10-19"]),
    start: str | None = Query(None, description="Start of range in UTC, ISO8601 (YYYY-MM-DDTHH:mm:ssZ)"),
    end: str | None = Query(None, description="End of range in UTC, ISO8601 (YYYY-MM-DDTHH:mm:ssZ)"),
    runtime: SchedulerRuntime = Depends(get_runtime),
) -> list[dict[str, Any]]:
    """Get the schedule for a channel.

    Without parameters only upcoming (Planned) events are returned; a date or
    start/end range also returns Expired events overlapping it. A channel
    with nothing scheduled, known or not, yields an empty list.
    """
    try:
        return schedule_query.get_schedule(
            runtime.event_store, channel_id, date=date, start=start, end=end
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PersistenceError as e:
        logger.error("Failed to read schedule for %s: %s", channel_id, e)
        raise HTTPException(status_code=500, detail="Failed to read schedule")

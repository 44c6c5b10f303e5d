"""
REST API endpoints for the auto-scheduler's per-channel state.

Read-only snapshot plus the operator reset that returns a FAILED channel to
IDLE.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from ...usecases.scheduler_runtime import SchedulerRuntime
from ..dependencies import get_runtime

router = APIRouter(prefix="/autoscheduler", tags=["autoscheduler"])


@router.get("/channels")
def list_scheduler_channels(runtime: SchedulerRuntime = Depends(get_runtime)) -> list[dict[str, Any]]:
    """Scheduler state of every channel it has seen."""
    return [state.to_dict() for state in runtime.orchestrator.status()]


@router.post("/channels/{channel_id}/reset")
def reset_scheduler_channel(
    channel_id: str,
    runtime: SchedulerRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    """Return a FAILED or STARVED channel to IDLE so the next tick picks it up."""
    orchestrator = runtime.orchestrator
    known = {state.channel_id for state in orchestrator.status()}
    if channel_id not in known:
        raise HTTPException(status_code=404, detail=f"Channel {channel_id} is not scheduled")
    if not orchestrator.reset(channel_id):
        raise HTTPException(status_code=409, detail=f"Channel {channel_id} has a pass in flight")
    return orchestrator.channel_state(channel_id).to_dict()

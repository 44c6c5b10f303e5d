from __future__ import annotations

from fastapi import Request

from ..usecases.scheduler_runtime import SchedulerRuntime


def get_runtime(request: Request) -> SchedulerRuntime:
    """The runtime attached to the app by create_app()."""
    return request.app.state.runtime

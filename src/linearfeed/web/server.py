"""
Web server for linearfeed.

Provides the FastAPI query layer and runs the auto-scheduler in the same
process: the app lifespan bootstraps every channel, then starts the run
loop on a background thread and stops it on shutdown.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from ..infra.logging import configure_logging
from ..infra.settings import settings
from ..usecases.scheduler_runtime import SchedulerRuntime, build_runtime
from .api import autoscheduler, channels

logger = logging.getLogger(__name__)


def create_app(
    runtime: SchedulerRuntime | None = None,
    *,
    start_scheduler: bool = True,
    memory: bool = False,
) -> FastAPI:
    """Build the app. ``runtime`` defaults to one built from settings."""
    runtime = runtime or build_runtime(settings, memory=memory)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        orchestrator = runtime.orchestrator
        if start_scheduler:
            # A channel enumeration failure here aborts startup
            await run_in_threadpool(orchestrator.bootstrap)
            orchestrator.start()
            logger.info("Auto-scheduler started")
        try:
            yield
        finally:
            if start_scheduler:
                await run_in_threadpool(orchestrator.stop)
                logger.info("Auto-scheduler stopped")

    app = FastAPI(title="linearfeed", lifespan=lifespan)
    app.state.runtime = runtime
    app.include_router(channels.router, prefix="/api/v1")
    app.include_router(autoscheduler.router, prefix="/api/v1")

    @app.get("/", response_class=PlainTextResponse)
    def root() -> PlainTextResponse:
        fatal = runtime.orchestrator.fatal_error
        if fatal is not None:
            return PlainTextResponse(f"FAILED: {fatal}\n", status_code=503)
        return PlainTextResponse("OK\n")

    return app


def run_server(host: str | None = None, port: int | None = None, *, memory: bool = False) -> None:
    configure_logging()
    app = create_app(memory=memory)
    uvicorn.run(app, host=host or settings.host, port=port or settings.port)

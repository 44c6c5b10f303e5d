"""
Main CLI application using Typer with router-based command dispatch.

This module provides the operator command-line interface for linearfeed,
calling application usecases and outputting JSON when requested.

All command groups are registered through the centralized CliRouter.
"""

from __future__ import annotations

import typer

from ..infra.settings import settings
from .commands import channel, db, schedule, scheduler
from .router import get_router

app = typer.Typer(help="linearfeed operator CLI")

# Initialize router and register all command groups
router = get_router(app)

router.register("channel", channel.app, help_text="Channel management operations")
router.register("schedule", schedule.app, help_text="Schedule inspection operations")
router.register("scheduler", scheduler.app, help_text="Auto-scheduler operations")
router.register("db", db.app, help_text="Database operations")


@app.command("serve")
def serve(
    host: str = typer.Option(None, "--host", help=f"Bind address (default {settings.host})"),
    port: int = typer.Option(None, "--port", help=f"HTTP port (default {settings.port})"),
    memory: bool = typer.Option(False, "--memory", help="Keep channels and schedules in memory (development)"),
):
    """Serve the HTTP API and run the auto-scheduler in-process."""
    from ..web.server import run_server

    run_server(host, port, memory=memory)


@app.callback()
def main():
    """linearfeed - linear channels scheduled from MRSS feeds."""


def cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()

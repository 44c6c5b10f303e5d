from __future__ import annotations

import json
from typing import Any

import typer

from ...infra.settings import settings
from ...usecases.scheduler_runtime import SchedulerRuntime, build_runtime


def get_runtime() -> SchedulerRuntime:
    """Runtime over the configured database."""
    return build_runtime(settings)


def echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2))


def fail(message: str, json_output: bool) -> None:
    if json_output:
        echo_json({"status": "error", "error": message})
    else:
        typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)

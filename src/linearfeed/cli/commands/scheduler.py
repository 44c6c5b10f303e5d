"""
Auto-scheduler operations.

``bootstrap`` and ``tick`` run one pass in this process and exit; ``run``
keeps the loop in the foreground. ``status`` and ``reset`` act on a running
server when ``--url`` is given, otherwise ``status`` reports the cursors
persisted by the last scheduler process.
"""

from __future__ import annotations

import threading

import requests
import typer

from ...infra.exceptions import LinearFeedError
from ...infra.logging import configure_logging
from ._common import echo_json, fail, get_runtime

app = typer.Typer(name="scheduler", help="Auto-scheduler operations")


def _print_outcomes(outcomes, json_output: bool) -> None:
    rows = [
        {
            "channel_id": o.channel_id,
            "status": o.status.value,
            "written": o.events_written,
            "expired": o.events_expired,
            "error": o.error,
        }
        for o in sorted(outcomes.values(), key=lambda o: o.channel_id)
    ]
    if json_output:
        echo_json({"status": "ok", "channels": rows})
        return
    if not rows:
        typer.echo("No MRSS channels to schedule")
        return
    for row in rows:
        line = f"{row['channel_id']}: {row['status']}  written={row['written']} expired={row['expired']}"
        if row["error"]:
            line += f"  error={row['error']}"
        typer.echo(line)


@app.command("bootstrap")
def bootstrap(
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Force one reconciliation pass for every channel and wait for all."""
    configure_logging()
    runtime = get_runtime()
    orchestrator = runtime.orchestrator
    try:
        outcomes = orchestrator.bootstrap()
    except LinearFeedError as e:
        fail(f"bootstrap failed: {e}", json_output)
        return
    finally:
        orchestrator.stop()
    _print_outcomes(outcomes, json_output)


@app.command("tick")
def tick(
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Run a single tick and wait for the dispatched passes."""
    configure_logging()
    runtime = get_runtime()
    orchestrator = runtime.orchestrator
    try:
        outcomes = orchestrator.tick().wait()
    except LinearFeedError as e:
        fail(f"tick failed: {e}", json_output)
        return
    finally:
        orchestrator.stop()
    _print_outcomes(outcomes, json_output)


@app.command("run")
def run():
    """Bootstrap, then tick until interrupted (Ctrl+C)."""
    configure_logging()
    runtime = get_runtime()
    orchestrator = runtime.orchestrator
    stop_event = threading.Event()
    typer.echo(
        f"Scheduling every {orchestrator.config.tick_interval_seconds}s "
        f"(horizon {orchestrator.config.horizon_minutes} min). Press Ctrl+C to stop..."
    )
    try:
        orchestrator.bootstrap()
        orchestrator.run(stop_event)
    except KeyboardInterrupt:
        typer.echo("\nShutting down...")
        stop_event.set()
    finally:
        orchestrator.stop()


@app.command("status")
def status(
    url: str | None = typer.Option(None, "--url", help="Base URL of a running linearfeed server"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Show per-channel scheduler state."""
    if url:
        try:
            resp = requests.get(f"{url.rstrip('/')}/api/v1/autoscheduler/channels", timeout=10)
            resp.raise_for_status()
        except requests.RequestException as e:
            fail(f"server unreachable: {e}", json_output)
            return
        states = resp.json()
        if json_output:
            echo_json({"status": "ok", "channels": states})
            return
        for st in states:
            line = f"{st['channelId']}: {st['status']}  scheduled-until={st['lastScheduledEnd']}"
            if st.get("lastError"):
                line += f"  error={st['lastError']}"
            typer.echo(line)
        return

    runtime = get_runtime()
    try:
        rows = []
        for channel in runtime.channel_store.list_all():
            if not channel.is_auto_scheduled:
                continue
            cursor = runtime.cursor_store.get(channel.id)
            rows.append({
                "channelId": channel.id,
                "lastScheduledEnd": cursor.last_scheduled_end_utc_ms if cursor else None,
                "lastSequence": cursor.last_sequence if cursor else None,
                "lastRun": cursor.last_run_utc_ms if cursor else None,
            })
    except LinearFeedError as e:
        fail(str(e), json_output)
        return
    finally:
        runtime.orchestrator.stop()

    if json_output:
        echo_json({"status": "ok", "channels": rows})
        return
    if not rows:
        typer.echo("No MRSS channels")
        return
    for row in rows:
        typer.echo(
            f"{row['channelId']}: seq={row['lastSequence']} "
            f"scheduled-until={row['lastScheduledEnd']} last-run={row['lastRun']}"
        )


@app.command("reset")
def reset(
    channel_id: str = typer.Argument(..., help="Channel ID"),
    url: str = typer.Option("http://localhost:8080", "--url", help="Base URL of the running linearfeed server"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Return a FAILED channel to IDLE on a running server."""
    try:
        resp = requests.post(
            f"{url.rstrip('/')}/api/v1/autoscheduler/channels/{channel_id}/reset", timeout=10
        )
    except requests.RequestException as e:
        fail(f"server unreachable: {e}", json_output)
        return
    if resp.status_code != 200:
        fail(f"reset refused ({resp.status_code}): {resp.text}", json_output)
        return
    state = resp.json()
    if json_output:
        echo_json({"status": "ok", "channel": state})
    else:
        typer.echo(f"{channel_id}: {state['status']}")

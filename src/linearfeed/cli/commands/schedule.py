from __future__ import annotations

import typer

from ...infra.exceptions import LinearFeedError
from ...scheduling.clock import from_utc_ms
from ...usecases import schedule_query as _uc_schedule_query
from ._common import echo_json, fail, get_runtime

app = typer.Typer(name="schedule", help="Schedule inspection operations")


@app.command("show")
def show_schedule(
    channel_id: str = typer.Argument(..., help="Channel ID"),
    date: str | None = typer.Option(None, "--date", help="UTC day (YYYY-MM-DD); includes expired events"),
    start: str | None = typer.Option(None, "--start", help="Range start, ISO8601"),
    end: str | None = typer.Option(None, "--end", help="Range end, ISO8601"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Show a channel's schedule (upcoming events unless a range is given)."""
    runtime = get_runtime()
    try:
        if runtime.channel_store.get(channel_id) is None:
            fail(f"channel {channel_id} not found", json_output)
        events = _uc_schedule_query.get_schedule(
            runtime.event_store, channel_id, date=date, start=start, end=end
        )
    except LinearFeedError as e:
        fail(str(e), json_output)
        return

    if json_output:
        echo_json({"status": "ok", "channel_id": channel_id, "total": len(events), "events": events})
        return
    if not events:
        typer.echo(f"No events scheduled for {channel_id}")
        return
    for ev in events:
        start_iso = from_utc_ms(ev["start"]).isoformat()
        end_iso = from_utc_ms(ev["end"]).isoformat()
        marker = "" if ev["status"] == "planned" else f"  ({ev['status']})"
        typer.echo(f"#{ev['sequence']:>5}  {start_iso} -> {end_iso}  {ev['itemGuid']}  {ev['title']}{marker}")

from __future__ import annotations

import typer

from ...domain.types import ChannelType
from ...infra.exceptions import LinearFeedError
from ...usecases import channel_add as _uc_channel_add
from ...usecases import channel_list as _uc_channel_list
from ._common import echo_json, fail, get_runtime

app = typer.Typer(name="channel", help="Channel management operations")


@app.command("add")
def add_channel(
    channel_id: str = typer.Option(..., "--id", help="Channel ID (unique)"),
    tenant: str = typer.Option(..., "--tenant", help="Owning tenant (host name)"),
    title: str = typer.Option(..., "--title", help="Channel title"),
    type: str = typer.Option(ChannelType.MRSS.value, "--type", help="Channel type (mrss, playlist)", show_default=True),
    feed_urls: list[str] = typer.Option([], "--feed-url", help="MRSS feed URL (repeatable)"),
    horizon_minutes: int | None = typer.Option(None, "--horizon-minutes", help="Rolling horizon override"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Create a channel."""
    runtime = get_runtime()
    try:
        result = _uc_channel_add.add_channel(
            runtime.channel_store,
            channel_id=channel_id,
            tenant=tenant,
            title=title,
            type=type,
            feed_urls=feed_urls,
            horizon_minutes=horizon_minutes,
        )
    except LinearFeedError as e:
        fail(f"creating channel: {e}", json_output)
        return

    if json_output:
        echo_json({"status": "ok", "channel": result})
        return
    typer.echo("Channel created:")
    typer.echo(f"  ID: {result['id']}")
    typer.echo(f"  Tenant: {result['tenant']}")
    typer.echo(f"  Title: {result['title']}")
    typer.echo(f"  Type: {result['type']}")
    for url in result["feedUrls"]:
        typer.echo(f"  Feed: {url}")
    if result["horizonMinutes"]:
        typer.echo(f"  Horizon (min): {result['horizonMinutes']}")


@app.command("list")
def list_channels(
    tenant: str | None = typer.Option(None, "--tenant", help="Only channels of this tenant"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """List channels."""
    runtime = get_runtime()
    try:
        channels = _uc_channel_list.list_channels(runtime.channel_store, tenant)
    except LinearFeedError as e:
        fail(f"listing channels: {e}", json_output)
        return

    if json_output:
        echo_json({"status": "ok", "total": len(channels), "channels": channels})
        return
    if not channels:
        typer.echo("No channels found")
        return
    for ch in channels:
        feeds = ", ".join(ch["feedUrls"]) or "-"
        typer.echo(f"{ch['id']}  [{ch['tenant']}]  {ch['type']}  {ch['title']}  feeds: {feeds}")

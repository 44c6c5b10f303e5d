from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any
from urllib.parse import urlparse

from ..domain.types import Channel, ChannelType
from ..infra.exceptions import ValidationError
from ..stores.interfaces import ChannelStore

_CHANNEL_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def channel_to_dict(channel: Channel) -> dict[str, Any]:
    return {
        "id": channel.id,
        "tenant": channel.tenant,
        "title": channel.title,
        "type": channel.type.value,
        "feedUrls": list(channel.feed_urls),
        "horizonMinutes": channel.horizon_minutes,
    }


def add_channel(
    store: ChannelStore,
    *,
    channel_id: str,
    tenant: str,
    title: str,
    type: str = ChannelType.MRSS.value,
    feed_urls: Sequence[str] = (),
    horizon_minutes: int | None = None,
) -> dict[str, Any]:
    """Create a Channel and return its API representation.

    Raises ValidationError for bad input or an id that is already taken.
    """
    if not channel_id or not _CHANNEL_ID_RE.match(channel_id):
        raise ValidationError("id must be non-empty and contain only letters, digits, '.', '_' or '-'")
    if not tenant:
        raise ValidationError("tenant is required")
    if not title:
        raise ValidationError("title is required")

    try:
        channel_type = ChannelType(type)
    except ValueError:
        allowed = ", ".join(t.value for t in ChannelType)
        raise ValidationError(f"type must be one of: {allowed}")

    urls = tuple(u.strip() for u in feed_urls if u and u.strip())
    for url in urls:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError(f"feed URL must be http(s): {url}")
    if channel_type == ChannelType.MRSS and not urls:
        raise ValidationError("an MRSS channel needs at least one feed URL")

    if horizon_minutes is not None and horizon_minutes <= 0:
        raise ValidationError("horizon-minutes must be greater than zero")

    if store.get(channel_id) is not None:
        raise ValidationError(f"Channel with ID {channel_id} already exists")

    channel = Channel(
        id=channel_id,
        tenant=tenant,
        title=title,
        type=channel_type,
        feed_urls=urls,
        horizon_minutes=horizon_minutes,
    )
    return channel_to_dict(store.add(channel))

"""
Schedule read path.

Resolves the ``date`` / ``start`` / ``end`` query parameters into a
:class:`ScheduleRange` and returns what the scheduler has persisted. No
query parameters means the default query (Planned events only).
"""

from __future__ import annotations

from datetime import date as date_type
from datetime import datetime, timezone
from typing import Any

from ..domain.types import ScheduleRange
from ..infra.exceptions import ValidationError
from ..stores.interfaces import ScheduleEventStore


def parse_iso8601(value: str) -> int:
    """Parse an ISO8601 timestamp to epoch ms. Naive values are taken as UTC."""
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Invalid ISO8601 timestamp: {value}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def build_range(
    date: str | None = None,
    start: str | None = None,
    end: str | None = None,
) -> ScheduleRange:
    if date:
        try:
            date_type.fromisoformat(date)
        except ValueError:
            raise ValidationError(f"date must be YYYY-MM-DD: {date}")
        return ScheduleRange(date=date)

    start_ms = parse_iso8601(start) if start else None
    end_ms = parse_iso8601(end) if end else None
    if start_ms is not None and end_ms is not None and end_ms <= start_ms:
        raise ValidationError("end must be after start")
    return ScheduleRange(start_utc_ms=start_ms, end_utc_ms=end_ms)


def get_schedule(
    store: ScheduleEventStore,
    channel_id: str,
    *,
    date: str | None = None,
    start: str | None = None,
    end: str | None = None,
) -> list[dict[str, Any]]:
    """Events of ``channel_id`` ordered by start time."""
    schedule_range = build_range(date, start, end)
    events = store.get_schedule_events_by_channel_id(channel_id, schedule_range)
    return [e.to_dict() for e in sorted(events, key=lambda e: e.start_utc_ms)]

"""
Shared types and enums for linearfeed.

This module contains the value types that flow between the feed source,
the scheduling core, the stores, the API and the CLI. All timestamps are
integer epoch milliseconds in UTC.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date as date_type
from datetime import datetime, timedelta, timezone
from enum import Enum


class ChannelType(str, Enum):
    """Kinds of channels. Only MRSS channels are auto-scheduled."""

    MRSS = "mrss"
    PLAYLIST = "playlist"


class EventStatus(str, Enum):
    """Lifecycle of a persisted schedule event."""

    PLANNED = "planned"
    EXPIRED = "expired"


class ChannelRunState(str, Enum):
    """Scheduler-side state of one channel."""

    IDLE = "idle"
    RUNNING = "running"
    STARVED = "starved"
    FAILED = "failed"


@dataclass(frozen=True)
class Channel:
    """A tenant-owned channel as seen by the scheduler (read-only)."""

    id: str
    tenant: str
    title: str
    type: ChannelType = ChannelType.MRSS
    feed_urls: tuple[str, ...] = ()
    horizon_minutes: int | None = None

    @property
    def is_auto_scheduled(self) -> bool:
        return self.type == ChannelType.MRSS and bool(self.feed_urls)


@dataclass(frozen=True)
class RawFeedItem:
    """One entry of a fetched MRSS feed, before normalization."""

    guid: str | None
    title: str = ""
    duration_seconds: float | None = None
    available_from_utc_ms: int | None = None
    available_until_utc_ms: int | None = None
    feed_id: str = ""
    url: str | None = None


@dataclass(frozen=True)
class PlayableItem:
    """A normalized, schedulable feed entry.

    Identity is the external GUID: two items with the same GUID are the same
    item wherever they appear in the feed.
    """

    guid: str
    title: str = field(compare=False)
    duration_ms: int = field(compare=False)
    feed_id: str = field(default="", compare=False)
    url: str | None = field(default=None, compare=False)
    available_from_utc_ms: int | None = field(default=None, compare=False)
    available_until_utc_ms: int | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.duration_ms <= 0:
            raise ValueError(f"PlayableItem {self.guid!r} must have a positive duration")

    def is_available_at(self, utc_ms: int) -> bool:
        """True when ``utc_ms`` falls inside the item's availability window."""
        if self.available_from_utc_ms is not None and utc_ms < self.available_from_utc_ms:
            return False
        if self.available_until_utc_ms is not None and utc_ms >= self.available_until_utc_ms:
            return False
        return True


@dataclass(frozen=True)
class ScheduleEvent:
    """One on-air placement of a PlayableItem on a channel's timeline."""

    channel_id: str
    sequence: int
    start_utc_ms: int
    end_utc_ms: int
    item_guid: str
    title: str = ""
    loop: int = 0
    status: EventStatus = EventStatus.PLANNED

    @property
    def key(self) -> tuple[str, int]:
        """Idempotency key."""
        return (self.channel_id, self.sequence)

    @property
    def duration_ms(self) -> int:
        return self.end_utc_ms - self.start_utc_ms

    def same_placement(self, other: ScheduleEvent) -> bool:
        """True when ``other`` describes the same placement, ignoring status."""
        return (
            self.key == other.key
            and self.start_utc_ms == other.start_utc_ms
            and self.end_utc_ms == other.end_utc_ms
            and self.item_guid == other.item_guid
            and self.loop == other.loop
        )

    def expired(self) -> ScheduleEvent:
        return replace(self, status=EventStatus.EXPIRED)

    def to_dict(self) -> dict[str, object]:
        return {
            "channelId": self.channel_id,
            "sequence": self.sequence,
            "start": self.start_utc_ms,
            "end": self.end_utc_ms,
            "itemGuid": self.item_guid,
            "title": self.title,
            "loop": self.loop,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class SchedulerCursor:
    """Scheduler-private progress marker for one channel."""

    last_scheduled_end_utc_ms: int = 0
    last_sequence: int = 0
    last_item_guid: str | None = None
    last_loop: int = 0
    feed_revision: str | None = None
    last_run_utc_ms: int | None = None

    @classmethod
    def from_tail(cls, tail: ScheduleEvent | None, previous: SchedulerCursor | None = None) -> SchedulerCursor:
        """Build a cursor from the persisted tail event, keeping bookkeeping fields."""
        previous = previous or cls()
        if tail is None:
            return replace(
                previous,
                last_scheduled_end_utc_ms=0,
                last_sequence=0,
                last_item_guid=None,
                last_loop=0,
            )
        return replace(
            previous,
            last_scheduled_end_utc_ms=tail.end_utc_ms,
            last_sequence=tail.sequence,
            last_item_guid=tail.item_guid,
            last_loop=tail.loop,
        )

    def matches_tail(self, tail: ScheduleEvent | None) -> bool:
        if tail is None:
            return self.last_sequence == 0
        return (
            self.last_sequence == tail.sequence
            and self.last_scheduled_end_utc_ms == tail.end_utc_ms
            and self.last_item_guid == tail.item_guid
            and self.last_loop == tail.loop
        )


@dataclass(frozen=True)
class ScheduleRange:
    """Selector for schedule queries.

    An empty range is the default query (Planned events only). ``date``
    (YYYY-MM-DD, UTC) or ``start``/``end`` select every event overlapping
    the range, Expired ones included.
    """

    date: str | None = None
    start_utc_ms: int | None = None
    end_utc_ms: int | None = None

    @property
    def is_explicit(self) -> bool:
        return self.date is not None or self.start_utc_ms is not None or self.end_utc_ms is not None

    def bounds(self) -> tuple[int | None, int | None]:
        """Resolve to ``(start, end)`` epoch ms; ``date`` wins over start/end."""
        if self.date is not None:
            day = date_type.fromisoformat(self.date)
            day_start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
            day_end = day_start + timedelta(days=1)
            return int(day_start.timestamp() * 1000), int(day_end.timestamp() * 1000)
        return self.start_utc_ms, self.end_utc_ms

    def includes(self, event: ScheduleEvent) -> bool:
        if not self.is_explicit:
            return event.status == EventStatus.PLANNED
        start, end = self.bounds()
        if start is not None and event.end_utc_ms <= start:
            return False
        if end is not None and event.start_utc_ms >= end:
            return False
        return True

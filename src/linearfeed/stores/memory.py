"""In-memory stores.

Thread-safe stand-ins for the SQL stores, used by tests and by
``--memory`` development runs. Semantics match the SQL implementations:
write-once idempotency keys, atomic batches, soft expiry.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Sequence

from ..domain.types import (
    Channel,
    EventStatus,
    RawFeedItem,
    ScheduleEvent,
    SchedulerCursor,
    ScheduleRange,
)
from ..infra.exceptions import FeedUnavailableError, ValidationError, WriteConflictError


class InMemoryChannelStore:
    def __init__(self, channels: Iterable[Channel] = ()) -> None:
        self._channels: dict[str, Channel] = {}
        self._lock = threading.Lock()
        for channel in channels:
            self.add(channel)

    def list_all(self) -> list[Channel]:
        with self._lock:
            return list(self._channels.values())

    def list_by_tenant(self, tenant: str) -> list[Channel]:
        with self._lock:
            return [c for c in self._channels.values() if c.tenant == tenant]

    def get(self, channel_id: str) -> Channel | None:
        with self._lock:
            return self._channels.get(channel_id)

    def add(self, channel: Channel) -> Channel:
        with self._lock:
            if channel.id in self._channels:
                raise ValidationError(f"Channel with ID {channel.id} already exists")
            self._channels[channel.id] = channel
            return channel


class InMemoryScheduleEventStore:
    """Schedule events keyed by ``(channel_id, sequence)``."""

    def __init__(self) -> None:
        self._events: dict[str, dict[int, ScheduleEvent]] = {}
        self._lock = threading.Lock()
        self.insert_count = 0

    def get_schedule_events_by_channel_id(
        self, channel_id: str, range: ScheduleRange | None = None
    ) -> list[ScheduleEvent]:
        selector = range or ScheduleRange()
        with self._lock:
            events = list(self._events.get(channel_id, {}).values())
        return sorted(
            (e for e in events if selector.includes(e)),
            key=lambda e: (e.start_utc_ms, e.sequence),
        )

    def get_tail(self, channel_id: str) -> ScheduleEvent | None:
        with self._lock:
            by_sequence = self._events.get(channel_id)
            if not by_sequence:
                return None
            return by_sequence[max(by_sequence)]

    def add(self, events: Sequence[ScheduleEvent]) -> int:
        with self._lock:
            pending: list[ScheduleEvent] = []
            for event in events:
                existing = self._events.get(event.channel_id, {}).get(event.sequence)
                if existing is None:
                    pending.append(event)
                elif not existing.same_placement(event):
                    raise WriteConflictError(event.channel_id, event.sequence)
            for event in pending:
                self._events.setdefault(event.channel_id, {})[event.sequence] = event
            self.insert_count += len(pending)
            return len(pending)

    def mark_expired(self, events: Sequence[ScheduleEvent]) -> int:
        changed = 0
        with self._lock:
            for event in events:
                by_sequence = self._events.get(event.channel_id, {})
                current = by_sequence.get(event.sequence)
                if current is not None and current.status == EventStatus.PLANNED:
                    by_sequence[event.sequence] = current.expired()
                    changed += 1
        return changed

    def all_events(self, channel_id: str) -> list[ScheduleEvent]:
        """Every event of ``channel_id`` ordered by sequence, regardless of status."""
        with self._lock:
            by_sequence = self._events.get(channel_id, {})
            return [by_sequence[s] for s in sorted(by_sequence)]


class InMemoryCursorStore:
    def __init__(self) -> None:
        self._cursors: dict[str, SchedulerCursor] = {}
        self._lock = threading.Lock()

    def get(self, channel_id: str) -> SchedulerCursor | None:
        with self._lock:
            return self._cursors.get(channel_id)

    def save(self, channel_id: str, cursor: SchedulerCursor) -> None:
        with self._lock:
            self._cursors[channel_id] = cursor


class StaticFeedSource:
    """Feed source serving fixed item lists per channel id."""

    def __init__(self, feeds: dict[str, list[RawFeedItem]] | None = None) -> None:
        self._feeds: dict[str, list[RawFeedItem]] = dict(feeds or {})
        self._unavailable: set[str] = set()
        self._lock = threading.Lock()

    def set_items(self, channel_id: str, items: list[RawFeedItem]) -> None:
        with self._lock:
            self._feeds[channel_id] = list(items)

    def set_unavailable(self, channel_id: str, unavailable: bool = True) -> None:
        with self._lock:
            if unavailable:
                self._unavailable.add(channel_id)
            else:
                self._unavailable.discard(channel_id)

    def fetch_items(self, channel: Channel) -> list[RawFeedItem]:
        with self._lock:
            if channel.id in self._unavailable:
                raise FeedUnavailableError(f"feed for channel {channel.id} is unavailable")
            return list(self._feeds.get(channel.id, []))

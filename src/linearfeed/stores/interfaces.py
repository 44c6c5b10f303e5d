"""Collaborator protocols consumed by the auto-scheduler.

Concrete adapters (SQL, in-memory, HTTP feeds) implement these; the
scheduling core never imports an adapter directly.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from ..domain.types import (
    Channel,
    RawFeedItem,
    ScheduleEvent,
    SchedulerCursor,
    ScheduleRange,
)


@runtime_checkable
class ChannelStore(Protocol):
    """Read access to tenant channels (plus the separate create path)."""

    def list_all(self) -> list[Channel]:
        ...

    def list_by_tenant(self, tenant: str) -> list[Channel]:
        ...

    def get(self, channel_id: str) -> Channel | None:
        ...

    def add(self, channel: Channel) -> Channel:
        """Create a channel. Raises ValidationError if the id is taken."""
        ...


@runtime_checkable
class FeedSource(Protocol):
    """Fetches and parses a channel's MRSS feed(s)."""

    def fetch_items(self, channel: Channel) -> list[RawFeedItem]:
        """Return the raw items in publication order.

        Raises FeedUnavailableError on network or parse failure.
        """
        ...


@runtime_checkable
class ScheduleEventStore(Protocol):
    """Persisted schedule events.

    ``add`` is write-once per ``(channel_id, sequence)`` and atomic per batch:
    re-adding an identical event is a no-op, adding a different event under
    an existing key raises WriteConflictError and writes nothing.
    """

    def get_schedule_events_by_channel_id(
        self, channel_id: str, range: ScheduleRange | None = None
    ) -> list[ScheduleEvent]:
        ...

    def get_tail(self, channel_id: str) -> ScheduleEvent | None:
        """The event with the highest sequence, whatever its status."""
        ...

    def add(self, events: Sequence[ScheduleEvent]) -> int:
        """Persist ``events``; returns how many were actually inserted."""
        ...

    def mark_expired(self, events: Sequence[ScheduleEvent]) -> int:
        ...


@runtime_checkable
class CursorStore(Protocol):
    """Scheduler-private cursor persistence."""

    def get(self, channel_id: str) -> SchedulerCursor | None:
        ...

    def save(self, channel_id: str, cursor: SchedulerCursor) -> None:
        ...

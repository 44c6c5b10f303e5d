"""Horizon Maintainer.

Per-channel policy for the rolling schedule window:

- target end = now + the channel's horizon (or the configured default);
- nothing to fill when the cursor already reaches the target, which is the
  common case on most ticks and costs no feed fetch and no write;
- otherwise only the delta is placed, starting at the cursor or at now,
  whichever is later, so a stale tail never back-fills the past;
- events ending before now - retention are expired (soft delete), after and
  independently of placement.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from ..domain.types import (
    Channel,
    EventStatus,
    PlayableItem,
    ScheduleEvent,
    SchedulerCursor,
)
from .placement import place

MINUTE_MS = 60_000


@dataclass(frozen=True)
class HorizonPlan:
    """What one pass has to do for a channel at ``now_utc_ms``."""
    now_utc_ms: int
    target_end_utc_ms: int
    trim_boundary_utc_ms: int
    fill_from_utc_ms: int
    needs_fill: bool


class HorizonMaintainer:
    """Decides how much of a channel's horizon needs filling and trimming."""

    def __init__(self, default_horizon_ms: int, retention_ms: int) -> None:
        if default_horizon_ms <= 0:
            raise ValueError("default_horizon_ms must be greater than zero")
        if retention_ms < 0:
            raise ValueError("retention_ms must be non-negative")
        self._default_horizon_ms = default_horizon_ms
        self._retention_ms = retention_ms
        self._logger = logging.getLogger(__name__)

    def horizon_ms_for(self, channel: Channel) -> int:
        if channel.horizon_minutes:
            return channel.horizon_minutes * MINUTE_MS
        return self._default_horizon_ms

    def evaluate(
        self,
        channel: Channel,
        cursor: SchedulerCursor | None,
        now_utc_ms: int,
    ) -> HorizonPlan:
        """Compute the fill target and trim boundary for ``channel``."""
        target_end = now_utc_ms + self.horizon_ms_for(channel)
        scheduled_end = cursor.last_scheduled_end_utc_ms if cursor else 0
        return HorizonPlan(
            now_utc_ms=now_utc_ms,
            target_end_utc_ms=target_end,
            trim_boundary_utc_ms=now_utc_ms - self._retention_ms,
            fill_from_utc_ms=max(scheduled_end, now_utc_ms),
            needs_fill=scheduled_end < target_end,
        )

    def fill(
        self,
        channel_id: str,
        cursor: SchedulerCursor,
        items: Sequence[PlayableItem],
        plan: HorizonPlan,
    ) -> list[ScheduleEvent]:
        """Place events for the unfilled delta of the horizon.

        ``plan`` must have been evaluated against ``cursor``.

        Raises EmptyFeedError (from the placement engine) when ``items`` is empty.
        """
        if cursor.last_sequence and cursor.last_scheduled_end_utc_ms < plan.now_utc_ms:
            self._logger.info(
                "HorizonMaintainer: channel=%s tail ended %dms before now; "
                "resuming at now",
                channel_id, plan.now_utc_ms - cursor.last_scheduled_end_utc_ms,
            )
        events = place(
            channel_id,
            plan.fill_from_utc_ms,
            items,
            plan.target_end_utc_ms,
            last_sequence=cursor.last_sequence,
            resume_after_guid=cursor.last_item_guid,
            loop=cursor.last_loop,
        )
        if events:
            self._logger.debug(
                "HorizonMaintainer: channel=%s placed %d event(s) [%d, %d) target=%d",
                channel_id, len(events), events[0].start_utc_ms,
                events[-1].end_utc_ms, plan.target_end_utc_ms,
            )
        return events

    @staticmethod
    def expirable(events: Iterable[ScheduleEvent], plan: HorizonPlan) -> list[ScheduleEvent]:
        """Planned events that ended before the trim boundary."""
        return [
            event for event in events
            if event.status == EventStatus.PLANNED
            and event.end_utc_ms < plan.trim_boundary_utc_ms
        ]

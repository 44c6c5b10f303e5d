"""Timeline Placement Engine.

Pure function of (current tail, normalized items, target end) to new
schedule events. No clock, no I/O: the orchestrator supplies every input.

Placement rules:

- events are laid back-to-back starting exactly at the cursor;
- items are consumed in play order, looping over the feed, until the end of
  the last placed event reaches or passes the target. The last event may
  overshoot; an item is never truncated or split;
- sequence numbers continue contiguously from the channel's last sequence;
- play order resumes after the GUID of the tail event. If that GUID left the
  feed, placement starts a fresh loop from the first item.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from ..domain.types import PlayableItem, ScheduleEvent
from ..infra.exceptions import EmptyFeedError
from .normalizer import cycle_items


@dataclass
class SeamViolation:
    """Record of a contiguity violation between adjacent events."""
    left_sequence: int
    left_end_utc_ms: int
    right_sequence: int
    right_start_utc_ms: int
    delta_ms: int           # right_start - left_end; >0 = gap, <0 = overlap

    @property
    def kind(self) -> str:
        return "gap" if self.delta_ms > 0 else "overlap"


def resume_position(
    items: Sequence[PlayableItem],
    resume_after_guid: str | None,
    loop: int,
    *,
    has_history: bool,
) -> tuple[int, int]:
    """Index of the next item to play and the loop counter it plays in."""
    if resume_after_guid is None:
        return 0, loop + 1 if has_history else loop
    for index, item in enumerate(items):
        if item.guid == resume_after_guid:
            if index + 1 == len(items):
                return 0, loop + 1
            return index + 1, loop
    # Tail item left the feed: start over in a new pass
    return 0, loop + 1


def place(
    channel_id: str,
    cursor_utc_ms: int,
    items: Sequence[PlayableItem],
    target_end_utc_ms: int,
    *,
    last_sequence: int = 0,
    resume_after_guid: str | None = None,
    loop: int = 0,
) -> list[ScheduleEvent]:
    """Extend a channel's timeline from ``cursor_utc_ms`` to ``target_end_utc_ms``.

    Raises:
        EmptyFeedError: ``items`` is empty. The caller marks the channel Starved.
    """
    if not items:
        raise EmptyFeedError(f"channel {channel_id} has no playable items")
    if cursor_utc_ms >= target_end_utc_ms:
        return []

    start_index, start_loop = resume_position(
        items, resume_after_guid, loop, has_history=last_sequence > 0
    )

    events: list[ScheduleEvent] = []
    position = cursor_utc_ms
    sequence = last_sequence
    for item, item_loop in cycle_items(items, start_index, start_loop):
        sequence += 1
        end = position + item.duration_ms
        events.append(ScheduleEvent(
            channel_id=channel_id,
            sequence=sequence,
            start_utc_ms=position,
            end_utc_ms=end,
            item_guid=item.guid,
            title=item.title,
            loop=item_loop,
        ))
        position = end
        if position >= target_end_utc_ms:
            break
    return events


def check_contiguity(events: Sequence[ScheduleEvent]) -> list[SeamViolation]:
    """Return every gap or overlap between adjacent events (ordered by start)."""
    ordered = sorted(events, key=lambda e: e.start_utc_ms)
    violations: list[SeamViolation] = []
    for left, right in zip(ordered, ordered[1:]):
        delta = right.start_utc_ms - left.end_utc_ms
        if delta != 0:
            violations.append(SeamViolation(
                left_sequence=left.sequence,
                left_end_utc_ms=left.end_utc_ms,
                right_sequence=right.sequence,
                right_start_utc_ms=right.start_utc_ms,
                delta_ms=delta,
            ))
    return violations

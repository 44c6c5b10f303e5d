"""
Timeline placement: back-to-back events, looping, resume after churn.

Tests are deterministic (pure functions, no clock).
"""

from __future__ import annotations

import pytest

from linearfeed.domain.types import PlayableItem, ScheduleEvent
from linearfeed.infra.exceptions import EmptyFeedError
from linearfeed.scheduling.placement import check_contiguity, place, resume_position

MIN_MS = 60_000
HOUR_MS = 60 * MIN_MS


def _item(guid: str, minutes: int) -> PlayableItem:
    return PlayableItem(guid=guid, title=guid.upper(), duration_ms=minutes * MIN_MS)


A = _item("a", 30)
B = _item("b", 45)
C = _item("c", 10)


class TestPlace:
    def test_looping_feed_fills_two_hour_horizon(self):
        """A=30min, B=45min over 2h: A, B, A, B with the last one overshooting."""
        events = place("ch1", 0, [A, B], 2 * HOUR_MS)

        spans = [(e.start_utc_ms // MIN_MS, e.end_utc_ms // MIN_MS) for e in events]
        assert spans == [(0, 30), (30, 75), (75, 105), (105, 150)]
        assert [e.item_guid for e in events] == ["a", "b", "a", "b"]
        assert [e.loop for e in events] == [0, 0, 1, 1]
        assert [e.sequence for e in events] == [1, 2, 3, 4]
        assert len({e.key for e in events}) == 4

    def test_starts_exactly_at_cursor_and_is_contiguous(self):
        events = place("ch1", 5 * HOUR_MS, [A, B, C], 9 * HOUR_MS)
        assert events[0].start_utc_ms == 5 * HOUR_MS
        assert events[-1].end_utc_ms >= 9 * HOUR_MS
        assert events[-2].end_utc_ms < 9 * HOUR_MS
        assert check_contiguity(events) == []

    def test_items_are_never_truncated(self):
        events = place("ch1", 0, [_item("long", 90)], 10 * MIN_MS)
        assert len(events) == 1
        assert events[0].duration_ms == 90 * MIN_MS

    def test_sequence_continues_from_last_sequence(self):
        events = place("ch1", 0, [A], HOUR_MS, last_sequence=41, resume_after_guid="a", loop=2)
        assert [e.sequence for e in events] == [42, 43]
        assert [e.loop for e in events] == [3, 4]

    def test_resumes_after_tail_guid(self):
        events = place("ch1", 0, [A, B, C], 40 * MIN_MS, last_sequence=7, resume_after_guid="a", loop=1)
        assert [e.item_guid for e in events] == ["b"]
        assert events[0].loop == 1

    def test_missing_tail_guid_starts_new_loop(self):
        events = place("ch1", 0, [B, C], 50 * MIN_MS, last_sequence=3, resume_after_guid="gone", loop=0)
        assert [e.item_guid for e in events] == ["b", "c"]
        assert all(e.loop == 1 for e in events)

    def test_cursor_at_or_past_target_places_nothing(self):
        assert place("ch1", HOUR_MS, [A], HOUR_MS) == []
        assert place("ch1", 2 * HOUR_MS, [A], HOUR_MS) == []

    def test_empty_items_raise(self):
        with pytest.raises(EmptyFeedError):
            place("ch1", 0, [], HOUR_MS)


class TestResumePosition:
    def test_fresh_channel_starts_at_zero(self):
        assert resume_position([A, B], None, 0, has_history=False) == (0, 0)

    def test_last_item_wraps_to_next_loop(self):
        assert resume_position([A, B], "b", 4, has_history=True) == (0, 5)


class TestCheckContiguity:
    def test_reports_gap_and_overlap(self):
        events = [
            ScheduleEvent("ch1", 1, 0, 100, "a"),
            ScheduleEvent("ch1", 2, 150, 200, "b"),
            ScheduleEvent("ch1", 3, 190, 300, "c"),
        ]
        violations = check_contiguity(events)
        assert [(v.kind, v.delta_ms) for v in violations] == [("gap", 50), ("overlap", -10)]

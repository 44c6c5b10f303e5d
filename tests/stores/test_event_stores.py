"""
Schedule event, cursor and channel stores.

Every behaviour is checked against both the in-memory and the SQL
implementation (SQLite in-memory via the autouse conftest fixture).
"""

from __future__ import annotations

import pytest

from linearfeed.domain.types import Channel, ChannelType, EventStatus, ScheduleEvent, SchedulerCursor, ScheduleRange
from linearfeed.infra.exceptions import ValidationError, WriteConflictError
from linearfeed.stores.interfaces import ChannelStore, CursorStore, ScheduleEventStore
from linearfeed.stores.memory import InMemoryChannelStore, InMemoryCursorStore, InMemoryScheduleEventStore
from linearfeed.stores.sql import SqlChannelStore, SqlCursorStore, SqlScheduleEventStore

# 2021-10-19T00:00:00Z
DAY_START_MS = 1_634_601_600_000
HOUR_MS = 3_600_000


def _events(channel_id: str = "ch1", count: int = 4, start_ms: int = DAY_START_MS, first_sequence: int = 1):
    return [
        ScheduleEvent(
            channel_id=channel_id,
            sequence=first_sequence + i,
            start_utc_ms=start_ms + i * HOUR_MS,
            end_utc_ms=start_ms + (i + 1) * HOUR_MS,
            item_guid=f"item-{i % 2}",
            title=f"Item {i % 2}",
            loop=i // 2,
        )
        for i in range(count)
    ]


@pytest.fixture(params=["memory", "sql"])
def event_store(request) -> ScheduleEventStore:
    return InMemoryScheduleEventStore() if request.param == "memory" else SqlScheduleEventStore()


@pytest.fixture(params=["memory", "sql"])
def channel_store(request) -> ChannelStore:
    return InMemoryChannelStore() if request.param == "memory" else SqlChannelStore()


@pytest.fixture(params=["memory", "sql"])
def cursor_store(request) -> CursorStore:
    return InMemoryCursorStore() if request.param == "memory" else SqlCursorStore()


class TestScheduleEventStore:
    def test_add_and_default_query(self, event_store):
        events = _events()
        assert event_store.add(events) == 4
        assert event_store.get_schedule_events_by_channel_id("ch1") == events
        assert event_store.get_schedule_events_by_channel_id("other") == []

    def test_identical_reinsert_is_a_no_op(self, event_store):
        events = _events()
        event_store.add(events[:2])
        assert event_store.add(events) == 2
        assert len(event_store.get_schedule_events_by_channel_id("ch1")) == 4

    def test_conflicting_key_rejects_whole_batch(self, event_store):
        event_store.add(_events(count=1))
        conflicting = _events(count=3)
        conflicting[0] = ScheduleEvent("ch1", 1, DAY_START_MS, DAY_START_MS + 60_000, "someone-else")
        with pytest.raises(WriteConflictError) as excinfo:
            event_store.add(conflicting)
        assert excinfo.value.sequence == 1
        assert len(event_store.get_schedule_events_by_channel_id("ch1")) == 1

    def test_tail_is_highest_sequence(self, event_store):
        assert event_store.get_tail("ch1") is None
        events = _events()
        event_store.add(events)
        assert event_store.get_tail("ch1") == events[-1]

    def test_expired_events_leave_default_query_only(self, event_store):
        events = _events()
        event_store.add(events)
        assert event_store.mark_expired(events[:2]) == 2
        assert event_store.mark_expired(events[:2]) == 0

        upcoming = event_store.get_schedule_events_by_channel_id("ch1")
        assert [e.sequence for e in upcoming] == [3, 4]

        history = event_store.get_schedule_events_by_channel_id("ch1", ScheduleRange(date="2021-10-19"))
        assert [(e.sequence, e.status) for e in history] == [
            (1, EventStatus.EXPIRED),
            (2, EventStatus.EXPIRED),
            (3, EventStatus.PLANNED),
            (4, EventStatus.PLANNED),
        ]
        # The tail ignores status
        assert event_store.get_tail("ch1").sequence == 4

    def test_range_query_returns_overlapping_events(self, event_store):
        event_store.add(_events())
        selected = event_store.get_schedule_events_by_channel_id(
            "ch1",
            ScheduleRange(start_utc_ms=DAY_START_MS + HOUR_MS + 1, end_utc_ms=DAY_START_MS + 2 * HOUR_MS + 1),
        )
        assert [e.sequence for e in selected] == [2, 3]

    def test_date_query_is_a_utc_day(self, event_store):
        event_store.add(_events(count=2, start_ms=DAY_START_MS - HOUR_MS))
        assert [e.sequence for e in event_store.get_schedule_events_by_channel_id(
            "ch1", ScheduleRange(date="2021-10-18")
        )] == [1]
        assert [e.sequence for e in event_store.get_schedule_events_by_channel_id(
            "ch1", ScheduleRange(date="2021-10-19")
        )] == [2]


class TestChannelStore:
    def test_add_list_get(self, channel_store):
        a = Channel(id="a", tenant="one.example", title="A", feed_urls=("http://f/a",), horizon_minutes=90)
        b = Channel(id="b", tenant="two.example", title="B", type=ChannelType.PLAYLIST)
        channel_store.add(a)
        channel_store.add(b)

        assert sorted(c.id for c in channel_store.list_all()) == ["a", "b"]
        assert [c.id for c in channel_store.list_by_tenant("one.example")] == ["a"]
        assert channel_store.get("a") == a
        assert channel_store.get("missing") is None

    def test_duplicate_id_rejected(self, channel_store):
        channel_store.add(Channel(id="a", tenant="t", title="A"))
        with pytest.raises(ValidationError):
            channel_store.add(Channel(id="a", tenant="t", title="Again"))


class TestCursorStore:
    def test_save_and_overwrite(self, cursor_store):
        assert cursor_store.get("ch1") is None
        first = SchedulerCursor(last_scheduled_end_utc_ms=10, last_sequence=1, last_item_guid="a")
        cursor_store.save("ch1", first)
        assert cursor_store.get("ch1") == first

        second = SchedulerCursor(
            last_scheduled_end_utc_ms=20, last_sequence=2, last_item_guid="b",
            last_loop=1, feed_revision="abc", last_run_utc_ms=5,
        )
        cursor_store.save("ch1", second)
        assert cursor_store.get("ch1") == second

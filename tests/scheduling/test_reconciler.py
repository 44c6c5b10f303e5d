"""
Reconciler: cursor re-derivation from the persisted tail, idempotent
commits, bounded write retries.
"""

from __future__ import annotations

import pytest

from linearfeed.domain.types import PlayableItem, ScheduleEvent, SchedulerCursor
from linearfeed.infra.exceptions import PersistenceError, WriteConflictError
from linearfeed.scheduling.placement import place
from linearfeed.scheduling.reconciler import Reconciler
from linearfeed.stores.memory import InMemoryCursorStore, InMemoryScheduleEventStore

MIN_MS = 60_000
ITEMS = [
    PlayableItem(guid="a", title="A", duration_ms=30 * MIN_MS),
    PlayableItem(guid="b", title="B", duration_ms=45 * MIN_MS),
]


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------

class FlakyEventStore(InMemoryScheduleEventStore):
    """Fails the first ``failures`` add() calls with a PersistenceError."""

    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures
        self.add_calls = 0

    def add(self, events):
        self.add_calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise PersistenceError("database unavailable")
        return super().add(events)


class BrokenCursorStore(InMemoryCursorStore):
    def save(self, channel_id, cursor):
        raise PersistenceError("cursor table locked")


class TestDeriveCursor:
    def test_empty_channel_derives_zero_cursor(self):
        reconciler = Reconciler(InMemoryScheduleEventStore())
        cursor = reconciler.derive_cursor("ch1", None)
        assert cursor.last_sequence == 0
        assert cursor.last_scheduled_end_utc_ms == 0

    def test_matching_cursor_is_kept(self):
        store = InMemoryScheduleEventStore()
        events = place("ch1", 0, ITEMS, 60 * MIN_MS)
        store.add(events)
        cursor = SchedulerCursor.from_tail(events[-1], SchedulerCursor(feed_revision="rev"))
        assert Reconciler(store).derive_cursor("ch1", cursor) is cursor

    def test_crash_after_write_before_cursor_advance(self):
        """The tail wins over a stale cursor: no duplicates, no skipped sequence."""
        store = InMemoryScheduleEventStore()
        reconciler = Reconciler(store)
        stale = reconciler.derive_cursor("ch1", None)
        written = place("ch1", 0, ITEMS, 60 * MIN_MS)
        reconciler.commit("ch1", written)
        # Process dies here; the cursor never advanced

        derived = reconciler.derive_cursor("ch1", stale)
        assert derived.last_sequence == written[-1].sequence
        assert derived.last_scheduled_end_utc_ms == written[-1].end_utc_ms
        assert derived.last_item_guid == written[-1].item_guid

        more = place(
            "ch1", derived.last_scheduled_end_utc_ms, ITEMS, 180 * MIN_MS,
            last_sequence=derived.last_sequence,
            resume_after_guid=derived.last_item_guid,
            loop=derived.last_loop,
        )
        reconciler.commit("ch1", more)
        sequences = [e.sequence for e in store.all_events("ch1")]
        assert sequences == list(range(1, len(sequences) + 1))


class TestCommit:
    def test_retried_batch_is_a_no_op(self):
        store = InMemoryScheduleEventStore()
        reconciler = Reconciler(store)
        events = place("ch1", 0, ITEMS, 60 * MIN_MS)
        assert reconciler.commit("ch1", events) == len(events)
        assert reconciler.commit("ch1", events) == 0
        assert store.insert_count == len(events)

    def test_transient_failures_are_retried(self):
        store = FlakyEventStore(failures=2)
        sleeps: list[float] = []
        reconciler = Reconciler(store, write_attempts=3, retry_delay_seconds=0.5, sleep=sleeps.append)
        events = place("ch1", 0, ITEMS, 60 * MIN_MS)
        assert reconciler.commit("ch1", events) == len(events)
        assert store.add_calls == 3
        assert sleeps == [0.5, 1.0]

    def test_persistent_failure_propagates(self):
        store = FlakyEventStore(failures=5)
        sleeps: list[float] = []
        reconciler = Reconciler(store, write_attempts=3, retry_delay_seconds=0.5, sleep=sleeps.append)
        with pytest.raises(PersistenceError, match="database unavailable"):
            reconciler.commit("ch1", place("ch1", 0, ITEMS, 60 * MIN_MS))
        assert store.add_calls == 3
        # no wait after the final attempt
        assert sleeps == [0.5, 1.0]

    def test_single_attempt_raises_without_waiting(self):
        store = FlakyEventStore(failures=1)
        reconciler = Reconciler(store, write_attempts=1, sleep=lambda _s: pytest.fail("must not sleep"))
        with pytest.raises(PersistenceError):
            reconciler.commit("ch1", place("ch1", 0, ITEMS, 60 * MIN_MS))
        assert store.add_calls == 1

    def test_conflict_is_not_retried(self):
        store = InMemoryScheduleEventStore()
        store.add([ScheduleEvent("ch1", 1, 0, 1000, "other")])
        reconciler = Reconciler(store, sleep=lambda _s: pytest.fail("conflict must not sleep"))
        with pytest.raises(WriteConflictError):
            reconciler.commit("ch1", place("ch1", 0, ITEMS, 60 * MIN_MS))

    def test_empty_batch(self):
        assert Reconciler(InMemoryScheduleEventStore()).commit("ch1", []) == 0


class TestAdvance:
    def test_advance_moves_to_batch_tail_and_persists(self):
        cursors = InMemoryCursorStore()
        reconciler = Reconciler(InMemoryScheduleEventStore(), cursors)
        events = place("ch1", 0, ITEMS, 60 * MIN_MS)
        advanced = reconciler.advance("ch1", SchedulerCursor(), events, feed_revision="r1", now_utc_ms=5)
        assert advanced.last_sequence == events[-1].sequence
        assert advanced.feed_revision == "r1"
        assert advanced.last_run_utc_ms == 5
        assert cursors.get("ch1") == advanced
        assert reconciler.load_cursor("ch1") == advanced

    def test_cursor_save_failure_is_not_fatal(self):
        reconciler = Reconciler(InMemoryScheduleEventStore(), BrokenCursorStore())
        advanced = reconciler.advance("ch1", SchedulerCursor(), [], feed_revision=None, now_utc_ms=1)
        assert advanced.last_run_utc_ms == 1

"""Reconciler.

Brings a channel's persisted schedule toward the desired filled horizon
without duplicating or losing events across retries and restarts.

- The cursor is always re-derived from the persisted tail before placing.
  A crash between the write and the cursor update leaves the cursor behind
  the tail; the tail wins.
- Writes are keyed by ``(channel_id, sequence)`` and write-once, so a
  retried batch is a no-op for the events that already landed.
- Transient persistence errors are retried a bounded number of times; the
  last one propagates and fails the channel.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import replace

from ..domain.types import ScheduleEvent, SchedulerCursor
from ..infra.exceptions import PersistenceError, WriteConflictError
from ..stores.interfaces import CursorStore, ScheduleEventStore


class Reconciler:
    """Derives cursors from storage and commits placements idempotently."""

    def __init__(
        self,
        event_store: ScheduleEventStore,
        cursor_store: CursorStore | None = None,
        *,
        write_attempts: int = 3,
        retry_delay_seconds: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if write_attempts < 1:
            raise ValueError("write_attempts must be at least 1")
        self._events = event_store
        self._cursors = cursor_store
        self._write_attempts = write_attempts
        self._retry_delay_s = retry_delay_seconds
        self._sleep = sleep
        self._logger = logging.getLogger(__name__)

    def load_cursor(self, channel_id: str) -> SchedulerCursor | None:
        """Last cursor saved by a previous process, if any."""
        if self._cursors is None:
            return None
        return self._cursors.get(channel_id)

    def derive_cursor(
        self,
        channel_id: str,
        cursor: SchedulerCursor | None,
    ) -> SchedulerCursor:
        """Return a cursor consistent with the persisted tail.

        Raises PersistenceError if the tail cannot be read.
        """
        tail = self._events.get_tail(channel_id)
        if cursor is not None and cursor.matches_tail(tail):
            return cursor

        derived = SchedulerCursor.from_tail(tail, cursor)
        if cursor is not None:
            self._logger.warning(
                "Reconciler: channel=%s cursor (seq=%d end=%d) disagrees with "
                "persisted tail (seq=%d end=%d); re-derived from storage",
                channel_id,
                cursor.last_sequence, cursor.last_scheduled_end_utc_ms,
                derived.last_sequence, derived.last_scheduled_end_utc_ms,
            )
        return derived

    def commit(self, channel_id: str, events: Sequence[ScheduleEvent]) -> int:
        """Write ``events`` as one batch; returns the number actually inserted.

        Raises:
            WriteConflictError: a key already holds a different event (not retried here).
            PersistenceError: the store kept failing after ``write_attempts`` tries.
        """
        if not events:
            return 0
        attempt = 0
        while True:
            attempt += 1
            try:
                inserted = self._events.add(events)
            except WriteConflictError:
                raise
            except PersistenceError as exc:
                self._logger.warning(
                    "Reconciler: channel=%s write attempt %d/%d failed: %s",
                    channel_id, attempt, self._write_attempts, exc,
                )
                if attempt >= self._write_attempts:
                    raise
                self._sleep(self._retry_delay_s * attempt)
                continue
            if inserted < len(events):
                self._logger.info(
                    "Reconciler: channel=%s %d of %d event(s) were already persisted",
                    channel_id, len(events) - inserted, len(events),
                )
            return inserted

    def advance(
        self,
        channel_id: str,
        cursor: SchedulerCursor,
        events: Sequence[ScheduleEvent],
        *,
        feed_revision: str | None,
        now_utc_ms: int,
    ) -> SchedulerCursor:
        """Move the cursor past ``events`` (already committed) and persist it."""
        advanced = replace(cursor, feed_revision=feed_revision, last_run_utc_ms=now_utc_ms)
        if events:
            tail = max(events, key=lambda e: e.sequence)
            advanced = SchedulerCursor.from_tail(tail, advanced)
        self.save_cursor(channel_id, advanced)
        return advanced

    def save_cursor(self, channel_id: str, cursor: SchedulerCursor) -> None:
        """Persist ``cursor``. A failure is logged only: the next pass re-derives it."""
        if self._cursors is None:
            return
        try:
            self._cursors.save(channel_id, cursor)
        except PersistenceError as exc:
            self._logger.warning(
                "Reconciler: channel=%s cursor not saved (%s); will re-derive from tail",
                channel_id, exc,
            )

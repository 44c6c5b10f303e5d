"""Per-channel scheduler state.

An explicit map from channel id to a scheduler-owned record. Only the
orchestrator mutates it, and only through the accessors below; the lock is
held for state transitions, never across a feed fetch or a store write.

    IDLE -> RUNNING -> {IDLE, STARVED, FAILED}
    STARVED -> RUNNING once its backoff has elapsed
    FAILED -> IDLE only through reset() (operator intervention)
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace

from ..domain.types import ChannelRunState, SchedulerCursor


@dataclass(frozen=True)
class ChannelSchedulerState:
    """Snapshot of one channel's scheduler state."""
    channel_id: str
    status: ChannelRunState = ChannelRunState.IDLE
    cursor: SchedulerCursor | None = None
    starve_streak: int = 0
    next_attempt_utc_ms: int | None = None
    last_error: str | None = None
    last_pass_utc_ms: int | None = None
    passes: int = 0

    def to_dict(self) -> dict[str, object]:
        cursor = self.cursor
        return {
            "channelId": self.channel_id,
            "status": self.status.value,
            "lastScheduledEnd": cursor.last_scheduled_end_utc_ms if cursor else None,
            "lastSequence": cursor.last_sequence if cursor else None,
            "feedRevision": cursor.feed_revision if cursor else None,
            "starveStreak": self.starve_streak,
            "nextAttempt": self.next_attempt_utc_ms,
            "lastError": self.last_error,
            "lastPass": self.last_pass_utc_ms,
            "passes": self.passes,
        }


class SchedulerStateRegistry:
    """Thread-safe channel id -> ChannelSchedulerState map."""

    def __init__(self) -> None:
        self._states: dict[str, ChannelSchedulerState] = {}
        self._lock = threading.Lock()

    def snapshot(self, channel_id: str) -> ChannelSchedulerState:
        with self._lock:
            return self._states.get(channel_id) or ChannelSchedulerState(channel_id=channel_id)

    def snapshot_all(self) -> list[ChannelSchedulerState]:
        with self._lock:
            return [self._states[k] for k in sorted(self._states)]

    def ensure(self, channel_id: str, cursor: SchedulerCursor | None = None) -> None:
        """Register ``channel_id`` as IDLE if it is not known yet."""
        with self._lock:
            if channel_id not in self._states:
                self._states[channel_id] = ChannelSchedulerState(channel_id=channel_id, cursor=cursor)

    def try_begin(self, channel_id: str, now_utc_ms: int, *, force: bool = False) -> bool:
        """Atomically move a channel to RUNNING.

        Refused when the channel is RUNNING (a pass is in flight) or FAILED.
        A STARVED channel starts only once its backoff elapsed, or when forced.
        """
        with self._lock:
            state = self._states.get(channel_id) or ChannelSchedulerState(channel_id=channel_id)
            if state.status in (ChannelRunState.RUNNING, ChannelRunState.FAILED):
                return False
            if (
                state.status == ChannelRunState.STARVED
                and not force
                and state.next_attempt_utc_ms is not None
                and now_utc_ms < state.next_attempt_utc_ms
            ):
                return False
            self._states[channel_id] = replace(state, status=ChannelRunState.RUNNING)
            return True

    def finish_idle(
        self, channel_id: str, cursor: SchedulerCursor | None, now_utc_ms: int
    ) -> ChannelSchedulerState:
        with self._lock:
            state = self._require_running(channel_id)
            updated = replace(
                state,
                status=ChannelRunState.IDLE,
                cursor=cursor if cursor is not None else state.cursor,
                starve_streak=0,
                next_attempt_utc_ms=None,
                last_error=None,
                last_pass_utc_ms=now_utc_ms,
                passes=state.passes + 1,
            )
            self._states[channel_id] = updated
            return updated

    def finish_starved(
        self, channel_id: str, error: str, now_utc_ms: int, next_attempt_utc_ms: int,
        cursor: SchedulerCursor | None = None,
    ) -> ChannelSchedulerState:
        with self._lock:
            state = self._require_running(channel_id)
            updated = replace(
                state,
                status=ChannelRunState.STARVED,
                cursor=cursor if cursor is not None else state.cursor,
                starve_streak=state.starve_streak + 1,
                next_attempt_utc_ms=next_attempt_utc_ms,
                last_error=error,
                last_pass_utc_ms=now_utc_ms,
                passes=state.passes + 1,
            )
            self._states[channel_id] = updated
            return updated

    def finish_failed(
        self, channel_id: str, error: str, now_utc_ms: int,
        cursor: SchedulerCursor | None = None,
    ) -> ChannelSchedulerState:
        with self._lock:
            state = self._require_running(channel_id)
            updated = replace(
                state,
                status=ChannelRunState.FAILED,
                cursor=cursor if cursor is not None else state.cursor,
                next_attempt_utc_ms=None,
                last_error=error,
                last_pass_utc_ms=now_utc_ms,
                passes=state.passes + 1,
            )
            self._states[channel_id] = updated
            return updated

    def release(self, channel_id: str) -> None:
        """Return a RUNNING channel whose pass never ran (cancelled) to IDLE."""
        with self._lock:
            state = self._states.get(channel_id)
            if state is not None and state.status == ChannelRunState.RUNNING:
                self._states[channel_id] = replace(state, status=ChannelRunState.IDLE)

    def reset(self, channel_id: str) -> bool:
        """Operator intervention: clear FAILED/STARVED back to IDLE.

        Returns False if the channel is unknown or currently RUNNING.
        """
        with self._lock:
            state = self._states.get(channel_id)
            if state is None or state.status == ChannelRunState.RUNNING:
                return False
            self._states[channel_id] = replace(
                state,
                status=ChannelRunState.IDLE,
                starve_streak=0,
                next_attempt_utc_ms=None,
                last_error=None,
            )
            return True

    def _require_running(self, channel_id: str) -> ChannelSchedulerState:
        state = self._states.get(channel_id)
        if state is None or state.status != ChannelRunState.RUNNING:
            raise RuntimeError(f"channel {channel_id} is not RUNNING")
        return state

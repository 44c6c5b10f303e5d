"""Wall-clock abstractions for the auto-scheduler.

The scheduler asks a clock for "now" and nothing else, so tests can drive
time deterministically with :class:`SteppedClock`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from threading import Lock
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Protocol implemented by clock providers."""

    def now_utc(self) -> datetime:
        """Return the current time as an aware UTC datetime."""

    def now_utc_ms(self) -> int:
        """Return the current time in epoch milliseconds."""


class SystemClock:
    """Clock backed by the system wall clock."""

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)

    def now_utc_ms(self) -> int:
        return int(self.now_utc().timestamp() * 1000)


class SteppedClock:
    """Deterministic clock used for tests.

    Time advances only when :meth:`advance_ms` is called.
    """

    def __init__(self, start_utc_ms: int = 0) -> None:
        self._current = start_utc_ms
        self._lock = Lock()

    def now_utc(self) -> datetime:
        with self._lock:
            return datetime.fromtimestamp(self._current / 1000.0, tz=timezone.utc)

    def now_utc_ms(self) -> int:
        with self._lock:
            return self._current

    def advance_ms(self, delta: int) -> int:
        """Advance the clock by ``delta`` milliseconds (must be non-negative)."""
        if delta < 0:
            raise ValueError("delta must be non-negative")
        with self._lock:
            self._current += delta
            return self._current


def from_utc_ms(utc_ms: int) -> datetime:
    return datetime.fromtimestamp(utc_ms / 1000.0, tz=timezone.utc)

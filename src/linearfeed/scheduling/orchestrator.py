"""Scheduler Orchestrator.

Drives bootstrap and the fixed-interval run loop across all MRSS channels.

Each channel is an independent unit of work submitted to a bounded thread
pool. Mutual exclusion per channel comes from the IDLE/RUNNING guard in
:class:`SchedulerStateRegistry`, never from a lock held across I/O. The only
blocking calls inside a pass are the feed fetch and the store writes;
placement and reconciliation arithmetic is synchronous.

Outcomes per pass:

- filled or nothing to do          -> IDLE
- feed unavailable or empty        -> STARVED, retried with capped exponential backoff
- write conflict                   -> re-derive from storage, retry once
- persistence failure after retries, or any unexpected error -> FAILED
  (excluded from ticks until reset)

A failure to enumerate channels is not a channel error: it propagates out of
:meth:`tick` and :meth:`run`.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field

from ..domain.types import Channel, ChannelRunState, ScheduleEvent, SchedulerCursor
from ..infra.exceptions import FeedError, PersistenceError, WriteConflictError
from ..infra.logging import get_logger
from ..stores.interfaces import ChannelStore, CursorStore, FeedSource, ScheduleEventStore
from .clock import Clock, SystemClock
from .config import SchedulerConfig
from .horizon import HorizonMaintainer, HorizonPlan
from .normalizer import NormalizedFeed, normalize_items
from .reconciler import Reconciler
from .state import ChannelSchedulerState, SchedulerStateRegistry


@dataclass
class PassOutcome:
    """Result of one reconciliation pass for one channel."""
    channel_id: str
    status: ChannelRunState
    events_written: int = 0
    events_expired: int = 0
    filled: bool = False
    error: str | None = None


@dataclass
class TickReport:
    """What a tick dispatched and what it skipped."""
    now_utc_ms: int
    dispatched: list[str] = field(default_factory=list)
    skipped_running: list[str] = field(default_factory=list)
    skipped_backoff: list[str] = field(default_factory=list)
    excluded_failed: list[str] = field(default_factory=list)
    futures: dict[str, Future] = field(default_factory=dict)

    def wait(self, timeout: float | None = None) -> dict[str, PassOutcome]:
        """Block until dispatched passes finish; returns outcomes of those that ran."""
        if self.futures:
            wait(list(self.futures.values()), timeout=timeout)
        return {
            channel_id: future.result()
            for channel_id, future in self.futures.items()
            if future.done() and not future.cancelled()
        }


class SchedulerOrchestrator:
    """Bootstrap + run loop for the MRSS auto-scheduler."""

    def __init__(
        self,
        channel_store: ChannelStore,
        feed_source: FeedSource,
        event_store: ScheduleEventStore,
        cursor_store: CursorStore | None = None,
        *,
        config: SchedulerConfig | None = None,
        clock: Clock | None = None,
        executor: ThreadPoolExecutor | None = None,
        sleep: Callable[[float], None] | None = None,
    ):
        self._config = config or SchedulerConfig()
        self._channels = channel_store
        self._feeds = feed_source
        self._events = event_store
        self._clock = clock or SystemClock()
        self._maintainer = HorizonMaintainer(
            default_horizon_ms=self._config.horizon_ms,
            retention_ms=self._config.retention_ms,
        )
        reconciler_kwargs = {}
        if sleep is not None:
            reconciler_kwargs["sleep"] = sleep
        self._reconciler = Reconciler(
            event_store,
            cursor_store,
            write_attempts=self._config.write_attempts,
            retry_delay_seconds=self._config.write_retry_seconds,
            **reconciler_kwargs,
        )
        self._registry = SchedulerStateRegistry()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self._config.max_workers,
            thread_name_prefix="linearfeed-channel",
        )
        self._logger = get_logger(__name__)

        # Background loop
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._fatal_error: BaseException | None = None

    # ------------------------------------------------------------------
    # Public properties (observability)
    # ------------------------------------------------------------------

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    @property
    def registry(self) -> SchedulerStateRegistry:
        return self._registry

    @property
    def fatal_error(self) -> BaseException | None:
        """Set when the background loop stopped on an infrastructure error."""
        return self._fatal_error

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def status(self) -> list[ChannelSchedulerState]:
        return self._registry.snapshot_all()

    def channel_state(self, channel_id: str) -> ChannelSchedulerState:
        return self._registry.snapshot(channel_id)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def bootstrap(self, timeout: float | None = None) -> dict[str, PassOutcome]:
        """Force one reconciliation pass for every known channel and wait for all.

        The initial cursor of each channel is established from whatever
        schedule already exists in storage (possibly none).
        """
        channels = self._list_channels()
        now_ms = self._clock.now_utc_ms()
        futures: dict[str, Future] = {}
        for channel in channels:
            self._registry.ensure(channel.id, self._load_cursor(channel.id))
            if self._registry.try_begin(channel.id, now_ms, force=True):
                futures[channel.id] = self._dispatch(channel, force=True)

        report = TickReport(now_utc_ms=now_ms, dispatched=list(futures), futures=futures)
        outcomes = report.wait(timeout=timeout)
        self._logger.info(
            "bootstrap complete",
            channels=len(channels),
            idle=sum(1 for o in outcomes.values() if o.status == ChannelRunState.IDLE),
            starved=sum(1 for o in outcomes.values() if o.status == ChannelRunState.STARVED),
            failed=sum(1 for o in outcomes.values() if o.status == ChannelRunState.FAILED),
        )
        return outcomes

    def tick(self) -> TickReport:
        """Dispatch a pass for every eligible channel.

        Raises whatever the channel store raises: enumeration failure is fatal.
        """
        channels = self._list_channels()
        now_ms = self._clock.now_utc_ms()
        report = TickReport(now_utc_ms=now_ms)

        for channel in channels:
            self._registry.ensure(channel.id)
            if self._registry.try_begin(channel.id, now_ms):
                report.dispatched.append(channel.id)
                report.futures[channel.id] = self._dispatch(channel, force=False)
                continue
            status = self._registry.snapshot(channel.id).status
            if status == ChannelRunState.RUNNING:
                report.skipped_running.append(channel.id)
            elif status == ChannelRunState.FAILED:
                report.excluded_failed.append(channel.id)
            else:
                report.skipped_backoff.append(channel.id)

        if report.skipped_running:
            self._logger.info(
                "channels still running from a previous tick; skipped",
                channel_ids=report.skipped_running,
            )
        self._logger.debug(
            "tick dispatched",
            dispatched=len(report.dispatched),
            skipped_running=len(report.skipped_running),
            skipped_backoff=len(report.skipped_backoff),
            excluded_failed=len(report.excluded_failed),
        )
        return report

    def run(self, stop_event: threading.Event | None = None) -> None:
        """Tick every ``tick_interval_seconds`` until ``stop_event`` is set."""
        stop = stop_event or self._stop_event
        interval = self._config.tick_interval_seconds
        self._logger.info("run loop started", interval_seconds=interval)
        while not stop.is_set():
            self.tick()
            stop.wait(timeout=interval)
        self._logger.info("run loop stopped")

    def reset(self, channel_id: str) -> bool:
        """Operator intervention: return a FAILED (or STARVED) channel to IDLE."""
        previous = self._registry.snapshot(channel_id)
        ok = self._registry.reset(channel_id)
        if ok:
            self._logger.warning(
                "channel reset by operator",
                channel_id=channel_id,
                previous_status=previous.status.value,
                previous_error=previous.last_error,
            )
        return ok

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the run loop on a background thread."""
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="SchedulerOrchestrator",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Stop ticking; queued passes are cancelled, in-flight passes finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout if timeout is not None else self._config.tick_interval_seconds + 5)
            self._thread = None
        if self._owns_executor:
            self._executor.shutdown(wait=True, cancel_futures=True)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run_loop(self) -> None:
        try:
            self.run(self._stop_event)
        except Exception as exc:
            self._fatal_error = exc
            self._logger.critical("run loop terminated: cannot dispatch ticks", exc_info=True)

    def _list_channels(self) -> list[Channel]:
        return [c for c in self._channels.list_all() if c.is_auto_scheduled]

    def _load_cursor(self, channel_id: str) -> SchedulerCursor | None:
        try:
            return self._reconciler.load_cursor(channel_id)
        except PersistenceError as exc:
            self._logger.warning("saved cursor unavailable", channel_id=channel_id, error=str(exc))
            return None

    def _dispatch(self, channel: Channel, *, force: bool) -> Future:
        try:
            future = self._executor.submit(self._run_pass, channel, force)
        except RuntimeError:
            # Executor already shut down
            self._registry.release(channel.id)
            raise
        future.add_done_callback(lambda f, channel_id=channel.id: self._on_pass_done(channel_id, f))
        return future

    def _on_pass_done(self, channel_id: str, future: Future) -> None:
        if future.cancelled():
            self._registry.release(channel_id)

    def _run_pass(self, channel: Channel, force: bool) -> PassOutcome:
        """One channel's unit of work. Never raises."""
        state = self._registry.snapshot(channel.id)
        now_ms = self._clock.now_utc_ms()
        log = self._logger.bind(channel_id=channel.id, tenant=channel.tenant)

        try:
            cursor, outcome = self._reconcile(channel, state.cursor, now_ms, force)
        except FeedError as exc:
            streak = state.starve_streak + 1
            delay_ms = int(self._config.backoff_seconds(streak) * 1000)
            # Past events still age out while no new ones can be placed
            expired = self._trim(channel, self._maintainer.evaluate(channel, state.cursor, now_ms))
            self._registry.finish_starved(channel.id, str(exc), now_ms, now_ms + delay_ms)
            log.warning(
                "channel starved",
                error=str(exc),
                error_type=type(exc).__name__,
                streak=streak,
                retry_in_ms=delay_ms,
                expired=expired,
            )
            return PassOutcome(
                channel.id, ChannelRunState.STARVED, events_expired=expired, error=str(exc)
            )
        except PersistenceError as exc:
            self._registry.finish_failed(channel.id, str(exc), now_ms)
            log.error("channel failed: persistence error", error=str(exc))
            return PassOutcome(channel.id, ChannelRunState.FAILED, error=str(exc))
        except Exception as exc:
            self._registry.finish_failed(channel.id, f"{type(exc).__name__}: {exc}", now_ms)
            log.exception("channel failed: unexpected error")
            return PassOutcome(channel.id, ChannelRunState.FAILED, error=str(exc))

        if state.status == ChannelRunState.STARVED:
            log.info("channel recovered from starvation")
        self._registry.finish_idle(channel.id, cursor, now_ms)
        if outcome.filled:
            log.info(
                "channel reconciled",
                written=outcome.events_written,
                expired=outcome.events_expired,
                scheduled_end=cursor.last_scheduled_end_utc_ms,
            )
        return outcome

    def _reconcile(
        self,
        channel: Channel,
        cursor: SchedulerCursor | None,
        now_ms: int,
        force: bool,
    ) -> tuple[SchedulerCursor, PassOutcome]:
        plan = self._maintainer.evaluate(channel, cursor, now_ms)
        if cursor is not None and not force and not plan.needs_fill:
            # Steady state: horizon already filled, no fetch and no write
            expired = self._trim(channel, plan)
            return cursor, PassOutcome(channel.id, ChannelRunState.IDLE, events_expired=expired)

        cursor = self._reconciler.derive_cursor(channel.id, cursor)
        plan = self._maintainer.evaluate(channel, cursor, now_ms)
        written = 0
        events: list[ScheduleEvent] = []
        revision = cursor.feed_revision

        if plan.needs_fill:
            feed = self._fetch(channel, cursor, now_ms)
            revision = feed.revision
            events = self._maintainer.fill(channel.id, cursor, feed.items, plan)
            try:
                written = self._reconciler.commit(channel.id, events)
            except WriteConflictError as exc:
                self._logger.warning(
                    "write conflict; re-reconciling from storage",
                    channel_id=channel.id, sequence=exc.sequence,
                )
                cursor = self._reconciler.derive_cursor(channel.id, None)
                plan = self._maintainer.evaluate(channel, cursor, now_ms)
                events = (
                    self._maintainer.fill(channel.id, cursor, feed.items, plan)
                    if plan.needs_fill else []
                )
                try:
                    written = self._reconciler.commit(channel.id, events)
                except WriteConflictError as again:
                    raise PersistenceError(
                        f"repeated write conflict on {channel.id}: {again}"
                    ) from again

        cursor = self._reconciler.advance(
            channel.id, cursor, events, feed_revision=revision, now_utc_ms=now_ms,
        )
        expired = self._trim(channel, plan)
        return cursor, PassOutcome(
            channel.id,
            ChannelRunState.IDLE,
            events_written=written,
            events_expired=expired,
            filled=bool(events),
        )

    def _fetch(self, channel: Channel, cursor: SchedulerCursor, now_ms: int) -> NormalizedFeed:
        raw_items = self._feeds.fetch_items(channel)
        feed = normalize_items(raw_items, now_ms)
        if cursor.feed_revision and feed.revision != cursor.feed_revision:
            self._logger.info(
                "feed changed since last placement",
                channel_id=channel.id,
                items=len(feed.items),
                deferred=len(feed.deferred),
            )
        return feed

    def _trim(self, channel: Channel, plan: HorizonPlan) -> int:
        """Expire Planned events older than the retention window. Never blocks placement."""
        try:
            planned = self._events.get_schedule_events_by_channel_id(channel.id)
            expirable = self._maintainer.expirable(planned, plan)
            if not expirable:
                return 0
            return self._events.mark_expired(expirable)
        except PersistenceError as exc:
            self._logger.warning("trim skipped", channel_id=channel.id, error=str(exc))
            return 0

"""
Wiring for a running auto-scheduler.

Builds the stores, the MRSS feed source and the orchestrator from
:class:`Settings`, either over the configured database or fully in memory.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..feeds.mrss import MrssFeedSource
from ..infra.settings import Settings
from ..scheduling.clock import Clock
from ..scheduling.config import SchedulerConfig
from ..scheduling.orchestrator import SchedulerOrchestrator
from ..stores.interfaces import ChannelStore, CursorStore, FeedSource, ScheduleEventStore
from ..stores.memory import InMemoryChannelStore, InMemoryCursorStore, InMemoryScheduleEventStore
from ..stores.sql import SqlChannelStore, SqlCursorStore, SqlScheduleEventStore


@dataclass
class SchedulerRuntime:
    channel_store: ChannelStore
    event_store: ScheduleEventStore
    cursor_store: CursorStore
    feed_source: FeedSource
    orchestrator: SchedulerOrchestrator


def build_runtime(
    settings: Settings,
    *,
    memory: bool = False,
    feed_source: FeedSource | None = None,
    clock: Clock | None = None,
) -> SchedulerRuntime:
    if memory:
        channel_store: ChannelStore = InMemoryChannelStore()
        event_store: ScheduleEventStore = InMemoryScheduleEventStore()
        cursor_store: CursorStore = InMemoryCursorStore()
    else:
        channel_store = SqlChannelStore()
        event_store = SqlScheduleEventStore()
        cursor_store = SqlCursorStore()

    feeds = feed_source or MrssFeedSource(
        timeout_seconds=settings.feed_timeout_seconds,
        user_agent=settings.feed_user_agent,
    )
    orchestrator = SchedulerOrchestrator(
        channel_store,
        feeds,
        event_store,
        cursor_store,
        config=SchedulerConfig.from_settings(settings),
        clock=clock,
    )
    return SchedulerRuntime(
        channel_store=channel_store,
        event_store=event_store,
        cursor_store=cursor_store,
        feed_source=feeds,
        orchestrator=orchestrator,
    )

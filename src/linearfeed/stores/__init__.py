"""Store adapters (SQL and in-memory) behind the protocols in interfaces.py."""

from .interfaces import ChannelStore, CursorStore, FeedSource, ScheduleEventStore
from .memory import (
    InMemoryChannelStore,
    InMemoryCursorStore,
    InMemoryScheduleEventStore,
    StaticFeedSource,
)
from .sql import SqlChannelStore, SqlCursorStore, SqlScheduleEventStore

__all__ = [
    "ChannelStore",
    "CursorStore",
    "FeedSource",
    "ScheduleEventStore",
    "InMemoryChannelStore",
    "InMemoryCursorStore",
    "InMemoryScheduleEventStore",
    "StaticFeedSource",
    "SqlChannelStore",
    "SqlCursorStore",
    "SqlScheduleEventStore",
]

"""
Persistent entities for linearfeed.

SQLAlchemy models for channels, schedule events and scheduler cursors, with
conversions to and from the value types in :mod:`linearfeed.domain.types`.
The scheduling core only ever sees the value types.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy import (
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from ..infra.db import Base
from .types import (
    Channel,
    ChannelType,
    EventStatus,
    ScheduleEvent,
    SchedulerCursor,
)


class ChannelRecord(Base):
    """Tenant-owned channel. Written by the channel API/CLI, read by the scheduler."""

    __tablename__ = "channels"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    tenant: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[ChannelType] = mapped_column(
        SQLEnum(
            ChannelType,
            name="channel_type",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
    )
    feed_urls: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    horizon_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def to_domain(self) -> Channel:
        return Channel(
            id=self.id,
            tenant=self.tenant,
            title=self.title,
            type=ChannelType(self.type),
            feed_urls=tuple(self.feed_urls or ()),
            horizon_minutes=self.horizon_minutes,
        )

    @classmethod
    def from_domain(cls, channel: Channel) -> ChannelRecord:
        return cls(
            id=channel.id,
            tenant=channel.tenant,
            title=channel.title,
            type=channel.type,
            feed_urls=list(channel.feed_urls),
            horizon_minutes=channel.horizon_minutes,
        )

    def __repr__(self) -> str:
        return f"<ChannelRecord(id={self.id}, tenant={self.tenant}, type={self.type})>"


class ScheduleEventRecord(Base):
    """One placed event. ``(channel_id, sequence)`` is the write-once idempotency key."""

    __tablename__ = "schedule_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    channel_id: Mapped[str] = mapped_column(String(255), nullable=False)
    sequence: Mapped[int] = mapped_column(BigInteger, nullable=False)
    start_utc_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
    end_utc_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
    item_guid: Mapped[str] = mapped_column(String(1024), nullable=False)
    title: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    loop: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[EventStatus] = mapped_column(
        SQLEnum(
            EventStatus,
            name="event_status",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=EventStatus.PLANNED,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("channel_id", "sequence", name="uq_schedule_events_channel_sequence"),
        Index("ix_schedule_events_channel_start", "channel_id", "start_utc_ms"),
    )

    def to_domain(self) -> ScheduleEvent:
        return ScheduleEvent(
            channel_id=self.channel_id,
            sequence=self.sequence,
            start_utc_ms=self.start_utc_ms,
            end_utc_ms=self.end_utc_ms,
            item_guid=self.item_guid,
            title=self.title,
            loop=self.loop,
            status=EventStatus(self.status),
        )

    @classmethod
    def from_domain(cls, event: ScheduleEvent) -> ScheduleEventRecord:
        return cls(
            channel_id=event.channel_id,
            sequence=event.sequence,
            start_utc_ms=event.start_utc_ms,
            end_utc_ms=event.end_utc_ms,
            item_guid=event.item_guid,
            title=event.title,
            loop=event.loop,
            status=event.status,
        )

    def __repr__(self) -> str:
        return (
            f"<ScheduleEventRecord(channel_id={self.channel_id}, sequence={self.sequence}, "
            f"start={self.start_utc_ms}, end={self.end_utc_ms}, status={self.status})>"
        )


class SchedulerCursorRecord(Base):
    """Scheduler-owned progress marker, one row per channel."""

    __tablename__ = "scheduler_cursors"

    channel_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    last_scheduled_end_utc_ms: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    last_sequence: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    last_item_guid: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    last_loop: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    feed_revision: Mapped[str | None] = mapped_column(String(64), nullable=True)
    last_run_utc_ms: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def to_domain(self) -> SchedulerCursor:
        return SchedulerCursor(
            last_scheduled_end_utc_ms=self.last_scheduled_end_utc_ms,
            last_sequence=self.last_sequence,
            last_item_guid=self.last_item_guid,
            last_loop=self.last_loop,
            feed_revision=self.feed_revision,
            last_run_utc_ms=self.last_run_utc_ms,
        )

    def apply(self, cursor: SchedulerCursor) -> None:
        values: dict[str, Any] = {
            "last_scheduled_end_utc_ms": cursor.last_scheduled_end_utc_ms,
            "last_sequence": cursor.last_sequence,
            "last_item_guid": cursor.last_item_guid,
            "last_loop": cursor.last_loop,
            "feed_revision": cursor.feed_revision,
            "last_run_utc_ms": cursor.last_run_utc_ms,
        }
        for name, value in values.items():
            setattr(self, name, value)

    def __repr__(self) -> str:
        return (
            f"<SchedulerCursorRecord(channel_id={self.channel_id}, "
            f"end={self.last_scheduled_end_utc_ms}, sequence={self.last_sequence})>"
        )

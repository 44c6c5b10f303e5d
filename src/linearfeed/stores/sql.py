"""
SQLAlchemy-backed stores.

Thin repositories over the Unit of Work in :mod:`linearfeed.infra.uow`. Each
public call opens one session, so a schedule batch commits or rolls back as a
single transaction. SQLAlchemy errors are translated into the scheduler's
PersistenceError / WriteConflictError taxonomy at this boundary.
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import and_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..domain.entities import ChannelRecord, ScheduleEventRecord, SchedulerCursorRecord
from ..domain.types import (
    Channel,
    EventStatus,
    ScheduleEvent,
    SchedulerCursor,
    ScheduleRange,
)
from ..infra.exceptions import PersistenceError, ValidationError, WriteConflictError
from ..infra.uow import session


class SqlChannelStore:
    """
    Repository for channel reads and the channel create path.

    The scheduler only reads through ``list_all``/``list_by_tenant``.
    """

    def __init__(self, factory: sessionmaker | None = None):
        """
        Initialize the repository.

        Args:
            factory: Session factory; defaults to the application SessionLocal
        """
        self._factory = factory

    def list_all(self) -> list[Channel]:
        try:
            with session(self._factory) as db:
                rows = db.scalars(select(ChannelRecord).order_by(ChannelRecord.id)).all()
                return [row.to_domain() for row in rows]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to list channels: {exc}") from exc

    def list_by_tenant(self, tenant: str) -> list[Channel]:
        stmt = (
            select(ChannelRecord)
            .where(ChannelRecord.tenant == tenant)
            .order_by(ChannelRecord.id)
        )
        try:
            with session(self._factory) as db:
                return [row.to_domain() for row in db.scalars(stmt).all()]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to list channels of {tenant}: {exc}") from exc

    def get(self, channel_id: str) -> Channel | None:
        try:
            with session(self._factory) as db:
                row = db.get(ChannelRecord, channel_id)
                return row.to_domain() if row is not None else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to read channel {channel_id}: {exc}") from exc

    def add(self, channel: Channel) -> Channel:
        """
        Create a channel.

        Raises:
            ValidationError: If a channel with the same id already exists
            PersistenceError: If the write fails for any other reason
        """
        try:
            with session(self._factory) as db:
                if db.get(ChannelRecord, channel.id) is not None:
                    raise ValidationError(f"Channel with ID {channel.id} already exists")
                db.add(ChannelRecord.from_domain(channel))
        except IntegrityError as exc:
            raise ValidationError(f"Channel with ID {channel.id} already exists") from exc
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to add channel {channel.id}: {exc}") from exc
        return channel


class SqlScheduleEventStore:
    """
    Repository for schedule events.

    ``add`` is write-once per (channel_id, sequence): identical re-inserts are
    skipped, a different event under a taken key raises WriteConflictError and
    the whole batch rolls back.
    """

    def __init__(self, factory: sessionmaker | None = None):
        self._factory = factory

    def get_schedule_events_by_channel_id(
        self, channel_id: str, range: ScheduleRange | None = None
    ) -> list[ScheduleEvent]:
        selector = range or ScheduleRange()
        stmt = select(ScheduleEventRecord).where(ScheduleEventRecord.channel_id == channel_id)
        if not selector.is_explicit:
            stmt = stmt.where(ScheduleEventRecord.status == EventStatus.PLANNED)
        else:
            start, end = selector.bounds()
            if start is not None:
                stmt = stmt.where(ScheduleEventRecord.end_utc_ms > start)
            if end is not None:
                stmt = stmt.where(ScheduleEventRecord.start_utc_ms < end)
        stmt = stmt.order_by(ScheduleEventRecord.start_utc_ms, ScheduleEventRecord.sequence)
        try:
            with session(self._factory) as db:
                return [row.to_domain() for row in db.scalars(stmt).all()]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to read schedule for {channel_id}: {exc}") from exc

    def get_tail(self, channel_id: str) -> ScheduleEvent | None:
        stmt = (
            select(ScheduleEventRecord)
            .where(ScheduleEventRecord.channel_id == channel_id)
            .order_by(ScheduleEventRecord.sequence.desc())
            .limit(1)
        )
        try:
            with session(self._factory) as db:
                row = db.scalars(stmt).first()
                return row.to_domain() if row is not None else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to read schedule tail for {channel_id}: {exc}") from exc

    def add(self, events: Sequence[ScheduleEvent]) -> int:
        if not events:
            return 0
        channel_ids = {e.channel_id for e in events}
        if len(channel_ids) != 1:
            raise ValueError("a schedule batch must belong to a single channel")
        channel_id = next(iter(channel_ids))
        sequences = [e.sequence for e in events]

        try:
            with session(self._factory) as db:
                existing_stmt = select(ScheduleEventRecord).where(
                    and_(
                        ScheduleEventRecord.channel_id == channel_id,
                        ScheduleEventRecord.sequence.in_(sequences),
                    )
                )
                existing = {
                    row.sequence: row.to_domain() for row in db.scalars(existing_stmt).all()
                }
                inserted = 0
                for event in events:
                    current = existing.get(event.sequence)
                    if current is not None:
                        if not current.same_placement(event):
                            raise WriteConflictError(channel_id, event.sequence)
                        continue
                    db.add(ScheduleEventRecord.from_domain(event))
                    inserted += 1
                db.flush()
                return inserted
        except WriteConflictError:
            raise
        except IntegrityError as exc:
            # A concurrent writer took one of the keys between our read and flush
            raise WriteConflictError(
                channel_id, sequences[0], f"concurrent write on {channel_id}: {exc.orig}"
            ) from exc
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to write schedule for {channel_id}: {exc}") from exc

    def mark_expired(self, events: Sequence[ScheduleEvent]) -> int:
        if not events:
            return 0
        changed = 0
        try:
            with session(self._factory) as db:
                by_channel: dict[str, list[int]] = {}
                for event in events:
                    by_channel.setdefault(event.channel_id, []).append(event.sequence)
                for channel_id, sequences in by_channel.items():
                    result = db.execute(
                        update(ScheduleEventRecord)
                        .where(
                            ScheduleEventRecord.channel_id == channel_id,
                            ScheduleEventRecord.sequence.in_(sequences),
                            ScheduleEventRecord.status == EventStatus.PLANNED,
                        )
                        .values(status=EventStatus.EXPIRED)
                    )
                    changed += result.rowcount or 0
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to expire schedule events: {exc}") from exc
        return changed


class SqlCursorStore:
    """Repository for scheduler cursors (one row per channel)."""

    def __init__(self, factory: sessionmaker | None = None):
        self._factory = factory

    def get(self, channel_id: str) -> SchedulerCursor | None:
        try:
            with session(self._factory) as db:
                row = db.get(SchedulerCursorRecord, channel_id)
                return row.to_domain() if row is not None else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to read cursor for {channel_id}: {exc}") from exc

    def save(self, channel_id: str, cursor: SchedulerCursor) -> None:
        try:
            with session(self._factory) as db:
                row = db.get(SchedulerCursorRecord, channel_id)
                if row is None:
                    row = SchedulerCursorRecord(channel_id=channel_id)
                    db.add(row)
                row.apply(cursor)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to save cursor for {channel_id}: {exc}") from exc

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

"""
Create channels, schedule_events and scheduler_cursors tables.

Revision ID: 20261019_000100_scheduler
Revises:
Create Date: 2026-10-19 00:01:00.000000
"""


# revision identifiers, used by Alembic.
revision: str = "20261019_000100_scheduler"
down_revision: str | None = None
branch_labels: str | None = None
depends_on: str | None = None


def upgrade() -> None:
    channel_type = sa.Enum("mrss", "playlist", name="channel_type")
    event_status = sa.Enum("planned", "expired", name="event_status")

    op.create_table(
        "channels",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("tenant", sa.String(length=255), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("type", channel_type, nullable=False),
        sa.Column("feed_urls", sa.JSON(), nullable=False),
        sa.Column("horizon_minutes", sa.Integer(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("id", name="pk_channels"),
    )
    op.create_index("ix_channels_tenant", "channels", ["tenant"])

    op.create_table(
        "schedule_events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("channel_id", sa.String(length=255), nullable=False),
        sa.Column("sequence", sa.BigInteger(), nullable=False),
        sa.Column("start_utc_ms", sa.BigInteger(), nullable=False),
        sa.Column("end_utc_ms", sa.BigInteger(), nullable=False),
        sa.Column("item_guid", sa.String(length=1024), nullable=False),
        sa.Column("title", sa.String(length=1024), nullable=False),
        sa.Column("loop", sa.Integer(), nullable=False),
        sa.Column("status", event_status, nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("id", name="pk_schedule_events"),
        sa.UniqueConstraint(
            "channel_id", "sequence", name="uq_schedule_events_channel_sequence"
        ),
    )
    op.create_index(
        "ix_schedule_events_channel_start", "schedule_events", ["channel_id", "start_utc_ms"]
    )

    op.create_table(
        "scheduler_cursors",
        sa.Column("channel_id", sa.String(length=255), nullable=False),
        sa.Column("last_scheduled_end_utc_ms", sa.BigInteger(), nullable=False),
        sa.Column("last_sequence", sa.BigInteger(), nullable=False),
        sa.Column("last_item_guid", sa.String(length=1024), nullable=True),
        sa.Column("last_loop", sa.Integer(), nullable=False),
        sa.Column("feed_revision", sa.String(length=64), nullable=True),
        sa.Column("last_run_utc_ms", sa.BigInteger(), nullable=True),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("channel_id", name="pk_scheduler_cursors"),
    )


def downgrade() -> None:
    op.drop_table("scheduler_cursors")
    op.drop_index("ix_schedule_events_channel_start", table_name="schedule_events")
    op.drop_table("schedule_events")
    op.drop_index("ix_channels_tenant", table_name="channels")
    op.drop_table("channels")
    sa.Enum(name="event_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="channel_type").drop(op.get_bind(), checkfirst=True)

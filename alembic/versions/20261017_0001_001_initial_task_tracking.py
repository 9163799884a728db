"""Initial task tracking schema.

This migration creates the four task tracking tables:
    - tasks: lifecycle status, timing fields and optimistic version counter
    - task_pauses: pause ledger, one row per pause interval
    - task_events: append-only audit log of lifecycle transitions
    - task_snapshots: point-in-time progress/time captures

Events and snapshots reference either the task or one pause entry through
(subject_kind, pause_id); a CHECK constraint keeps the pair consistent.
The partial unique index ux_task_pauses_active allows at most one open
pause per task.

Revision ID: 001_initial_task_tracking
Revises:
Create Date: 2026-10-17

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial_task_tracking"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

taskstatus = postgresql.ENUM(
    "pending", "in_progress", "paused", "completed", name="taskstatus", create_type=False
)
prioritylevel = postgresql.ENUM("low", "medium", "high", name="prioritylevel", create_type=False)
eventtype = postgresql.ENUM(
    "started", "paused", "resumed", "completed", name="eventtype", create_type=False
)
snapshottype = postgresql.ENUM(
    "pause", "resume", "milestone", name="snapshottype", create_type=False
)
subjectkind = postgresql.ENUM("task", "pause", name="subjectkind", create_type=False)
ENUM_TYPES = (taskstatus, prioritylevel, eventtype, snapshottype, subjectkind)

SUBJECT_CONSISTENT = (
    "(subject_kind = 'pause' AND pause_id IS NOT NULL) "
    "OR (subject_kind = 'task' AND pause_id IS NULL)"
)


def _subject_columns() -> list[sa.Column]:
    return [
        sa.Column("subject_kind", subjectkind, nullable=False),
        sa.Column(
            "pause_id",
            sa.Uuid(),
            sa.ForeignKey("task_pauses.id", ondelete="CASCADE"),
            nullable=True,
        ),
    ]


def upgrade() -> None:
    """Create task tracking tables, enums and indexes."""
    # Types are created once up front; subjectkind is shared by two tables
    bind = op.get_bind()
    for enum_type in ENUM_TYPES:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "tasks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("account_id", sa.Uuid(), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("priority", prioritylevel, nullable=False, server_default="low"),
        sa.Column("status", taskstatus, nullable=False, server_default="pending"),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_working_time", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("pause_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_resumed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("total_working_time >= 0", name="ck_tasks_working_time_non_negative"),
        sa.CheckConstraint("pause_count >= 0", name="ck_tasks_pause_count_non_negative"),
    )
    op.create_index("ix_tasks_user_id", "tasks", ["user_id"])
    op.create_index("ix_tasks_account_id", "tasks", ["account_id"])
    op.create_index("ix_tasks_status", "tasks", ["status"])
    op.create_index("ix_tasks_due_at", "tasks", ["due_at"])
    op.create_index("ix_tasks_user_id_status", "tasks", ["user_id", "status"])

    op.create_table(
        "task_pauses",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "task_id",
            sa.Uuid(),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("paused_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resumed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("work_duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("reason", sa.String(50), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("progress_percentage", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "progress_percentage >= 0 AND progress_percentage <= 100",
            name="ck_task_pauses_progress_range",
        ),
    )
    op.create_index("ix_task_pauses_reason", "task_pauses", ["reason"])
    op.create_index("ix_task_pauses_task_id_paused_at", "task_pauses", ["task_id", "paused_at"])

    # At most one open pause per task
    op.create_index(
        "ux_task_pauses_active",
        "task_pauses",
        ["task_id"],
        unique=True,
        postgresql_where=sa.text("resumed_at IS NULL"),
    )

    op.create_table(
        "task_events",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "task_id",
            sa.Uuid(),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        *_subject_columns(),
        sa.Column("event_type", eventtype, nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(SUBJECT_CONSISTENT, name="ck_task_events_subject"),
    )
    op.create_index("ix_task_events_event_type", "task_events", ["event_type"])
    op.create_index("ix_task_events_task_id_created_at", "task_events", ["task_id", "created_at"])

    op.create_table(
        "task_snapshots",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "task_id",
            sa.Uuid(),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        *_subject_columns(),
        sa.Column("snapshot_type", snapshottype, nullable=False),
        sa.Column("progress_at_snapshot", sa.Integer(), nullable=True),
        sa.Column("total_time_at_snapshot", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("state_data", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(SUBJECT_CONSISTENT, name="ck_task_snapshots_subject"),
    )
    op.create_index(
        "ix_task_snapshots_task_id_created_at", "task_snapshots", ["task_id", "created_at"]
    )


def downgrade() -> None:
    """Drop task tracking tables and enum types."""
    op.drop_index("ix_task_snapshots_task_id_created_at", table_name="task_snapshots")
    op.drop_table("task_snapshots")

    op.drop_index("ix_task_events_task_id_created_at", table_name="task_events")
    op.drop_index("ix_task_events_event_type", table_name="task_events")
    op.drop_table("task_events")

    op.drop_index("ux_task_pauses_active", table_name="task_pauses")
    op.drop_index("ix_task_pauses_task_id_paused_at", table_name="task_pauses")
    op.drop_index("ix_task_pauses_reason", table_name="task_pauses")
    op.drop_table("task_pauses")

    op.drop_index("ix_tasks_user_id_status", table_name="tasks")
    op.drop_index("ix_tasks_due_at", table_name="tasks")
    op.drop_index("ix_tasks_status", table_name="tasks")
    op.drop_index("ix_tasks_account_id", table_name="tasks")
    op.drop_index("ix_tasks_user_id", table_name="tasks")
    op.drop_table("tasks")

    bind = op.get_bind()
    for enum_type in reversed(ENUM_TYPES):
        enum_type.drop(bind, checkfirst=True)

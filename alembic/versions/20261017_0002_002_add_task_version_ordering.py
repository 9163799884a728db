"""002 add task_version to events and snapshots

Revision ID: 002_add_task_version_ordering
Revises: 001_initial_task_tracking
Create Date: 2026-10-17

Adds task_version to task_events and task_snapshots. It holds the Task.version
written by the transition that recorded the row and orders rows that share a
created_at (two transitions in the same instant).

Existing rows are backfilled with 0, so their relative order stays by
created_at only. The (task_id, created_at) indexes are rebuilt to include
task_version.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002_add_task_version_ordering"
down_revision: str | None = "001_initial_task_tracking"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

TABLES = ("task_events", "task_snapshots")


def upgrade() -> None:
    """Add task_version columns and widen the ordering indexes."""
    for table in TABLES:
        op.add_column(
            table,
            sa.Column("task_version", sa.Integer(), nullable=False, server_default="0"),
        )
        op.alter_column(table, "task_version", server_default=None)

        index = f"ix_{table}_task_id_created_at"
        op.drop_index(index, table_name=table)
        op.create_index(index, table, ["task_id", "created_at", "task_version"])


def downgrade() -> None:
    """Restore the two-column indexes and drop task_version."""
    for table in TABLES:
        index = f"ix_{table}_task_id_created_at"
        op.drop_index(index, table_name=table)
        op.create_index(index, table, ["task_id", "created_at"])

        op.drop_column(table, "task_version")

"""Snapshot queries with progress/time deltas.

Each delta is taken against the immediately preceding snapshot of the same
task by created_at, then task_version for snapshots written in one instant.
The first snapshot's delta is its own value.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.models import TaskSnapshot
from tracker.schemas.report import SnapshotResponse


async def load_snapshots(session: AsyncSession, task_id: uuid.UUID) -> list[TaskSnapshot]:
    """Snapshots for a task in chronological order."""
    result = await session.execute(
        select(TaskSnapshot)
        .where(TaskSnapshot.task_id == task_id)
        .order_by(TaskSnapshot.created_at.asc(), TaskSnapshot.task_version.asc())
    )
    return list(result.scalars().all())


def with_deltas(snapshots: list[TaskSnapshot]) -> list[SnapshotResponse]:
    """Pair each chronologically ordered snapshot with its deltas."""
    responses = []
    previous = None
    for snapshot in snapshots:
        responses.append(
            SnapshotResponse(
                id=snapshot.id,
                task_id=snapshot.task_id,
                snapshot_type=snapshot.snapshot_type,
                subject_kind=snapshot.subject_kind,
                pause_id=snapshot.pause_id,
                progress_at_snapshot=snapshot.progress_at_snapshot,
                total_time_at_snapshot=snapshot.total_time_at_snapshot,
                task_version=snapshot.task_version,
                state_data=snapshot.state_data,
                progress_change=snapshot.progress_change_since(previous),
                time_change=snapshot.time_change_since(previous),
                created_at=snapshot.created_at,
            )
        )
        previous = snapshot
    return responses


async def list_snapshots_with_deltas(
    session: AsyncSession, task_id: uuid.UUID
) -> list[SnapshotResponse]:
    """Chronological snapshots of a task, each annotated with its deltas."""
    return with_deltas(await load_snapshots(session, task_id))

"""Task CRUD service.

This module provides task record management outside the lifecycle state machine:
- Task creation (always pending, timing fields unset)
- Scoped lookups that fail closed on dangling or foreign references
- Partial updates of descriptive fields (never status or timing)
- Deletion, cascading to the pause ledger, events and snapshots

Architecture:
- Functions take the caller's AsyncSession; the caller owns the transaction
- Status changes only through TaskLifecycleService
"""

import uuid

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.exceptions import TaskNotFoundError
from tracker.models import Task, TaskEvent, TaskPause, TaskSnapshot, TaskStatus
from tracker.schemas.task import TaskCreate, TaskUpdate
from tracker.services.lifecycle_service import scoped_task_query
from tracker.utils.logging import get_logger

log = get_logger(__name__)


async def create_task(
    session: AsyncSession,
    user_id: uuid.UUID,
    data: TaskCreate,
    account_id: uuid.UUID | None = None,
) -> Task:
    """Create a pending task owned by ``user_id``.

    Args:
        session: Database session (must be active transaction)
        user_id: Owning user, supplied by the auth collaborator
        data: Validated creation payload
        account_id: Tenant account, if any

    Returns:
        The flushed Task (id assigned)
    """
    task = Task(
        user_id=user_id,
        account_id=account_id,
        title=data.title,
        description=data.description,
        priority=data.priority,
        due_at=data.due_at,
        status=TaskStatus.PENDING,
        total_working_time=0,
        pause_count=0,
    )
    session.add(task)
    await session.flush()

    log.info(
        "task_created",
        task_id=str(task.id),
        user_id=str(user_id),
        priority=task.priority.value,
    )
    return task


async def get_task(
    session: AsyncSession,
    task_id: uuid.UUID,
    user_id: uuid.UUID | None = None,
    account_id: uuid.UUID | None = None,
) -> Task:
    """Load one task within the caller's scope.

    Raises:
        TaskNotFoundError: If the task does not exist or belongs to another
            user/account.
    """
    result = await session.execute(scoped_task_query(task_id, user_id, account_id))
    task = result.scalar_one_or_none()
    if task is None:
        log.warning(
            "task_not_found",
            task_id=str(task_id),
            user_id=str(user_id) if user_id else None,
        )
        raise TaskNotFoundError(task_id)
    return task


async def list_tasks(
    session: AsyncSession,
    user_id: uuid.UUID,
    account_id: uuid.UUID | None = None,
    status: TaskStatus | None = None,
) -> list[Task]:
    """List a user's tasks, newest first, optionally filtered by status."""
    query = select(Task).where(Task.user_id == user_id)
    if account_id is not None:
        query = query.where(Task.account_id == account_id)
    if status is not None:
        query = query.where(Task.status == status)

    result = await session.execute(query.order_by(Task.created_at.desc()))
    return list(result.scalars().all())


async def update_task(
    session: AsyncSession,
    task_id: uuid.UUID,
    data: TaskUpdate,
    user_id: uuid.UUID | None = None,
    account_id: uuid.UUID | None = None,
) -> Task:
    """Apply a partial update to a task's descriptive fields.

    Raises:
        TaskNotFoundError: If the task is missing or out of scope.
    """
    task = await get_task(session, task_id, user_id=user_id, account_id=account_id)

    changes = data.model_dump(exclude_unset=True)
    if "title" in changes and changes["title"] is None:
        # title is NOT NULL; an explicit null is treated as "leave unchanged"
        del changes["title"]
    if "priority" in changes and changes["priority"] is None:
        del changes["priority"]

    for name, value in changes.items():
        setattr(task, name, value)
    await session.flush()

    log.info("task_updated", task_id=str(task_id), fields=sorted(changes))
    return task


async def delete_task(
    session: AsyncSession,
    task_id: uuid.UUID,
    user_id: uuid.UUID | None = None,
    account_id: uuid.UUID | None = None,
) -> None:
    """Delete a task together with its pauses, events and snapshots.

    Children are removed explicitly (snapshots and events before the pauses
    they may reference) so the result does not depend on the backend
    enforcing ON DELETE CASCADE.

    Raises:
        TaskNotFoundError: If the task is missing or out of scope.
    """
    task = await get_task(session, task_id, user_id=user_id, account_id=account_id)

    await session.execute(delete(TaskSnapshot).where(TaskSnapshot.task_id == task.id))
    await session.execute(delete(TaskEvent).where(TaskEvent.task_id == task.id))
    await session.execute(delete(TaskPause).where(TaskPause.task_id == task.id))
    await session.delete(task)
    await session.flush()

    log.info("task_deleted", task_id=str(task_id))

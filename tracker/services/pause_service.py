"""Pause orchestration for tasks.

PauseService sits above TaskLifecycleService on the pause/resume path. It
validates caller input, checks the task is in the required state with a
human-readable message, then delegates the transition itself. It also
exposes the aggregate pause statistics and pause history.

The precondition check here is advisory: it gives API callers a clear cause.
The authoritative check is repeated under the row lock inside the lifecycle
transaction, so a race between the two reads can still only fail cleanly.

Usage:
    service = PauseService(session_factory)
    pause = await service.pause(task_id, reason="break", progress=40)
    stats = await service.pause_stats(task_id)
"""

import uuid
from dataclasses import dataclass, field

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tracker.exceptions import InvalidStateTransitionError, ValidationFailedError
from tracker.models import Task, TaskPause, TaskStatus
from tracker.schemas.pause import PauseRequest
from tracker.services.lifecycle_service import TaskLifecycleService
from tracker.services.reporting import load_pauses, pauses_by_reason
from tracker.services.task_service import get_task
from tracker.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class PauseStats:
    """Aggregate pause statistics for one task.

    Attributes:
        total_pauses: Number of pause entries (Task.pause_count).
        total_pause_duration: Seconds paused across completed pauses only;
            the still-active pause is excluded.
        total_working_time: Task.total_working_time.
        average_pause_duration: total_pause_duration // completed pauses (0 if none).
        pauses_by_reason: Pause count per reason.
        current_pause: The active pause entry, if the task is paused.
    """

    total_pauses: int
    total_pause_duration: int
    total_working_time: int
    average_pause_duration: int
    pauses_by_reason: dict[str, int] = field(default_factory=dict)
    current_pause: TaskPause | None = None


def validate_pause_request(
    reason: str,
    comment: str | None = None,
    progress: int | None = None,
) -> PauseRequest:
    """Validate raw pause parameters.

    Raises:
        ValidationFailedError: With one message per offending field.
    """
    try:
        return PauseRequest(reason=reason, comment=comment, progress=progress)
    except ValidationError as e:
        errors = {
            ".".join(str(part) for part in error["loc"]): error["msg"] for error in e.errors()
        }
        raise ValidationFailedError("Invalid pause parameters", errors=errors) from e


def summarize_pauses(task: Task, pauses: list[TaskPause]) -> PauseStats:
    """Compute PauseStats from a task and its loaded pause entries."""
    completed = [pause for pause in pauses if not pause.is_active]
    total_pause_duration = sum(pause.pause_duration for pause in completed)

    return PauseStats(
        total_pauses=task.pause_count,
        total_pause_duration=total_pause_duration,
        total_working_time=task.total_working_time,
        average_pause_duration=total_pause_duration // len(completed) if completed else 0,
        pauses_by_reason=pauses_by_reason(pauses),
        current_pause=next((pause for pause in pauses if pause.is_active), None),
    )


class PauseService:
    """Validated pause/resume operations plus pause statistics.

    Args:
        session_factory: Factory for read sessions.
        lifecycle: Lifecycle service performing the transitions (default: one
            built on the same session factory).
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        lifecycle: TaskLifecycleService | None = None,
    ):
        self._session_factory = session_factory
        self._lifecycle = lifecycle or TaskLifecycleService(session_factory)

    async def pause(
        self,
        task_id: uuid.UUID,
        reason: str,
        comment: str | None = None,
        progress: int | None = None,
        user_id: uuid.UUID | None = None,
        account_id: uuid.UUID | None = None,
    ) -> TaskPause:
        """Pause an in-progress task.

        Returns:
            The new (active) pause entry.

        Raises:
            ValidationFailedError: Blank/oversized reason or progress outside 0-100.
            InvalidStateTransitionError: Task is not in progress.
            TaskNotFoundError: Task missing or outside the caller's scope.
        """
        request = validate_pause_request(reason, comment, progress)

        async with self._session_factory() as session:
            task = await get_task(session, task_id, user_id=user_id, account_id=account_id)
            if task.status != TaskStatus.IN_PROGRESS:
                log.info(
                    "pause_rejected",
                    task_id=str(task_id),
                    current_status=task.status.value,
                )
                raise InvalidStateTransitionError(
                    "Task must be in progress to pause",
                    from_status=task.status,
                    to_status=TaskStatus.PAUSED,
                )

        return await self._lifecycle.pause(
            task_id,
            reason=request.reason,
            comment=request.comment,
            progress=request.progress,
            user_id=user_id,
            account_id=account_id,
        )

    async def resume(
        self,
        task_id: uuid.UUID,
        user_id: uuid.UUID | None = None,
        account_id: uuid.UUID | None = None,
    ) -> Task:
        """Resume a paused task.

        Raises:
            InvalidStateTransitionError: Task is not paused.
            TaskNotFoundError: Task missing or outside the caller's scope.
        """
        async with self._session_factory() as session:
            task = await get_task(session, task_id, user_id=user_id, account_id=account_id)
            if task.status != TaskStatus.PAUSED:
                log.info(
                    "resume_rejected",
                    task_id=str(task_id),
                    current_status=task.status.value,
                )
                raise InvalidStateTransitionError(
                    "Task must be paused to resume",
                    from_status=task.status,
                    to_status=TaskStatus.IN_PROGRESS,
                )

        return await self._lifecycle.resume(task_id, user_id=user_id, account_id=account_id)

    async def pause_stats(
        self,
        task_id: uuid.UUID,
        user_id: uuid.UUID | None = None,
        account_id: uuid.UUID | None = None,
    ) -> PauseStats:
        """Aggregate pause statistics for a task.

        Raises:
            TaskNotFoundError: Task missing or outside the caller's scope.
        """
        async with self._session_factory() as session:
            task = await get_task(session, task_id, user_id=user_id, account_id=account_id)
            pauses = await load_pauses(session, task.id)
        return summarize_pauses(task, pauses)

    async def pause_history(
        self,
        task_id: uuid.UUID,
        user_id: uuid.UUID | None = None,
        account_id: uuid.UUID | None = None,
    ) -> list[TaskPause]:
        """Pause entries for a task, most recent first (paused_at descending)."""
        async with self._session_factory() as session:
            task = await get_task(session, task_id, user_id=user_id, account_id=account_id)
            pauses = await load_pauses(session, task.id)
        return list(reversed(pauses))

"""Task routes.

This module provides the FastAPI routes for task management and lifecycle:
- POST   /api/v1/tasks                      - Create task
- GET    /api/v1/tasks                      - Tasks grouped by status
- GET    /api/v1/tasks/{id}                 - Full task report
- PATCH  /api/v1/tasks/{id}                 - Update descriptive fields
- DELETE /api/v1/tasks/{id}                 - Delete task and its history
- POST   /api/v1/tasks/{id}/start|pause|resume|complete
- GET    /api/v1/tasks/{id}/pause-history|pause-stats|events|snapshots|timeline

Pattern:
- Caller identity comes from trusted gateway headers (X-User-Id, X-Account-Id)
- Every task lookup is scoped to that caller; foreign ids are 404
- Lifecycle routes delegate to the services, which own their transactions
- Domain errors propagate to the exception handlers registered in main.py
"""

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from fastapi import APIRouter, Depends, Header, Response, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tracker.database import get_session, get_session_factory
from tracker.domain_events import log_domain_event
from tracker.models import utcnow
from tracker.schemas.pause import (
    PauseRequest,
    PauseResponse,
    PauseResultResponse,
    PauseStatsResponse,
)
from tracker.schemas.report import EventResponse, SnapshotResponse, TaskReport, TimelineEntry
from tracker.schemas.task import TaskCreate, TaskResponse, TaskSummary, TaskUpdate
from tracker.services import reporting, task_service
from tracker.services.lifecycle_service import TaskLifecycleService
from tracker.services.pause_service import PauseService
from tracker.services.snapshot_service import list_snapshots_with_deltas

router = APIRouter(prefix="/api/v1/tasks", tags=["tasks"])


@dataclass(frozen=True)
class Caller:
    """Authenticated actor and tenant, as asserted by the upstream gateway."""

    user_id: uuid.UUID
    account_id: uuid.UUID | None = None


def get_caller(
    x_user_id: uuid.UUID = Header(...),
    x_account_id: uuid.UUID | None = Header(default=None),
) -> Caller:
    return Caller(user_id=x_user_id, account_id=x_account_id)


def get_clock() -> Callable[[], datetime]:
    """Clock dependency (overridden in tests)."""
    return utcnow


def get_lifecycle_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> TaskLifecycleService:
    return TaskLifecycleService(session_factory, clock=clock, event_handler=log_domain_event)


def get_pause_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    lifecycle: TaskLifecycleService = Depends(get_lifecycle_service),
) -> PauseService:
    return PauseService(session_factory, lifecycle=lifecycle)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=TaskResponse)
async def create_task(
    data: TaskCreate,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> TaskResponse:
    task = await task_service.create_task(
        session, caller.user_id, data, account_id=caller.account_id
    )
    return TaskResponse.model_validate(task)


@router.get("", response_model=dict[str, list[TaskSummary]])
async def list_tasks(
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict[str, list[TaskSummary]]:
    """Caller's tasks bucketed by status; every status key is present."""
    tasks = await task_service.list_tasks(session, caller.user_id, account_id=caller.account_id)
    return reporting.group_tasks_by_status(tasks)


@router.get("/{task_id}", response_model=TaskReport)
async def get_task_report(
    task_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> TaskReport:
    task = await task_service.get_task(
        session, task_id, user_id=caller.user_id, account_id=caller.account_id
    )
    pauses = await reporting.load_pauses(session, task.id)
    return reporting.build_task_report(task, pauses, now=clock())


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: uuid.UUID,
    data: TaskUpdate,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> TaskResponse:
    task = await task_service.update_task(
        session, task_id, data, user_id=caller.user_id, account_id=caller.account_id
    )
    return TaskResponse.model_validate(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> Response:
    await task_service.delete_task(
        session, task_id, user_id=caller.user_id, account_id=caller.account_id
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{task_id}/start", response_model=TaskResponse)
async def start_task(
    task_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    lifecycle: TaskLifecycleService = Depends(get_lifecycle_service),
) -> TaskResponse:
    task = await lifecycle.start(task_id, user_id=caller.user_id, account_id=caller.account_id)
    return TaskResponse.model_validate(task)


@router.post("/{task_id}/pause", response_model=PauseResultResponse)
async def pause_task(
    task_id: uuid.UUID,
    data: PauseRequest,
    caller: Caller = Depends(get_caller),
    pause_service: PauseService = Depends(get_pause_service),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> PauseResultResponse:
    """Pause an in-progress task.

    Returns the new pause entry with the updated task and pause statistics.

    Returns:
        200 OK: Task paused
        404 Not Found: Unknown task or owned by another user
        409 Conflict: Task is not in progress, or a concurrent change won
        422 Unprocessable Entity: Blank reason or progress outside 0-100
    """
    pause = await pause_service.pause(
        task_id,
        reason=data.reason,
        comment=data.comment,
        progress=data.progress,
        user_id=caller.user_id,
        account_id=caller.account_id,
    )
    stats = await pause_service.pause_stats(
        task_id, user_id=caller.user_id, account_id=caller.account_id
    )
    async with session_factory() as session:
        task = await task_service.get_task(
            session, task_id, user_id=caller.user_id, account_id=caller.account_id
        )

    return PauseResultResponse(
        pause=PauseResponse.model_validate(pause),
        task=TaskResponse.model_validate(task),
        stats=PauseStatsResponse.model_validate(stats),
    )


@router.post("/{task_id}/resume", response_model=TaskResponse)
async def resume_task(
    task_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    pause_service: PauseService = Depends(get_pause_service),
) -> TaskResponse:
    task = await pause_service.resume(
        task_id, user_id=caller.user_id, account_id=caller.account_id
    )
    return TaskResponse.model_validate(task)


@router.post("/{task_id}/complete", response_model=TaskResponse)
async def complete_task(
    task_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    lifecycle: TaskLifecycleService = Depends(get_lifecycle_service),
) -> TaskResponse:
    task = await lifecycle.complete(
        task_id, user_id=caller.user_id, account_id=caller.account_id
    )
    return TaskResponse.model_validate(task)


@router.get("/{task_id}/pause-history", response_model=list[PauseResponse])
async def pause_history(
    task_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    pause_service: PauseService = Depends(get_pause_service),
) -> list[PauseResponse]:
    """Pause entries, most recent first."""
    pauses = await pause_service.pause_history(
        task_id, user_id=caller.user_id, account_id=caller.account_id
    )
    return [PauseResponse.model_validate(pause) for pause in pauses]


@router.get("/{task_id}/pause-stats", response_model=PauseStatsResponse)
async def pause_stats(
    task_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    pause_service: PauseService = Depends(get_pause_service),
) -> PauseStatsResponse:
    stats = await pause_service.pause_stats(
        task_id, user_id=caller.user_id, account_id=caller.account_id
    )
    return PauseStatsResponse.model_validate(stats)


@router.get("/{task_id}/events", response_model=list[EventResponse])
async def list_events(
    task_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> list[EventResponse]:
    """Audit events, most recent first."""
    task = await task_service.get_task(
        session, task_id, user_id=caller.user_id, account_id=caller.account_id
    )
    return await reporting.list_events(session, task.id)


@router.get("/{task_id}/snapshots", response_model=list[SnapshotResponse])
async def list_snapshots(
    task_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> list[SnapshotResponse]:
    """Snapshots in chronological order with progress/time deltas."""
    task = await task_service.get_task(
        session, task_id, user_id=caller.user_id, account_id=caller.account_id
    )
    return await list_snapshots_with_deltas(session, task.id)


@router.get("/{task_id}/timeline", response_model=list[TimelineEntry])
async def task_timeline(
    task_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> list[TimelineEntry]:
    """Events and snapshots merged, most recent first, tagged by ``kind``."""
    task = await task_service.get_task(
        session, task_id, user_id=caller.user_id, account_id=caller.account_id
    )
    return await reporting.timeline(session, task.id)

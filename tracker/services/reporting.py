"""Read-only reporting over tasks, pauses, events and snapshots.

Nothing here mutates state. Derived values are computed from loaded rows
and an explicit ``now`` so a report is reproducible for a given instant.

Derived Values:
    - pause_number: 1-based ordinal among a task's pauses by paused_at
    - pause duration: 0 while active, else resumed_at - paused_at
    - total_elapsed_time: completed → updated_at - started_at,
      started → now - started_at, otherwise 0
    - productive_time_percentage: total_working_time / elapsed * 100 (2 dp)
    - current_session_duration: now - last_resumed_at while in progress
    - most_common_reason: highest count, ties to the smallest reason

Usage:
    pauses = await load_pauses(session, task.id)
    report = build_task_report(task, pauses, now=utcnow())
"""

import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.models import EventType, Task, TaskEvent, TaskPause, TaskStatus
from tracker.schemas.report import (
    EventResponse,
    PauseDetail,
    PauseExtreme,
    PauseHistorySection,
    Statistics,
    TaskDetails,
    TaskReport,
    TimelineEntry,
    TimeSummary,
)
from tracker.schemas.task import TaskSummary
from tracker.services.snapshot_service import list_snapshots_with_deltas
from tracker.utils.durations import elapsed_seconds, format_duration


async def load_pauses(session: AsyncSession, task_id: uuid.UUID) -> list[TaskPause]:
    """Pause entries of a task ordered by paused_at ascending."""
    result = await session.execute(
        select(TaskPause).where(TaskPause.task_id == task_id).order_by(TaskPause.paused_at.asc())
    )
    return list(result.scalars().all())


def total_elapsed_time(task: Task, now: datetime) -> int:
    if task.started_at is None:
        return 0
    if task.status == TaskStatus.COMPLETED:
        return elapsed_seconds(task.started_at, task.updated_at)
    return elapsed_seconds(task.started_at, now)


def productive_time_percentage(total_working_time: int, elapsed: int) -> float:
    """Share of elapsed time spent working, in percent rounded to 2 decimals.

    Example:
        >>> productive_time_percentage(50, 200)
        25.0
    """
    if elapsed == 0:
        return 0.0
    return round(total_working_time / elapsed * 100, 2)


def current_session_duration(task: Task, now: datetime) -> int:
    if task.status != TaskStatus.IN_PROGRESS:
        return 0
    return elapsed_seconds(task.last_resumed_at, now)


def pauses_by_reason(pauses: list[TaskPause]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for pause in pauses:
        counts[pause.reason] = counts.get(pause.reason, 0) + 1
    return counts


def most_common_reason(counts: dict[str, int]) -> str | None:
    """Reason with the highest count; ties go to the lexicographically smallest."""
    if not counts:
        return None
    reason, _ = min(counts.items(), key=lambda item: (-item[1], item[0]))
    return reason


def _extreme(pause: TaskPause | None) -> PauseExtreme | None:
    if pause is None:
        return None
    return PauseExtreme(
        id=pause.id,
        duration=pause.pause_duration,
        duration_formatted=format_duration(pause.pause_duration),
        reason=pause.reason,
        paused_at=pause.paused_at,
        resumed_at=pause.resumed_at,
    )


def _pause_detail(pause: TaskPause, number: int) -> PauseDetail:
    return PauseDetail(
        id=pause.id,
        pause_number=number,
        paused_at=pause.paused_at,
        resumed_at=pause.resumed_at,
        pause_duration=pause.pause_duration,
        pause_duration_formatted=format_duration(pause.pause_duration),
        work_before_pause=pause.work_duration,
        work_before_pause_formatted=format_duration(pause.work_duration),
        reason=pause.reason,
        comment=pause.comment,
        progress_percentage=pause.progress_percentage,
        is_active=pause.is_active,
    )


def build_task_report(task: Task, pauses: list[TaskPause], now: datetime) -> TaskReport:
    """Assemble the full report for one task.

    Args:
        task: The task.
        pauses: The task's pause entries ordered by paused_at ascending.
        now: Reference instant for in-progress elapsed and session time.
    """
    completed = [pause for pause in pauses if not pause.is_active]
    total_pause_time = sum(pause.pause_duration for pause in completed)
    average_pause = total_pause_time // len(completed) if completed else 0
    elapsed = total_elapsed_time(task, now)
    session_time = current_session_duration(task, now)
    counts = pauses_by_reason(pauses)

    # Numbered oldest first, listed newest first
    details = [_pause_detail(pause, number) for number, pause in enumerate(pauses, start=1)]
    details.reverse()

    return TaskReport(
        task_details=TaskDetails.model_validate(task),
        pause_history=PauseHistorySection(
            total_pauses=task.pause_count,
            pauses=details,
            total_pause_time=total_pause_time,
            total_pause_time_formatted=format_duration(total_pause_time),
        ),
        time_summary=TimeSummary(
            total_working_time=task.total_working_time,
            total_working_time_formatted=format_duration(task.total_working_time),
            total_pause_time=total_pause_time,
            total_pause_time_formatted=format_duration(total_pause_time),
            total_elapsed_time=elapsed,
            total_elapsed_time_formatted=format_duration(elapsed),
            productive_time_percentage=productive_time_percentage(task.total_working_time, elapsed),
            current_session_duration=session_time,
            current_session_duration_formatted=format_duration(session_time),
        ),
        statistics=Statistics(
            pause_count=task.pause_count,
            average_pause_duration=average_pause,
            average_pause_duration_formatted=format_duration(average_pause),
            longest_pause=_extreme(
                max(completed, key=lambda pause: pause.pause_duration, default=None)
            ),
            shortest_pause=_extreme(
                min(completed, key=lambda pause: pause.pause_duration, default=None)
            ),
            pauses_by_reason=counts,
            most_common_reason=most_common_reason(counts),
        ),
    )


def group_tasks_by_status(tasks: list[Task]) -> dict[str, list[TaskSummary]]:
    """Bucket task summaries under every status value, empty buckets included."""
    buckets: dict[str, list[TaskSummary]] = {status.value: [] for status in TaskStatus}
    for task in tasks:
        buckets[task.status.value].append(TaskSummary.model_validate(task))
    return buckets


def describe_event(event: TaskEvent, pause: TaskPause | None = None) -> str:
    """One-line description of an audit event.

    Args:
        event: The event.
        pause: The pause entry the event refers to (pause/resume events).
    """
    if event.event_type == EventType.PAUSED:
        return f"Task paused - {pause.reason}" if pause is not None else "Task paused"
    if event.event_type == EventType.RESUMED:
        if pause is None:
            return "Task resumed"
        return f"Task resumed after {pause.formatted_pause_duration}"
    if event.event_type == EventType.STARTED:
        return "Task started"
    return "Task completed"


async def list_events(session: AsyncSession, task_id: uuid.UUID) -> list[EventResponse]:
    """Audit events of a task, most recent first, with descriptions."""
    result = await session.execute(
        select(TaskEvent)
        .where(TaskEvent.task_id == task_id)
        .order_by(TaskEvent.created_at.desc(), TaskEvent.task_version.desc())
    )
    events = list(result.scalars().all())
    pauses = {pause.id: pause for pause in await load_pauses(session, task_id)}

    return [
        EventResponse(
            id=event.id,
            task_id=event.task_id,
            event_type=event.event_type,
            subject_kind=event.subject_kind,
            pause_id=event.pause_id,
            metadata=event.event_metadata,
            task_version=event.task_version,
            description=describe_event(event, pauses.get(event.pause_id)),
            created_at=event.created_at,
        )
        for event in events
    ]


async def timeline(session: AsyncSession, task_id: uuid.UUID) -> list[TimelineEntry]:
    """Events and snapshots of a task merged, most recent first.

    Rows sharing created_at are ordered by task_version, newest first. An
    event and a snapshot written by one transition share both, and the
    event is listed first.
    """
    entries: list[TimelineEntry] = [*await list_events(session, task_id)]
    entries.extend(await list_snapshots_with_deltas(session, task_id))
    # sorted() is stable under reverse=True, so ties keep events first
    return sorted(entries, key=lambda entry: (entry.created_at, entry.task_version), reverse=True)

"""Pydantic schemas for read-only task reporting.

TaskReport mirrors the four sections of the task detail view:
    - task_details: identity, status and timing anchors
    - pause_history: every pause entry with its ordinal and durations
    - time_summary: working/pause/elapsed totals and productivity
    - statistics: average, longest and shortest pause plus reason counts

Every surfaced duration (integer seconds) has a ``*_formatted`` sibling
rendered with format_duration ("1h 2m 5s").

Timeline entries are a discriminated union on ``kind`` ("event" or
"snapshot") so clients can render both record types from one list.
"""

from datetime import datetime
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from tracker.models import EventType, PriorityLevel, SnapshotType, SubjectKind, TaskStatus


class TaskDetails(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str | None = None
    priority: PriorityLevel
    status: TaskStatus
    due_at: datetime | None = None
    started_at: datetime | None = None
    last_resumed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class PauseDetail(BaseModel):
    """One pause entry as shown in the task report."""

    id: UUID
    pause_number: int = Field(..., description="1-based ordinal by paused_at")
    paused_at: datetime
    resumed_at: datetime | None = None
    pause_duration: int
    pause_duration_formatted: str
    work_before_pause: int
    work_before_pause_formatted: str
    reason: str
    comment: str | None = None
    progress_percentage: int
    is_active: bool


class PauseHistorySection(BaseModel):
    total_pauses: int
    pauses: list[PauseDetail]
    total_pause_time: int
    total_pause_time_formatted: str


class TimeSummary(BaseModel):
    """Working, pause and elapsed totals for one task."""

    total_working_time: int
    total_working_time_formatted: str
    total_pause_time: int
    total_pause_time_formatted: str
    total_elapsed_time: int
    total_elapsed_time_formatted: str
    productive_time_percentage: float = Field(
        ..., description="total_working_time / total_elapsed_time * 100, 2 decimals"
    )
    current_session_duration: int
    current_session_duration_formatted: str


class PauseExtreme(BaseModel):
    """Longest or shortest completed pause."""

    id: UUID
    duration: int
    duration_formatted: str
    reason: str
    paused_at: datetime
    resumed_at: datetime


class Statistics(BaseModel):
    pause_count: int
    average_pause_duration: int
    average_pause_duration_formatted: str
    longest_pause: PauseExtreme | None = None
    shortest_pause: PauseExtreme | None = None
    pauses_by_reason: dict[str, int]
    most_common_reason: str | None = Field(
        default=None,
        description="Highest count; ties go to the lexicographically smallest reason",
    )


class TaskReport(BaseModel):
    task_details: TaskDetails
    pause_history: PauseHistorySection
    time_summary: TimeSummary
    statistics: Statistics


class EventResponse(BaseModel):
    """Audit event with its rendered description."""

    kind: Literal["event"] = "event"
    id: UUID
    task_id: UUID
    event_type: EventType
    subject_kind: SubjectKind
    pause_id: UUID | None = None
    metadata: dict[str, Any]
    description: str
    task_version: int
    created_at: datetime


class SnapshotResponse(BaseModel):
    """Snapshot with deltas against the preceding snapshot of the same task."""

    kind: Literal["snapshot"] = "snapshot"
    id: UUID
    task_id: UUID
    snapshot_type: SnapshotType
    subject_kind: SubjectKind
    pause_id: UUID | None = None
    progress_at_snapshot: int | None = None
    total_time_at_snapshot: int
    state_data: dict[str, Any]
    progress_change: int | None = None
    time_change: int
    task_version: int
    created_at: datetime


TimelineEntry = Annotated[EventResponse | SnapshotResponse, Field(discriminator="kind")]

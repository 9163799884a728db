"""Pydantic schemas for validation and serialization."""

from tracker.schemas.pause import (
    PauseRequest,
    PauseResponse,
    PauseResultResponse,
    PauseStatsResponse,
)
from tracker.schemas.report import (
    EventResponse,
    SnapshotResponse,
    TaskReport,
    TimelineEntry,
)
from tracker.schemas.task import TaskCreate, TaskResponse, TaskSummary, TaskUpdate

__all__ = [
    "EventResponse",
    "PauseRequest",
    "PauseResponse",
    "PauseResultResponse",
    "PauseStatsResponse",
    "SnapshotResponse",
    "TaskCreate",
    "TaskReport",
    "TaskResponse",
    "TaskSummary",
    "TaskUpdate",
    "TimelineEntry",
]

"""Pydantic schemas for Task model validation and serialization.

This module defines Pydantic v2 schemas for creating, updating, and returning
Task model instances via the FastAPI API.

Schema Naming Convention:
    - TaskCreate: For POST requests (creating new tasks)
    - TaskUpdate: For PATCH requests (partial updates)
    - TaskResponse: For API responses (serializing from database)
    - TaskSummary: Compact row for the status-grouped task index

Status is deliberately absent from TaskCreate/TaskUpdate: it only changes
through the lifecycle endpoints (start/pause/resume/complete).
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tracker.models import PriorityLevel, TaskStatus


class TaskCreate(BaseModel):
    """Schema for creating a new task.

    Defaults:
        - priority: PriorityLevel.LOW
        - status: always pending (not settable)
    """

    title: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Task title (255 char limit, must not be blank)",
        examples=["Write quarterly report"],
    )
    description: str | None = Field(
        default=None,
        description="Optional free-text description",
    )
    priority: PriorityLevel = Field(
        default=PriorityLevel.LOW,
        description="Task priority (low/medium/high). Default: low.",
    )
    due_at: datetime | None = Field(
        default=None,
        description="Optional due timestamp",
    )

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be blank")
        return value.strip()


class TaskUpdate(BaseModel):
    """Schema for updating an existing task.

    All fields are optional to support partial updates. Use
    ``model_dump(exclude_unset=True)`` so omitted fields are left untouched.
    """

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    priority: PriorityLevel | None = None
    due_at: datetime | None = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("title must not be blank")
        return value.strip() if value is not None else value


class TaskResponse(BaseModel):
    """Schema for Task API responses.

    Serialization:
        Uses from_attributes=True to load directly from SQLAlchemy models.
        Enum values are serialized as strings (e.g., "in_progress", "high").
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    account_id: UUID | None = None
    title: str
    description: str | None = None
    priority: PriorityLevel
    status: TaskStatus
    due_at: datetime | None = None
    total_working_time: int
    pause_count: int
    started_at: datetime | None = None
    last_resumed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class TaskSummary(BaseModel):
    """Compact task row used in the status-grouped index."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str | None = None
    priority: PriorityLevel
    status: TaskStatus
    due_at: datetime | None = None
    pause_count: int
    total_working_time: int

"""Pydantic schemas for pause/resume input and pause ledger output."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator

from tracker.schemas.task import TaskResponse


class PauseRequest(BaseModel):
    """Caller input for pausing a task.

    progress must be an integer in [0, 100]; out-of-range values are
    rejected, never clamped.
    """

    reason: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Why work stopped (e.g. break, blocker, waiting_for_info)",
        examples=["break"],
    )
    comment: str | None = Field(default=None, description="Optional note")
    progress: StrictInt | None = Field(
        default=None,
        ge=0,
        le=100,
        description="Progress percentage at pause time (0-100)",
    )

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("reason must not be blank")
        return value.strip()


class PauseResponse(BaseModel):
    """Pause ledger entry as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    task_id: UUID
    paused_at: datetime
    resumed_at: datetime | None = None
    work_duration: int
    reason: str
    comment: str | None = None
    progress_percentage: int
    is_active: bool
    pause_duration: int
    formatted_pause_duration: str
    formatted_work_duration: str


class PauseStatsResponse(BaseModel):
    """Aggregate pause statistics for one task."""

    model_config = ConfigDict(from_attributes=True)

    total_pauses: int
    total_pause_duration: int
    total_working_time: int
    average_pause_duration: int
    pauses_by_reason: dict[str, int]
    current_pause: PauseResponse | None = None


class PauseResultResponse(BaseModel):
    """Response to a pause call: the new entry, the task and refreshed stats."""

    pause: PauseResponse
    task: TaskResponse
    stats: PauseStatsResponse

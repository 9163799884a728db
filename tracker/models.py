"""SQLAlchemy 2.0 ORM models.

This module contains all SQLAlchemy models for the task tracker.
All models use the Mapped[type] annotation pattern required by SQLAlchemy 2.0.

Tables:
    tasks: Task record with lifecycle status and cumulative timing fields.
    task_pauses: Pause ledger, one row per pause interval.
    task_events: Append-only audit log, one row per lifecycle transition.
    task_snapshots: Point-in-time progress/time captures for trend analysis.

Subject References:
    Events and snapshots point either at the task itself or at one pause
    entry. The reference is stored as a discriminant (subject_kind) plus a
    nullable pause_id, and exposed as the TaskRef | PauseRef variant through
    the ``subject`` property. A CHECK constraint keeps the two columns consistent.

Transitions:
    Task.start/pause/resume/complete are pure in-memory operations. They
    validate the source status, mutate timing fields, and return a
    TransitionResult with the new rows to add and the domain events to
    dispatch. Persistence and atomicity belong to TaskLifecycleService.
"""

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
    Uuid,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, validates

from tracker.domain_events import (
    BLOCKER_REASON,
    TASK_BLOCKED,
    TASK_COMPLETED,
    TASK_PAUSED,
    TASK_RESUMED,
    TASK_STARTED,
    DomainEvent,
)
from tracker.exceptions import InvalidStateTransitionError, ValidationFailedError
from tracker.utils.durations import elapsed_seconds, format_clock


def utcnow() -> datetime:
    """Get current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware DateTime that always round-trips as UTC.

    SQLite stores DateTime(timezone=True) without an offset, so values read
    back are naive. Naive values are interpreted as UTC on both bind and
    result so that arithmetic against utcnow() never mixes naive and aware.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Any) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: datetime | None, dialect: Any) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class TaskStatus(enum.Enum):
    """Task lifecycle status.

    Flow:
        pending → in_progress ⇄ paused
        in_progress → completed

    Terminal State:
        completed
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"


class PriorityLevel(enum.Enum):
    """Task priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class EventType(enum.Enum):
    """Audit event types, one per lifecycle transition."""

    STARTED = "started"
    PAUSED = "paused"
    RESUMED = "resumed"
    COMPLETED = "completed"


class SnapshotType(enum.Enum):
    """Snapshot types.

    RESUME is accepted by the schema but no transition currently emits it.
    """

    PAUSE = "pause"
    RESUME = "resume"
    MILESTONE = "milestone"


class SubjectKind(enum.Enum):
    """Discriminant for the object an event or snapshot refers to."""

    TASK = "task"
    PAUSE = "pause"


@dataclass(frozen=True)
class TaskRef:
    """Subject reference to the task itself (start/complete)."""

    task_id: uuid.UUID
    kind: ClassVar[SubjectKind] = SubjectKind.TASK


@dataclass(frozen=True)
class PauseRef:
    """Subject reference to a pause ledger entry (pause/resume)."""

    pause_id: uuid.UUID
    kind: ClassVar[SubjectKind] = SubjectKind.PAUSE


Subject = TaskRef | PauseRef


def _enum_column(enum_cls: type[enum.Enum], name: str) -> Enum:
    # Store enum.value (lowercase) not enum.name (UPPERCASE)
    return Enum(
        enum_cls,
        native_enum=True,
        name=name,
        values_callable=lambda x: [e.value for e in x],
    )


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


@dataclass
class TransitionResult:
    """Outcome of one in-memory lifecycle transition.

    Attributes:
        task: The mutated task.
        event: Audit event to append.
        pause: Pause entry created (pause) or closed (resume), if any.
        snapshot: Snapshot to append (pause and complete only).
        domain_events: Events to dispatch after the transaction commits.
    """

    task: "Task"
    event: "TaskEvent"
    pause: "TaskPause | None" = None
    snapshot: "TaskSnapshot | None" = None
    domain_events: list[DomainEvent] = field(default_factory=list)

    @property
    def new_records(self) -> list[Base]:
        """Rows that must be added to the session (the pause only when new)."""
        records: list[Base] = [self.event]
        if self.pause is not None and self.pause.resumed_at is None:
            records.insert(0, self.pause)
        if self.snapshot is not None:
            records.append(self.snapshot)
        return records


class Task(Base):
    """Trackable unit of work with a lifecycle status and accumulated working time.

    Timing Fields:
        total_working_time: Seconds spent in_progress across all sessions.
            Grows only on pause/complete, by the elapsed time since
            last_resumed_at (clamped at zero).
        started_at: First start instant; never overwritten.
        last_resumed_at: Start of the current (or most recent) session.
        pause_count: Number of pause entries recorded for the task.

    Concurrency:
        ``version`` is the mapper's version_id_col. Every UPDATE is issued as
        ``... WHERE id = :id AND version = :expected`` and bumps the counter;
        a zero row count raises StaleDataError, which the lifecycle service
        reports as ConcurrencyConflictError.

    Attributes:
        id: UUID primary key.
        user_id: Owning user (supplied by the auth collaborator).
        account_id: Tenant account (supplied by the auth collaborator).
        title: Non-empty title (255 chars max).
        description: Optional free text.
        priority: low/medium/high (default: low).
        status: Lifecycle status (default: pending).
        due_at: Optional due instant.
    """

    __tablename__ = "tasks"

    # Only transitions listed here are allowed, enforced by @validates decorator.
    # PAUSED → COMPLETED is deliberately absent: a task must be resumed first
    # so completion always closes an in-progress session.
    VALID_TRANSITIONS: ClassVar[dict[TaskStatus, list[TaskStatus]]] = {
        TaskStatus.PENDING: [TaskStatus.IN_PROGRESS],
        TaskStatus.IN_PROGRESS: [TaskStatus.PAUSED, TaskStatus.COMPLETED],
        TaskStatus.PAUSED: [TaskStatus.IN_PROGRESS],
        TaskStatus.COMPLETED: [],  # Terminal state
    }

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
    )
    account_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        nullable=True,
        index=True,
    )

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    priority: Mapped[PriorityLevel] = mapped_column(
        _enum_column(PriorityLevel, "prioritylevel"),
        nullable=False,
        default=PriorityLevel.LOW,
    )
    status: Mapped[TaskStatus] = mapped_column(
        _enum_column(TaskStatus, "taskstatus"),
        nullable=False,
        default=TaskStatus.PENDING,
        index=True,
    )
    due_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime,
        nullable=True,
        index=True,
    )

    # Time accounting
    total_working_time: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )
    pause_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )
    started_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime,
        nullable=True,
    )
    last_resumed_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime,
        nullable=True,
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_tasks_user_id_status", "user_id", "status"),
        CheckConstraint("total_working_time >= 0", name="ck_tasks_working_time_non_negative"),
        CheckConstraint("pause_count >= 0", name="ck_tasks_pause_count_non_negative"),
    )

    @validates("status")
    def validate_status_change(self, key: str, value: TaskStatus) -> TaskStatus:
        """Validate status transition before it reaches the database.

        Raises:
            InvalidStateTransitionError: If the transition is not listed in
                VALID_TRANSITIONS.

        Note:
            Validation is skipped on initial task creation (status is None).
        """
        if self.status is None:
            return value

        allowed_transitions = self.VALID_TRANSITIONS.get(self.status, [])
        if value not in allowed_transitions:
            raise InvalidStateTransitionError(
                f"Invalid transition: {self.status.value} → {value.value}",
                from_status=self.status,
                to_status=value,
            )

        return value

    @property
    def can_start(self) -> bool:
        return self.status == TaskStatus.PENDING

    @property
    def can_pause(self) -> bool:
        return self.status == TaskStatus.IN_PROGRESS

    @property
    def can_resume(self) -> bool:
        return self.status == TaskStatus.PAUSED

    @property
    def can_complete(self) -> bool:
        return self.status == TaskStatus.IN_PROGRESS

    def _require(self, allowed: bool, to_status: TaskStatus, message: str | None = None) -> None:
        if not allowed:
            raise InvalidStateTransitionError(
                message or f"Invalid transition: {self.status.value} → {to_status.value}",
                from_status=self.status,
                to_status=to_status,
            )

    def _close_session(self, now: datetime) -> int:
        """Fold the current session into total_working_time; return its length."""
        worked = elapsed_seconds(self.last_resumed_at, now)
        self.total_working_time += worked
        return worked

    def _next_version(self) -> int:
        """Version this task will carry once the current transition flushes."""
        return (self.version or 0) + 1

    def _event(self, event_type: EventType, subject: Subject, now: datetime) -> "TaskEvent":
        event = TaskEvent(
            id=uuid.uuid4(),
            task_id=self.id,
            task_version=self._next_version(),
            event_type=event_type,
            event_metadata={
                "total_working_time": self.total_working_time,
                "pause_count": self.pause_count,
                "timestamp": now.isoformat(),
            },
            created_at=now,
        )
        event.subject = subject
        return event

    def _snapshot(
        self,
        snapshot_type: SnapshotType,
        subject: Subject,
        progress: int | None,
        now: datetime,
    ) -> "TaskSnapshot":
        snapshot = TaskSnapshot(
            id=uuid.uuid4(),
            task_id=self.id,
            task_version=self._next_version(),
            snapshot_type=snapshot_type,
            progress_at_snapshot=progress,
            total_time_at_snapshot=self.total_working_time,
            state_data={
                "status": self.status.value,
                "pause_count": self.pause_count,
                "total_working_time": self.total_working_time,
            },
            created_at=now,
        )
        snapshot.subject = subject
        return snapshot

    def _domain_event(self, name: str, now: datetime, **payload: Any) -> DomainEvent:
        return DomainEvent(name=name, task_id=self.id, occurred_at=now, payload=payload)

    def start(self, now: datetime) -> TransitionResult:
        """Begin the first working session.

        Raises:
            InvalidStateTransitionError: Unless the task is pending. A paused
                task must be resumed instead so its open pause gets closed.
        """
        self._require(
            self.status not in (TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.PAUSED),
            TaskStatus.IN_PROGRESS,
            "Cannot start a paused task, resume it instead"
            if self.status == TaskStatus.PAUSED
            else None,
        )

        self.status = TaskStatus.IN_PROGRESS
        if self.started_at is None:
            self.started_at = now
        self.last_resumed_at = now
        self.updated_at = now

        return TransitionResult(
            task=self,
            event=self._event(EventType.STARTED, TaskRef(self.id), now),
            domain_events=[self._domain_event(TASK_STARTED, now)],
        )

    def pause(
        self,
        now: datetime,
        reason: str,
        comment: str | None = None,
        progress: int | None = None,
    ) -> TransitionResult:
        """Close the current session and open a pause ledger entry.

        The session length is stored on the entry as work_duration and added
        to total_working_time. A pause snapshot captures the new total and
        the caller-reported progress.

        Raises:
            InvalidStateTransitionError: Unless the task is in progress.
        """
        self._require(self.can_pause, TaskStatus.PAUSED)

        worked = self._close_session(now)
        pause = TaskPause(
            id=uuid.uuid4(),
            task_id=self.id,
            paused_at=now,
            work_duration=worked,
            reason=reason,
            comment=comment,
            progress_percentage=progress if progress is not None else 0,
            created_at=now,
            updated_at=now,
        )
        self.pause_count += 1
        self.status = TaskStatus.PAUSED
        self.updated_at = now

        subject = PauseRef(pause.id)
        domain_events = [
            self._domain_event(
                TASK_PAUSED,
                now,
                pause_id=str(pause.id),
                reason=reason,
                work_duration=worked,
            )
        ]
        if reason == BLOCKER_REASON:
            domain_events.append(
                self._domain_event(TASK_BLOCKED, now, pause_id=str(pause.id), comment=comment)
            )

        return TransitionResult(
            task=self,
            event=self._event(EventType.PAUSED, subject, now),
            pause=pause,
            snapshot=self._snapshot(SnapshotType.PAUSE, subject, progress, now),
            domain_events=domain_events,
        )

    def resume(self, now: datetime, active_pause: "TaskPause | None") -> TransitionResult:
        """Close the active pause entry and open a new working session.

        Args:
            now: Transition instant.
            active_pause: This task's pause entry with resumed_at IS NULL.

        Raises:
            InvalidStateTransitionError: Unless the task is paused and the
                supplied entry is its open pause.
        """
        self._require(self.can_resume, TaskStatus.IN_PROGRESS)
        self._require(
            active_pause is not None
            and active_pause.task_id == self.id
            and active_pause.is_active,
            TaskStatus.IN_PROGRESS,
            "Task is paused but has no active pause entry",
        )

        active_pause.mark_resumed(now)
        self.status = TaskStatus.IN_PROGRESS
        self.last_resumed_at = now
        self.updated_at = now

        return TransitionResult(
            task=self,
            event=self._event(EventType.RESUMED, PauseRef(active_pause.id), now),
            pause=active_pause,
            domain_events=[
                self._domain_event(
                    TASK_RESUMED,
                    now,
                    pause_id=str(active_pause.id),
                    pause_duration=active_pause.pause_duration,
                )
            ],
        )

    def complete(self, now: datetime) -> TransitionResult:
        """Close the current session and mark the task completed.

        Records a milestone snapshot at 100% progress with the final total.

        Raises:
            InvalidStateTransitionError: Unless the task is in progress.
        """
        self._require(
            self.can_complete,
            TaskStatus.COMPLETED,
            "Task is already completed" if self.status == TaskStatus.COMPLETED else None,
        )

        self._close_session(now)
        self.status = TaskStatus.COMPLETED
        self.updated_at = now

        subject = TaskRef(self.id)
        return TransitionResult(
            task=self,
            event=self._event(EventType.COMPLETED, subject, now),
            snapshot=self._snapshot(SnapshotType.MILESTONE, subject, 100, now),
            domain_events=[
                self._domain_event(
                    TASK_COMPLETED, now, total_working_time=self.total_working_time
                )
            ],
        )

    def __repr__(self) -> str:
        """Return string representation for debugging."""
        return (
            f"<Task(id={self.id!s:.8}, title={self.title!r}, "
            f"status={self.status.value!r}, total_working_time={self.total_working_time})>"
        )


class TaskPause(Base):
    """Pause ledger entry: one row per pause interval.

    Created by Task.pause, closed exactly once by Task.resume, never modified
    afterwards. At most one entry per task is open (resumed_at IS NULL), and
    it exists exactly while the task is paused; the partial unique index
    ux_task_pauses_active backs that at the database level.

    Attributes:
        paused_at: Pause instant.
        resumed_at: Resume instant, NULL while the pause is active.
        work_duration: Seconds worked in the session this pause ended.
        reason: Free-form reason (e.g. "break", "blocker", "waiting_for_info").
        comment: Optional note.
        progress_percentage: Caller-reported progress 0-100 (default: 0).
    """

    __tablename__ = "task_pauses"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    task_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
    )
    paused_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
    )
    resumed_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime,
        nullable=True,
    )
    work_duration: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    reason: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
    )
    comment: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    progress_percentage: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __table_args__ = (
        Index("ix_task_pauses_task_id_paused_at", "task_id", "paused_at"),
        Index(
            "ux_task_pauses_active",
            "task_id",
            unique=True,
            postgresql_where=text("resumed_at IS NULL"),
            sqlite_where=text("resumed_at IS NULL"),
        ),
        CheckConstraint(
            "progress_percentage >= 0 AND progress_percentage <= 100",
            name="ck_task_pauses_progress_range",
        ),
    )

    @validates("progress_percentage")
    def validate_progress(self, key: str, value: int | None) -> int | None:
        if value is not None and not 0 <= value <= 100:
            raise ValidationFailedError(
                "Progress must be between 0 and 100",
                errors={"progress": f"must be between 0 and 100, got {value}"},
            )
        return value

    @property
    def is_active(self) -> bool:
        return self.resumed_at is None

    @property
    def pause_duration(self) -> int:
        """Seconds paused; 0 while the pause is still active."""
        if self.resumed_at is None:
            return 0
        return elapsed_seconds(self.paused_at, self.resumed_at)

    @property
    def formatted_pause_duration(self) -> str:
        if self.is_active:
            return "Ongoing"
        return format_clock(self.pause_duration)

    @property
    def formatted_work_duration(self) -> str:
        return format_clock(self.work_duration)

    def mark_resumed(self, now: datetime) -> None:
        if self.resumed_at is not None:
            raise ValueError(f"Pause {self.id} was already resumed at {self.resumed_at}")
        self.resumed_at = now
        self.updated_at = now

    def __repr__(self) -> str:
        """Return string representation for debugging."""
        state = "active" if self.is_active else f"{self.pause_duration}s"
        return (
            f"<TaskPause(id={self.id!s:.8}, task_id={self.task_id!s:.8}, "
            f"reason={self.reason!r}, {state})>"
        )


class _SubjectMixin:
    """Maps the (subject_kind, pause_id, task_id) columns to a Subject variant."""

    @property
    def subject(self) -> Subject:
        if self.subject_kind == SubjectKind.PAUSE:
            return PauseRef(self.pause_id)
        return TaskRef(self.task_id)

    @subject.setter
    def subject(self, value: Subject) -> None:
        if isinstance(value, PauseRef):
            self.subject_kind = SubjectKind.PAUSE
            self.pause_id = value.pause_id
        elif isinstance(value, TaskRef):
            self.subject_kind = SubjectKind.TASK
            self.pause_id = None
        else:
            raise TypeError(f"Unsupported subject: {value!r}")


_SUBJECT_CONSISTENT = (
    "(subject_kind = 'pause' AND pause_id IS NOT NULL) "
    "OR (subject_kind = 'task' AND pause_id IS NULL)"
)


class TaskEvent(_SubjectMixin, Base):
    """Append-only audit record of one lifecycle transition.

    Rows are inserted by the lifecycle service and never updated or deleted
    except by task deletion. Display order is created_at descending, then
    task_version descending for transitions written at the same instant.

    Attributes:
        task_version: Task.version written by the transition that recorded it.
        event_type: started/paused/resumed/completed.
        subject_kind/pause_id: Task for start/complete, pause entry for pause/resume.
        event_metadata: total_working_time, pause_count and ISO timestamp at
            the moment of the event (column name: metadata).
    """

    __tablename__ = "task_events"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    task_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
    )
    task_version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    subject_kind: Mapped[SubjectKind] = mapped_column(
        _enum_column(SubjectKind, "subjectkind"),
        nullable=False,
    )
    pause_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("task_pauses.id", ondelete="CASCADE"),
        nullable=True,
    )
    event_type: Mapped[EventType] = mapped_column(
        _enum_column(EventType, "eventtype"),
        nullable=False,
        index=True,
    )
    event_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSON,
        nullable=False,
        default=dict,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        Index(
            "ix_task_events_task_id_created_at", "task_id", "created_at", "task_version"
        ),
        CheckConstraint(_SUBJECT_CONSISTENT, name="ck_task_events_subject"),
    )

    def __repr__(self) -> str:
        """Return string representation for debugging."""
        return (
            f"<TaskEvent(task_id={self.task_id!s:.8}, type={self.event_type.value!r}, "
            f"subject={self.subject_kind.value!r})>"
        )


class TaskSnapshot(_SubjectMixin, Base):
    """Point-in-time capture of progress and accumulated time.

    Deltas are computed against the immediately preceding snapshot of the
    same task (by created_at, then task_version); the first snapshot's delta
    is its own value.

    Attributes:
        task_version: Task.version written by the transition that recorded it.
        snapshot_type: pause/resume/milestone.
        progress_at_snapshot: Reported progress 0-100, or NULL if not reported.
        total_time_at_snapshot: Task.total_working_time at capture.
        state_data: status, pause_count and total_working_time at capture.
    """

    __tablename__ = "task_snapshots"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    task_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
    )
    task_version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    subject_kind: Mapped[SubjectKind] = mapped_column(
        _enum_column(SubjectKind, "subjectkind"),
        nullable=False,
    )
    pause_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("task_pauses.id", ondelete="CASCADE"),
        nullable=True,
    )
    snapshot_type: Mapped[SnapshotType] = mapped_column(
        _enum_column(SnapshotType, "snapshottype"),
        nullable=False,
    )
    progress_at_snapshot: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )
    total_time_at_snapshot: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    state_data: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        Index(
            "ix_task_snapshots_task_id_created_at", "task_id", "created_at", "task_version"
        ),
        CheckConstraint(_SUBJECT_CONSISTENT, name="ck_task_snapshots_subject"),
    )

    def progress_change_since(self, previous: "TaskSnapshot | None") -> int | None:
        """Progress delta against ``previous``; own value when there is none."""
        if previous is None:
            return self.progress_at_snapshot
        if self.progress_at_snapshot is None or previous.progress_at_snapshot is None:
            return None
        return self.progress_at_snapshot - previous.progress_at_snapshot

    def time_change_since(self, previous: "TaskSnapshot | None") -> int:
        """Working-time delta against ``previous``; own value when there is none."""
        if previous is None:
            return self.total_time_at_snapshot
        return self.total_time_at_snapshot - previous.total_time_at_snapshot

    def __repr__(self) -> str:
        """Return string representation for debugging."""
        return (
            f"<TaskSnapshot(task_id={self.task_id!s:.8}, type={self.snapshot_type.value!r}, "
            f"progress={self.progress_at_snapshot}, total={self.total_time_at_snapshot})>"
        )

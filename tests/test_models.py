"""Tests for the task tracking models.

Tests cover:
- In-memory lifecycle transitions on Task (start/pause/resume/complete)
- Working-time arithmetic (truncation, clamping at zero)
- Transition graph enforcement via @validates("status")
- TaskPause helpers and progress validation
- Subject references on events and snapshots
- Snapshot deltas
- Database-level guarantees (UTC round trip, one active pause, version counter)
"""

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from tests.support.clock import T0, at
from tests.support.factories import create_pause, create_task, persist
from tracker.domain_events import TASK_BLOCKED, TASK_PAUSED
from tracker.exceptions import InvalidStateTransitionError, ValidationFailedError
from tracker.models import (
    EventType,
    PauseRef,
    SnapshotType,
    SubjectKind,
    Task,
    TaskEvent,
    TaskPause,
    TaskRef,
    TaskSnapshot,
    TaskStatus,
)


def started_task() -> Task:
    task = create_task()
    task.start(T0)
    return task


class TestStart:
    """Tests for Task.start."""

    def test_start_pending_task(self) -> None:
        """[P0] Start moves a pending task into its first session.

        GIVEN: A pending task
        WHEN: start() is called
        THEN: status is in_progress, started_at and last_resumed_at are set,
              and a started event refers to the task itself
        """
        task = create_task()

        result = task.start(T0)

        assert task.status == TaskStatus.IN_PROGRESS
        assert task.started_at == T0
        assert task.last_resumed_at == T0
        assert result.event.event_type == EventType.STARTED
        assert result.event.subject == TaskRef(task.id)
        assert result.pause is None
        assert result.snapshot is None
        assert [e.name for e in result.domain_events] == ["task.started"]

    def test_start_in_progress_task_rejected(self) -> None:
        task = started_task()

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            task.start(at(10))

        assert exc_info.value.from_status == TaskStatus.IN_PROGRESS
        assert task.started_at == T0
        assert task.last_resumed_at == T0

    def test_start_completed_task_rejected(self) -> None:
        task = started_task()
        task.complete(at(10))

        with pytest.raises(InvalidStateTransitionError):
            task.start(at(20))

        assert task.status == TaskStatus.COMPLETED

    def test_start_paused_task_rejected_with_resume_hint(self) -> None:
        """[P1] A paused task must be resumed so its open pause gets closed."""
        task = started_task()
        task.pause(at(10), reason="break")

        with pytest.raises(InvalidStateTransitionError, match="resume it instead"):
            task.start(at(20))

        assert task.status == TaskStatus.PAUSED


class TestPause:
    """Tests for Task.pause."""

    def test_pause_after_100_seconds(self) -> None:
        """[P0] Pausing folds the session into total_working_time.

        GIVEN: A task started at T0
        WHEN: pause(reason="break") is called 100s later
        THEN: total_working_time is 100, an active pause with work_duration 100
              exists, and a pause snapshot and event refer to that pause
        """
        task = started_task()

        result = task.pause(at(100), reason="break", progress=40)

        assert task.status == TaskStatus.PAUSED
        assert task.total_working_time == 100
        assert task.pause_count == 1

        pause = result.pause
        assert pause.work_duration == 100
        assert pause.paused_at == at(100)
        assert pause.resumed_at is None
        assert pause.is_active
        assert pause.progress_percentage == 40

        assert result.event.event_type == EventType.PAUSED
        assert result.event.subject == PauseRef(pause.id)
        assert result.event.event_metadata["total_working_time"] == 100
        assert result.event.event_metadata["pause_count"] == 1

        assert result.snapshot.snapshot_type == SnapshotType.PAUSE
        assert result.snapshot.subject == PauseRef(pause.id)
        assert result.snapshot.progress_at_snapshot == 40
        assert result.snapshot.total_time_at_snapshot == 100
        assert result.snapshot.state_data == {
            "status": "paused",
            "pause_count": 1,
            "total_working_time": 100,
        }

    def test_pause_truncates_fractional_seconds(self) -> None:
        task = started_task()

        task.pause(at(100.9), reason="break")

        assert task.total_working_time == 100

    def test_pause_clamps_negative_elapsed_to_zero(self) -> None:
        """[P1] A clock that stepped backwards never reduces working time."""
        task = started_task()

        result = task.pause(at(-30), reason="break")

        assert result.pause.work_duration == 0
        assert task.total_working_time == 0

    def test_pause_progress_defaults_to_zero_on_entry_but_null_on_snapshot(self) -> None:
        task = started_task()

        result = task.pause(at(5), reason="break")

        assert result.pause.progress_percentage == 0
        assert result.snapshot.progress_at_snapshot is None

    def test_double_pause_rejected_without_state_change(self) -> None:
        """[P0] Pausing twice in a row is rejected and changes nothing.

        GIVEN: A task paused once
        WHEN: pause() is called again without resume
        THEN: InvalidStateTransitionError is raised and totals are unchanged
        """
        task = started_task()
        task.pause(at(100), reason="break")

        with pytest.raises(InvalidStateTransitionError):
            task.pause(at(200), reason="break")

        assert task.status == TaskStatus.PAUSED
        assert task.total_working_time == 100
        assert task.pause_count == 1

    def test_pause_pending_task_rejected(self) -> None:
        task = create_task()

        with pytest.raises(InvalidStateTransitionError):
            task.pause(T0, reason="break")

        assert task.status == TaskStatus.PENDING
        assert task.pause_count == 0

    def test_blocker_pause_emits_blocked_domain_event(self) -> None:
        task = started_task()

        result = task.pause(at(10), reason="blocker", comment="waiting on API keys")

        names = [e.name for e in result.domain_events]
        assert names == [TASK_PAUSED, TASK_BLOCKED]
        blocked = result.domain_events[1]
        assert blocked.payload["comment"] == "waiting on API keys"
        assert blocked.payload["pause_id"] == str(result.pause.id)

    def test_new_records_include_new_pause_event_and_snapshot(self) -> None:
        task = started_task()

        result = task.pause(at(10), reason="break")

        assert result.new_records == [result.pause, result.event, result.snapshot]


class TestResume:
    """Tests for Task.resume."""

    def test_resume_closes_active_pause(self) -> None:
        task = started_task()
        pause = task.pause(at(100), reason="break").pause

        result = task.resume(at(400), pause)

        assert task.status == TaskStatus.IN_PROGRESS
        assert task.last_resumed_at == at(400)
        assert task.total_working_time == 100
        assert pause.resumed_at == at(400)
        assert pause.pause_duration == 300
        assert result.event.event_type == EventType.RESUMED
        assert result.event.subject == PauseRef(pause.id)
        assert result.snapshot is None
        # The closed pause is already in the session; only the event is new
        assert result.new_records == [result.event]
        assert result.domain_events[0].payload["pause_duration"] == 300

    def test_resume_in_progress_task_rejected(self) -> None:
        task = started_task()

        with pytest.raises(InvalidStateTransitionError):
            task.resume(at(10), None)

    def test_resume_without_active_pause_rejected(self) -> None:
        task = started_task()
        task.pause(at(10), reason="break")

        with pytest.raises(InvalidStateTransitionError, match="no active pause"):
            task.resume(at(20), None)

        assert task.status == TaskStatus.PAUSED

    def test_resume_with_foreign_pause_rejected(self) -> None:
        task = started_task()
        task.pause(at(10), reason="break")
        other = create_pause(create_task(), paused_at=at(5))

        with pytest.raises(InvalidStateTransitionError):
            task.resume(at(20), other)

        assert other.resumed_at is None


class TestComplete:
    """Tests for Task.complete."""

    def test_round_trip_accumulates_both_sessions(self) -> None:
        """[P0] 100s working, pause, resume, 50s working, complete → 150s.

        GIVEN: A task started at T0
        WHEN: paused at +100s, resumed at +400s and completed at +450s
        THEN: total_working_time is 150 and a milestone snapshot at 100%
              refers to the task
        """
        task = started_task()
        pause = task.pause(at(100), reason="break").pause
        task.resume(at(400), pause)

        result = task.complete(at(450))

        assert task.status == TaskStatus.COMPLETED
        assert task.total_working_time == 150
        assert result.event.event_type == EventType.COMPLETED
        assert result.event.subject == TaskRef(task.id)
        assert result.snapshot.snapshot_type == SnapshotType.MILESTONE
        assert result.snapshot.progress_at_snapshot == 100
        assert result.snapshot.total_time_at_snapshot == 150
        assert result.domain_events[0].payload == {"total_working_time": 150}

    def test_complete_twice_rejected_and_total_unchanged(self) -> None:
        task = started_task()
        task.complete(at(60))

        with pytest.raises(InvalidStateTransitionError, match="already completed"):
            task.complete(at(120))

        assert task.total_working_time == 60

    def test_complete_paused_task_rejected(self) -> None:
        """[P1] paused → completed is not allowed; the task must resume first."""
        task = started_task()
        task.pause(at(10), reason="break")

        with pytest.raises(InvalidStateTransitionError):
            task.complete(at(20))

        assert task.status == TaskStatus.PAUSED
        assert task.total_working_time == 10

    def test_complete_pending_task_rejected(self) -> None:
        """[P1] A task that never started cannot be completed."""
        task = create_task()

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            task.complete(T0)

        assert exc_info.value.from_status == TaskStatus.PENDING
        assert exc_info.value.to_status == TaskStatus.COMPLETED
        assert task.status == TaskStatus.PENDING
        assert task.started_at is None


class TestStatusValidation:
    """Tests for the VALID_TRANSITIONS graph enforced on assignment."""

    def test_direct_invalid_assignment_rejected(self) -> None:
        task = create_task()

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            task.status = TaskStatus.COMPLETED

        assert "pending → completed" in exc_info.value.message
        assert task.status == TaskStatus.PENDING

    def test_completed_is_terminal(self) -> None:
        assert Task.VALID_TRANSITIONS[TaskStatus.COMPLETED] == []

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (TaskStatus.PENDING, (True, False, False, False)),
            (TaskStatus.IN_PROGRESS, (False, True, False, True)),
            (TaskStatus.PAUSED, (False, False, True, False)),
            (TaskStatus.COMPLETED, (False, False, False, False)),
        ],
    )
    def test_can_properties(self, status: TaskStatus, expected: tuple) -> None:
        task = create_task(status=status)

        assert (task.can_start, task.can_pause, task.can_resume, task.can_complete) == expected


class TestTaskPause:
    """Tests for TaskPause helpers."""

    def test_active_pause_has_zero_duration_and_ongoing_label(self) -> None:
        pause = create_pause(create_task(), paused_at=T0)

        assert pause.is_active
        assert pause.pause_duration == 0
        assert pause.formatted_pause_duration == "Ongoing"

    def test_closed_pause_formatted_durations(self) -> None:
        pause = create_pause(
            create_task(), paused_at=T0, resumed_at=at(3725), work_duration=5400
        )

        assert pause.pause_duration == 3725
        assert pause.formatted_pause_duration == "01h 02m"
        assert pause.formatted_work_duration == "01h 30m"

    def test_mark_resumed_twice_raises(self) -> None:
        pause = create_pause(create_task(), paused_at=T0)
        pause.mark_resumed(at(10))

        with pytest.raises(ValueError, match="already resumed"):
            pause.mark_resumed(at(20))

        assert pause.resumed_at == at(10)

    @pytest.mark.parametrize("progress", [-1, 101])
    def test_progress_out_of_range_rejected(self, progress: int) -> None:
        with pytest.raises(ValidationFailedError) as exc_info:
            create_pause(create_task(), paused_at=T0, progress_percentage=progress)

        assert "progress" in exc_info.value.errors


class TestSubjects:
    """Tests for the TaskRef | PauseRef subject on events and snapshots."""

    def test_pause_subject_sets_discriminant_and_pause_id(self) -> None:
        pause_id = uuid.uuid4()
        event = TaskEvent(task_id=uuid.uuid4(), event_type=EventType.PAUSED)

        event.subject = PauseRef(pause_id)

        assert event.subject_kind == SubjectKind.PAUSE
        assert event.pause_id == pause_id

    def test_task_subject_clears_pause_id(self) -> None:
        task_id = uuid.uuid4()
        snapshot = TaskSnapshot(task_id=task_id, snapshot_type=SnapshotType.MILESTONE)
        snapshot.subject = PauseRef(uuid.uuid4())

        snapshot.subject = TaskRef(task_id)

        assert snapshot.subject_kind == SubjectKind.TASK
        assert snapshot.pause_id is None
        assert snapshot.subject == TaskRef(task_id)

    def test_unknown_subject_rejected(self) -> None:
        event = TaskEvent(task_id=uuid.uuid4(), event_type=EventType.STARTED)

        with pytest.raises(TypeError):
            event.subject = "task"


class TestSnapshotDeltas:
    """Tests for TaskSnapshot delta helpers."""

    def _snapshot(self, progress: int | None, total: int) -> TaskSnapshot:
        return TaskSnapshot(
            task_id=uuid.uuid4(),
            snapshot_type=SnapshotType.PAUSE,
            progress_at_snapshot=progress,
            total_time_at_snapshot=total,
        )

    def test_first_snapshot_delta_is_its_own_value(self) -> None:
        first = self._snapshot(30, 600)

        assert first.progress_change_since(None) == 30
        assert first.time_change_since(None) == 600

    def test_delta_against_previous(self) -> None:
        previous = self._snapshot(30, 600)
        current = self._snapshot(100, 900)

        assert current.progress_change_since(previous) == 70
        assert current.time_change_since(previous) == 300

    def test_null_progress_yields_null_delta(self) -> None:
        previous = self._snapshot(None, 600)
        current = self._snapshot(100, 900)

        assert current.progress_change_since(previous) is None
        assert current.time_change_since(previous) == 300


class TestPersistence:
    """Database-level guarantees (SQLite in-memory)."""

    @pytest.mark.asyncio
    async def test_new_task_defaults(self, async_session: AsyncSession) -> None:
        task = Task(user_id=uuid.uuid4(), title="Write report")
        async_session.add(task)
        await async_session.commit()
        await async_session.refresh(task)

        assert task.status == TaskStatus.PENDING
        assert task.total_working_time == 0
        assert task.pause_count == 0
        assert task.version == 1
        assert task.started_at is None
        assert task.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_datetimes_round_trip_as_utc(self, session_factory) -> None:
        task = create_task(status=TaskStatus.IN_PROGRESS, started_at=T0, last_resumed_at=T0)
        await persist(session_factory, task)

        async with session_factory() as session:
            loaded = await session.get(Task, task.id)

        assert loaded.started_at == T0
        assert loaded.started_at.utcoffset() == timedelta(0)

    @pytest.mark.asyncio
    async def test_second_active_pause_rejected_by_unique_index(self, session_factory) -> None:
        """[P1] At most one open pause per task at the database level."""
        task = await persist(session_factory, create_task(status=TaskStatus.PAUSED))

        with pytest.raises(IntegrityError):
            await persist(
                session_factory,
                create_pause(task, paused_at=T0),
                create_pause(task, paused_at=at(10)),
            )

    @pytest.mark.asyncio
    async def test_closed_pauses_do_not_conflict(self, session_factory) -> None:
        task = await persist(session_factory, create_task(status=TaskStatus.PAUSED))

        await persist(
            session_factory,
            create_pause(task, paused_at=T0, resumed_at=at(5)),
            create_pause(task, paused_at=at(10), resumed_at=at(15)),
            create_pause(task, paused_at=at(20)),
        )

        async with session_factory() as session:
            result = await session.execute(select(TaskPause).where(TaskPause.task_id == task.id))
            assert len(result.scalars().all()) == 3

    @pytest.mark.asyncio
    async def test_inconsistent_subject_rejected_by_check(self, session_factory) -> None:
        task = await persist(session_factory, create_task())
        event = TaskEvent(
            task_id=task.id,
            task_version=1,
            event_type=EventType.PAUSED,
            subject_kind=SubjectKind.PAUSE,
            pause_id=None,
            event_metadata={},
        )

        with pytest.raises(IntegrityError):
            await persist(session_factory, event)

    @pytest.mark.asyncio
    async def test_version_increments_on_update(self, session_factory) -> None:
        task = await persist(session_factory, create_task())

        async with session_factory() as session:
            loaded = await session.get(Task, task.id)
            loaded.title = "Renamed"
            await session.commit()

        assert loaded.version == 2

    @pytest.mark.asyncio
    async def test_stale_version_raises_on_flush(self, session_factory) -> None:
        """[P0] A concurrent writer invalidates an in-flight update.

        GIVEN: A task loaded into a session
        WHEN: another writer bumps its version before this session flushes
        THEN: the flush raises StaleDataError instead of overwriting
        """
        task = await persist(session_factory, create_task())

        async with session_factory() as session:
            loaded = await session.get(Task, task.id)
            # Core UPDATE so the in-memory version is not synchronized
            await session.execute(
                update(Task.__table__)
                .where(Task.__table__.c.id == task.id)
                .values(version=Task.__table__.c.version + 1)
            )
            loaded.title = "Lost update"

            with pytest.raises(StaleDataError):
                await session.flush()

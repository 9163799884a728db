"""Task lifecycle transactions.

This service runs Task.start/pause/resume/complete inside one database
transaction each, appending the audit event, pause entry and snapshot the
transition produced. Either all of it commits or none of it does.

Transaction Pattern:
    async with session_factory() as session, session.begin():
        1. SELECT task ... FOR UPDATE (row lock on PostgreSQL)
        2. (resume) SELECT the active pause entry
        3. Apply the in-memory transition, flush the new rows pause first;
           the task UPDATE is guarded by Task.version
        4. COMMIT

Concurrency:
    Two callers racing on the same task both pass the status check, but only
    one UPDATE matches the expected version. The loser's flush raises
    StaleDataError, the whole unit rolls back, and the transition is retried
    from a fresh read with exponential backoff. The retry sees the new status,
    so a duplicate pause is rejected as an invalid transition rather than
    applied twice. When the budget is spent ConcurrencyConflictError propagates.

Domain Events:
    Dispatched to the injected handler only after COMMIT. A failing handler is
    logged and does not affect the committed transition.
"""

import uuid
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from tracker.config import get_transition_max_attempts
from tracker.domain_events import DomainEvent, EventHandler
from tracker.exceptions import (
    ConcurrencyConflictError,
    InvalidStateTransitionError,
    TaskNotFoundError,
)
from tracker.models import Task, TaskPause, TransitionResult, utcnow
from tracker.utils.logging import get_logger

log = get_logger(__name__)

Transition = Callable[[Task, datetime, TaskPause | None], TransitionResult]


def scoped_task_query(
    task_id: uuid.UUID,
    user_id: uuid.UUID | None = None,
    account_id: uuid.UUID | None = None,
):
    """SELECT for one task, restricted to the caller's user/account when given."""
    query = select(Task).where(Task.id == task_id)
    if user_id is not None:
        query = query.where(Task.user_id == user_id)
    if account_id is not None:
        query = query.where(Task.account_id == account_id)
    return query


async def load_active_pause(session: AsyncSession, task_id: uuid.UUID) -> TaskPause | None:
    """Return the task's open pause entry (resumed_at IS NULL), if any."""
    result = await session.execute(
        select(TaskPause).where(TaskPause.task_id == task_id, TaskPause.resumed_at.is_(None))
    )
    return result.scalar_one_or_none()


class TaskLifecycleService:
    """Runs lifecycle transitions atomically with optimistic-concurrency retries.

    Args:
        session_factory: Factory for the per-transition AsyncSession.
        clock: Returns the current UTC instant (injectable for tests).
        event_handler: Optional async callable receiving DomainEvents after commit.
        max_attempts: Attempts per transition on version conflict
            (default: TRANSITION_MAX_ATTEMPTS).
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utcnow,
        event_handler: EventHandler | None = None,
        max_attempts: int | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock
        self._event_handler = event_handler
        self._max_attempts = max_attempts or get_transition_max_attempts()

    async def start(
        self,
        task_id: uuid.UUID,
        user_id: uuid.UUID | None = None,
        account_id: uuid.UUID | None = None,
    ) -> Task:
        """Start a pending task.

        Raises:
            TaskNotFoundError: Task missing or outside the caller's scope.
            InvalidStateTransitionError: Task is not pending.
            ConcurrencyConflictError: Retry budget spent on version conflicts.
        """
        result = await self._run(
            "start", task_id, user_id, account_id, lambda task, now, _: task.start(now)
        )
        return result.task

    async def pause(
        self,
        task_id: uuid.UUID,
        reason: str,
        comment: str | None = None,
        progress: int | None = None,
        user_id: uuid.UUID | None = None,
        account_id: uuid.UUID | None = None,
    ) -> TaskPause:
        """Pause an in-progress task and return the new pause entry.

        Input is assumed valid here; PauseService validates caller input first.
        """
        result = await self._run(
            "pause",
            task_id,
            user_id,
            account_id,
            lambda task, now, _: task.pause(now, reason=reason, comment=comment, progress=progress),
        )
        return result.pause

    async def resume(
        self,
        task_id: uuid.UUID,
        user_id: uuid.UUID | None = None,
        account_id: uuid.UUID | None = None,
    ) -> Task:
        """Resume a paused task, closing its active pause entry."""
        result = await self._run(
            "resume",
            task_id,
            user_id,
            account_id,
            lambda task, now, active_pause: task.resume(now, active_pause),
            needs_active_pause=True,
        )
        return result.task

    async def complete(
        self,
        task_id: uuid.UUID,
        user_id: uuid.UUID | None = None,
        account_id: uuid.UUID | None = None,
    ) -> Task:
        """Complete an in-progress task, folding the current session into the total."""
        result = await self._run(
            "complete", task_id, user_id, account_id, lambda task, now, _: task.complete(now)
        )
        return result.task

    async def _run(
        self,
        operation: str,
        task_id: uuid.UUID,
        user_id: uuid.UUID | None,
        account_id: uuid.UUID | None,
        transition: Transition,
        needs_active_pause: bool = False,
    ) -> TransitionResult:
        correlation_id = str(uuid.uuid4())
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(ConcurrencyConflictError),
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=0.05, min=0.05, max=1),
            before_sleep=lambda retry_state: log.warning(
                "task_transition_conflict_retry",
                correlation_id=correlation_id,
                operation=operation,
                task_id=str(task_id),
                attempt=retry_state.attempt_number,
            ),
            reraise=False,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    result = await self._transition_once(
                        operation,
                        task_id,
                        user_id,
                        account_id,
                        transition,
                        needs_active_pause,
                        correlation_id,
                    )
        except RetryError as e:
            log.error(
                "task_transition_conflict",
                correlation_id=correlation_id,
                operation=operation,
                task_id=str(task_id),
                attempts=self._max_attempts,
            )
            raise ConcurrencyConflictError(task_id, attempts=self._max_attempts) from e

        await self._dispatch(result.domain_events, correlation_id)
        return result

    async def _transition_once(
        self,
        operation: str,
        task_id: uuid.UUID,
        user_id: uuid.UUID | None,
        account_id: uuid.UUID | None,
        transition: Transition,
        needs_active_pause: bool,
        correlation_id: str,
    ) -> TransitionResult:
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    result = await session.execute(
                        scoped_task_query(task_id, user_id, account_id)
                        .with_for_update()
                        .execution_options(populate_existing=True)
                    )
                    task = result.scalar_one_or_none()
                    if task is None:
                        raise TaskNotFoundError(task_id)

                    previous_status = task.status
                    active_pause = (
                        await load_active_pause(session, task.id) if needs_active_pause else None
                    )

                    try:
                        outcome = transition(task, self._clock(), active_pause)
                    except InvalidStateTransitionError as e:
                        log.info(
                            "task_transition_rejected",
                            correlation_id=correlation_id,
                            operation=operation,
                            task_id=str(task_id),
                            current_status=previous_status.value,
                            error=e.message,
                        )
                        raise

                    # In order: events and snapshots hold a FK to the new pause row
                    for record in outcome.new_records:
                        session.add(record)
                        await session.flush()
            except StaleDataError as e:
                raise ConcurrencyConflictError(task_id) from e

        log.info(
            "task_transition_committed",
            correlation_id=correlation_id,
            operation=operation,
            task_id=str(task_id),
            previous_status=previous_status.value,
            new_status=outcome.task.status.value,
            total_working_time=outcome.task.total_working_time,
            pause_count=outcome.task.pause_count,
        )
        return outcome

    async def _dispatch(self, events: list[DomainEvent], correlation_id: str) -> None:
        if self._event_handler is None:
            return
        for domain_event in events:
            try:
                await self._event_handler(domain_event)
            except Exception as e:
                # The transition is already committed; report and keep going
                log.error(
                    "domain_event_handler_failed",
                    correlation_id=correlation_id,
                    domain_event=domain_event.name,
                    task_id=str(domain_event.task_id),
                    error=str(e),
                    exc_info=True,
                )

"""Domain events emitted by task lifecycle transitions.

Each transition returns the events it produced instead of publishing them to
a process-wide queue. The lifecycle service hands them to an injected handler
after the transaction commits, so a notification can never fire for a change
that was rolled back.

Usage:
    async def notify(event: DomainEvent) -> None:
        if event.name == TASK_BLOCKED:
            await pager.send(event.payload["comment"])

    service = TaskLifecycleService(session_factory, event_handler=notify)
"""

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from tracker.utils.logging import get_logger

log = get_logger(__name__)

TASK_STARTED = "task.started"
TASK_PAUSED = "task.paused"
TASK_RESUMED = "task.resumed"
TASK_COMPLETED = "task.completed"
TASK_BLOCKED = "task.blocked"

# Pause reason that additionally raises TASK_BLOCKED
BLOCKER_REASON = "blocker"


@dataclass(frozen=True)
class DomainEvent:
    """Something that happened to a task, for consumers outside the transaction.

    Attributes:
        name: One of the TASK_* constants.
        task_id: Task the event concerns.
        occurred_at: Transition instant (UTC).
        payload: Event-specific context (JSON-serializable).
    """

    name: str
    task_id: uuid.UUID
    occurred_at: datetime
    payload: dict[str, Any] = field(default_factory=dict)


EventHandler = Callable[[DomainEvent], Awaitable[None]]


async def log_domain_event(event: DomainEvent) -> None:
    """Default handler: record the event in the structured log.

    Blocker pauses are logged at warning level so they stand out.
    """
    emit = log.warning if event.name == TASK_BLOCKED else log.info
    emit(
        "domain_event_published",
        domain_event=event.name,
        task_id=str(event.task_id),
        occurred_at=event.occurred_at.isoformat(),
        **event.payload,
    )

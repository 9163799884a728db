"""Tests for the default domain event handler."""

import uuid

import pytest
from structlog.testing import capture_logs

from tests.support.clock import T0
from tracker.domain_events import TASK_BLOCKED, TASK_PAUSED, DomainEvent, log_domain_event


class TestLogDomainEvent:
    @pytest.mark.asyncio
    async def test_logs_event_with_payload(self) -> None:
        task_id = uuid.uuid4()
        event = DomainEvent(TASK_PAUSED, task_id, T0, {"reason": "break", "work_duration": 100})

        with capture_logs() as logs:
            await log_domain_event(event)

        assert logs == [
            {
                "event": "domain_event_published",
                "log_level": "info",
                "domain_event": TASK_PAUSED,
                "task_id": str(task_id),
                "occurred_at": T0.isoformat(),
                "reason": "break",
                "work_duration": 100,
            }
        ]

    @pytest.mark.asyncio
    async def test_blocker_logged_as_warning(self) -> None:
        event = DomainEvent(TASK_BLOCKED, uuid.uuid4(), T0, {"comment": "waiting on review"})

        with capture_logs() as logs:
            await log_domain_event(event)

        assert logs[0]["log_level"] == "warning"
        assert logs[0]["comment"] == "waiting on review"

"""Tests for database connection and session management.

Tests the session factory dependency, the commit/rollback behaviour of
get_session, and the SQLite test engine's foreign-key enforcement.
"""

import uuid

import pytest
from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError

from tests.support.clock import T0
from tests.support.factories import create_task
from tracker import database
from tracker.database import get_session, get_session_factory
from tracker.models import Task, TaskPause


class TestGetSessionFactory:
    def test_raises_when_database_not_configured(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(database, "async_session_factory", None)

        with pytest.raises(RuntimeError, match="Database not configured"):
            get_session_factory()


class TestGetSession:
    @pytest.mark.asyncio
    async def test_commits_on_success(self, session_factory):
        """Test rows added through the dependency are committed."""
        task = create_task()
        sessions = get_session(session_factory)

        session = await sessions.__anext__()
        session.add(task)
        with pytest.raises(StopAsyncIteration):
            await sessions.__anext__()

        async with session_factory() as verify:
            assert await verify.get(Task, task.id) is not None

    @pytest.mark.asyncio
    async def test_rolls_back_on_error(self, session_factory):
        """Test an exception inside the request discards the unit of work."""
        task = create_task()
        sessions = get_session(session_factory)

        session = await sessions.__anext__()
        session.add(task)
        await session.flush()
        with pytest.raises(RuntimeError, match="boom"):
            await sessions.athrow(RuntimeError("boom"))

        async with session_factory() as verify:
            result = await verify.execute(select(Task).where(Task.id == task.id))
            assert result.scalar_one_or_none() is None


class TestCreateTestEngine:
    @pytest.mark.asyncio
    async def test_engine_executes_queries(self, async_session):
        result = await async_session.execute(text("SELECT 1"))

        assert result.scalar() == 1

    @pytest.mark.asyncio
    async def test_foreign_keys_enforced(self, async_session):
        """Test a pause pointing at a missing task is rejected."""
        async_session.add(TaskPause(task_id=uuid.uuid4(), paused_at=T0, reason="break"))

        with pytest.raises(IntegrityError):
            await async_session.flush()

"""Shared pytest fixtures for async database testing.

This module provides reusable fixtures for testing SQLAlchemy models and the
task services using an in-memory SQLite database. All sessions share one
connection (StaticPool) so services that open their own sessions see the
rows a test inserted.
"""

import uuid

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tests.support.clock import FakeClock
from tracker.config import get_database_url, get_transition_max_attempts
from tracker.database import create_test_engine
from tracker.models import Base
from tracker.services.lifecycle_service import TaskLifecycleService
from tracker.services.pause_service import PauseService


@pytest.fixture(autouse=True)
def clear_config_cache():
    """Reset cached environment lookups around every test."""
    get_database_url.cache_clear()
    get_transition_max_attempts.cache_clear()
    yield
    get_database_url.cache_clear()
    get_transition_max_attempts.cache_clear()


@pytest_asyncio.fixture
async def async_engine():
    """Create an async SQLite engine with all tables.

    Yields:
        AsyncEngine: Configured test database engine.
    """
    engine, _ = create_test_engine()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    """Session factory bound to the test engine (expire_on_commit=False)."""
    return async_sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def async_session(session_factory):
    """Create an async session for testing.

    Yields:
        AsyncSession: Database session for test operations.
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def lifecycle(session_factory, clock) -> TaskLifecycleService:
    """Lifecycle service on the test database with a fake clock and 3 attempts."""
    return TaskLifecycleService(session_factory, clock=clock, max_attempts=3)


@pytest.fixture
def pause_service(session_factory, lifecycle) -> PauseService:
    return PauseService(session_factory, lifecycle=lifecycle)

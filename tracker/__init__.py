"""Task Time Tracker.

This package tracks work on discrete tasks: the lifecycle state machine
(start, pause, resume, complete), the pause ledger that accounts for
working time, and the append-only event/snapshot log used for reporting.
State lives in PostgreSQL; the HTTP surface is a thin FastAPI layer.
"""

from tracker.database import async_session_factory, get_session
from tracker.models import Base, Task, TaskPause

__all__ = [
    "Base",
    "Task",
    "TaskPause",
    "async_session_factory",
    "get_session",
]

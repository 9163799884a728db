# Data factories for test data generation

from tests.support.factories.task_factory import create_pause, create_task, persist

__all__ = [
    "create_pause",
    "create_task",
    "persist",
]

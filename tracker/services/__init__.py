"""Business logic services for the task tracker."""

from tracker.services.lifecycle_service import TaskLifecycleService
from tracker.services.pause_service import PauseService, PauseStats

__all__ = [
    "PauseService",
    "PauseStats",
    "TaskLifecycleService",
]

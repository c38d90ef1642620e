# src/study_tracker/core/errors.py

"""
Error taxonomy shared by the task engine and its collaborators.

- ValidationError: user-correctable input problem, raised before any I/O.
- NotFoundError: the referenced task id is not in the collection.
- StorageError: durable store read/write failure or a corrupt payload.
- NotifierError: reminder scheduling failure. Never leaves the reminder layer.
"""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for every classified failure surfaced by the engine."""


class ValidationError(TrackerError):
    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class NotFoundError(TrackerError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class StorageError(TrackerError):
    pass


class NotifierError(TrackerError):
    pass

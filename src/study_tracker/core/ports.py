# src/study_tracker/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the task engine.

The engine depends on Protocols instead of concrete implementations.
This keeps the durable store and the platform notifier swappable and makes testing easier.
"""

from typing import Awaitable, Protocol

from ..tasks.task_models import ReminderPayload


class DurableStore(Protocol):
    """
    Key-value persistence for serialized blobs.

    Every method raises StorageError on failure.
    get() returns None for an absent key.
    """

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, blob: str) -> None: ...
    def clear(self) -> None: ...


class Notifier(Protocol):
    """
    Platform reminder service.

    - request_permission() may prompt the user and returns the grant.
    - schedule_at() returns an opaque handle for a one-shot reminder.
    - cancel() is idempotent on unknown, fired or already cancelled handles.
    """

    def request_permission(self) -> bool: ...
    def schedule_at(self, seconds_from_now: int, payload: ReminderPayload) -> str: ...
    def cancel(self, handle: str) -> None: ...


class OutboundMessenger(Protocol):
    """
    Connector-side port: how the reminder loop delivers a fired reminder.

    The connector decides how to present it (console line, desktop popup, etc.).
    """

    def send_text(self, *, text: str, title: str | None = None) -> Awaitable[None]: ...

# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from study_tracker.core.errors import StorageError
from study_tracker.tasks.task_models import ReminderPayload


class FixedClock:
    """Deterministic clock: returns `now` until advanced."""

    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemoryStore:
    """
    DurableStore kept in a dict.

    `events` may be shared with a RecordingNotifier so tests can assert the
    relative order of store writes and reminder calls.
    """

    def __init__(self, events: list[tuple[Any, ...]] | None = None) -> None:
        self.data: dict[str, str] = {}
        self.events = events if events is not None else []
        self.fail_get = False
        self.fail_set = False
        self.fail_clear = False

    def get(self, key: str) -> str | None:
        if self.fail_get:
            raise StorageError("read failed")
        return self.data.get(key)

    def set(self, key: str, blob: str) -> None:
        if self.fail_set:
            raise StorageError("write failed")
        self.events.append(("set", key))
        self.data[key] = blob

    def clear(self) -> None:
        if self.fail_clear:
            raise StorageError("clear failed")
        self.events.append(("clear",))
        self.data.clear()


class RecordingNotifier:
    """
    Notifier double.

    - hands out handles "h1", "h2", ...
    - records every call into `events`
    - cancel() of an unknown or already cancelled handle is a no-op
    """

    def __init__(self, events: list[tuple[Any, ...]] | None = None, *, granted: bool = True) -> None:
        self.events = events if events is not None else []
        self.granted = granted
        self.fail_schedule = False
        self.fail_cancel = False
        self.live: dict[str, ReminderPayload] = {}
        self.scheduled: list[tuple[int, ReminderPayload]] = []
        self.cancelled: list[str] = []
        self._seq = 0

    def request_permission(self) -> bool:
        return self.granted

    def schedule_at(self, seconds_from_now: int, payload: ReminderPayload) -> str:
        if self.fail_schedule:
            raise RuntimeError("notifier unavailable")
        self._seq += 1
        handle = f"h{self._seq}"
        self.events.append(("schedule_at", seconds_from_now, payload.task_id))
        self.scheduled.append((seconds_from_now, payload))
        self.live[handle] = payload
        return handle

    def cancel(self, handle: str) -> None:
        if self.fail_cancel:
            raise RuntimeError("cancel failed")
        self.events.append(("cancel", handle))
        self.cancelled.append(handle)
        self.live.pop(handle, None)


@dataclass(slots=True)
class SentReminder:
    text: str
    title: str | None


@dataclass(slots=True)
class FakeMessenger:
    """Fake OutboundMessenger used by reminder loop tests."""

    sent: list[SentReminder] = field(default_factory=list)
    fail: bool = False

    async def send_text(self, *, text: str, title: str | None = None) -> None:
        if self.fail:
            raise ConnectionError("messenger down")
        self.sent.append(SentReminder(text=text, title=title))

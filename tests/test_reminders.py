# tests/test_reminders.py

from __future__ import annotations

from study_tracker.tasks.reminders import ReminderScheduler, build_payload, seconds_until_start
from study_tracker.tasks.task_models import Priority, Task

from .conftest import HOUR, NOW
from .fakes import RecordingNotifier


def _task(start: float) -> Task:
    return Task(
        id="t1",
        title="Mock exam",
        description="bring a calculator",
        category="Exam",
        priority=Priority.HIGH,
        start_time=start,
        end_time=start + HOUR,
        created_at=NOW,
    )


def test_delay_is_clamped_to_one_second() -> None:
    assert seconds_until_start(_task(NOW + HOUR), NOW) == 3600
    assert seconds_until_start(_task(NOW + 0.2), NOW) == 1
    assert seconds_until_start(_task(NOW - HOUR), NOW) == 1


def test_schedule_returns_handle_and_payload() -> None:
    notifier = RecordingNotifier()
    handle = ReminderScheduler(notifier).schedule(_task(NOW + HOUR), now=NOW)

    assert handle == "h1"
    (seconds, payload), = notifier.scheduled
    assert seconds == 3600
    assert payload == build_payload(_task(NOW + HOUR))
    assert "bring a calculator" in payload.body


def test_schedule_without_permission_returns_none() -> None:
    notifier = RecordingNotifier(granted=False)
    scheduler = ReminderScheduler(notifier)

    assert scheduler.request_permission() is False
    assert scheduler.schedule(_task(NOW + HOUR), now=NOW) is None
    assert notifier.scheduled == []


def test_permission_request_failure_is_a_denial() -> None:
    class ExplodingNotifier(RecordingNotifier):
        def request_permission(self) -> bool:
            raise RuntimeError("prompt crashed")

    scheduler = ReminderScheduler(ExplodingNotifier())
    assert scheduler.request_permission() is False
    assert scheduler.schedule(_task(NOW + HOUR), now=NOW) is None


def test_cancel_is_idempotent_and_swallows_failures() -> None:
    notifier = RecordingNotifier()
    scheduler = ReminderScheduler(notifier)

    scheduler.cancel(None)
    scheduler.cancel("")
    assert notifier.cancelled == []

    scheduler.cancel("h9")
    scheduler.cancel("h9")
    assert notifier.cancelled == ["h9", "h9"]

    notifier.fail_cancel = True
    scheduler.cancel("h1")  # must not raise

# tests/test_local_notifier.py

from __future__ import annotations

import time
from pathlib import Path

import pytest

from study_tracker.core.errors import NotifierError
from study_tracker.notify.local_notifier import LocalNotifier, ReminderStatus
from study_tracker.tasks.task_models import ReminderPayload

PAYLOAD = ReminderPayload(task_id="t1", title="Mock exam", body="Exam session starts now")


def test_schedule_stores_pending_reminder(tmp_path: Path) -> None:
    notifier = LocalNotifier(tmp_path / "reminders.sqlite3")
    before = time.time()

    handle = notifier.schedule_at(3600, PAYLOAD)

    reminder = notifier.get_reminder(handle)
    assert reminder is not None
    assert reminder.status is ReminderStatus.PENDING
    assert reminder.task_id == "t1"
    assert before + 3600 <= reminder.fire_at <= time.time() + 3600
    assert notifier.count_pending() == 1


def test_handles_are_unique(tmp_path: Path) -> None:
    notifier = LocalNotifier(tmp_path / "reminders.sqlite3")
    handles = {notifier.schedule_at(60, PAYLOAD) for _ in range(5)}
    assert len(handles) == 5


def test_cancel_is_idempotent(tmp_path: Path) -> None:
    notifier = LocalNotifier(tmp_path / "reminders.sqlite3")
    handle = notifier.schedule_at(60, PAYLOAD)

    notifier.cancel(handle)
    notifier.cancel(handle)
    notifier.cancel("unknown-handle")

    reminder = notifier.get_reminder(handle)
    assert reminder is not None
    assert reminder.status is ReminderStatus.CANCELLED
    assert notifier.count_pending() == 0


def test_cancel_after_fire_is_a_no_op(tmp_path: Path) -> None:
    notifier = LocalNotifier(tmp_path / "reminders.sqlite3")
    handle = notifier.schedule_at(1, PAYLOAD)
    assert notifier.try_claim(handle)
    notifier.mark_fired(handle)

    notifier.cancel(handle)

    reminder = notifier.get_reminder(handle)
    assert reminder is not None
    assert reminder.status is ReminderStatus.FIRED


def test_list_due_and_claim(tmp_path: Path) -> None:
    notifier = LocalNotifier(tmp_path / "reminders.sqlite3")
    soon = notifier.schedule_at(1, PAYLOAD)
    later = notifier.schedule_at(7200, PAYLOAD)
    cancelled = notifier.schedule_at(1, PAYLOAD)
    notifier.cancel(cancelled)

    due = notifier.list_due(now_ts=time.time() + 10)
    assert [r.handle for r in due] == [soon]

    assert notifier.try_claim(soon)
    assert not notifier.try_claim(soon)
    assert not notifier.try_claim(cancelled)
    assert notifier.list_due(now_ts=time.time() + 10) == []

    notifier.release(soon, retry_at=time.time() + 5)
    assert [r.handle for r in notifier.list_due(now_ts=time.time() + 10)] == [soon]
    assert later not in {r.handle for r in notifier.list_due(now_ts=time.time() + 10)}


def test_permission_denied(tmp_path: Path) -> None:
    notifier = LocalNotifier(tmp_path / "reminders.sqlite3", permission_granted=False)

    assert notifier.request_permission() is False
    with pytest.raises(NotifierError):
        notifier.schedule_at(60, PAYLOAD)

# src/study_tracker/tasks/reminders.py

from __future__ import annotations

"""
Reminder scheduling on top of the Notifier port.

The adapter never blocks a save: a denied permission or a failing notifier
degrades to "task saved without reminder". The cancel-before-reschedule
ordering is driven by the repository, not by this class.
"""

import logging

from ..core.ports import Notifier
from .task_models import ReminderPayload, Task

logger = logging.getLogger(__name__)

MIN_DELAY_SECONDS = 1


def seconds_until_start(task: Task, now: float) -> int:
    return max(MIN_DELAY_SECONDS, int(task.start_time - now))


def build_payload(task: Task) -> ReminderPayload:
    body = f"{task.category} session starts now"
    desc = (task.description or "").strip()
    if desc:
        body = f"{body}: {desc}"
    return ReminderPayload(task_id=task.id, title=task.title, body=body)


class ReminderScheduler:
    def __init__(self, notifier: Notifier, *, enabled: bool = True) -> None:
        self._notifier = notifier
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def request_permission(self) -> bool:
        """Ask the notifier for permission. A refusal or a failure both mean False."""
        if not self._enabled:
            return False
        try:
            return bool(self._notifier.request_permission())
        except Exception:
            logger.warning("Notification permission request failed.", exc_info=True)
            return False

    def schedule(self, task: Task, *, now: float) -> str | None:
        """
        Schedule a one-shot reminder at the task start.

        Returns the notifier handle, or None when reminders are disabled,
        permission is not granted or the notifier fails.
        """
        if not self.request_permission():
            logger.info("Reminder not scheduled for task %s: permission not granted.", task.id)
            return None

        delay = seconds_until_start(task, now)
        try:
            handle = self._notifier.schedule_at(delay, build_payload(task))
        except Exception:
            logger.warning("Reminder scheduling failed for task %s.", task.id, exc_info=True)
            return None

        if not handle:
            return None
        logger.debug("Reminder scheduled task=%s handle=%s in=%ss", task.id, handle, delay)
        return str(handle)

    def cancel(self, handle: str | None) -> None:
        """Cancel a reminder. Idempotent; failures are logged and swallowed."""
        if not handle:
            return
        try:
            self._notifier.cancel(handle)
            logger.debug("Reminder cancelled handle=%s", handle)
        except Exception:
            logger.exception("Reminder cancel failed handle=%s", handle)

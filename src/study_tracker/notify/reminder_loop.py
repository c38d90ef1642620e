# src/study_tracker/notify/reminder_loop.py

from __future__ import annotations

"""
Reminder delivery loop.

A small polling loop that:
- fetches due reminders from the LocalNotifier,
- claims them (best-effort),
- sends them via an injected messenger port,
- marks them fired, or releases them with a retry delay on failure.

Presentation (console line, popup, ...) belongs to the connector, not the loop.
"""

import asyncio
import contextlib
import logging
import threading
import time
from dataclasses import dataclass

from ..core.ports import OutboundMessenger
from .local_notifier import LocalNotifier, Reminder

logger = logging.getLogger(__name__)


def format_reminder(reminder: Reminder) -> str:
    body = (reminder.body or "").strip()
    return f"Reminder: {reminder.title}" + (f" - {body}" if body else "")


async def deliver_due_reminders(
        notifier: LocalNotifier,
        messenger: OutboundMessenger,
        *,
        now_ts: float,
        retry_delay_seconds: float = 60.0,
        batch_limit: int = 32,
) -> int:
    """One polling pass. Returns the number of reminders delivered."""
    try:
        due = notifier.list_due(now_ts=now_ts, limit=int(batch_limit))
    except Exception:
        logger.exception("list_due failed")
        return 0

    delivered = 0
    for reminder in due:
        try:
            claimed = notifier.try_claim(reminder.handle)
        except Exception:
            logger.exception("try_claim failed handle=%s", reminder.handle)
            continue

        if not claimed:
            continue

        try:
            await messenger.send_text(text=format_reminder(reminder), title=reminder.title)
        except Exception:
            logger.exception("Reminder delivery failed handle=%s", reminder.handle)
            try:
                notifier.release(reminder.handle, retry_at=time.time() + retry_delay_seconds)
            except Exception:
                logger.exception("release(backoff) failed handle=%s", reminder.handle)
            continue

        delivered += 1
        logger.debug("Reminder %s sent for task %s", reminder.handle, reminder.task_id)

        # Already sent: a failed status write must not put it back in the queue.
        try:
            notifier.mark_fired(reminder.handle)
        except Exception:
            logger.exception("mark_fired failed handle=%s (left claimed)", reminder.handle)

    return delivered


async def run_reminder_loop(
        notifier: LocalNotifier,
        messenger: OutboundMessenger,
        *,
        interval_seconds: float = 5.0,
        retry_delay_seconds: float = 60.0,
        batch_limit: int = 32,
        stop_event: asyncio.Event | None = None,
) -> None:
    """
    Poll for due reminders every interval_seconds until stop_event is set.

    To stop the loop, set stop_event or cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))
    retry_s = max(1.0, float(retry_delay_seconds))

    while stop_event is None or not stop_event.is_set():
        await deliver_due_reminders(
            notifier,
            messenger,
            now_ts=time.time(),
            retry_delay_seconds=retry_s,
            batch_limit=batch_limit,
        )

        if stop_event is None:
            await asyncio.sleep(sleep_s)
            continue
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(stop_event.wait(), timeout=sleep_s)


@dataclass(slots=True)
class ReminderBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except Exception:
            logger.debug("Failed to signal reminder loop stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_reminders_in_background(
        notifier: LocalNotifier,
        messenger: OutboundMessenger,
        *,
        interval_seconds: float = 5.0,
        retry_delay_seconds: float = 60.0,
        batch_limit: int = 32,
) -> ReminderBackgroundRunner | None:
    """
    Run the reminder loop in a background thread with its own event loop,
    so the blocking console REPL can run in the main thread.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(
                run_reminder_loop(
                    notifier,
                    messenger,
                    interval_seconds=interval_seconds,
                    retry_delay_seconds=retry_delay_seconds,
                    batch_limit=batch_limit,
                    stop_event=stop_event,
                )
            )
        finally:
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="reminder-loop", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Reminder thread did not initialize properly.")
        return None

    logger.info("Reminder background thread started.")
    return ReminderBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)

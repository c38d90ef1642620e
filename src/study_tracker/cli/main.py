# src/study_tracker/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the reminder delivery loop in a background thread (optional),
- the console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import ConsoleMessenger, run_console_loop
from ..logging_setup import setup_logging
from ..notify.local_notifier import LocalNotifier
from ..notify.reminder_loop import ReminderBackgroundRunner, start_reminders_in_background

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    log_file = setup_logging(log_dir=settings.data_dir, level=settings.log_level)

    logger.info("Starting %s (log file: %s)...", settings.app_name, log_file)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)

    runner: ReminderBackgroundRunner | None = None
    if settings.reminders_enabled and isinstance(state.notifier, LocalNotifier):
        runner = start_reminders_in_background(
            state.notifier,
            ConsoleMessenger(),
            interval_seconds=settings.reminder_poll_seconds,
            retry_delay_seconds=settings.reminder_retry_seconds,
            batch_limit=settings.reminder_batch_limit,
        )

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGTERM, _handle_signal)
    except (ValueError, OSError):
        # Some platforms may not support SIGTERM, etc.
        pass

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Delivering reminders only. Press Ctrl+C to stop.")
            signal.signal(signal.SIGINT, _handle_signal)
            stop_main.wait()
    finally:
        if runner is not None:
            runner.stop()
            runner.join(timeout=10.0)
        logger.info("Bye.")


if __name__ == "__main__":
    main()

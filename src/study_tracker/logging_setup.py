# src/study_tracker/logging_setup.py

"""Logging for the console tracker.

The console is shared with the REPL, so it only shows what the user has not
already been told by a command reply or a printed reminder. The log file
keeps everything at the configured level, tracebacks included.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "study_tracker.log"

# Minimum level a record from these loggers needs to reach the console.
_CONSOLE_FLOORS: dict[str, int] = {
    # polled every few seconds; delivered reminders are printed by ConsoleMessenger
    "study_tracker.notify": logging.WARNING,
    # "saved without reminder" is already part of the /add reply
    "study_tracker.tasks.reminders": logging.WARNING,
    # storage failures are answered with a "Storage error" reply
    "study_tracker.cli.commands": logging.ERROR,
}
_THIRD_PARTY_FLOOR = logging.WARNING


def parse_level(name: str | int | None, default: int = logging.INFO) -> int:
    """'debug' / 'INFO' / 20 -> logging level; unknown names fall back to default."""
    if isinstance(name, int):
        return name
    level = logging.getLevelName(str(name or "").strip().upper())
    return level if isinstance(level, int) else default


class ConsoleNoiseFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name != "study_tracker" and not name.startswith("study_tracker."):
            return record.levelno >= _THIRD_PARTY_FLOOR
        for prefix, floor in _CONSOLE_FLOORS.items():
            if name == prefix or name.startswith(prefix + "."):
                return record.levelno >= floor
        return True


def setup_logging(*, log_dir: str | Path, level: str | int = "INFO") -> Path:
    """
    Install a filtered stderr handler and a file handler on the root logger,
    both at `level` (normally Settings.log_level). Returns the log file path.

    Calling it again replaces the handlers instead of duplicating them.
    """
    lvl = parse_level(level)
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(lvl)
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(lvl)
    console.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    console.addFilter(ConsoleNoiseFilter())
    root.addHandler(console)

    # the reminder loop runs in its own thread
    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(lvl)
    fh.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(threadName)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(fh)

    return log_file

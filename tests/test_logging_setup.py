# tests/test_logging_setup.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from study_tracker.logging_setup import ConsoleNoiseFilter, parse_level, setup_logging


@pytest.fixture()
def restore_root_logging():
    root = logging.getLogger()
    before, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        if h not in before:
            root.removeHandler(h)
            h.close()
    root.setLevel(level)


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


@pytest.mark.parametrize(
    ("name", "level", "shown"),
    [
        ("study_tracker.tasks.task_repository", logging.INFO, True),
        ("study_tracker.notify.reminder_loop", logging.DEBUG, False),
        ("study_tracker.notify.reminder_loop", logging.ERROR, True),
        ("study_tracker.notify.local_notifier", logging.INFO, False),
        ("study_tracker.tasks.reminders", logging.INFO, False),
        ("study_tracker.tasks.reminders", logging.WARNING, True),
        ("study_tracker.cli.commands", logging.WARNING, False),
        ("study_tracker.cli.commands", logging.ERROR, True),
        ("study_tracker.cli.main", logging.INFO, True),
        ("asyncio", logging.INFO, False),
        ("asyncio", logging.WARNING, True),
        ("study_tracker_extras", logging.INFO, False),
    ],
)
def test_console_filter_floors(name: str, level: int, shown: bool) -> None:
    assert ConsoleNoiseFilter().filter(_record(name, level)) is shown


def test_parse_level() -> None:
    assert parse_level("debug") == logging.DEBUG
    assert parse_level(" WARNING ") == logging.WARNING
    assert parse_level(logging.ERROR) == logging.ERROR
    assert parse_level("loud") == logging.INFO
    assert parse_level(None) == logging.INFO


def test_setup_logging_uses_configured_level_for_both_handlers(tmp_path: Path, restore_root_logging) -> None:
    log_file = setup_logging(log_dir=tmp_path / "logs", level="WARNING")
    setup_logging(log_dir=tmp_path / "logs", level="WARNING")

    root = logging.getLogger()
    assert log_file == tmp_path / "logs" / "study_tracker.log"
    assert len(root.handlers) == 2
    assert {h.level for h in root.handlers} == {logging.WARNING}

    log = logging.getLogger("study_tracker.cli.commands")
    log.info("dropped everywhere")
    log.warning("storage failure while handling /add")
    for h in root.handlers:
        h.flush()

    text = log_file.read_text(encoding="utf-8")
    assert "storage failure while handling /add" in text
    assert "dropped everywhere" not in text
    assert "[MainThread]" in text

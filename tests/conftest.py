# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

from study_tracker.core.state import AppState
from study_tracker.tasks.reminders import ReminderScheduler
from study_tracker.tasks.task_models import TaskDraft
from study_tracker.tasks.task_repository import TaskRepository

from .fakes import FixedClock, InMemoryStore, RecordingNotifier

NOW = 1_800_000_000.0
HOUR = 3600.0


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="study-tracker-test",
        log_level="DEBUG",
        console_enabled=False,
        reminders_enabled=False,
        data_dir=tmp_path,
        store_backend="sqlite",
        store_db_path=tmp_path / "store.sqlite3",
        store_json_path=tmp_path / "store.json",
        reminders_db_path=tmp_path / "reminders.sqlite3",
        notifications_enabled=True,
        reminder_poll_seconds=0.01,
        reminder_retry_seconds=1.0,
        reminder_batch_limit=8,
    )


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture()
def events() -> list[tuple[Any, ...]]:
    return []


@pytest.fixture()
def store(events) -> InMemoryStore:
    return InMemoryStore(events)


@pytest.fixture()
def notifier(events) -> RecordingNotifier:
    return RecordingNotifier(events)


@pytest.fixture()
def scheduler(notifier) -> ReminderScheduler:
    return ReminderScheduler(notifier)


@pytest.fixture()
def repo(store, scheduler, clock) -> TaskRepository:
    return TaskRepository(store, scheduler, clock=clock)


@pytest.fixture()
def state(settings, store, notifier, scheduler, repo, clock) -> AppState:
    """AppState wired with deterministic fakes (in-memory store, recording notifier, fixed clock)."""
    return AppState(
        settings=settings,
        store=store,
        notifier=notifier,
        reminders=scheduler,
        tasks=repo,
        clock=clock,
    )


def make_draft(
    *,
    title: str = "Read chapter 3",
    start: float = NOW + HOUR,
    end: float | None = None,
    category: str = "Study",
    custom: str = "",
    priority: str = "Medium",
    description: str = "",
) -> TaskDraft:
    return TaskDraft(
        title=title,
        description=description,
        category=category,
        custom_category=custom,
        priority=priority,
        start_time=start,
        end_time=start + HOUR if end is None else end,
    )

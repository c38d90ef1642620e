# src/study_tracker/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the durable store, notifier, reminder scheduler and task repository into AppState.
"""

from __future__ import annotations

import logging
import time

from ..config import get_settings
from ..core.ports import DurableStore
from ..core.state import AppState
from ..notify.local_notifier import LocalNotifier
from ..storage.kv_store import JsonFileStore, SQLiteKeyValueStore
from ..tasks.reminders import ReminderScheduler
from ..tasks.task_repository import TaskRepository

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.store_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.store_json_path.parent.mkdir(parents=True, exist_ok=True)
    settings.reminders_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_store(settings) -> DurableStore:
    backend = str(getattr(settings, "store_backend", "sqlite")).lower()
    if backend == "json":
        return JsonFileStore(settings.store_json_path)
    return SQLiteKeyValueStore(settings.store_db_path)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = create_store(settings)
    notifier = LocalNotifier(
        settings.reminders_db_path,
        permission_granted=settings.notifications_enabled,
    )
    reminders = ReminderScheduler(notifier, enabled=settings.notifications_enabled)
    clock = time.time

    state = AppState(
        settings=settings,
        store=store,
        notifier=notifier,
        reminders=reminders,
        tasks=TaskRepository(store, reminders, clock=clock),
        clock=clock,
    )
    logger.info("State ready (store=%s, notifications=%s)", settings.store_backend, settings.notifications_enabled)
    return state

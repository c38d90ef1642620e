# src/study_tracker/core/state.py

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from ..tasks.reminders import ReminderScheduler
from ..tasks.task_repository import TaskRepository
from .ports import DurableStore, Notifier


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    store: DurableStore
    notifier: Notifier
    reminders: ReminderScheduler
    tasks: TaskRepository

    clock: Callable[[], float] = time.time
    # One UI interaction at a time: connectors hold this around repository calls.
    lock: threading.RLock = field(default_factory=threading.RLock)

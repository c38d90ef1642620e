# src/study_tracker/tasks/task_repository.py

from __future__ import annotations

import json
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import replace

from ..core.errors import NotFoundError, StorageError
from ..core.ports import DurableStore
from .reminders import ReminderScheduler
from .task_models import Task, TaskDraft, classify, validate_draft

logger = logging.getLogger(__name__)

TASKS_STORAGE_KEY = "@tasks_list"


def _new_task_id() -> str:
    return str(uuid.uuid4())


class TaskRepository:
    """
    Single writer of the task collection.

    Every mutation is a read-modify-write of the whole collection:
    - validate the draft (no I/O yet)
    - load the collection fresh from the store
    - cancel / schedule reminders through the scheduler
    - write the entire collection back in one store.set()

    Callers must not overlap two mutating calls; there is no locking here.
    """

    def __init__(
        self,
        store: DurableStore,
        scheduler: ReminderScheduler,
        *,
        clock: Callable[[], float] = time.time,
        id_factory: Callable[[], str] = _new_task_id,
        storage_key: str = TASKS_STORAGE_KEY,
    ) -> None:
        self._store = store
        self._scheduler = scheduler
        self._clock = clock
        self._id_factory = id_factory
        self._key = storage_key

    # ---- low-level helpers ----

    def _load(self) -> list[Task]:
        try:
            blob = self._store.get(self._key)
        except StorageError:
            raise
        except Exception as exc:
            logger.exception("Task collection read failed key=%s", self._key)
            raise StorageError("Failed to read tasks") from exc

        if blob is None:
            return []

        try:
            raw = json.loads(blob)
            if not isinstance(raw, list):
                raise TypeError("task collection must be a list")
            return [Task.from_dict(item) for item in raw]
        except (ValueError, KeyError, TypeError) as exc:
            logger.exception("Task collection is corrupt key=%s", self._key)
            raise StorageError("Stored tasks are corrupt") from exc

    def _save(self, tasks: list[Task]) -> None:
        # Serialize first: a failure here leaves the stored collection untouched.
        try:
            blob = json.dumps([t.to_dict() for t in tasks], ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            logger.exception("Failed to serialize %d tasks", len(tasks))
            raise StorageError("Failed to serialize tasks") from exc

        try:
            self._store.set(self._key, blob)
        except StorageError:
            raise
        except Exception as exc:
            logger.exception("Task collection write failed key=%s", self._key)
            raise StorageError("Failed to save tasks") from exc

    @staticmethod
    def _index_of(tasks: list[Task], task_id: str) -> int:
        for i, t in enumerate(tasks):
            if t.id == task_id:
                return i
        raise NotFoundError(task_id)

    def _unique_id(self, tasks: list[Task]) -> str:
        taken = {t.id for t in tasks}
        task_id = self._id_factory()
        while task_id in taken:
            task_id = self._id_factory()
        return task_id

    @staticmethod
    def _wants_reminder(task: Task, now: float) -> bool:
        return not task.completed and not classify(task, now).ended

    def _save_or_release(self, tasks: list[Task], new_handle: str | None) -> None:
        """Persist; if that fails, drop the reminder that was scheduled for this write."""
        try:
            self._save(tasks)
        except StorageError:
            self._scheduler.cancel(new_handle)
            raise

    # ---- public API ----

    def list_tasks(self) -> list[Task]:
        """Current collection, newest first. Empty on first run."""
        return self._load()

    def get_task(self, task_id: str) -> Task:
        tasks = self._load()
        return tasks[self._index_of(tasks, task_id)]

    def edit_draft(self, task_id: str) -> TaskDraft:
        """Editable copy of the canonical record; commit it back with update_task()."""
        return TaskDraft.from_task(self.get_task(task_id))

    def create_task(self, draft: TaskDraft) -> Task:
        now = self._clock()
        valid = validate_draft(draft, now, creating=True)

        tasks = self._load()
        task = Task(
            id=self._unique_id(tasks),
            title=valid.title,
            description=valid.description,
            category=valid.category,
            priority=valid.priority,
            start_time=valid.start_time,
            end_time=valid.end_time,
            created_at=now,
        )
        task.notification_handle = self._scheduler.schedule(task, now=now)

        tasks.insert(0, task)
        self._save_or_release(tasks, task.notification_handle)
        logger.info(
            "Task created id=%s category=%s reminder=%s",
            task.id,
            task.category,
            task.notification_handle is not None,
        )
        return task

    def update_task(self, task_id: str, draft: TaskDraft) -> Task:
        """
        Commit an edited draft.

        When start_time changes the old reminder is cancelled before a new one
        is scheduled. If rescheduling yields no handle the previous handle is kept.
        """
        now = self._clock()
        valid = validate_draft(draft, now, creating=False)

        tasks = self._load()
        idx = self._index_of(tasks, task_id)
        current = tasks[idx]

        updated = replace(
            current,
            title=valid.title,
            description=valid.description,
            category=valid.category,
            priority=valid.priority,
            start_time=valid.start_time,
            end_time=valid.end_time,
        )

        new_handle: str | None = None
        if updated.start_time != current.start_time:
            self._scheduler.cancel(current.notification_handle)
            if self._wants_reminder(updated, now):
                new_handle = self._scheduler.schedule(updated, now=now)
                updated.notification_handle = new_handle or current.notification_handle
            else:
                updated.notification_handle = None

        tasks[idx] = updated
        self._save_or_release(tasks, new_handle)
        logger.info("Task updated id=%s rescheduled=%s", task_id, new_handle is not None)
        return updated

    def toggle_complete(self, task_id: str) -> Task:
        # The reminder is left alone: a pending one may still fire after completion.
        tasks = self._load()
        idx = self._index_of(tasks, task_id)
        task = replace(tasks[idx], completed=not tasks[idx].completed)
        tasks[idx] = task
        self._save(tasks)
        logger.info("Task %s -> completed=%s", task_id, task.completed)
        return task

    def delete_task(self, task_id: str) -> None:
        tasks = self._load()
        idx = self._index_of(tasks, task_id)
        task = tasks.pop(idx)
        self._scheduler.cancel(task.notification_handle)
        self._save(tasks)
        logger.info("Task deleted id=%s", task_id)

    def reset_all(self) -> int:
        """
        Wipe the durable store after cancelling every live reminder.

        Returns the number of handles cancelled. A corrupt collection does not
        block the wipe.
        """
        try:
            tasks = self._load()
        except StorageError:
            logger.warning("Reset: could not read tasks; reminders cannot be cancelled.")
            tasks = []

        cancelled = 0
        for task in tasks:
            if task.notification_handle:
                self._scheduler.cancel(task.notification_handle)
                cancelled += 1

        try:
            self._store.clear()
        except StorageError:
            raise
        except Exception as exc:
            logger.exception("Durable store clear failed")
            raise StorageError("Failed to reset data") from exc

        logger.info("All data reset (reminders cancelled=%d)", cancelled)
        return cancelled

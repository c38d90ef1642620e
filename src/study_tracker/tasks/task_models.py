# src/study_tracker/tasks/task_models.py

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from enum import StrEnum
from typing import Any

from ..core.errors import ValidationError


class Category(StrEnum):
    STUDY = "Study"
    PROJECT = "Project"
    EXAM = "Exam"
    EXERCISE = "Exercise"
    OTHER = "Other"

    @classmethod
    def parse(cls, raw: str | None) -> Category | None:
        """Case-insensitive lookup; None for labels outside the fixed set."""
        if not raw:
            return None
        key = raw.strip().lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        return None


class Priority(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def parse(cls, raw: str | Priority | None) -> Priority:
        if isinstance(raw, Priority):
            return raw
        key = (raw or "").strip().lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        raise ValidationError(f"Unknown priority: {raw!r}", field="priority")


_PRIORITY_WEIGHTS = {
    Priority.LOW: 1,
    Priority.MEDIUM: 2,
    Priority.HIGH: 3,
}


def priority_weight(priority: Priority | str) -> int:
    """Display emphasis: High > Medium > Low. Has no scheduling effect."""
    return _PRIORITY_WEIGHTS[Priority.parse(priority)]


@dataclass(slots=True)
class Task:
    id: str
    title: str
    description: str
    category: str
    priority: Priority

    start_time: float
    end_time: float

    created_at: float
    completed: bool = False
    notification_handle: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["priority"] = self.priority.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        """
        Rebuild a stored record.

        Raises ValueError/KeyError/TypeError on malformed input; the repository
        turns those into StorageError.
        """
        if not isinstance(data, dict):
            raise TypeError(f"task record must be an object, got {type(data).__name__}")
        handle = data.get("notification_handle")
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            description=str(data.get("description") or ""),
            category=str(data["category"]),
            priority=Priority(data.get("priority") or Priority.MEDIUM.value),
            start_time=float(data["start_time"]),
            end_time=float(data["end_time"]),
            created_at=float(data["created_at"]),
            completed=bool(data.get("completed", False)),
            notification_handle=str(handle) if handle else None,
        )


@dataclass(slots=True)
class TaskDraft:
    """
    Editable form state for the add/edit flows.

    `category` is one of the Category labels; when it is "Other" the trimmed
    `custom_category` is substituted at save time.
    """

    title: str
    start_time: float
    end_time: float
    description: str = ""
    category: str = Category.STUDY.value
    custom_category: str = ""
    priority: str = Priority.MEDIUM.value

    @classmethod
    def from_task(cls, task: Task) -> TaskDraft:
        """Derive an editable copy of a canonical record."""
        known = Category.parse(task.category)
        if known is None or known is Category.OTHER:
            category, custom = Category.OTHER.value, task.category
        else:
            category, custom = known.value, ""
        return cls(
            title=task.title,
            description=task.description,
            category=category,
            custom_category=custom,
            priority=task.priority.value,
            start_time=task.start_time,
            end_time=task.end_time,
        )


@dataclass(slots=True, frozen=True)
class ValidatedTask:
    title: str
    description: str
    category: str
    priority: Priority
    start_time: float
    end_time: float


@dataclass(slots=True, frozen=True)
class Classification:
    ended: bool
    in_progress: bool
    due: bool


@dataclass(slots=True, frozen=True)
class ReminderPayload:
    task_id: str
    title: str
    body: str


def _resolve_category(draft: TaskDraft) -> str:
    selected = Category.parse(draft.category)
    if selected is None:
        raise ValidationError(f"Unknown category: {draft.category!r}", field="category")
    if selected is Category.OTHER:
        custom = (draft.custom_category or "").strip()
        if not custom:
            raise ValidationError("Please specify your custom category", field="custom_category")
        return custom
    return selected.value


def _as_instant(value: Any, field: str) -> float:
    try:
        ts = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a timestamp", field=field) from None
    if not math.isfinite(ts):
        raise ValidationError(f"{field} must be a finite timestamp", field=field)
    return ts


def validate_draft(draft: TaskDraft, now: float, *, creating: bool) -> ValidatedTask:
    """
    Check a draft and return the normalized values to store.

    Rules:
    - title is non-empty after trimming
    - the resolved category is non-empty (custom label required for "Other")
    - end_time > start_time
    - creation only: start_time > now (edits of running tasks stay allowed)

    Raises ValidationError on the first failing rule.
    """
    title = (draft.title or "").strip()
    if not title:
        raise ValidationError("Task title is required", field="title")

    category = _resolve_category(draft)
    priority = Priority.parse(draft.priority)

    start_time = _as_instant(draft.start_time, "start_time")
    end_time = _as_instant(draft.end_time, "end_time")
    if end_time <= start_time:
        raise ValidationError("End time must be after start time", field="end_time")
    if creating and start_time <= now:
        raise ValidationError("Start time must be in the future", field="start_time")

    return ValidatedTask(
        title=title,
        description=draft.description or "",
        category=category,
        priority=priority,
        start_time=start_time,
        end_time=end_time,
    )


def classify(task: Task, now: float) -> Classification:
    """Time classification of a task. Recompute on every read: `now` moves on its own."""
    return Classification(
        ended=task.end_time < now,
        in_progress=(not task.completed) and task.start_time <= now <= task.end_time,
        due=task.completed or task.start_time <= now,
    )

# src/study_tracker/tasks/task_views.py

from __future__ import annotations

"""
Derived view state.

Everything here is a pure function of (tasks, now). Nothing is cached:
the same collection classifies differently a minute later.
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .task_models import Task, classify


@dataclass(slots=True, frozen=True)
class TaskStats:
    active_count: int
    in_progress_count: int
    completion_percentage: int


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def task_stats(tasks: Iterable[Task], now: float) -> TaskStats:
    """
    Aggregate counters for the task list header.

    completion_percentage = round(100 * completed_and_due / due), 0 when nothing is due.
    Completed tasks always count as due, so the value stays within [0, 100].
    """
    active = 0
    in_progress = 0
    due = 0
    completed_due = 0

    for task in tasks:
        c = classify(task, now)
        if not task.completed:
            active += 1
        if c.in_progress:
            in_progress += 1
        if c.due:
            due += 1
            if task.completed:
                completed_due += 1

    pct = _round_half_up(100.0 * completed_due / due) if due else 0
    return TaskStats(
        active_count=active,
        in_progress_count=in_progress,
        completion_percentage=max(0, min(100, pct)),
    )


def sort_key(task: Task, now: float) -> tuple[bool, bool, float]:
    # incomplete first; among incomplete, not-ended first; then soonest start
    ended = classify(task, now).ended
    return (task.completed, (not task.completed) and ended, task.start_time)


def sort_tasks(tasks: Sequence[Task], now: float) -> list[Task]:
    """Display order. Stable: equal keys keep their input order."""
    return sorted(tasks, key=lambda t: sort_key(t, now))

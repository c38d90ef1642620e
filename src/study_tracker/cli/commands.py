# src/study_tracker/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
import re
import shlex
from collections.abc import Callable
from datetime import datetime
from typing import cast

from ..core.errors import NotFoundError, StorageError, TrackerError, ValidationError
from ..core.state import AppState
from ..tasks.task_models import Category, Priority, Task, TaskDraft, classify, priority_weight
from ..tasks.task_views import sort_tasks, task_stats

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

SHORT_ID_LEN = 8
_OFFSET_PART = re.compile(r"(\d+)([smhd])")
_OFFSET_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str, emit: CommandEmitter | None = None) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Engine failures are turned into readable replies here; anything
        unclassified propagates to the connector.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Cannot parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except ValidationError as e:
            return f"Validation: {e}"
        except NotFoundError as e:
            return f"{e}. Use /list to refresh."
        except StorageError:
            logger.warning("Storage failure while handling /%s", name, exc_info=True)
            return "Storage error: your tasks could not be loaded or saved. Please try again."
        except TrackerError as e:
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- parsing helpers ----

def parse_options(args: list[str]) -> tuple[list[str], dict[str, str]]:
    """Split ["a", "b", "--start", "+1h"] into (["a", "b"], {"start": "+1h"})."""
    positional: list[str] = []
    options: dict[str, str] = {}
    i = 0
    while i < len(args):
        tok = args[i]
        if tok.startswith("--") and len(tok) > 2:
            key = tok[2:].lower()
            if "=" in key:
                key, value = key.split("=", 1)
                options[key] = value
            elif i + 1 < len(args):
                options[key] = args[i + 1]
                i += 1
            else:
                raise ValidationError(f"Missing value for --{key}", field=key)
        else:
            positional.append(tok)
        i += 1
    return positional, options


def parse_duration(raw: str) -> int:
    """'90m' / '1h30m' / '2d' -> seconds."""
    text = raw.strip().lower()
    parts = _OFFSET_PART.findall(text)
    if not parts or "".join(n + u for n, u in parts) != text:
        raise ValueError(f"bad duration: {raw!r}")
    return sum(int(n) * _OFFSET_UNITS[u] for n, u in parts)


def _displayable(ts: float, raw: str, field: str) -> float:
    # Anything saved must be printable by /list and /show later.
    try:
        datetime.fromtimestamp(ts)
    except (ValueError, OverflowError, OSError):
        raise ValidationError(f"{field} is out of range: {raw!r}", field=field) from None
    return ts


def parse_when(raw: str, now: float, *, field: str) -> float:
    """
    Accepts:
    - "now"
    - relative offsets: "+30m", "+2h", "+1h30m", "+1d"
    - ISO-8601: "2026-10-19T10:00" (naive values are local time)
    """
    text = (raw or "").strip()
    if text.lower() == "now":
        return now
    try:
        if text.startswith("+"):
            ts = now + parse_duration(text[1:])
        else:
            dt = datetime.fromisoformat(text)
            if dt.tzinfo is None:
                dt = dt.astimezone()
            ts = dt.timestamp()
    except (ValueError, OverflowError, OSError):
        raise ValidationError(f"Cannot parse {field}: {raw!r}", field=field) from None
    return _displayable(ts, raw, field)


def end_after(start: float, raw: str) -> float:
    """End time for a "--for <duration>" option."""
    try:
        end = start + parse_duration(raw)
    except (ValueError, OverflowError):
        raise ValidationError(f"Cannot parse duration: {raw!r}", field="end_time") from None
    return _displayable(end, raw, "end_time")


def _apply_category(draft: TaskDraft, options: dict[str, str]) -> None:
    if "category" in options:
        raw = options["category"]
        known = Category.parse(raw)
        if known is None:
            # a free label implies "Other"
            draft.category = Category.OTHER.value
            draft.custom_category = raw
        else:
            draft.category = known.value
            if known is not Category.OTHER:
                draft.custom_category = ""
    if "custom" in options:
        draft.custom_category = options["custom"]


def resolve_task_id(state: AppState, prefix: str) -> str:
    """Accept a full id or a unique prefix of one."""
    tasks = state.tasks.list_tasks()
    matches = [t.id for t in tasks if t.id.startswith(prefix)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise NotFoundError(prefix)
    raise ValidationError(f"Ambiguous task id prefix: {prefix!r}", field="id")


# ---- formatting ----

def _fmt_ts(ts: float) -> str:
    try:
        return datetime.fromtimestamp(ts).astimezone().strftime("%Y-%m-%d %H:%M")
    except (ValueError, OverflowError, OSError):
        # written by an older build or edited by hand
        return f"@{ts:.0f}"


def _state_label(task: Task, now: float) -> str:
    c = classify(task, now)
    if task.completed:
        return "done"
    if c.in_progress:
        return "in progress"
    if c.ended:
        return "ended"
    return "upcoming"


def format_task_line(task: Task, now: float) -> str:
    mark = "x" if task.completed else " "
    emphasis = "!" * priority_weight(task.priority)
    bell = " (reminder)" if task.notification_handle else ""
    return (
        f"[{mark}] {task.id[:SHORT_ID_LEN]} {emphasis:<3} {task.title} "
        f"<{task.category}> {_fmt_ts(task.start_time)} -> {_fmt_ts(task.end_time)} "
        f"[{_state_label(task, now)}]{bell}"
    )


def format_task_details(task: Task, now: float) -> str:
    lines = [
        f"Task {task.id}",
        f"  Title: {task.title}",
        f"  Category: {task.category}",
        f"  Priority: {task.priority.value}",
        f"  Window: {_fmt_ts(task.start_time)} -> {_fmt_ts(task.end_time)}",
        f"  State: {_state_label(task, now)}",
        f"  Reminder: {'handle stored' if task.notification_handle else 'none'}",
        f"  Created: {_fmt_ts(task.created_at)}",
    ]
    if task.description:
        lines.append(f"  Description: {task.description}")
    return "\n".join(lines)


def format_stats(tasks: list[Task], now: float) -> str:
    s = task_stats(tasks, now)
    return (
        f"Active: {s.active_count} | In progress: {s.in_progress_count} | "
        f"Completed: {s.completion_percentage}%"
    )


# ---- handlers ----

def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    settings = state.settings
    backend = getattr(settings, "store_backend", "?")
    granted = state.reminders.request_permission()
    pending = "?"
    count_pending = getattr(state.notifier, "count_pending", None)
    if callable(count_pending):
        with contextlib.suppress(Exception):
            pending = str(count_pending())
    return (
        "Status:\n"
        f"  Store backend: {backend}\n"
        f"  Reminders: {'ON' if state.reminders.enabled else 'OFF'} (permission: {'granted' if granted else 'denied'})\n"
        f"  Pending reminders: {pending}"
    )


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <title> --start <when> (--end <when> | --for <duration>)
         [--category C] [--custom LABEL] [--priority P] [--desc TEXT]
    """
    positional, options = parse_options(args)
    now = state.clock()

    if "start" not in options:
        return "Usage: /add <title> --start <when> --end <when> [--category C] [--priority P] [--desc TEXT]"
    start = parse_when(options["start"], now, field="start_time")
    if "for" in options:
        end = end_after(start, options["for"])
    elif "end" in options:
        end = parse_when(options["end"], now, field="end_time")
    else:
        return "Missing --end or --for."

    draft = TaskDraft(
        title=" ".join(positional),
        description=options.get("desc", ""),
        priority=options.get("priority", Priority.MEDIUM.value),
        start_time=start,
        end_time=end,
    )
    _apply_category(draft, options)

    task = state.tasks.create_task(draft)
    note = "" if task.notification_handle else " (saved without reminder)"
    return f"Task added: {task.id[:SHORT_ID_LEN]} {task.title}{note}"


def cmd_edit(state: AppState, args: list[str]) -> str:
    """/edit <id> [--title T] [--start W] [--end W | --for D] [--category C] [--custom L] [--priority P] [--desc T]"""
    positional, options = parse_options(args)
    if not positional:
        return "Usage: /edit <id> [--title T] [--start W] [--end W] [--category C] [--priority P] [--desc T]"

    task_id = resolve_task_id(state, positional[0])
    draft = state.tasks.edit_draft(task_id)
    now = state.clock()

    if "title" in options:
        draft.title = options["title"]
    if "desc" in options:
        draft.description = options["desc"]
    if "priority" in options:
        draft.priority = options["priority"]
    if "start" in options:
        # keep the duration unless a new end is given
        duration = draft.end_time - draft.start_time
        draft.start_time = parse_when(options["start"], now, field="start_time")
        draft.end_time = _displayable(draft.start_time + duration, options["start"], "end_time")
    if "for" in options:
        draft.end_time = end_after(draft.start_time, options["for"])
    if "end" in options:
        draft.end_time = parse_when(options["end"], now, field="end_time")
    _apply_category(draft, options)

    task = state.tasks.update_task(task_id, draft)
    return f"Task updated: {task.id[:SHORT_ID_LEN]} {task.title}"


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <id>"
    task = state.tasks.toggle_complete(resolve_task_id(state, args[0]))
    return f"Task {task.id[:SHORT_ID_LEN]} marked {'completed' if task.completed else 'not completed'}."


def cmd_delete(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /delete <id>"
    task_id = resolve_task_id(state, args[0])
    state.tasks.delete_task(task_id)
    return f"Task {task_id[:SHORT_ID_LEN]} deleted."


def cmd_show(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /show <id>"
    task = state.tasks.get_task(resolve_task_id(state, args[0]))
    return format_task_details(task, state.clock())


def cmd_list(state: AppState, args: list[str]) -> str:
    now = state.clock()
    tasks = state.tasks.list_tasks()
    if not tasks:
        return "No tasks yet. Add one with /add."
    lines = [format_stats(tasks, now)]
    lines.extend(format_task_line(t, now) for t in sort_tasks(tasks, now))
    return "\n".join(lines)


def cmd_stats(state: AppState, args: list[str]) -> str:
    now = state.clock()
    return format_stats(state.tasks.list_tasks(), now)


def cmd_reset(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /reset        -> explain
    /reset yes    -> cancel all reminders and wipe stored data
    """
    if not args or args[0].lower() not in ("yes", "confirm"):
        return "This clears all app data and cannot be undone. Use /reset yes to confirm."

    if emit:
        with contextlib.suppress(Exception):
            emit("[RESET] Cancelling reminders and clearing data...")

    cancelled = state.tasks.reset_all()
    return f"App data has been reset ({cancelled} reminder(s) cancelled)."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show storage and reminder status.")
registry.register(
    "add",
    cmd_add,
    help_text='Add a task: /add "Read ch. 3" --start +1h --for 90m [--category Exam] [--priority High]',
    aliases=["new"],
)
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <id> [--title ..] [--start ..] [--end ..]")
registry.register("done", cmd_done, help_text="Toggle completion: /done <id>.", aliases=["toggle"])
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <id>.", aliases=["rm"])
registry.register("show", cmd_show, help_text="Show task details: /show <id>.")
registry.register("list", cmd_list, help_text="List tasks (incomplete first, soonest first).", aliases=["ls"])
registry.register("stats", cmd_stats, help_text="Show active / in-progress / completion stats.")
registry.register("reset", cmd_reset, help_text="Clear all app data: /reset yes.")

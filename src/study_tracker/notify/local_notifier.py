# src/study_tracker/notify/local_notifier.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
import uuid
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from ..core.errors import NotifierError
from ..tasks.task_models import ReminderPayload

logger = logging.getLogger(__name__)


class ReminderStatus(StrEnum):
    PENDING = "pending"
    FIRING = "firing"  # claimed by a delivery loop
    FIRED = "fired"
    CANCELLED = "cancelled"

    @classmethod
    def from_db(cls, raw: str | None) -> ReminderStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


@dataclass(slots=True)
class Reminder:
    handle: str
    task_id: str
    title: str
    body: str
    fire_at: float
    status: ReminderStatus
    created_at: float


class LocalNotifier:
    """
    Notifier that keeps one-shot reminders in a local SQLite table.

    Delivery is done separately by run_reminder_loop(), which polls
    list_due() and sends through an OutboundMessenger.

    The schema is migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "reminders.sqlite3", *, permission_granted: bool = True) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._permission_granted = permission_granted
        self._ensure_schema()
        logger.info(
            "LocalNotifier ready db=%s pending=%s granted=%s",
            self._db_path,
            self.count_pending(),
            permission_granted,
        )

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS reminders (
                    handle TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    body TEXT NOT NULL DEFAULT '',
                    fire_at REAL NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    created_at REAL NOT NULL
                )
                """
            )

            cur.execute("PRAGMA table_info(reminders)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE reminders ADD COLUMN {name} {decl}")
                logger.info("LocalNotifier migration: added column %s", name)

            add_col("body", "TEXT NOT NULL DEFAULT ''")
            add_col("status", "TEXT NOT NULL DEFAULT 'pending'")
            add_col("created_at", "REAL NOT NULL DEFAULT 0")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_reminders_due ON reminders(status, fire_at)")
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_reminder(row: sqlite3.Row) -> Reminder:
        return Reminder(
            handle=str(row["handle"]),
            task_id=str(row["task_id"]),
            title=str(row["title"] or ""),
            body=str(row["body"] or ""),
            fire_at=float(row["fire_at"]),
            status=ReminderStatus.from_db(row["status"]),
            created_at=float(row["created_at"] or 0.0),
        )

    # ---- Notifier port ----

    def request_permission(self) -> bool:
        return self._permission_granted

    def schedule_at(self, seconds_from_now: int, payload: ReminderPayload) -> str:
        if not self._permission_granted:
            raise NotifierError("Notification permission not granted")

        now = time.time()
        handle = uuid.uuid4().hex
        fire_at = now + max(1, int(seconds_from_now))

        try:
            conn = self._get_conn()
            try:
                conn.execute(
                    """
                    INSERT INTO reminders(handle, task_id, title, body, fire_at, status, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        handle,
                        payload.task_id,
                        payload.title,
                        payload.body,
                        fire_at,
                        ReminderStatus.PENDING.value,
                        now,
                    ),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise NotifierError("Failed to store reminder") from exc

        logger.debug("Reminder stored handle=%s task=%s fire_at=%s", handle, payload.task_id, fire_at)
        return handle

    def cancel(self, handle: str) -> None:
        """Only pending reminders change state; anything else is a no-op."""
        try:
            conn = self._get_conn()
            try:
                cur = conn.execute(
                    "UPDATE reminders SET status = 'cancelled' WHERE handle = ? AND status = 'pending'",
                    (handle,),
                )
                conn.commit()
                changed = cur.rowcount
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise NotifierError(f"Failed to cancel reminder {handle}") from exc

        if changed == 0:
            logger.debug("Cancel ignored for handle=%s (unknown, fired or cancelled).", handle)

    # ---- delivery API ----

    def get_reminder(self, handle: str) -> Reminder | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM reminders WHERE handle = ?", (handle,)).fetchone()
            return self._row_to_reminder(row) if row else None
        finally:
            conn.close()

    def count_pending(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM reminders WHERE status = 'pending'").fetchone()
            return int(n)
        finally:
            conn.close()

    def list_due(self, *, now_ts: float, limit: int = 32) -> list[Reminder]:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                SELECT *
                FROM reminders
                WHERE status = 'pending' AND fire_at <= ?
                ORDER BY fire_at ASC, created_at ASC
                    LIMIT ?
                """,
                (float(now_ts), int(limit)),
            )
            return [self._row_to_reminder(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def try_claim(self, handle: str) -> bool:
        """
        Best-effort claim to avoid duplicate delivery.

        Atomically transitions pending -> firing. A reminder cancelled after
        list_due() cannot be claimed.
        """
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "UPDATE reminders SET status = 'firing' WHERE handle = ? AND status = 'pending'",
                (handle,),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def mark_fired(self, handle: str) -> None:
        self._set_status(handle, ReminderStatus.FIRED)

    def release(self, handle: str, *, retry_at: float) -> None:
        """Return a claimed reminder to pending with a new fire time."""
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE reminders SET status = 'pending', fire_at = ? WHERE handle = ? AND status = 'firing'",
                (float(retry_at), handle),
            )
            conn.commit()
        finally:
            conn.close()

    def _set_status(self, handle: str, status: ReminderStatus) -> None:
        conn = self._get_conn()
        try:
            conn.execute("UPDATE reminders SET status = ? WHERE handle = ?", (status.value, handle))
            conn.commit()
        finally:
            conn.close()

# src/study_tracker/storage/kv_store.py

from __future__ import annotations

import contextlib
import json
import logging
import os
import sqlite3
import time
from pathlib import Path

from ..core.errors import StorageError

logger = logging.getLogger(__name__)


class SQLiteKeyValueStore:
    """
    SQLite-backed durable key-value store.

    One table `kv(key PRIMARY KEY, value, updated_at)`; a set() is a single
    upsert so a blob is either fully written or not at all.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "store.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("KeyValueStore ready db=%s", self._db_path)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        try:
            conn = self._get_conn()
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open store {self._db_path}") from exc
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot initialize store {self._db_path}") from exc
        finally:
            conn.close()

    # ---- public API ----

    def get(self, key: str) -> str | None:
        try:
            conn = self._get_conn()
            try:
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logger.exception("KeyValueStore get failed key=%s", key)
            raise StorageError(f"Failed to read {key}") from exc
        return None if row is None else str(row[0])

    def set(self, key: str, blob: str) -> None:
        try:
            conn = self._get_conn()
            try:
                conn.execute(
                    """
                    INSERT INTO kv(key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                    """,
                    (key, blob, time.time()),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logger.exception("KeyValueStore set failed key=%s", key)
            raise StorageError(f"Failed to write {key}") from exc

    def clear(self) -> None:
        try:
            conn = self._get_conn()
            try:
                conn.execute("DELETE FROM kv")
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logger.exception("KeyValueStore clear failed")
            raise StorageError("Failed to clear store") from exc


class JsonFileStore:
    """
    Durable key-value store kept as one JSON object on disk.

    Writes go to a temp file that replaces the original (os.replace), so a
    crash mid-write leaves the previous document intact.
    """

    def __init__(self, path: str | Path = "store.json") -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("JsonFileStore ready path=%s", self._path)

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, ValueError) as exc:
            logger.exception("JsonFileStore read failed path=%s", self._path)
            raise StorageError(f"Failed to read {self._path}") from exc
        if not isinstance(data, dict):
            raise StorageError(f"Store document is not an object: {self._path}")
        return {str(k): str(v) for k, v in data.items()}

    def _write_all(self, data: dict[str, str]) -> None:
        tmp = self._path.with_suffix(".tmp")
        try:
            tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
            os.replace(tmp, self._path)
        except OSError as exc:
            logger.exception("JsonFileStore write failed path=%s", self._path)
            raise StorageError(f"Failed to write {self._path}") from exc
        with contextlib.suppress(OSError):
            os.chmod(self._path, 0o600)

    def get(self, key: str) -> str | None:
        return self._read_all().get(key)

    def set(self, key: str, blob: str) -> None:
        data = self._read_all()
        data[key] = blob
        self._write_all(data)

    def clear(self) -> None:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            logger.exception("JsonFileStore clear failed path=%s", self._path)
            raise StorageError(f"Failed to clear {self._path}") from exc

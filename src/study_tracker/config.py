# src/study_tracker/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Malformed values fall back to defaults instead of failing at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "STUDY"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connectors ----
    console_enabled: bool
    reminders_enabled: bool

    # ---- Storage (ignored by git) ----
    data_dir: Path
    store_backend: str  # "sqlite" | "json"
    store_db_path: Path
    store_json_path: Path
    reminders_db_path: Path

    # ---- Reminders ----
    notifications_enabled: bool
    reminder_poll_seconds: float
    reminder_retry_seconds: float
    reminder_batch_limit: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "study-tracker")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        reminders_enabled = _env_bool(_k("REMINDERS_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/study_tracker"))
        store_backend = _env(_k("STORE_BACKEND"), "sqlite").strip().lower()
        if store_backend not in ("sqlite", "json"):
            store_backend = "sqlite"
        store_db_path = _env_path(_k("STORE_DB_PATH"), data_dir / "store.sqlite3")
        store_json_path = _env_path(_k("STORE_JSON_PATH"), data_dir / "store.json")
        reminders_db_path = _env_path(_k("REMINDERS_DB_PATH"), data_dir / "reminders.sqlite3")

        notifications_enabled = _env_bool(_k("NOTIFICATIONS_ENABLED"), True)
        reminder_poll_seconds = _env_float(_k("REMINDER_POLL_SECONDS"), 5.0)
        reminder_retry_seconds = _env_float(_k("REMINDER_RETRY_SECONDS"), 60.0)
        reminder_batch_limit = _env_int(_k("REMINDER_BATCH_LIMIT"), 32)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            reminders_enabled=reminders_enabled,
            data_dir=data_dir,
            store_backend=store_backend,
            store_db_path=store_db_path,
            store_json_path=store_json_path,
            reminders_db_path=reminders_db_path,
            notifications_enabled=notifications_enabled,
            reminder_poll_seconds=reminder_poll_seconds,
            reminder_retry_seconds=reminder_retry_seconds,
            reminder_batch_limit=reminder_batch_limit,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS

# src/task_monitor/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- User notification preferences are NOT here: they live in a JSON file re-read every cycle
  (see notify/settings_provider.py).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "TASKMON"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
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

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path
    notification_settings_path: Path

    # ---- Monitor tuning ----
    check_interval_ms: int
    due_soon_threshold_ms: int
    dedup_retention_days: int
    send_timeout_ms: int

    # ---- Notifier ----
    notifier: str  # "log" | "matrix"

    # ---- Matrix ----
    matrix_homeserver: str
    matrix_user_id: str
    matrix_password: str
    matrix_room_id: str
    matrix_store_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "task-monitor")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/task_monitor"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")
        notification_settings_path = _env_path(
            _k("NOTIFICATION_SETTINGS_PATH"), data_dir / "notification_settings.json"
        )

        check_interval_ms = _env_int(_k("CHECK_INTERVAL_MS"), 5 * 60 * 1000)
        due_soon_threshold_ms = _env_int(_k("DUE_SOON_THRESHOLD_MS"), 60 * 60 * 1000)
        dedup_retention_days = _env_int(_k("DEDUP_RETENTION_DAYS"), 7)
        send_timeout_ms = _env_int(_k("SEND_TIMEOUT_MS"), 30 * 1000)

        notifier = _env(_k("NOTIFIER"), "log").strip().lower() or "log"

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            notification_settings_path=notification_settings_path,
            check_interval_ms=check_interval_ms,
            due_soon_threshold_ms=due_soon_threshold_ms,
            dedup_retention_days=dedup_retention_days,
            send_timeout_ms=send_timeout_ms,
            notifier=notifier,
            matrix_homeserver=_env(_k("MATRIX_HOMESERVER")).strip(),
            matrix_user_id=_env(_k("MATRIX_USER_ID")).strip(),
            matrix_password=_env(_k("MATRIX_PASSWORD")).strip(),
            matrix_room_id=_env(_k("MATRIX_ROOM_ID")).strip(),
            matrix_store_path=_env_path(_k("MATRIX_STORE_PATH"), data_dir / "matrix_store"),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS

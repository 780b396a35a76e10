# src/task_monitor/cli/bootstrap.py

"""
Composition root.

- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete stores, notifier and monitor into AppState.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from ..config import get_settings
from ..core.clock import SystemClock
from ..core.ports import Clock, Notifier
from ..core.state import AppState
from ..notify.dedup_store import DedupStore
from ..notify.gate import NotificationGate
from ..notify.notifiers import LogNotifier
from ..notify.settings_provider import JsonSettingsProvider
from ..tasks.task_scheduler import TaskMonitor
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.notification_settings_path.parent.mkdir(parents=True, exist_ok=True)


def create_notifier(settings) -> Notifier:
    kind = str(getattr(settings, "notifier", "log") or "log")
    if kind == "matrix":
        from ..notify.matrix_notifier import MatrixNotifier

        return MatrixNotifier(
            homeserver=settings.matrix_homeserver,
            user_id=settings.matrix_user_id,
            room_id=settings.matrix_room_id,
            password=settings.matrix_password,
            store_path=settings.matrix_store_path,
            device_name=f"{getattr(settings, 'app_name', 'task-monitor')} (Python)",
        )
    if kind != "log":
        logger.warning("Unknown notifier %r; falling back to log notifier", kind)
    return LogNotifier()


def create_initial_state(*, settings=None, notifier: Notifier | None = None, clock: Clock | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings (and notifier/clock) injectable makes the app easier to test.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    # Tasks and dedup records share one SQLite file.
    task_store = TaskStore(settings.tasks_db_path)
    dedup_store = DedupStore(settings.tasks_db_path)
    settings_provider = JsonSettingsProvider(settings.notification_settings_path)
    notifier = notifier or create_notifier(settings)

    gate = NotificationGate(dedup_store, retention=timedelta(days=max(1, int(settings.dedup_retention_days))))
    monitor = TaskMonitor(
        task_store,
        notifier,
        settings_provider,
        gate,
        clock=clock or SystemClock(),
        check_interval_ms=settings.check_interval_ms,
        due_soon_threshold_ms=settings.due_soon_threshold_ms,
        send_timeout_s=settings.send_timeout_ms / 1000.0,
    )

    return AppState(
        settings=settings,
        task_store=task_store,
        dedup_store=dedup_store,
        notifier=notifier,
        settings_provider=settings_provider,
        monitor=monitor,
    )

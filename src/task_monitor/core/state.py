# src/task_monitor/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .ports import Notifier, SettingsProvider

if TYPE_CHECKING:
    from ..notify.dedup_store import DedupStore
    from ..tasks.task_scheduler import TaskMonitor
    from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    # Settings object (task_monitor.config.Settings or a test stand-in).
    settings: Any

    task_store: TaskStore
    dedup_store: DedupStore
    notifier: Notifier
    settings_provider: SettingsProvider
    monitor: TaskMonitor

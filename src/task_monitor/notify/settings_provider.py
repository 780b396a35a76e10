# src/task_monitor/notify/settings_provider.py

"""User notification preferences.

The preferences file is JSON with the same camelCase keys the settings panel writes:

    {
      "taskReminders": true, "taskDueSoon": true, "taskOverdue": true,
      "taskCompleted": false, "systemUpdates": true,
      "desktopNotifications": true, "pushNotifications": true,
      "quietHours": {"enabled": false, "start": "22:00", "end": "08:00"}
    }

The provider re-reads the file on every call so edits apply on the next monitor cycle.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class QuietHours:
    enabled: bool = False
    start: str = "22:00"
    end: str = "08:00"

    @staticmethod
    def from_dict(data: Any) -> "QuietHours":
        if not isinstance(data, dict):
            return QuietHours()
        return QuietHours(
            enabled=bool(data.get("enabled", False)),
            start=str(data.get("start") or "22:00"),
            end=str(data.get("end") or "08:00"),
        )


@dataclass(frozen=True, slots=True)
class NotificationSettings:
    task_reminders: bool = True
    task_due_soon: bool = True
    task_overdue: bool = True
    task_completed: bool = False
    system_updates: bool = True
    desktop_notifications: bool = True
    push_notifications: bool = True
    quiet_hours: QuietHours = field(default_factory=QuietHours)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "NotificationSettings":
        defaults = NotificationSettings()

        def flag(key: str, default: bool) -> bool:
            raw = data.get(key)
            return default if raw is None else bool(raw)

        return NotificationSettings(
            task_reminders=flag("taskReminders", defaults.task_reminders),
            task_due_soon=flag("taskDueSoon", defaults.task_due_soon),
            task_overdue=flag("taskOverdue", defaults.task_overdue),
            task_completed=flag("taskCompleted", defaults.task_completed),
            system_updates=flag("systemUpdates", defaults.system_updates),
            desktop_notifications=flag("desktopNotifications", defaults.desktop_notifications),
            push_notifications=flag("pushNotifications", defaults.push_notifications),
            quiet_hours=QuietHours.from_dict(data.get("quietHours")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "taskReminders": self.task_reminders,
            "taskDueSoon": self.task_due_soon,
            "taskOverdue": self.task_overdue,
            "taskCompleted": self.task_completed,
            "systemUpdates": self.system_updates,
            "desktopNotifications": self.desktop_notifications,
            "pushNotifications": self.push_notifications,
            "quietHours": {
                "enabled": self.quiet_hours.enabled,
                "start": self.quiet_hours.start,
                "end": self.quiet_hours.end,
            },
        }


class JsonSettingsProvider:
    """SettingsProvider backed by a JSON file. A missing file yields the defaults."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def get(self) -> NotificationSettings:
        if not self._path.exists():
            return NotificationSettings()
        try:
            raw = json.loads(self._path.read_text("utf-8"))
        except Exception:
            logger.exception("Failed to read notification settings %s; using defaults", self._path)
            return NotificationSettings()
        if not isinstance(raw, dict):
            logger.warning("Notification settings %s is not a JSON object; using defaults", self._path)
            return NotificationSettings()
        return NotificationSettings.from_dict(raw)

    def save(self, settings: NotificationSettings) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(settings.to_dict(), ensure_ascii=False, indent=2), "utf-8")

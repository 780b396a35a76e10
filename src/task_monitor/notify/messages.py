# src/task_monitor/notify/messages.py

from __future__ import annotations

from dataclasses import dataclass

from ..core.ports import NotificationOptions
from ..tasks.task_models import NotificationType, Task

TITLE_MAX_CHARS = 20
DEFAULT_ICON = "/favicon.ico"
DEFAULT_VIBRATION = (100, 50, 100)


@dataclass(slots=True, frozen=True)
class RenderedNotification:
    title: str
    body: str
    options: NotificationOptions


def short_title(task: Task) -> str:
    text = (task.content or "").strip() or "Untitled task"
    if len(text) > TITLE_MAX_CHARS:
        return text[:TITLE_MAX_CHARS] + "..."
    return text


def build_task_notification(task: Task, ntype: NotificationType) -> RenderedNotification:
    name = short_title(task)

    if ntype == NotificationType.REMINDER:
        title, body = "Task reminder", f"You have a pending task: {name}"
    elif ntype == NotificationType.DUE_SOON:
        title, body = "Task due soon", f'Task "{name}" is due shortly'
    elif ntype == NotificationType.OVERDUE:
        title, body = "Task overdue", f'Task "{name}" is overdue, please take care of it'
    elif ntype == NotificationType.COMPLETED:
        title, body = "Task completed", f'Task "{name}" has been completed'
    else:
        title, body = "Task update", name

    options: NotificationOptions = {
        "icon": DEFAULT_ICON,
        "vibrate": list(DEFAULT_VIBRATION),
        "data": {"taskId": task.id, "type": ntype.value},
    }
    return RenderedNotification(title=title, body=body, options=options)


def build_system_notification(notification_id: str, message: str) -> RenderedNotification:
    return RenderedNotification(
        title="System update",
        body=message,
        options={
            "icon": DEFAULT_ICON,
            "vibrate": [100],
            "data": {"taskId": notification_id, "type": NotificationType.SYSTEM_UPDATE.value},
        },
    )

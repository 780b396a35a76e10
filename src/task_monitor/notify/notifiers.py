# src/task_monitor/notify/notifiers.py

from __future__ import annotations

import logging

from ..core.ports import NotificationOptions

logger = logging.getLogger(__name__)


class LogNotifier:
    """
    Default notifier: writes notifications to the log.

    Useful headless and as the fallback when no transport is configured.
    """

    def __init__(self, *, enabled: bool = True) -> None:
        self.enabled = enabled

    async def send(self, title: str, body: str, options: NotificationOptions) -> bool:
        if not self.enabled:
            logger.warning("LogNotifier disabled; dropped %r", title)
            return False
        data = options.get("data") or {}
        logger.info("NOTIFY [%s] %s: %s (task_id=%s)", data.get("type"), title, body, data.get("taskId"))
        return True

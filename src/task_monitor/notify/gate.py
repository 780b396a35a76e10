# src/task_monitor/notify/gate.py

from __future__ import annotations

"""
Notification gate.

Decides whether an event may turn into a notification. Checks, in order:
1. quiet hours (time-of-day window, may wrap past midnight)
2. the per-type toggle
3. at least one delivery channel enabled
4. per-(task, type) dedup record

A refused event leaves no trace. An allowed deduplicated event writes its
last-sent timestamp before the caller gets True, so a re-check in the same
tick is already refused.
"""

import logging
from datetime import datetime, timedelta

from ..core.clock import to_epoch_ms
from ..core.ports import DedupRepo
from ..tasks.task_models import NotificationType
from .settings_provider import NotificationSettings, QuietHours

logger = logging.getLogger(__name__)

OVERDUE_REPEAT_INTERVAL = timedelta(hours=1)
SYSTEM_UPDATE_REPEAT_INTERVAL = timedelta(hours=24)
DEFAULT_DEDUP_RETENTION = timedelta(days=7)

_DEDUP_KEY_PREFIX: dict[NotificationType, str] = {
    NotificationType.OVERDUE: "lastOverdueNotification_",
    NotificationType.DUE_SOON: "lastDueSoonNotification_",
    NotificationType.SYSTEM_UPDATE: "lastSystemUpdateNotification_",
}


def dedup_key(task_id: str, ntype: NotificationType) -> str | None:
    prefix = _DEDUP_KEY_PREFIX.get(ntype)
    return f"{prefix}{task_id}" if prefix else None


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.strip().split(":", 1)
    h, m = int(hours), int(minutes)
    if not (0 <= h <= 23 and 0 <= m <= 59):
        raise ValueError(f"invalid time of day: {hhmm!r}")
    return h * 60 + m


def is_in_quiet_hours(quiet_hours: QuietHours | None, now: datetime) -> bool:
    """
    True if `now` falls in [start, end).

    start > end means the window spans midnight ("22:00".."08:00").
    """
    if quiet_hours is None or not quiet_hours.enabled:
        return False
    try:
        start = _minutes(quiet_hours.start)
        end = _minutes(quiet_hours.end)
    except ValueError:
        logger.warning("Ignoring malformed quiet hours %r-%r", quiet_hours.start, quiet_hours.end)
        return False

    current = now.hour * 60 + now.minute
    if start <= end:
        return start <= current < end
    return current >= start or current < end


def type_enabled(ntype: NotificationType, settings: NotificationSettings) -> bool:
    if ntype == NotificationType.REMINDER:
        return settings.task_reminders
    if ntype == NotificationType.DUE_SOON:
        return settings.task_due_soon
    if ntype == NotificationType.OVERDUE:
        return settings.task_overdue
    if ntype == NotificationType.COMPLETED:
        return settings.task_completed
    if ntype == NotificationType.SYSTEM_UPDATE:
        return settings.system_updates
    return False


class NotificationGate:
    def __init__(self, dedup_store: DedupRepo, *, retention: timedelta = DEFAULT_DEDUP_RETENTION) -> None:
        self._dedup = dedup_store
        self._retention = retention

    def should_notify(
        self,
        task_id: str,
        ntype: NotificationType,
        now: datetime,
        settings: NotificationSettings,
    ) -> bool:
        if is_in_quiet_hours(settings.quiet_hours, now):
            logger.debug("Quiet hours: suppressed %s task_id=%s", ntype.value, task_id)
            return False

        if not type_enabled(ntype, settings):
            logger.debug("%s notifications disabled: suppressed task_id=%s", ntype.value, task_id)
            return False

        if not settings.desktop_notifications and not settings.push_notifications:
            logger.debug("All delivery channels disabled: suppressed %s task_id=%s", ntype.value, task_id)
            return False

        key = dedup_key(task_id, ntype)
        if key is None:
            # reminder / taskCompleted: one call per logical event is the caller's job
            return True

        now_ms = to_epoch_ms(now)
        last_ms = self._dedup.get_last_sent(key)

        if ntype == NotificationType.DUE_SOON:
            allowed = last_ms is None
        elif ntype == NotificationType.OVERDUE:
            allowed = last_ms is None or last_ms < now_ms - _ms(OVERDUE_REPEAT_INTERVAL)
        else:
            allowed = last_ms is None or last_ms < now_ms - _ms(SYSTEM_UPDATE_REPEAT_INTERVAL)

        if not allowed:
            logger.debug("Dedup: suppressed %s task_id=%s last_sent=%s", ntype.value, task_id, last_ms)
            return False

        self._dedup.record_sent(key, now_ms)
        return True

    def prune(self, now: datetime) -> int:
        """Age out dedup records older than the retention window."""
        return self._dedup.prune_older_than(to_epoch_ms(now) - _ms(self._retention))


def _ms(delta: timedelta) -> int:
    return int(delta.total_seconds() * 1000)

# src/task_monitor/tasks/task_scheduler.py

from __future__ import annotations

"""
Task monitor.

A small timer-driven loop that, every check interval:
- moves recurring tasks' occurrence cursors to today (auto sync),
- classifies open dated tasks as overdue / due-soon,
- runs each event through the notification gate,
- hands surviving events to the injected notifier.

Manual date navigation (today / previous / next / pick) only runs the synchronizer
in manual mode; it never notifies.

Cycles and navigation calls are serialized with one asyncio.Lock because both
read-modify-write the whole task collection.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import StrEnum

from ..core.clock import SystemClock
from ..core.ports import Clock, NotificationOptions, Notifier, SettingsProvider, TaskRepo
from ..notify.gate import NotificationGate
from ..notify.messages import build_system_notification, build_task_notification
from ..notify.settings_provider import NotificationSettings
from .due_scanner import DEFAULT_DUE_SOON_THRESHOLD, scan
from .occurrence_sync import OccurrenceSynchronizer, SyncMode, SyncResult
from .task_models import NotificationType, Task

logger = logging.getLogger(__name__)

DEFAULT_CHECK_INTERVAL_MS = 5 * 60 * 1000
DEFAULT_DUE_SOON_THRESHOLD_MS = int(DEFAULT_DUE_SOON_THRESHOLD.total_seconds() * 1000)
DEFAULT_SEND_TIMEOUT_S = 30.0


class MonitorState(StrEnum):
    STOPPED = "stopped"
    RUNNING = "running"


@dataclass(slots=True)
class CycleReport:
    target_date: date | None = None
    synced: int = 0
    events: int = 0
    sent: int = 0
    failed: bool = False


class TaskMonitor:
    def __init__(
        self,
        task_store: TaskRepo,
        notifier: Notifier,
        settings_provider: SettingsProvider,
        gate: NotificationGate,
        *,
        clock: Clock | None = None,
        check_interval_ms: int = DEFAULT_CHECK_INTERVAL_MS,
        due_soon_threshold_ms: int = DEFAULT_DUE_SOON_THRESHOLD_MS,
        send_timeout_s: float = DEFAULT_SEND_TIMEOUT_S,
    ) -> None:
        self._store = task_store
        self._notifier = notifier
        self._settings_provider = settings_provider
        self._gate = gate
        self._clock: Clock = clock or SystemClock()
        self._synchronizer = OccurrenceSynchronizer(task_store)

        self._check_interval_ms = max(1, int(check_interval_ms))
        self._due_soon_threshold = timedelta(milliseconds=max(0, int(due_soon_threshold_ms)))
        self._send_timeout_s = max(0.001, float(send_timeout_s))

        self._lock = asyncio.Lock()
        self._running = False
        self._timer: asyncio.Task[None] | None = None
        # Bumped by stop(); a start() whose first cycle outlived a stop() must not arm a timer.
        self._generation = 0
        self._last_prune_day: date | None = None
        self.last_report: CycleReport | None = None

        self.selected_date: date | None = None

    # ---- state / configuration ----

    @property
    def state(self) -> MonitorState:
        return MonitorState.RUNNING if self._running else MonitorState.STOPPED

    @property
    def check_interval_ms(self) -> int:
        return self._check_interval_ms

    @property
    def due_soon_threshold(self) -> timedelta:
        return self._due_soon_threshold

    async def set_check_interval(self, interval_ms: int) -> None:
        """New interval; a running monitor restarts (one immediate cycle, fresh timer)."""
        self._check_interval_ms = max(1, int(interval_ms))
        if self._running:
            self.stop()
            await self.start()

    def set_due_soon_threshold(self, threshold_ms: int) -> None:
        """Applies from the next scan; already-sent dedup records are left alone."""
        self._due_soon_threshold = timedelta(milliseconds=max(0, int(threshold_ms)))

    # ---- lifecycle ----

    async def start(self) -> None:
        if self._running:
            logger.warning("Task monitor is already running")
            return

        self._running = True
        generation = self._generation
        await self.run_cycle()

        # stop() (and maybe another start()) happened while the first cycle was running.
        if not self._running or generation != self._generation:
            return

        if self._timer is not None:
            self._timer.cancel()
        interval_s = self._check_interval_ms / 1000.0
        self._timer = asyncio.create_task(self._tick_loop(interval_s), name="task-monitor-timer")
        logger.info("Task monitor started (interval=%.1fs)", interval_s)

    def stop(self) -> None:
        """Cancel future ticks. A cycle already in progress runs to completion."""
        if not self._running:
            return
        self._running = False
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        logger.info("Task monitor stopped")

    async def _tick_loop(self, interval_s: float) -> None:
        while True:
            await self._clock.sleep(interval_s)
            await asyncio.shield(self.run_cycle())

    # ---- scheduled cycle ----

    async def trigger_check(self) -> CycleReport:
        """Run one full cycle now, outside the timer."""
        return await self.run_cycle()

    async def run_cycle(self) -> CycleReport:
        async with self._lock:
            try:
                report = await self._cycle()
            except Exception:
                logger.exception("Task monitor cycle failed")
                report = CycleReport(failed=True)
            self.last_report = report
            return report

    async def _cycle(self) -> CycleReport:
        target_date = self._clock.today()
        now = self._clock.now()
        settings = self._settings_provider.get()

        result = self._synchronizer.run(target_date, SyncMode.AUTO)
        tasks = self._store.get_all() if result.changed else result.tasks

        events = scan(tasks, now, self._due_soon_threshold)
        sent = 0
        for event in events:
            ntype = NotificationType(event.classification.value)
            if await self._dispatch(event.task, ntype, now, settings):
                sent += 1

        self._maybe_prune(now)

        if events or result.changed:
            logger.info(
                "Cycle %s: %d synced, %d due event(s), %d sent",
                target_date,
                len(result.changed_ids),
                len(events),
                sent,
            )
        return CycleReport(
            target_date=target_date,
            synced=len(result.changed_ids),
            events=len(events),
            sent=sent,
        )

    async def _dispatch(
        self,
        task: Task,
        ntype: NotificationType,
        now: datetime,
        settings: NotificationSettings,
    ) -> bool:
        try:
            if not self._gate.should_notify(task.id, ntype, now, settings):
                return False
            rendered = build_task_notification(task, ntype)
            ok = await self._send(rendered.title, rendered.body, rendered.options)
        except Exception:
            logger.exception("Notification dispatch failed task_id=%s type=%s", task.id, ntype.value)
            return False

        if ok:
            logger.info("Notification sent task_id=%s type=%s", task.id, ntype.value)
        else:
            logger.warning("Notifier refused task_id=%s type=%s", task.id, ntype.value)
        return bool(ok)

    async def _send(self, title: str, body: str, options: NotificationOptions) -> bool:
        # Cycles hold the lock while sending; a stalled transport must not block navigation.
        try:
            return bool(await asyncio.wait_for(self._notifier.send(title, body, options), self._send_timeout_s))
        except asyncio.TimeoutError:
            logger.warning("Notifier timed out after %.1fs: %r", self._send_timeout_s, title)
            return False

    def _maybe_prune(self, now: datetime) -> None:
        if self._last_prune_day == now.date():
            return
        self._last_prune_day = now.date()
        self._gate.prune(now)

    # ---- one-off notifications (explicit user actions) ----

    async def notify_task(self, task: Task, ntype: NotificationType) -> bool:
        """Gate + send a notification for a single task (reminder, completion)."""
        return await self._dispatch(task, ntype, self._clock.now(), self._settings_provider.get())

    async def notify_system_update(self, notification_id: str, message: str) -> bool:
        now = self._clock.now()
        settings = self._settings_provider.get()
        try:
            if not self._gate.should_notify(notification_id, NotificationType.SYSTEM_UPDATE, now, settings):
                return False
            rendered = build_system_notification(notification_id, message)
            return await self._send(rendered.title, rendered.body, rendered.options)
        except Exception:
            logger.exception("System notification failed id=%s", notification_id)
            return False

    # ---- manual navigation ----

    async def go_to_date(self, day: date) -> SyncResult:
        async with self._lock:
            self.selected_date = day
            return self._synchronizer.run(day, SyncMode.MANUAL)

    async def go_today(self) -> SyncResult:
        return await self.go_to_date(self._clock.today())

    async def go_previous_day(self) -> SyncResult:
        return await self.go_to_date((self.selected_date or self._clock.today()) - timedelta(days=1))

    async def go_next_day(self) -> SyncResult:
        return await self.go_to_date((self.selected_date or self._clock.today()) + timedelta(days=1))

# src/task_monitor/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The monitor depends on Protocols instead of concrete implementations.
This keeps storage/notification transports/settings sources swappable and makes testing easier.
"""

from datetime import date, datetime
from typing import Any, Awaitable, Protocol

NotificationOptions = dict[str, Any]
# {"icon": "...", "vibrate": [..], "data": {"taskId": "...", "type": "..."}}


class Clock(Protocol):
    """Single source of "now" and "today" for the whole core."""

    def now(self) -> datetime: ...
    def today(self) -> date: ...
    def sleep(self, seconds: float) -> Awaitable[None]: ...


class TaskRepo(Protocol):
    # Whole-collection access used by the monitor
    def get_all(self) -> list[Any]: ...
    def save_all(self, tasks: list[Any]) -> bool: ...

    # Explicit user actions
    def get_task(self, task_id: str) -> Any | None: ...
    def update_task(self, task_id: str, **updates: Any) -> Any | None: ...


class DedupRepo(Protocol):
    """Last-sent timestamps (epoch ms) keyed by notification key."""

    def get_last_sent(self, key: str) -> int | None: ...
    def record_sent(self, key: str, ts_ms: int) -> None: ...
    def prune_older_than(self, cutoff_ms: int) -> int: ...


class Notifier(Protocol):
    """
    Transport-side port: how the monitor hands a notification outward.

    Implementations must not raise; failures are reported as False.
    """

    def send(self, title: str, body: str, options: NotificationOptions) -> Awaitable[bool]: ...


class SettingsProvider(Protocol):
    """Returns a fresh NotificationSettings snapshot on every call."""

    def get(self) -> Any: ...

# src/task_monitor/core/clock.py

from __future__ import annotations

import asyncio
from datetime import date, datetime


class SystemClock:
    """Wall-clock implementation of the Clock port (local timezone)."""

    def now(self) -> datetime:
        return datetime.now().astimezone()

    def today(self) -> date:
        return self.now().date()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


def to_epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)

# src/task_monitor/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Any


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_db(cls, raw: str | None) -> Priority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except Exception:
            return cls.MEDIUM


class RecurringType(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def from_db(cls, raw: str | None) -> RecurringType:
        if not raw:
            return cls.DAILY
        try:
            return cls(raw)
        except Exception:
            return cls.DAILY


class NotificationType(StrEnum):
    """
    Notification kinds understood by the gate.

    Values match the `data.type` payload sent to the notifier.
    """

    REMINDER = "reminder"
    DUE_SOON = "dueSoon"
    OVERDUE = "overdue"
    COMPLETED = "taskCompleted"
    SYSTEM_UPDATE = "systemUpdate"


DEFAULT_RECURRING_DAYS: frozenset[str] = frozenset({"1"})
DEFAULT_RECURRING_MONTH_DAYS: frozenset[str] = frozenset({"1"})


def _parse_date(raw: Any) -> date | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def _parse_datetime(raw: Any) -> datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw
    text = str(raw).strip()
    # JS toISOString() writes a trailing "Z"; fromisoformat accepts it since 3.11.
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _codes(raw: Any) -> frozenset[str]:
    if not raw:
        return frozenset()
    if isinstance(raw, (str, int)):
        raw = [raw]
    return frozenset(str(v).strip() for v in raw if str(v).strip())


@dataclass(slots=True)
class Task:
    id: str
    content: str
    created_at: datetime
    updated_at: datetime

    priority: Priority = Priority.MEDIUM
    completed: bool = False
    due_date: date | None = None
    is_pinned: bool = False

    is_recurring: bool = False
    recurring_type: RecurringType = RecurringType.DAILY
    # ISO weekday codes "1" (Monday) .. "7" (Sunday)
    recurring_days: frozenset[str] = field(default_factory=lambda: DEFAULT_RECURRING_DAYS)
    # day-of-month codes "1" .. "31", no leading zero
    recurring_month_days: frozenset[str] = field(default_factory=lambda: DEFAULT_RECURRING_MONTH_DAYS)

    completed_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the camelCase keys of the stored task documents."""
        data: dict[str, Any] = {
            "id": self.id,
            "content": self.content,
            "priority": self.priority.value,
            "completed": self.completed,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "isPinned": self.is_pinned,
            "isRecurring": self.is_recurring,
            "recurringType": self.recurring_type.value,
            "recurringDays": sorted(self.recurring_days, key=_code_key),
            "recurringMonthDays": sorted(self.recurring_month_days, key=_code_key),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
        if self.completed_at is not None:
            data["completedAt"] = self.completed_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        created_at = _parse_datetime(data.get("createdAt")) or datetime.fromtimestamp(0).astimezone()
        updated_at = _parse_datetime(data.get("updatedAt")) or created_at
        completed = bool(data.get("completed", False))
        return cls(
            id=str(data["id"]),
            content=str(data.get("content") or ""),
            created_at=created_at,
            updated_at=updated_at,
            priority=Priority.from_db(data.get("priority")),
            completed=completed,
            due_date=_parse_date(data.get("dueDate")),
            is_pinned=bool(data.get("isPinned", False)),
            is_recurring=bool(data.get("isRecurring", False)),
            recurring_type=RecurringType.from_db(data.get("recurringType")),
            recurring_days=_codes(data.get("recurringDays")) or DEFAULT_RECURRING_DAYS,
            recurring_month_days=_codes(data.get("recurringMonthDays")) or DEFAULT_RECURRING_MONTH_DAYS,
            completed_at=_parse_datetime(data.get("completedAt")) if completed else None,
        )


def _code_key(code: str) -> tuple[int, str]:
    return (int(code), code) if code.isdigit() else (1_000, code)

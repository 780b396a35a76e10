# src/task_monitor/tasks/recurrence.py

from __future__ import annotations

"""
Recurrence rules for recurring tasks.

Three rule shapes are supported, each evaluated against one calendar date:
- daily:   active every day
- weekly:  active when the ISO weekday code ("1" = Monday .. "7" = Sunday) is selected
- monthly: active when the day-of-month ("1" .. "31") is selected

Months shorter than a selected day simply have no occurrence ("31" never fires in April).
"""

from datetime import date, timedelta

from .task_models import (
    DEFAULT_RECURRING_DAYS,
    DEFAULT_RECURRING_MONTH_DAYS,
    RecurringType,
    Task,
)

OCCURRENCE_HORIZON_DAYS = 365

_WEEKDAY_CODES = frozenset(str(n) for n in range(1, 8))
_MONTH_DAY_CODES = frozenset(str(n) for n in range(1, 32))


def effective_weekdays(task: Task) -> frozenset[str]:
    days = frozenset(task.recurring_days or ()) & _WEEKDAY_CODES
    return days or DEFAULT_RECURRING_DAYS


def effective_month_days(task: Task) -> frozenset[str]:
    days = frozenset(task.recurring_month_days or ()) & _MONTH_DAY_CODES
    return days or DEFAULT_RECURRING_MONTH_DAYS


def is_active_on(task: Task, day: date) -> bool:
    """Return True if the recurring task has an occurrence on `day`."""
    rtype = task.recurring_type
    if rtype == RecurringType.DAILY:
        return True
    if rtype == RecurringType.WEEKLY:
        return str(day.isoweekday()) in effective_weekdays(task)
    if rtype == RecurringType.MONTHLY:
        return str(day.day) in effective_month_days(task)
    return False


def find_next_occurrence(from_date: date, task: Task, *, horizon_days: int = OCCURRENCE_HORIZON_DAYS) -> date | None:
    """
    First active date strictly after `from_date`, looking at most `horizon_days` ahead.

    Returns None when the rule has no occurrence inside the horizon.
    """
    day = from_date
    for _ in range(horizon_days):
        day = day + timedelta(days=1)
        if is_active_on(task, day):
            return day
    return None

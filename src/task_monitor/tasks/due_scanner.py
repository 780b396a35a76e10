# src/task_monitor/tasks/due_scanner.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import StrEnum

from .task_models import Task

logger = logging.getLogger(__name__)

DEFAULT_DUE_SOON_THRESHOLD = timedelta(hours=1)


class DueClassification(StrEnum):
    OVERDUE = "overdue"
    DUE_SOON = "dueSoon"
    NORMAL = "normal"


@dataclass(slots=True, frozen=True)
class DueEvent:
    task: Task
    classification: DueClassification


def due_instant(due_date: date, now: datetime) -> datetime:
    """A stored due date is due at the start of that day, in `now`'s timezone."""
    return datetime.combine(due_date, time.min, tzinfo=now.tzinfo)


def classify(task: Task, now: datetime, threshold: timedelta = DEFAULT_DUE_SOON_THRESHOLD) -> DueClassification:
    if task.due_date is None:
        return DueClassification.NORMAL

    until_due = due_instant(task.due_date, now) - now
    if until_due < timedelta(0):
        return DueClassification.OVERDUE
    if until_due <= threshold:
        return DueClassification.DUE_SOON
    return DueClassification.NORMAL


def scan(tasks: list[Task], now: datetime, threshold: timedelta = DEFAULT_DUE_SOON_THRESHOLD) -> list[DueEvent]:
    """
    Classify open, dated tasks relative to `now`.

    Completed tasks and tasks without a due date are not monitored.
    Only overdue and due-soon tasks are returned.
    """
    events: list[DueEvent] = []
    for task in tasks:
        if task.completed or task.due_date is None:
            continue
        try:
            classification = classify(task, now, threshold)
        except Exception:
            logger.exception("Due-date classification failed task_id=%s", task.id)
            continue
        if classification != DueClassification.NORMAL:
            events.append(DueEvent(task=task, classification=classification))
    return events

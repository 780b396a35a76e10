# src/task_monitor/tasks/occurrence_sync.py

from __future__ import annotations

"""
Occurrence synchronizer.

For recurring tasks `due_date` is a cursor: it points at the occurrence the task is
currently tracked against. Whenever the "current" calendar date changes (a scheduler
tick or the user navigating to another day) the cursor is moved:

- a completed task whose occurrence is live again on the target date is reopened,
- an open task active on the target date gets that date as its due date,
- an open task parked on an inactive target date rolls forward to its next occurrence.

Only `completed`, `completed_at` and `due_date` are ever written here.
Running twice with the same target date changes nothing the second time.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from enum import StrEnum

from ..core.ports import TaskRepo
from .recurrence import find_next_occurrence, is_active_on
from .task_models import Task

logger = logging.getLogger(__name__)


class SyncMode(StrEnum):
    AUTO = "auto"  # scheduled tick, feeds the notification pipeline
    MANUAL = "manual"  # user navigation, never notifies


@dataclass(slots=True)
class SyncResult:
    tasks: list[Task]
    changed: bool
    changed_ids: list[str] = field(default_factory=list)


def sync_task(task: Task, target_date: date) -> Task | None:
    """Return the updated task, or None if nothing has to change for `target_date`."""
    if not task.is_recurring:
        return None

    active = is_active_on(task, target_date)

    if active and task.completed:
        completed_on = task.completed_at.date() if task.completed_at else None
        if completed_on != target_date:
            return replace(task, completed=False, completed_at=None, due_date=target_date)
        return None

    if active and not task.completed and task.due_date != target_date:
        return replace(task, due_date=target_date)

    if not active and not task.completed and task.due_date == target_date:
        next_date = find_next_occurrence(target_date, task)
        if next_date is None:
            logger.warning(
                "No occurrence within horizon task_id=%s type=%s from=%s; due date left as is",
                task.id,
                task.recurring_type.value,
                target_date,
            )
            return None
        return replace(task, due_date=next_date)

    return None


def synchronize(tasks: list[Task], target_date: date, mode: SyncMode = SyncMode.AUTO) -> SyncResult:
    """
    Move every recurring task's occurrence cursor to `target_date`.

    Pure: the input list is not mutated. A task whose processing fails is kept as is.
    """
    out: list[Task] = []
    changed_ids: list[str] = []

    for task in tasks:
        try:
            updated = sync_task(task, target_date)
        except Exception:
            logger.exception("Occurrence sync failed task_id=%s", getattr(task, "id", None))
            updated = None

        if updated is None:
            out.append(task)
            continue

        out.append(updated)
        changed_ids.append(updated.id)
        logger.debug(
            "Occurrence sync (%s) task_id=%s due %s -> %s completed %s -> %s",
            mode.value,
            task.id,
            task.due_date,
            updated.due_date,
            task.completed,
            updated.completed,
        )

    return SyncResult(tasks=out, changed=bool(changed_ids), changed_ids=changed_ids)


class OccurrenceSynchronizer:
    """
    Store-backed synchronizer.

    Reads the whole collection, synchronizes it, and writes it back in one
    `save_all` only when something changed.
    """

    def __init__(self, task_store: TaskRepo) -> None:
        self._store = task_store

    def run(self, target_date: date, mode: SyncMode = SyncMode.AUTO) -> SyncResult:
        tasks = self._store.get_all()
        result = synchronize(tasks, target_date, mode)
        if not result.changed:
            return result

        if self._store.save_all(result.tasks):
            logger.info(
                "Occurrences synced (%s) for %s: %d task(s) updated",
                mode.value,
                target_date,
                len(result.changed_ids),
            )
        else:
            # Nothing persisted; the next run recomputes the same changes.
            logger.warning("Occurrence sync (%s) for %s not persisted", mode.value, target_date)
        return result

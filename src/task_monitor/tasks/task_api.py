# src/task_monitor/tasks/task_api.py

from __future__ import annotations

import logging
from datetime import date

from ..core.state import AppState
from .task_models import NotificationType, Task

logger = logging.getLogger(__name__)


async def toggle_task_complete(state: AppState, task_id: str) -> Task | None:
    """
    Flip a task's completion state.

    Completing a task may send a "task completed" notification (if enabled).
    """
    task = state.task_store.get_task(task_id)
    if task is None:
        logger.warning("toggle_task_complete: unknown task_id=%s", task_id)
        return None

    updated = state.task_store.update_task(task_id, completed=not task.completed)
    if updated is None:
        logger.error("toggle_task_complete: update failed task_id=%s", task_id)
        return None

    if updated.completed:
        await state.monitor.notify_task(updated, NotificationType.COMPLETED)
    return updated


async def set_task_due_date(state: AppState, task_id: str, due_date: date | None) -> Task | None:
    """
    Explicit due-date edit.

    Setting a date sends a reminder notification (if enabled); clearing it does not.
    """
    updated = state.task_store.update_task(task_id, due_date=due_date)
    if updated is None:
        logger.warning("set_task_due_date: no such task or write failed task_id=%s", task_id)
        return None

    if due_date is not None:
        await state.monitor.notify_task(updated, NotificationType.REMINDER)
    return updated


def toggle_task_pin(state: AppState, task_id: str) -> Task | None:
    task = state.task_store.get_task(task_id)
    if task is None:
        return None
    return state.task_store.update_task(task_id, is_pinned=not task.is_pinned)


def toggle_task_recurring(state: AppState, task_id: str) -> Task | None:
    task = state.task_store.get_task(task_id)
    if task is None:
        return None
    return state.task_store.update_task(task_id, is_recurring=not task.is_recurring)

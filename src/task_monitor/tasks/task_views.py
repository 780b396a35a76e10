# src/task_monitor/tasks/task_views.py

from __future__ import annotations

from datetime import date

from .recurrence import is_active_on
from .task_models import Priority, Task


def tasks_for_date(tasks: list[Task], selected: date, today: date) -> list[Task]:
    """
    Tasks shown when the user looks at `selected`.

    - recurring tasks active on that date always show
    - undated tasks only show on today
    - today also shows unfinished tasks from earlier days
    - any other day shows tasks due exactly on it
    """
    out: list[Task] = []
    for task in tasks:
        if task.is_recurring and is_active_on(task, selected):
            out.append(task)
            continue

        if task.due_date is None:
            if selected == today:
                out.append(task)
            continue

        if task.due_date == selected:
            out.append(task)
        elif selected == today and task.due_date < today and not task.completed:
            out.append(task)
    return out


def tasks_by_priority(tasks: list[Task]) -> dict[Priority, list[Task]]:
    return {p: [t for t in tasks if t.priority == p] for p in (Priority.HIGH, Priority.MEDIUM, Priority.LOW)}


def tasks_by_status(tasks: list[Task]) -> dict[str, list[Task]]:
    return {
        "completed": [t for t in tasks if t.completed],
        "pending": [t for t in tasks if not t.completed],
    }


def pinned_tasks(tasks: list[Task]) -> list[Task]:
    return [t for t in tasks if t.is_pinned]


def recurring_tasks(tasks: list[Task]) -> list[Task]:
    return [t for t in tasks if t.is_recurring]


def search_tasks(tasks: list[Task], keyword: str | None) -> list[Task]:
    if not keyword:
        return list(tasks)
    needle = keyword.lower()
    return [t for t in tasks if needle in (t.content or "").lower()]

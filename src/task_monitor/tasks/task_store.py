# src/task_monitor/tasks/task_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import Any

from .task_models import Priority, RecurringType, Task

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset(
    {
        "content",
        "priority",
        "completed",
        "due_date",
        "is_pinned",
        "is_recurring",
        "recurring_type",
        "recurring_days",
        "recurring_month_days",
    }
)


def _now() -> datetime:
    return datetime.now().astimezone()


class TaskStore:
    """
    SQLite task store.

    The monitor treats the task collection as one shared document:
    - get_all() reads the whole collection in stored order
    - save_all() replaces it inside a single transaction (all-or-nothing)

    Neither raises: read failures return [] and write failures return False (both logged).

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except Exception:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    position INTEGER NOT NULL DEFAULT 0,
                    content TEXT NOT NULL,
                    priority TEXT NOT NULL DEFAULT 'medium',
                    completed INTEGER NOT NULL DEFAULT 0,
                    due_date TEXT,
                    is_pinned INTEGER NOT NULL DEFAULT 0,
                    is_recurring INTEGER NOT NULL DEFAULT 0,
                    recurring_type TEXT NOT NULL DEFAULT 'daily',
                    recurring_days TEXT NOT NULL DEFAULT '["1"]',
                    recurring_month_days TEXT NOT NULL DEFAULT '["1"]',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    completed_at TEXT
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("position", "INTEGER NOT NULL DEFAULT 0")
            add_col("is_pinned", "INTEGER NOT NULL DEFAULT 0")
            add_col("is_recurring", "INTEGER NOT NULL DEFAULT 0")
            add_col("recurring_type", "TEXT NOT NULL DEFAULT 'daily'")
            add_col("recurring_days", "TEXT NOT NULL DEFAULT '[\"1\"]'")
            add_col("recurring_month_days", "TEXT NOT NULL DEFAULT '[\"1\"]'")
            add_col("completed_at", "TEXT")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_due_completed ON tasks(completed, due_date)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _codes_to_str(codes: frozenset[str]) -> str:
        return json.dumps(sorted(codes, key=lambda c: (len(c), c)), ensure_ascii=False)

    @staticmethod
    def _str_to_codes(s: str | None) -> frozenset[str]:
        if not s:
            return frozenset()
        try:
            val = json.loads(s)
        except Exception:
            return frozenset()
        if not isinstance(val, list):
            return frozenset()
        return frozenset(str(v) for v in val)

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        # Reuse the document parser so stored rows and imported dicts agree.
        completed = bool(row["completed"])
        return Task.from_dict(
            {
                "id": row["id"],
                "content": row["content"],
                "priority": row["priority"],
                "completed": completed,
                "dueDate": row["due_date"],
                "isPinned": bool(row["is_pinned"]),
                "isRecurring": bool(row["is_recurring"]),
                "recurringType": row["recurring_type"],
                "recurringDays": sorted(self._str_to_codes(row["recurring_days"])),
                "recurringMonthDays": sorted(self._str_to_codes(row["recurring_month_days"])),
                "createdAt": row["created_at"],
                "updatedAt": row["updated_at"],
                "completedAt": row["completed_at"],
            }
        )

    def _task_params(self, task: Task, position: int) -> tuple[Any, ...]:
        return (
            task.id,
            position,
            task.content,
            task.priority.value,
            int(task.completed),
            task.due_date.isoformat() if task.due_date else None,
            int(task.is_pinned),
            int(task.is_recurring),
            task.recurring_type.value,
            self._codes_to_str(task.recurring_days),
            self._codes_to_str(task.recurring_month_days),
            task.created_at.isoformat(),
            task.updated_at.isoformat(),
            task.completed_at.isoformat() if task.completed_at else None,
        )

    def _read_all(self, conn: sqlite3.Connection) -> list[Task]:
        cur = conn.cursor()
        cur.execute("SELECT * FROM tasks ORDER BY position ASC, created_at ASC")
        return [self._row_to_task(r) for r in cur.fetchall()]

    # ---- whole-collection API (monitor) ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM tasks")
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def get_all(self) -> list[Task]:
        try:
            conn = self._get_conn()
            try:
                return self._read_all(conn)
            finally:
                conn.close()
        except Exception:
            logger.exception("TaskStore.get_all failed db=%s", self._db_path)
            return []

    def save_all(self, tasks: list[Task]) -> bool:
        """
        Replace the whole collection atomically.

        Either every row is written or the previous collection is kept.
        """
        try:
            conn = self._get_conn()
        except Exception:
            logger.exception("TaskStore.save_all: cannot open db=%s", self._db_path)
            return False

        try:
            with conn:
                conn.execute("DELETE FROM tasks")
                conn.executemany(
                    """
                    INSERT INTO tasks(
                        id, position, content, priority, completed, due_date,
                        is_pinned, is_recurring, recurring_type,
                        recurring_days, recurring_month_days,
                        created_at, updated_at, completed_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [self._task_params(t, i) for i, t in enumerate(tasks)],
                )
            logger.debug("TaskStore.save_all wrote %d task(s)", len(tasks))
            return True
        except Exception:
            logger.exception("TaskStore.save_all failed db=%s", self._db_path)
            return False
        finally:
            conn.close()

    # ---- explicit user actions ----

    def get_task(self, task_id: str) -> Task | None:
        for task in self.get_all():
            if task.id == task_id:
                return task
        return None

    def add_task(
        self,
        *,
        content: str,
        priority: Priority | str = Priority.MEDIUM,
        due_date: date | None = None,
        is_pinned: bool = False,
        is_recurring: bool = False,
        recurring_type: RecurringType | str = RecurringType.DAILY,
        recurring_days: frozenset[str] | list[str] | None = None,
        recurring_month_days: frozenset[str] | list[str] | None = None,
    ) -> Task:
        if not content or not content.strip():
            raise ValueError("content is required")

        now = _now()
        task = Task.from_dict(
            {
                # Millisecond timestamp ids, unique within this store.
                "id": self._new_id(),
                "content": content.strip(),
                "priority": str(priority),
                "completed": False,
                "dueDate": due_date.isoformat() if due_date else None,
                "isPinned": is_pinned,
                "isRecurring": is_recurring,
                "recurringType": str(recurring_type),
                "recurringDays": list(recurring_days or []),
                "recurringMonthDays": list(recurring_month_days or []),
                "createdAt": now.isoformat(),
                "updatedAt": now.isoformat(),
            }
        )

        tasks = self.get_all()
        tasks.append(task)
        if not self.save_all(tasks):
            raise RuntimeError("Failed to persist new task")
        logger.debug("Task added id=%s recurring=%s due=%s", task.id, task.is_recurring, task.due_date)
        return task

    def update_task(self, task_id: str, **updates: Any) -> Task | None:
        """
        Apply an explicit edit.

        Completing a task stamps completed_at; reopening clears it.
        Returns the updated task, or None if the id is unknown or the write failed.
        """
        unknown = set(updates) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"unknown task fields: {sorted(unknown)}")

        tasks = self.get_all()
        index = next((i for i, t in enumerate(tasks) if t.id == task_id), None)
        if index is None:
            return None

        current = tasks[index]
        if "priority" in updates:
            updates["priority"] = Priority.from_db(str(updates["priority"]))
        if "recurring_type" in updates:
            updates["recurring_type"] = RecurringType.from_db(str(updates["recurring_type"]))
        for key in ("recurring_days", "recurring_month_days"):
            if key in updates:
                updates[key] = frozenset(str(v) for v in (updates[key] or ()))

        now = _now()
        updated = replace(current, **updates, updated_at=now)
        if updated.completed and not current.completed:
            updated = replace(updated, completed_at=now)
        elif not updated.completed:
            updated = replace(updated, completed_at=None)

        tasks[index] = updated
        if not self.save_all(tasks):
            return None
        return updated

    def delete_task(self, task_id: str) -> bool:
        tasks = self.get_all()
        remaining = [t for t in tasks if t.id != task_id]
        if len(remaining) == len(tasks):
            return True
        return self.save_all(remaining)

    # ---- helpers ----

    def _new_id(self) -> str:
        existing = {t.id for t in self.get_all()}
        candidate = int(time.time() * 1000)
        while str(candidate) in existing:
            candidate += 1
        return str(candidate)

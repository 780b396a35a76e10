# src/task_monitor/notify/dedup_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)


class DedupStore:
    """
    Last-sent notification timestamps.

    Key/value table living next to the tasks table (same SQLite file):
      key   = "lastOverdueNotification_<taskId>" / "lastDueSoonNotification_<taskId>" / ...
      value = epoch milliseconds as text

    A missing key means "never sent". Read failures are logged and reported as missing.
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS notification_log (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    def get_last_sent(self, key: str) -> int | None:
        try:
            conn = self._get_conn()
            try:
                row = conn.execute("SELECT value FROM notification_log WHERE key = ?", (key,)).fetchone()
            finally:
                conn.close()
        except Exception:
            logger.exception("DedupStore read failed key=%s", key)
            return None

        if row is None:
            return None
        try:
            return int(row[0])
        except (TypeError, ValueError):
            logger.warning("DedupStore: unparsable value for key=%s: %r", key, row[0])
            return None

    def record_sent(self, key: str, ts_ms: int) -> None:
        try:
            conn = self._get_conn()
            try:
                with conn:
                    conn.execute(
                        """
                        INSERT INTO notification_log(key, value) VALUES (?, ?)
                        ON CONFLICT(key) DO UPDATE SET value = excluded.value
                        """,
                        (key, str(int(ts_ms))),
                    )
            finally:
                conn.close()
        except Exception:
            logger.exception("DedupStore write failed key=%s", key)

    def prune_older_than(self, cutoff_ms: int) -> int:
        """Delete records last sent before `cutoff_ms`. Returns the number removed."""
        try:
            conn = self._get_conn()
            try:
                with conn:
                    cur = conn.execute(
                        "DELETE FROM notification_log WHERE CAST(value AS INTEGER) < ?",
                        (int(cutoff_ms),),
                    )
                    removed = int(cur.rowcount or 0)
            finally:
                conn.close()
        except Exception:
            logger.exception("DedupStore prune failed")
            return 0

        if removed:
            logger.info("DedupStore pruned %d record(s)", removed)
        return removed

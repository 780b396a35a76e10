# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from task_monitor.cli.bootstrap import create_initial_state
from task_monitor.core.state import AppState

from .fakes import FakeClock, FakeNotifier, InMemoryDedupStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and the monitor.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="task-monitor-test",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        notification_settings_path=tmp_path / "notification_settings.json",
        check_interval_ms=300_000,
        due_soon_threshold_ms=3_600_000,
        dedup_retention_days=7,
        send_timeout_ms=30_000,
        notifier="log",
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def dedup() -> InMemoryDedupStore:
    return InMemoryDedupStore()


@pytest.fixture()
def state(settings: SimpleNamespace, notifier: FakeNotifier, clock: FakeClock) -> AppState:
    """
    AppState wired with deterministic fakes for clock and transport.

    NOTE: We keep the real SQLite stores here because their correctness
    is part of what we want to test.
    """
    return create_initial_state(settings=settings, notifier=notifier, clock=clock)

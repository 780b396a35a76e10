# tests/test_task_scheduler.py

from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta, timezone

import pytest

from task_monitor.notify.gate import NotificationGate
from task_monitor.notify.settings_provider import NotificationSettings
from task_monitor.tasks.task_models import NotificationType, RecurringType
from task_monitor.tasks.task_scheduler import MonitorState, TaskMonitor

from .fakes import (
    BlockingNotifier,
    FakeClock,
    FakeNotifier,
    InMemoryDedupStore,
    InMemoryTaskRepo,
    StaticSettingsProvider,
    make_task,
)

DUE = date(2024, 5, 15)
DUE_AT = datetime(2024, 5, 15, 0, 0, tzinfo=timezone.utc)


def _monitor(
    repo: InMemoryTaskRepo,
    clock: FakeClock,
    notifier: FakeNotifier,
    settings: NotificationSettings | None = None,
    **kwargs,
) -> TaskMonitor:
    return TaskMonitor(
        repo,
        notifier,
        StaticSettingsProvider(settings),
        NotificationGate(InMemoryDedupStore()),
        clock=clock,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_overdue_task_renotifies_only_after_an_hour() -> None:
    clock = FakeClock(DUE_AT + timedelta(hours=2))
    notifier = FakeNotifier()
    repo = InMemoryTaskRepo([make_task("t1", content="pay rent", due_date=DUE)])
    monitor = _monitor(repo, clock, notifier)

    first = await monitor.run_cycle()
    assert first.sent == 1
    assert notifier.types_for("t1") == ["overdue"]
    assert "pay rent" in notifier.sent[0].body

    clock.advance(minutes=30)
    await monitor.run_cycle()
    assert len(notifier.sent) == 1

    clock.advance(minutes=40)  # 70 minutes after the first notification
    await monitor.run_cycle()
    assert notifier.types_for("t1") == ["overdue", "overdue"]


@pytest.mark.asyncio
async def test_due_soon_is_sent_once() -> None:
    clock = FakeClock(DUE_AT - timedelta(minutes=30))
    notifier = FakeNotifier()
    repo = InMemoryTaskRepo([make_task("t1", due_date=DUE)])
    monitor = _monitor(repo, clock, notifier)

    await monitor.run_cycle()
    assert notifier.types_for("t1") == ["dueSoon"]

    for _ in range(6):
        clock.advance(minutes=10)
        await monitor.run_cycle()

    # once the due moment passes it becomes overdue, but due-soon never repeats
    assert notifier.types_for("t1").count("dueSoon") == 1


@pytest.mark.asyncio
async def test_cycle_reopens_recurring_task_and_refreshes_collection() -> None:
    clock = FakeClock(datetime(2024, 5, 15, 9, 0, tzinfo=timezone.utc))
    repo = InMemoryTaskRepo(
        [
            make_task(
                "r",
                is_recurring=True,
                recurring_type=RecurringType.DAILY,
                completed=True,
                completed_at=datetime(2024, 5, 14, 20, 0, tzinfo=timezone.utc),
                due_date=date(2024, 5, 14),
            )
        ]
    )
    monitor = _monitor(repo, clock, FakeNotifier())

    report = await monitor.run_cycle()

    assert report.synced == 1
    assert repo.saves == 1
    assert repo.reads == 2  # initial read + refresh after the write
    task = repo.by_id("r")
    assert task.completed is False
    assert task.due_date == date(2024, 5, 15)

    await monitor.run_cycle()
    assert repo.saves == 1


@pytest.mark.asyncio
async def test_settings_are_reread_every_cycle() -> None:
    provider = StaticSettingsProvider(NotificationSettings(task_overdue=False))
    repo = InMemoryTaskRepo([make_task("t1", due_date=DUE)])
    notifier = FakeNotifier()
    monitor = TaskMonitor(
        repo,
        notifier,
        provider,
        NotificationGate(InMemoryDedupStore()),
        clock=FakeClock(DUE_AT + timedelta(hours=2)),
    )

    await monitor.run_cycle()
    assert notifier.sent == []

    provider.settings = NotificationSettings(task_overdue=True)
    await monitor.run_cycle()
    assert provider.calls == 2
    assert notifier.types_for("t1") == ["overdue"]


@pytest.mark.asyncio
async def test_notifier_failure_is_not_retried_within_window() -> None:
    clock = FakeClock(DUE_AT + timedelta(hours=2))
    notifier = FakeNotifier(result=False)
    monitor = _monitor(InMemoryTaskRepo([make_task("t1", due_date=DUE)]), clock, notifier)

    first = await monitor.run_cycle()
    assert first.sent == 0
    assert len(notifier.sent) == 1

    clock.advance(minutes=5)
    await monitor.run_cycle()
    assert len(notifier.sent) == 1


@pytest.mark.asyncio
async def test_failing_store_does_not_escape_cycle() -> None:
    class BrokenRepo(InMemoryTaskRepo):
        def get_all(self):
            raise RuntimeError("disk on fire")

    monitor = _monitor(BrokenRepo(), FakeClock(), FakeNotifier())
    report = await monitor.run_cycle()
    assert report.failed is True


@pytest.mark.asyncio
async def test_threshold_change_applies_on_next_scan() -> None:
    clock = FakeClock(DUE_AT - timedelta(hours=3))
    notifier = FakeNotifier()
    monitor = _monitor(InMemoryTaskRepo([make_task("t1", due_date=DUE)]), clock, notifier)

    await monitor.run_cycle()
    assert notifier.sent == []

    monitor.set_due_soon_threshold(4 * 60 * 60 * 1000)
    await monitor.run_cycle()
    assert notifier.types_for("t1") == ["dueSoon"]


@pytest.mark.asyncio
async def test_start_runs_immediately_then_ticks_until_stopped() -> None:
    clock = FakeClock()
    repo = InMemoryTaskRepo()
    monitor = _monitor(repo, clock, FakeNotifier(), check_interval_ms=1_000)

    assert monitor.state == MonitorState.STOPPED
    await monitor.start()
    assert monitor.state == MonitorState.RUNNING
    assert repo.reads == 1  # immediate cycle

    for _ in range(5):
        await asyncio.sleep(0)
    assert repo.reads > 1
    assert set(clock.sleeps) == {1.0}

    monitor.stop()
    assert monitor.state == MonitorState.STOPPED
    await asyncio.sleep(0)
    reads_after_stop = repo.reads
    for _ in range(5):
        await asyncio.sleep(0)
    assert repo.reads == reads_after_stop

    monitor.stop()  # no-op
    assert monitor.state == MonitorState.STOPPED


@pytest.mark.asyncio
async def test_double_start_is_a_noop(caplog: pytest.LogCaptureFixture) -> None:
    repo = InMemoryTaskRepo()
    monitor = _monitor(repo, FakeClock(), FakeNotifier(), check_interval_ms=60_000)

    await monitor.start()
    reads = repo.reads
    await monitor.start()

    assert repo.reads == reads
    assert "already running" in caplog.text
    monitor.stop()


@pytest.mark.asyncio
async def test_set_check_interval_restarts_running_monitor() -> None:
    clock = FakeClock()
    repo = InMemoryTaskRepo()
    monitor = _monitor(repo, clock, FakeNotifier(), check_interval_ms=1_000)

    await monitor.set_check_interval(2_000)
    assert monitor.state == MonitorState.STOPPED
    assert repo.reads == 0

    await monitor.start()
    await monitor.set_check_interval(5_000)
    assert monitor.state == MonitorState.RUNNING
    assert monitor.check_interval_ms == 5_000
    assert repo.reads == 2  # one immediate cycle per start

    clock.sleeps.clear()
    for _ in range(3):
        await asyncio.sleep(0)
    assert clock.sleeps and set(clock.sleeps) == {5.0}
    monitor.stop()


@pytest.mark.asyncio
async def test_manual_navigation_syncs_without_notifying() -> None:
    clock = FakeClock(datetime(2024, 5, 15, 9, 0, tzinfo=timezone.utc))
    notifier = FakeNotifier()
    repo = InMemoryTaskRepo(
        [
            make_task("overdue", due_date=date(2024, 5, 1)),
            make_task(
                "weekly",
                is_recurring=True,
                recurring_type=RecurringType.WEEKLY,
                recurring_days=frozenset({"4"}),
                due_date=date(2024, 5, 9),
            ),
        ]
    )
    monitor = _monitor(repo, clock, notifier)

    result = await monitor.go_next_day()

    assert monitor.selected_date == date(2024, 5, 16)
    assert result.changed_ids == ["weekly"]
    assert repo.by_id("weekly").due_date == date(2024, 5, 16)
    assert notifier.sent == []

    await monitor.go_previous_day()
    assert monitor.selected_date == date(2024, 5, 15)
    # Wednesday is inactive and the cursor is on Thursday: nothing moves.
    assert repo.by_id("weekly").due_date == date(2024, 5, 16)

    await monitor.go_to_date(date(2024, 5, 23))
    assert repo.by_id("weekly").due_date == date(2024, 5, 23)

    await monitor.go_today()
    assert monitor.selected_date == date(2024, 5, 15)
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_notify_task_goes_through_the_gate() -> None:
    notifier = FakeNotifier()
    settings = NotificationSettings(task_completed=False)
    monitor = _monitor(InMemoryTaskRepo(), FakeClock(), notifier, settings)
    task = make_task("t1", content="a very long task description indeed")

    assert await monitor.notify_task(task, NotificationType.COMPLETED) is False
    assert await monitor.notify_task(task, NotificationType.REMINDER) is True
    assert notifier.sent[0].body == "You have a pending task: a very long task des..."
    assert notifier.sent[0].options["data"] == {"taskId": "t1", "type": "reminder"}


@pytest.mark.asyncio
async def test_system_update_notification_is_deduplicated() -> None:
    clock = FakeClock()
    notifier = FakeNotifier()
    monitor = _monitor(InMemoryTaskRepo(), clock, notifier)

    assert await monitor.notify_system_update("maintenance", "Down for maintenance 02:00-03:00")
    assert not await monitor.notify_system_update("maintenance", "Down for maintenance 02:00-03:00")
    assert notifier.sent[0].title == "System update"


def _timers() -> list[asyncio.Task]:
    return [t for t in asyncio.all_tasks() if t.get_name() == "task-monitor-timer"]


async def _yield(times: int = 10) -> None:
    for _ in range(times):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_restart_during_first_cycle_leaves_a_single_timer() -> None:
    clock = FakeClock(DUE_AT + timedelta(hours=2))
    notifier = BlockingNotifier()
    repo = InMemoryTaskRepo([make_task("t1", due_date=DUE)])
    monitor = _monitor(repo, clock, notifier, check_interval_ms=1_000)

    first = asyncio.create_task(monitor.start())
    await notifier.entered.wait()

    restart = asyncio.create_task(monitor.set_check_interval(2_000))
    await _yield(3)
    notifier.release.set()
    await first
    await restart

    assert monitor.state == MonitorState.RUNNING
    assert len(_timers()) == 1

    monitor.stop()
    await _yield(3)
    assert _timers() == []
    reads = repo.reads
    await _yield()
    assert repo.reads == reads


@pytest.mark.asyncio
async def test_stop_lets_the_in_flight_cycle_finish() -> None:
    clock = FakeClock(DUE_AT + timedelta(hours=2))
    notifier = BlockingNotifier()
    dedup = InMemoryDedupStore()
    repo = InMemoryTaskRepo()
    monitor = TaskMonitor(
        repo,
        notifier,
        StaticSettingsProvider(),
        NotificationGate(dedup),
        clock=clock,
        check_interval_ms=1_000,
    )

    await monitor.start()
    repo.tasks.append(make_task("t1", due_date=DUE))
    await notifier.entered.wait()  # a timer tick is now parked in send()

    monitor.stop()
    await _yield(3)
    assert notifier.delivered == []

    notifier.release.set()
    await _yield()

    assert [n.task_id for n in notifier.delivered] == ["t1"]
    assert monitor.last_report is not None
    assert monitor.last_report.sent == 1
    assert "lastOverdueNotification_t1" in dedup.records

    reads = repo.reads
    await _yield()
    assert repo.reads == reads


@pytest.mark.asyncio
async def test_navigation_waits_for_the_in_flight_cycle() -> None:
    clock = FakeClock(datetime(2024, 5, 15, 9, 0, tzinfo=timezone.utc))
    notifier = BlockingNotifier()
    repo = InMemoryTaskRepo(
        [
            make_task("late", due_date=date(2024, 5, 1)),
            make_task(
                "daily",
                is_recurring=True,
                recurring_type=RecurringType.DAILY,
                completed=True,
                completed_at=datetime(2024, 5, 14, 20, 0, tzinfo=timezone.utc),
                due_date=date(2024, 5, 14),
            ),
            make_task(
                "weekly",
                is_recurring=True,
                recurring_type=RecurringType.WEEKLY,
                recurring_days=frozenset({"4"}),
                due_date=date(2024, 5, 9),
            ),
        ]
    )
    monitor = _monitor(repo, clock, notifier)

    cycle = asyncio.create_task(monitor.run_cycle())
    await notifier.entered.wait()
    assert repo.saves == 1  # the cycle reopened "daily"

    nav = asyncio.create_task(monitor.go_to_date(date(2024, 5, 23)))
    await _yield()
    assert not nav.done()
    assert monitor.selected_date is None
    assert repo.saves == 1

    notifier.release.set()
    report = await cycle
    result = await nav

    assert report.synced == 1
    assert report.sent == 3  # every open dated task is overdue at 09:00
    assert sorted(result.changed_ids) == ["daily", "weekly"]
    assert repo.saves == 2
    assert monitor.selected_date == date(2024, 5, 23)
    assert repo.by_id("weekly").due_date == date(2024, 5, 23)
    assert repo.by_id("daily").due_date == date(2024, 5, 23)
    assert repo.by_id("daily").completed is False


@pytest.mark.asyncio
async def test_stalled_notifier_is_bounded_by_send_timeout() -> None:
    notifier = BlockingNotifier()  # never released
    repo = InMemoryTaskRepo([make_task("t1", due_date=DUE)])
    monitor = _monitor(repo, FakeClock(DUE_AT + timedelta(hours=2)), notifier, send_timeout_s=0.01)

    report = await monitor.run_cycle()

    assert report.failed is False
    assert report.events == 1
    assert report.sent == 0
    assert len(notifier.sent) == 1
    assert notifier.delivered == []

    result = await monitor.go_to_date(date(2024, 5, 16))
    assert result.changed is False
    assert await monitor.notify_system_update("maintenance", "soon") is False

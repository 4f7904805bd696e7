from datetime import datetime

import pytest

from salat.core.task import TaskType, compute_next_run, parse_time_of_day
from salat.core.task_manager import TaskManager
from salat.prayer.task import COMPONENT_NAME, DailyRefreshTask

from .helpers import make_record


class StubService:
    def __init__(self):
        self.refreshes = 0

    def refresh_prayer_times(self):
        self.refreshes += 1
        return make_record()


@pytest.mark.parametrize(
    "value,expected",
    [("06:00", (6, 0)), ("5:07", (5, 7)), ("23:59", (23, 59)), ("25:00", (6, 0)), ("junk", (6, 0))],
)
def test_parse_time_of_day(value, expected):
    assert parse_time_of_day(value, "06:00") == expected


def test_daily_next_run_later_today():
    now = datetime(2026, 10, 18, 5, 30)
    assert compute_next_run(TaskType.DAILY, {"time": "06:00"}, now) == datetime(2026, 10, 18, 6, 0)


def test_daily_next_run_rolls_to_tomorrow():
    now = datetime(2026, 10, 18, 6, 0)
    assert compute_next_run(TaskType.DAILY, {"time": "06:00"}, now) == datetime(2026, 10, 19, 6, 0)


def test_interval_next_run():
    now = datetime(2026, 10, 18, 6, 0)
    assert compute_next_run(TaskType.INTERVAL_SECONDS, {"interval_seconds": 90}, now) == datetime(2026, 10, 18, 6, 1, 30)


def test_refresh_task_arms_recurring_timer(task_manager):
    task = DailyRefreshTask(StubService(), {"time": "06:00"})

    delay = task.start(task_manager, now=datetime(2026, 10, 18, 5, 0))

    assert delay == 3600
    timer = task_manager.tasks[COMPONENT_NAME]
    assert timer.one_time is False
    assert timer.interval == 86400


def test_refresh_task_after_refresh_time_waits_for_tomorrow(task_manager):
    task = DailyRefreshTask(StubService(), {"time": "06:00", "interval_seconds": 3600})

    delay = task.start(task_manager, now=datetime(2026, 10, 18, 7, 0))

    assert delay == 23 * 3600
    assert task_manager.tasks[COMPONENT_NAME].interval == 3600


def test_refresh_task_run_calls_service(task_manager):
    service = StubService()
    task = DailyRefreshTask(service)
    task.start(task_manager, now=datetime(2026, 10, 18, 5, 0))

    task_manager.fire(COMPONENT_NAME)

    assert service.refreshes == 1
    # recurring timers stay registered
    assert COMPONENT_NAME in task_manager.tasks


def test_task_manager_cancel_and_replace():
    manager = TaskManager()
    try:
        first = manager.schedule_task("job", lambda: None, 3600)
        second = manager.schedule_task("job", lambda: None, 3600)

        assert first is not second
        assert manager.tasks["job"] is second
        assert first.finished.is_set()
        assert manager.cancel_task("job") is True
        assert manager.cancel_task("job") is False
        assert not manager.is_scheduled("job")
    finally:
        manager.stop()


def test_task_manager_reschedules_recurring_task_after_error():
    manager = TaskManager()
    calls = []

    def boom():
        calls.append(1)
        raise RuntimeError("scrape failed")

    try:
        manager._run_task("refresh", None, boom, 0, False, 3600)

        assert calls == [1]
        assert manager.is_scheduled("refresh")
        timers = manager.get_active_timers()
        assert [timer["name"] for timer in timers] == ["refresh"]
    finally:
        manager.stop()

    assert manager.tasks == {}


def test_task_manager_one_time_task_is_forgotten_after_run():
    manager = TaskManager()
    calls = []
    timer = manager.schedule_task("once", lambda: None, 3600)
    assert manager.is_scheduled("once")

    manager._run_task("once", timer, lambda: calls.append(1), 0, True, None)

    assert calls == [1]
    assert not manager.is_scheduled("once")
    timer.cancel()
    manager.stop()


def test_expired_timer_does_not_drop_newer_registration():
    manager = TaskManager()
    try:
        expired = manager.schedule_task("prayer_alert", lambda: None, 3600)
        rearmed = manager.schedule_task("prayer_alert", lambda: None, 3600)

        manager._run_task("prayer_alert", expired, lambda: None, 0, True, None)

        assert manager.tasks["prayer_alert"] is rearmed
        assert manager.cancel_task("prayer_alert") is True
        assert rearmed.finished.is_set()
    finally:
        manager.stop()


def test_callback_that_rearms_keeps_its_new_timer():
    manager = TaskManager()
    rearmed = []
    try:
        expired = manager.schedule_task("prayer_alert", lambda: None, 3600)

        def fire():
            rearmed.append(manager.schedule_task("prayer_alert", lambda: None, 3600))

        manager._run_task("prayer_alert", expired, fire, 0, True, None)

        assert manager.tasks["prayer_alert"] is rearmed[0]
        assert [timer["name"] for timer in manager.get_active_timers()] == ["prayer_alert"]
    finally:
        manager.stop()

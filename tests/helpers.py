"""Test doubles shared across the test modules."""
from datetime import datetime
from typing import Any, Callable, Dict, List

from salat.prayer.schemas import NotificationSettings, PrayerTimes


class FakeTimer:
    def __init__(self, name: str, callback: Callable[[], Any], delay: float, one_time: bool, interval):
        self.name = name
        self.callback = callback
        self.delay = delay
        self.one_time = one_time
        self.interval = interval
        self.cancelled = False


class FakeTaskManager:
    """Records timers instead of starting threads; tests fire them by hand."""

    def __init__(self):
        self.tasks: Dict[str, FakeTimer] = {}
        self.scheduled: List[FakeTimer] = []
        self.cancelled: List[FakeTimer] = []

    def schedule_task(self, name, callback, delay, one_time=True, interval=None):
        if name in self.tasks:
            self._cancel(self.tasks.pop(name))
        timer = FakeTimer(name, callback, delay, one_time, interval)
        self.tasks[name] = timer
        self.scheduled.append(timer)
        return timer

    def _cancel(self, timer: FakeTimer) -> None:
        timer.cancelled = True
        self.cancelled.append(timer)

    def cancel_task(self, name):
        timer = self.tasks.pop(name, None)
        if timer is None:
            return False
        self._cancel(timer)
        return True

    def fire(self, name: str) -> None:
        timer = self.tasks[name]
        if timer.one_time:
            del self.tasks[name]
        timer.callback()

    def get_active_timers(self):
        return [{"name": name, "next_run_at": None} for name in self.tasks]

    def stop(self):
        for name in list(self.tasks):
            self.cancel_task(name)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeNotifier:
    def __init__(self, granted: bool = True):
        self.permission_granted = granted
        self.sent: List[tuple] = []

    def notify(self, title, body, icon=None):
        self.sent.append((title, body, icon))
        return True


class FakeAudio:
    def __init__(self):
        self.played: List[tuple] = []
        self.stopped = 0

    def play_adhan(self, prayer_name, volume=0.8):
        self.played.append((prayer_name, volume))
        return True

    def stop_adhan(self):
        self.stopped += 1


def make_record(date: str = "2026-10-18", **times: str) -> PrayerTimes:
    values = {"fajr": "5:45", "dhuhr": "12:15", "asr": "15:28", "maghrib": "17:42", "isha": "19:15"}
    values.update(times)
    return PrayerTimes(date=date, **values)


def make_settings(**flags: Any) -> NotificationSettings:
    return NotificationSettings(**flags)


ALL_OFF = dict(
    fajr_enabled=False,
    dhuhr_enabled=False,
    asr_enabled=False,
    maghrib_enabled=False,
    isha_enabled=False,
)



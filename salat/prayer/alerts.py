"""
Local prayer alerts: arm one timer for the next enabled prayer, notify and play the
adhan when it fires, then arm the following one.

States:
    IDLE       nothing armed (no inputs, or no enabled prayer left today)
    COMPUTING  choosing the next target from the current record and settings
    ARMED      one timer pending under TIMER_NAME
    FIRING     running the notification / audio side effects

Exactly one alert is armed at a time. Every run() or cancel() clears the armed
timer first and bumps a generation counter, so a callback that was already in
flight for superseded inputs returns without side effects. When today's enabled
prayers are exhausted the scheduler stays IDLE; it does not roll over to
tomorrow. The daily refresh re-runs it with the new record.
"""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from .prayers import PRAYER_ORDER, Prayer, minutes_of_day
from .schemas import NotificationSettings, PrayerTimes

logger = logging.getLogger(__name__)


class AlertState(str, Enum):
    IDLE = "idle"
    COMPUTING = "computing"
    ARMED = "armed"
    FIRING = "firing"


@dataclass(frozen=True)
class ScheduledAlert:
    prayer: Prayer
    fires_at: datetime
    handle: str
    generation: int

    @property
    def name(self) -> str:
        return self.prayer.display_name


def upcoming_prayers(
    record: PrayerTimes,
    settings: NotificationSettings,
    now: datetime,
    skip: Iterable[Prayer] = (),
) -> List[Tuple[Prayer, int]]:
    """Enabled prayers not yet passed today as (prayer, minute_of_day), earliest first.

    A prayer whose minute equals the current minute still counts as upcoming.
    Equal minutes keep canonical order (fajr, dhuhr, asr, maghrib, isha).
    """
    current_minutes = now.hour * 60 + now.minute
    flags = settings.enabled_flags()
    times = record.times()
    skipped = set(skip)
    candidates = []
    for prayer in PRAYER_ORDER:
        if not flags[prayer] or prayer in skipped:
            continue
        minutes = minutes_of_day(times[prayer])
        if minutes < current_minutes:
            continue
        candidates.append((prayer, minutes))
    return sorted(candidates, key=lambda item: (item[1], item[0].order))


def next_prayer(
    record: Optional[PrayerTimes],
    settings: Optional[NotificationSettings],
    now: datetime,
    skip: Iterable[Prayer] = (),
) -> Optional[Tuple[Prayer, datetime]]:
    """The next prayer to alert for and the instant to fire, or None if nothing is left today."""
    if record is None or settings is None:
        return None
    upcoming = upcoming_prayers(record, settings, now, skip)
    if not upcoming:
        return None
    prayer, minutes = upcoming[0]
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return prayer, midnight + timedelta(minutes=minutes)


class PrayerAlertScheduler:
    TIMER_NAME = "prayer_alert"

    def __init__(
        self,
        task_manager: Any,
        notifier: Any,
        audio: Any,
        clock: Callable[[], datetime] = datetime.now,
        icon: Optional[str] = None,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.task_manager = task_manager
        self.notifier = notifier
        self.audio = audio
        self.clock = clock
        self.icon = icon
        self.state = AlertState.IDLE
        self.current_alert: Optional[ScheduledAlert] = None
        self._record: Optional[PrayerTimes] = None
        self._settings: Optional[NotificationSettings] = None
        self._generation = 0
        self._fired: Set[Tuple[str, Prayer]] = set()
        self._lock = threading.RLock()

    def run(
        self,
        record: Optional[PrayerTimes],
        settings: Optional[NotificationSettings],
    ) -> Callable[[], None]:
        """(Re)start with fresh inputs. Returns a callable that cancels the armed alert."""
        with self._lock:
            self._clear_locked()
            self._record = record
            self._settings = settings
            if record is not None:
                self._fired = {entry for entry in self._fired if entry[0] == record.date}
            self._compute_and_arm_locked()
        return self.cancel

    def update_settings(self, settings: Optional[NotificationSettings]) -> None:
        with self._lock:
            self.run(self._record, settings)

    def update_record(self, record: Optional[PrayerTimes]) -> None:
        with self._lock:
            self.run(record, self._settings)

    def cancel(self) -> None:
        with self._lock:
            self._clear_locked()
            self.state = AlertState.IDLE

    def _clear_locked(self) -> None:
        self._generation += 1
        if self.current_alert is not None:
            self.task_manager.cancel_task(self.current_alert.handle)
            self.logger.info(f"Cancelled {self.current_alert.name} alert")
            self.current_alert = None

    def _fired_today(self) -> List[Prayer]:
        if self._record is None:
            return []
        return [prayer for date, prayer in self._fired if date == self._record.date]

    def _compute_and_arm_locked(self) -> Optional[ScheduledAlert]:
        self.state = AlertState.COMPUTING
        now = self.clock()
        target = next_prayer(self._record, self._settings, now, skip=self._fired_today())
        if target is None:
            self.state = AlertState.IDLE
            if self._record is None or self._settings is None:
                self.logger.info("No prayer times or settings yet, nothing to schedule")
            else:
                self.logger.info("No enabled prayers left today, nothing to schedule")
            return None

        prayer, fires_at = target
        delay = max(0.0, (fires_at - now).total_seconds())
        self._generation += 1
        generation = self._generation
        alert = ScheduledAlert(prayer=prayer, fires_at=fires_at, handle=self.TIMER_NAME, generation=generation)
        self.current_alert = alert
        self.task_manager.schedule_task(
            self.TIMER_NAME,
            lambda: self._fire(generation),
            delay,
            one_time=True,
        )
        self.state = AlertState.ARMED
        self.logger.info(f"Scheduled {alert.name} alert at {fires_at} (in {round(delay / 60)} minutes)")
        return alert

    def _fire(self, generation: int) -> None:
        with self._lock:
            alert = self.current_alert
            if alert is None or alert.generation != generation:
                self.logger.debug(f"Ignoring superseded alert timer (generation {generation})")
                return
            self.state = AlertState.FIRING
            self.current_alert = None
            settings = self._settings
            if self._record is not None:
                self._fired.add((self._record.date, alert.prayer))

        self._trigger(alert, settings)

        with self._lock:
            # run()/cancel() during the side effects already decided what comes next
            if self._generation == generation:
                self._compute_and_arm_locked()

    def _trigger(self, alert: ScheduledAlert, settings: NotificationSettings) -> None:
        name = alert.name
        self.logger.info(f"Time for {name}")
        try:
            if self.notifier.permission_granted:
                self.notifier.notify(f"Time for {name}", f"It's time for {name} prayer", self.icon)
            else:
                self.logger.info("Notification permission not granted")
        except Exception as e:
            self.logger.exception(f"Error sending {name} notification: {e}")
        if settings.adhan_auto_play:
            try:
                self.audio.play_adhan(name, settings.volume_level)
            except Exception as e:
                self.logger.exception(f"Error playing {name} adhan: {e}")

    def status(self) -> Dict[str, Any]:
        """Snapshot for the API."""
        with self._lock:
            alert = self.current_alert
            return {
                "state": self.state.value,
                "prayer": alert.prayer.value if alert else None,
                "fires_at": alert.fires_at.isoformat() if alert else None,
            }

"""
Base task type and abstract BaseTask with next-run computation in server-local time.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class TaskType:
    """Schedule kind for tasks."""
    DAILY = "daily"
    INTERVAL_SECONDS = "interval_seconds"


def parse_time_of_day(time_str: Any, default: str = "00:00") -> tuple:
    """Parse "H:MM" / "HH:MM" into (hour, minute). Falls back to default on bad input."""
    try:
        parts = str(time_str).strip().split(":")
        hour = int(parts[0]) if parts and parts[0] else 0
        minute = int(parts[1]) if len(parts) > 1 else 0
        if not (0 <= hour < 24 and 0 <= minute < 60):
            raise ValueError(f"time out of range: {time_str}")
        return hour, minute
    except (ValueError, IndexError):
        logger.warning(f"Invalid time of day {time_str!r}, using {default}")
        hour, minute = default.split(":")
        return int(hour), int(minute)


def compute_next_run(
    schedule_type: str,
    schedule_config: Optional[Dict[str, Any]],
    last_run: Optional[datetime] = None,
) -> datetime:
    """Compute next run datetime (naive local) from schedule_type, schedule_config, and last_run."""
    if last_run is None:
        last_run = datetime.now()

    if schedule_type == TaskType.DAILY and schedule_config:
        hour, minute = parse_time_of_day(schedule_config.get("time", "00:00"))
        next_run = last_run.replace(hour=hour, minute=minute, second=0, microsecond=0)
        if next_run <= last_run:
            next_run += timedelta(days=1)
        return next_run

    if schedule_type == TaskType.INTERVAL_SECONDS and schedule_config:
        sec = int(schedule_config.get("interval_seconds", 86400))
        return last_run + timedelta(seconds=sec)

    return last_run + timedelta(days=1)


class BaseTask(ABC):
    """
    Abstract base for background tasks. Subclasses implement run();
    base helps with get_next_run / seconds_until_next_run.
    """

    def __init__(self, component_name: str, schedule_type: str, schedule_config: Optional[Dict[str, Any]] = None):
        self.component_name = component_name
        self.schedule_type = schedule_type
        self.schedule_config = schedule_config or {}
        self.logger = logging.getLogger(self.__class__.__name__)

    def get_next_run(self, last_run: Optional[datetime] = None) -> datetime:
        """Compute next run time from schedule_type and schedule_config."""
        return compute_next_run(self.schedule_type, self.schedule_config, last_run)

    def seconds_until_next_run(self, now: Optional[datetime] = None) -> float:
        now = now or datetime.now()
        return max(0.0, (self.get_next_run(now) - now).total_seconds())

    @abstractmethod
    def run(self, **kwargs: Any) -> Any:
        """Execute the task once."""
        pass

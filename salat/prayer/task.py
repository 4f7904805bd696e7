"""
Background task: scrape prayer times once a day and persist them (upsert by date).

First run at the next refresh.time (default 06:00 server-local), then every
refresh.interval_seconds (default 24h) for the life of the process.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from salat.core.task import BaseTask, TaskType, parse_time_of_day
from salat.core.task_manager import TaskManager

COMPONENT_NAME = "prayer_times_daily_refresh"
DEFAULT_REFRESH_TIME = "06:00"
DEFAULT_INTERVAL_SECONDS = 86400


class DailyRefreshTask(BaseTask):
    """Scrape and upsert today's prayer times, then re-arm alerts via the service."""

    def __init__(self, service: Any, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        hour, minute = parse_time_of_day(config.get("time", DEFAULT_REFRESH_TIME), DEFAULT_REFRESH_TIME)
        super().__init__(COMPONENT_NAME, TaskType.DAILY, {"time": f"{hour:02d}:{minute:02d}"})
        self.service = service
        self.interval_seconds = int(config.get("interval_seconds", DEFAULT_INTERVAL_SECONDS))

    def start(self, task_manager: TaskManager, now: Optional[datetime] = None) -> float:
        """Arm the first run at the next refresh time; recurring afterwards. Returns the delay."""
        delay = self.seconds_until_next_run(now)
        task_manager.schedule_task(
            self.component_name,
            self.run,
            delay,
            one_time=False,
            interval=self.interval_seconds,
        )
        self.logger.info(
            f"Daily scraping scheduled for {self.get_next_run(now).isoformat()}, "
            f"then every {self.interval_seconds} seconds"
        )
        return delay

    def run(self, **kwargs: Any) -> Any:
        self.logger.info("Daily scraping job started...")
        record = self.service.refresh_prayer_times()
        self.logger.info(f"Daily scraping job completed for {record.date}")
        return record

"""
Service layer shared by the API, the daily refresh task and app startup:
today's record (scraping if absent), forced refresh, settings updates, alert re-arm.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Optional

from .schemas import DEFAULT_USER_ID, NotificationSettings, PrayerTimes


class PrayerTimesService:
    def __init__(
        self,
        storage: Any,
        scraper: Any,
        alert_scheduler: Optional[Any] = None,
        clock: Callable[[], datetime] = datetime.now,
        user_id: str = DEFAULT_USER_ID,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.storage = storage
        self.scraper = scraper
        self.alert_scheduler = alert_scheduler
        self.clock = clock
        self.user_id = user_id

    def today(self) -> str:
        return self.clock().date().isoformat()

    def get_today_prayer_times(self) -> PrayerTimes:
        """Today's record; scrapes and persists one first if there is none."""
        record = self.storage.get_record_by_date(self.today())
        if record is None:
            self.logger.info("Scraping prayer times for today...")
            record = self.storage.upsert_record(self.scraper.scrape_prayer_times())
        return record

    def refresh_prayer_times(self) -> PrayerTimes:
        """Scrape now and upsert. Storage errors propagate to the caller."""
        self.logger.info("Updating prayer times...")
        record = self.storage.upsert_record(self.scraper.scrape_prayer_times())
        if record.date == self.today():
            self.reschedule_alerts(record=record)
        return record

    def get_settings(self) -> Optional[NotificationSettings]:
        return self.storage.get_settings(self.user_id)

    def update_settings(self, update: Any) -> NotificationSettings:
        settings = self.storage.upsert_settings(self.user_id, update)
        if self.alert_scheduler is not None:
            # Stored record only; a settings change never triggers a scrape
            self.alert_scheduler.run(self.storage.get_record_by_date(self.today()), settings)
        return settings

    def reschedule_alerts(self, record: Optional[PrayerTimes] = None) -> None:
        """Re-run the alert scheduler with today's record and current settings."""
        if self.alert_scheduler is None:
            return
        if record is None:
            record = self.get_today_prayer_times()
        self.alert_scheduler.run(record, self.get_settings())

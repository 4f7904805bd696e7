"""
Scrape orchestration: fetch the source page, extract, fill gaps with fallback times.

scrape_prayer_times() always returns a complete record. Network errors, timeouts,
non-2xx responses and partial extraction are logged and recovered here, so callers
never branch on a failed scrape.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import requests

from .extractor import extract
from .prayers import DEFAULT_LOCATION, FALLBACK_TIMES, PRAYER_KEYS, is_valid_time
from .schemas import PrayerTimes

DEFAULT_URL = "https://almanar.com.lb/salat/"
DEFAULT_TIMEOUT = 10
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


class PrayerTimeScraper:
    def __init__(self, config: Optional[Dict[str, Any]] = None, clock: Callable[[], datetime] = datetime.now):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.clock = clock
        self.configure(config or {})

    def configure(self, config: Dict[str, Any]) -> None:
        """Apply the scraper config section (also called on config reload)."""
        self.url = config.get("url") or DEFAULT_URL
        self.location = config.get("location") or DEFAULT_LOCATION
        self.timeout = float(config.get("timeout", DEFAULT_TIMEOUT))
        self.user_agent = config.get("user_agent") or DEFAULT_USER_AGENT
        self.fallback_times = self._fallback_times(config.get("fallback_times") or {})

    def _fallback_times(self, overrides: Dict[str, Any]) -> Dict[str, str]:
        times = dict(FALLBACK_TIMES)
        for key, value in overrides.items():
            if key in times and is_valid_time(str(value).strip()):
                times[key] = str(value).strip()
            else:
                self.logger.warning(f"Ignoring invalid fallback time {key}={value!r}")
        return times

    def fetch_page(self) -> str:
        """GET the source page. Raises requests.RequestException on any failure."""
        self.logger.info(f"Scraping prayer times from: {self.url}")
        response = requests.get(
            self.url,
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent},
        )
        response.raise_for_status()
        return response.text

    def fallback_record(self) -> PrayerTimes:
        return self._build_record(dict(self.fallback_times))

    def scrape_prayer_times(self) -> PrayerTimes:
        try:
            html = self.fetch_page()
        except Exception as e:
            self.logger.error(f"Error scraping prayer times, using fallback times: {e}")
            return self.fallback_record()

        times = extract(html)
        missing = [key for key in PRAYER_KEYS if key not in times]
        if missing:
            self.logger.warning(f"Missing prayer times: {missing}")
            for key in missing:
                times[key] = self.fallback_times[key]

        record = self._build_record(times)
        self.logger.info(f"Scraped prayer times: {record.model_dump(exclude={'id', 'scraped_at'})}")
        return record

    def _build_record(self, times: Dict[str, str]) -> PrayerTimes:
        return PrayerTimes(
            date=self.clock().date().isoformat(),
            location=self.location,
            **{key: times[key] for key in PRAYER_KEYS},
        )

"""
Pydantic views of prayer times and notification settings.

Used both as the transient copies the scheduler works on and as the HTTP payloads
(camelCase aliases, e.g. fajrEnabled / adhanAutoPlay / scrapedAt).
"""
import re
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, StrictBool, field_validator
from pydantic.alias_generators import to_camel

from .prayers import DEFAULT_LOCATION, Prayer, is_valid_time

DEFAULT_USER_ID = "default"
DATE_FORMAT = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ApiModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class PrayerTimes(ApiModel):
    """One day of prayer times. All five times are required."""

    id: Optional[int] = None
    date: str
    fajr: str
    dhuhr: str
    asr: str
    maghrib: str
    isha: str
    location: str = DEFAULT_LOCATION
    scraped_at: Optional[datetime] = None

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        if not DATE_FORMAT.match(value):
            raise ValueError("date must be YYYY-MM-DD")
        return value

    @field_validator("fajr", "dhuhr", "asr", "maghrib", "isha")
    @classmethod
    def _check_time(cls, value: str) -> str:
        value = value.strip()
        if not is_valid_time(value):
            raise ValueError("time must be a 24-hour H:MM or HH:MM")
        return value

    def times(self) -> Dict[Prayer, str]:
        return {
            Prayer.FAJR: self.fajr,
            Prayer.DHUHR: self.dhuhr,
            Prayer.ASR: self.asr,
            Prayer.MAGHRIB: self.maghrib,
            Prayer.ISHA: self.isha,
        }


class NotificationSettings(ApiModel):
    """Alert preferences; defaults are the ones a fresh profile gets."""

    id: Optional[int] = None
    user_id: str = DEFAULT_USER_ID
    fajr_enabled: bool = True
    dhuhr_enabled: bool = False
    asr_enabled: bool = True
    maghrib_enabled: bool = True
    isha_enabled: bool = False
    adhan_auto_play: bool = True
    volume: str = "80"

    def enabled_flags(self) -> Dict[Prayer, bool]:
        return {
            Prayer.FAJR: self.fajr_enabled,
            Prayer.DHUHR: self.dhuhr_enabled,
            Prayer.ASR: self.asr_enabled,
            Prayer.MAGHRIB: self.maghrib_enabled,
            Prayer.ISHA: self.isha_enabled,
        }

    @property
    def volume_level(self) -> float:
        """Volume as 0.0-1.0 for the audio mixer."""
        try:
            return max(0, min(100, int(self.volume))) / 100
        except ValueError:
            return 0.8


class NotificationSettingsUpdate(ApiModel):
    """Partial update for PATCH /api/notification-settings."""

    fajr_enabled: Optional[StrictBool] = None
    dhuhr_enabled: Optional[StrictBool] = None
    asr_enabled: Optional[StrictBool] = None
    maghrib_enabled: Optional[StrictBool] = None
    isha_enabled: Optional[StrictBool] = None
    adhan_auto_play: Optional[StrictBool] = None
    volume: Optional[str] = None

    @field_validator("volume", mode="before")
    @classmethod
    def _check_volume(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, bool):
            raise ValueError("volume must be a number between 0 and 100")
        try:
            level = int(str(value).strip())
        except ValueError:
            raise ValueError("volume must be a number between 0 and 100")
        if not 0 <= level <= 100:
            raise ValueError("volume must be between 0 and 100")
        return str(level)

    def changes(self) -> Dict[str, Any]:
        """Only the fields the caller actually sent, by attribute name."""
        return self.model_dump(exclude_unset=True, exclude_none=True)

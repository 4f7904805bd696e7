"""
SQLAlchemy models for prayer times and notification settings.

- PrayerTimesRecord: one row per calendar date (upserted on each scrape).
- NotificationSettingsRecord: one row per user_id (single "default" profile).
"""
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Integer, Boolean

from salat.core.db import Base


def _utc_now() -> datetime:
    """UTC now as naive datetime for DateTime(timezone=False) columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class PrayerTimesRecord(Base):
    """Prayer times for one date. Times are "H:MM" / "HH:MM" 24-hour strings."""
    __tablename__ = "prayer_times"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(String(10), nullable=False, unique=True, index=True)  # YYYY-MM-DD
    fajr = Column(String(5), nullable=False)
    dhuhr = Column(String(5), nullable=False)
    asr = Column(String(5), nullable=False)
    maghrib = Column(String(5), nullable=False)
    isha = Column(String(5), nullable=False)
    location = Column(String(255), nullable=False, default="Beirut, Lebanon")
    scraped_at = Column(DateTime(timezone=False), nullable=False, default=_utc_now)


class NotificationSettingsRecord(Base):
    """Per-user alert preferences. volume is 0-100 stored as text."""
    __tablename__ = "notification_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, unique=True, default="default")
    fajr_enabled = Column(Boolean, nullable=False, default=True)
    dhuhr_enabled = Column(Boolean, nullable=False, default=False)
    asr_enabled = Column(Boolean, nullable=False, default=True)
    maghrib_enabled = Column(Boolean, nullable=False, default=True)
    isha_enabled = Column(Boolean, nullable=False, default=False)
    adhan_auto_play = Column(Boolean, nullable=False, default=True)
    volume = Column(String(3), nullable=False, default="80")

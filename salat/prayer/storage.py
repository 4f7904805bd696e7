"""
Storage layer: prayer time records (one per date) and notification settings (one per user).

DatabaseStorage persists through SQLAlchemy; MemoryStorage keeps everything in-process.
create_storage() picks one from the storage.backend config key and falls back to memory
when the database cannot be initialized.
"""
import logging
import threading
from abc import ABC, abstractmethod
from copy import deepcopy
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import select

from salat.core.db import init_db, session_scope
from salat.prayer.models import NotificationSettingsRecord, PrayerTimesRecord
from salat.prayer.schemas import (
    DEFAULT_USER_ID,
    NotificationSettings,
    NotificationSettingsUpdate,
    PrayerTimes,
)

logger = logging.getLogger(__name__)

_RECORD_FIELDS = ("date", "fajr", "dhuhr", "asr", "maghrib", "isha", "location")


class SettingsNotFoundError(LookupError):
    """Raised when settings for a user cannot be found or created."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_update(update: Any) -> Dict[str, Any]:
    if isinstance(update, NotificationSettingsUpdate):
        return update.changes()
    return NotificationSettingsUpdate.model_validate(update or {}).changes()


class PrayerStorage(ABC):
    """CRUD contract the scraper, refresh task, API and alert scheduler rely on."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def get_record_by_date(self, date: str) -> Optional[PrayerTimes]:
        pass

    @abstractmethod
    def get_latest_record(self) -> Optional[PrayerTimes]:
        pass

    @abstractmethod
    def upsert_record(self, record: PrayerTimes) -> PrayerTimes:
        """Insert or replace the record for record.date; scraped_at is set here."""
        pass

    @abstractmethod
    def get_settings(self, user_id: str = DEFAULT_USER_ID) -> Optional[NotificationSettings]:
        """Return settings for user_id, creating the default row if absent."""
        pass

    @abstractmethod
    def upsert_settings(self, user_id: str, update: Any) -> NotificationSettings:
        """Apply a partial update (NotificationSettingsUpdate or dict) and return the full row."""
        pass


class DatabaseStorage(PrayerStorage):
    """SQLAlchemy-backed storage. Requires init_db() to have run."""

    def get_record_by_date(self, date: str) -> Optional[PrayerTimes]:
        with session_scope() as session:
            row = session.execute(
                select(PrayerTimesRecord).where(PrayerTimesRecord.date == date).limit(1)
            ).scalars().first()
            return PrayerTimes.model_validate(row) if row else None

    def get_latest_record(self) -> Optional[PrayerTimes]:
        with session_scope() as session:
            row = session.execute(
                select(PrayerTimesRecord).order_by(PrayerTimesRecord.date.desc()).limit(1)
            ).scalars().first()
            return PrayerTimes.model_validate(row) if row else None

    def upsert_record(self, record: PrayerTimes) -> PrayerTimes:
        values = {field: getattr(record, field) for field in _RECORD_FIELDS}
        with session_scope() as session:
            row = session.execute(
                select(PrayerTimesRecord).where(PrayerTimesRecord.date == record.date)
            ).scalars().first()
            if row:
                for field, value in values.items():
                    setattr(row, field, value)
                row.scraped_at = _utc_now()
                self.logger.info(f"Updated prayer times for {record.date}")
            else:
                row = PrayerTimesRecord(**values, scraped_at=_utc_now())
                session.add(row)
                self.logger.info(f"Created new prayer times for {record.date}")
            session.flush()
            return PrayerTimes.model_validate(row)

    def get_settings(self, user_id: str = DEFAULT_USER_ID) -> Optional[NotificationSettings]:
        with session_scope() as session:
            row = session.execute(
                select(NotificationSettingsRecord).where(NotificationSettingsRecord.user_id == user_id)
            ).scalars().first()
            if row is None:
                self.logger.info(f"Creating default notification settings for user: {user_id}")
                defaults = NotificationSettings(user_id=user_id).model_dump(exclude={"id"})
                row = NotificationSettingsRecord(**defaults)
                session.add(row)
                session.flush()
            return NotificationSettings.model_validate(row)

    def upsert_settings(self, user_id: str, update: Any) -> NotificationSettings:
        changes = _as_update(update)
        # Make sure the row exists before updating it
        self.get_settings(user_id)
        with session_scope() as session:
            row = session.execute(
                select(NotificationSettingsRecord).where(NotificationSettingsRecord.user_id == user_id)
            ).scalars().first()
            if row is None:
                raise SettingsNotFoundError(f"Notification settings not found for user: {user_id}")
            for field, value in changes.items():
                setattr(row, field, value)
            session.flush()
            self.logger.info(f"Updated notification settings for user: {user_id} {changes}")
            return NotificationSettings.model_validate(row)


class MemoryStorage(PrayerStorage):
    """In-process storage; used when no database is configured or it fails to start."""

    def __init__(self):
        super().__init__()
        self._records: Dict[str, PrayerTimes] = {}
        self._settings: Dict[str, NotificationSettings] = {}
        self._lock = threading.Lock()
        self._next_id = 1

    def _allocate_id(self) -> int:
        next_id = self._next_id
        self._next_id += 1
        return next_id

    def get_record_by_date(self, date: str) -> Optional[PrayerTimes]:
        with self._lock:
            record = self._records.get(date)
            return deepcopy(record) if record else None

    def get_latest_record(self) -> Optional[PrayerTimes]:
        with self._lock:
            if not self._records:
                return None
            return deepcopy(self._records[max(self._records)])

    def upsert_record(self, record: PrayerTimes) -> PrayerTimes:
        with self._lock:
            existing = self._records.get(record.date)
            record_id = existing.id if existing else self._allocate_id()
            stored = record.model_copy(update={"id": record_id, "scraped_at": _utc_now()})
            self._records[record.date] = stored
            self.logger.info(f"{'Updated' if existing else 'Created new'} prayer times for {record.date}")
            return deepcopy(stored)

    def get_settings(self, user_id: str = DEFAULT_USER_ID) -> Optional[NotificationSettings]:
        with self._lock:
            if user_id not in self._settings:
                self.logger.info(f"Creating default notification settings for user: {user_id}")
                self._settings[user_id] = NotificationSettings(id=self._allocate_id(), user_id=user_id)
            return deepcopy(self._settings[user_id])

    def upsert_settings(self, user_id: str, update: Any) -> NotificationSettings:
        changes = _as_update(update)
        current = self.get_settings(user_id)
        with self._lock:
            updated = current.model_copy(update=changes)
            self._settings[user_id] = updated
            self.logger.info(f"Updated notification settings for user: {user_id} {changes}")
            return deepcopy(updated)


def create_storage(config_data: Optional[Dict[str, Any]] = None) -> PrayerStorage:
    """Create the storage backend named by storage.backend (database | memory)."""
    config_data = config_data or {}
    backend = (config_data.get("storage") or {}).get("backend", "database")
    if backend == "memory":
        logger.info("Using in-memory storage")
        return MemoryStorage()
    if backend != "database":
        logger.error(f"Unknown storage backend: {backend}, using in-memory storage")
        return MemoryStorage()
    try:
        init_db(config_data)
        logger.info("Using database storage")
        return DatabaseStorage()
    except Exception as e:
        logger.error(f"Failed to initialize database storage, falling back to memory: {e}")
        return MemoryStorage()

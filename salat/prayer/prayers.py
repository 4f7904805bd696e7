"""
The five daily prayers, their Arabic spellings, and the fixed fallback schedule.
"""
import re
from enum import Enum
from typing import Dict, List, Optional


class Prayer(str, Enum):
    """Canonical prayer keys in daily order. Definition order is the tie-break order."""

    FAJR = "fajr"
    DHUHR = "dhuhr"
    ASR = "asr"
    MAGHRIB = "maghrib"
    ISHA = "isha"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def order(self) -> int:
        return PRAYER_ORDER.index(self)


PRAYER_ORDER: List[Prayer] = list(Prayer)
PRAYER_KEYS: List[str] = [prayer.value for prayer in Prayer]

# Definite-article forms first so they are tried before the bare forms they contain
ARABIC_PRAYER_NAMES: Dict[str, Prayer] = {
    "الفجر": Prayer.FAJR,
    "الظهر": Prayer.DHUHR,
    "العصر": Prayer.ASR,
    "المغرب": Prayer.MAGHRIB,
    "العشاء": Prayer.ISHA,
    "فجر": Prayer.FAJR,
    "ظهر": Prayer.DHUHR,
    "عصر": Prayer.ASR,
    "مغرب": Prayer.MAGHRIB,
    "عشاء": Prayer.ISHA,
}

TIME_PATTERN = re.compile(r"(?<!\d)(\d{1,2}):(\d{2})(?!\d)", re.ASCII)
TIME_FORMAT = re.compile(r"^(\d{1,2}):(\d{2})$", re.ASCII)

FALLBACK_TIMES: Dict[str, str] = {
    Prayer.FAJR.value: "5:45",
    Prayer.DHUHR.value: "12:15",
    Prayer.ASR.value: "15:28",
    Prayer.MAGHRIB.value: "17:42",
    Prayer.ISHA.value: "19:15",
}

DEFAULT_LOCATION = "Beirut, Lebanon"


def _in_range(hours: str, minutes: str) -> bool:
    return int(hours) < 24 and int(minutes) < 60


def is_valid_time(value: str) -> bool:
    """True for a 24-hour "H:MM" / "HH:MM" string with ASCII digits."""
    match = TIME_FORMAT.match(value or "")
    return bool(match) and _in_range(*match.groups())


def find_time(text: str) -> Optional[str]:
    """First valid H:MM / HH:MM substring of text, or None. Durations like 45:12 are skipped."""
    for match in TIME_PATTERN.finditer(text or ""):
        if _in_range(*match.groups()):
            return match.group(0)
    return None


def match_prayer_name(text: str) -> List[Prayer]:
    """Prayers whose Arabic name occurs in text, in name-map order, without duplicates."""
    found: List[Prayer] = []
    for arabic_name, prayer in ARABIC_PRAYER_NAMES.items():
        if arabic_name in text and prayer not in found:
            found.append(prayer)
    return found


def minutes_of_day(time_str: str) -> int:
    """Convert "H:MM" / "HH:MM" to minutes since midnight."""
    hours, minutes = time_str.strip().split(":")
    return int(hours) * 60 + int(minutes)

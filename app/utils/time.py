"""Wall-clock helpers.

Dates cross the engine boundary as ``YYYY-MM-DD`` strings and times as
``HH:MM`` (24-hour) strings. Every interval comparison inside the engine is
done on integer minutes since local midnight.
"""

import re
from datetime import date, datetime, time, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo

from app.core.config import settings

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

MINUTES_PER_DAY = 24 * 60

# Lower-case English day names indexed by the stored weekday number (0 = Sunday)
WEEKDAY_NAMES = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)


def parse_time(value: str) -> int:
    """Convert ``HH:MM`` to minutes since midnight."""
    match = TIME_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_time(minutes: int) -> str:
    """Convert minutes since midnight to ``HH:MM``."""
    if minutes < 0 or minutes >= MINUTES_PER_DAY:
        raise ValueError(f"Minute offset out of range: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def to_minutes(value: Union[str, time, None]) -> Optional[int]:
    """Normalize a stored ``time`` column or ``HH:MM`` string to minutes."""
    if value is None:
        return None
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    # Stored values may carry seconds ("09:00:00")
    return parse_time(str(value)[:5])


def parse_date(value: str) -> date:
    if not DATE_PATTERN.match(value or ""):
        raise ValueError(f"Invalid date '{value}', expected YYYY-MM-DD")
    return date.fromisoformat(value)


def weekday_number(day: date) -> int:
    """Weekday as stored on business-hours rows: 0 = Sunday ... 6 = Saturday."""
    return day.isoweekday() % 7


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[weekday_number(day)]


def combine(day: date, minutes: int) -> datetime:
    return datetime.combine(day, time.min) + timedelta(minutes=minutes)


def local_now(tz_name: Optional[str] = None) -> datetime:
    """Current naive wall-clock time in the configured zone."""
    return datetime.now(ZoneInfo(tz_name or settings.TIMEZONE)).replace(tzinfo=None)


def as_local(moment: datetime, tz_name: Optional[str] = None) -> datetime:
    """Express an injected clock value as naive local wall-clock time."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(ZoneInfo(tz_name or settings.TIMEZONE)).replace(
        tzinfo=None
    )

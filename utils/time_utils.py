import re
from datetime import datetime, time, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo

from config.portal_config import NEXT_DAY_CUTOFF_HOUR, SCHOOL_TIMEZONE

_CLOCK_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(:[0-5]\d(\.\d+)?)?$")

NowLike = Union[None, int, str, time, datetime]


def normalize_clock(value: Optional[str]) -> Optional[str]:
    """Return a zero-padded HH:MM string, or None when value is empty or not a clock time.

    Accepts the HH:MM:SS form SQL time columns emit and truncates it.
    """
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    # tolerate single-digit hours ("8:00")
    if re.match(r"^\d:\d\d", value):
        value = "0" + value
    if not _CLOCK_RE.match(value):
        return None
    return value[:5]


def is_clock(value: Optional[str]) -> bool:
    return normalize_clock(value) is not None


def to_minutes(clock: str) -> int:
    hours, minutes = clock[:5].split(":")
    return int(hours) * 60 + int(minutes)


def school_now() -> datetime:
    return datetime.now(ZoneInfo(SCHOOL_TIMEZONE))


def today_iso() -> str:
    return school_now().date().isoformat()


def next_school_day(now: Optional[datetime] = None, cutoff_hour: int = NEXT_DAY_CUTOFF_HOUR) -> str:
    """The day whose lesson plans a guardian most likely wants to see.

    Today until the cutoff hour on weekdays, otherwise the following weekday.
    Weekends always look ahead to Monday.
    """
    now = now or school_now()
    day = now.date()
    if day.weekday() < 5 and now.hour < cutoff_hour:
        return day.isoformat()
    day += timedelta(days=1)
    while day.weekday() >= 5:
        day += timedelta(days=1)
    return day.isoformat()


def minutes_since_midnight(now: NowLike = None) -> int:
    """Coerce the accepted 'now' representations into minutes since midnight."""
    if now is None:
        now = school_now()
    if isinstance(now, bool):
        raise TypeError("now must be a time, datetime, HH:MM string or minute count")
    if isinstance(now, int):
        return now
    if isinstance(now, str):
        clock = normalize_clock(now)
        if clock is None:
            raise ValueError(f"Invalid clock time: {now!r}")
        return to_minutes(clock)
    if isinstance(now, (datetime, time)):
        return now.hour * 60 + now.minute
    raise TypeError("now must be a time, datetime, HH:MM string or minute count")

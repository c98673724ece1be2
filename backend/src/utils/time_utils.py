"""
Wall-clock time helpers.

Event timestamps are stored as naive datetimes in the club's local
timezone (TEAMRSVP_TIMEZONE). Aware values coming from outside, such as
fixture feed epoch timestamps, are converted into that frame before they
are compared with or written to the store.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo

from backend.src.config.settings import get_settings


END_OF_DAY = time(23, 59, 59, 999000)


def club_zone() -> ZoneInfo:
    """Return the configured club timezone."""
    return get_settings().zone


def local_now(tz: Optional[ZoneInfo] = None) -> datetime:
    """Current wall-clock time in the club timezone, without tzinfo."""
    zone = tz or club_zone()
    return datetime.now(timezone.utc).astimezone(zone).replace(tzinfo=None)


def to_local_naive(value: datetime, tz: Optional[ZoneInfo] = None) -> datetime:
    """
    Convert a datetime into a naive club-local datetime.

    Naive input is assumed to already be club-local and is returned unchanged.
    """
    if value.tzinfo is None:
        return value
    zone = tz or club_zone()
    return value.astimezone(zone).replace(tzinfo=None)


def from_epoch(seconds: float, tz: Optional[ZoneInfo] = None) -> datetime:
    """Convert a UNIX timestamp (seconds) into naive club-local time."""
    aware = datetime.fromtimestamp(seconds, tz=timezone.utc)
    return to_local_naive(aware, tz)


def end_of_day(value: Union[date, datetime]) -> datetime:
    """
    Normalize an inclusive end bound.

    A bare date becomes that day at 23:59:59.999; a datetime is kept as is.
    """
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, END_OF_DAY)


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def sunday_based_weekday(value: Union[date, datetime]) -> int:
    """Weekday number with 0=Sunday .. 6=Saturday."""
    return (value.weekday() + 1) % 7


def minutes_between(start: datetime, end: datetime) -> int:
    return int((end - start) / timedelta(minutes=1))

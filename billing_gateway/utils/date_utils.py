"""Date manipulation utilities"""

from datetime import datetime, timedelta, timezone

ONE_WEEK = timedelta(weeks=1)


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime"""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and convert aware ones"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def add_weeks(from_time: datetime, weeks: int) -> datetime:
    return from_time + weeks * ONE_WEEK

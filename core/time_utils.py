from datetime import datetime, timedelta, timezone

DATE_FORMAT = "%Y-%m-%d"
# Hour is 24h while the AM/PM marker is kept, e.g. "14:05 PM".
TIME_FORMAT = "%H:%M %p"
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def now_utc() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def now_naive() -> datetime:
    """Current UTC time without tzinfo, the form stored in DateTime columns."""
    return now_utc().replace(tzinfo=None)


def day_bounds(day_offset: int = 0) -> tuple[datetime, datetime]:
    """Return [start, end) of a UTC calendar day relative to today.

    day_offset=0 is today, -1 is yesterday.
    """
    start = now_naive().replace(hour=0, minute=0, second=0, microsecond=0)
    start = start + timedelta(days=day_offset)
    return start, start + timedelta(days=1)


def format_date(dt: datetime | None) -> str | None:
    return dt.strftime(DATE_FORMAT) if dt else None


def format_time(dt: datetime | None) -> str | None:
    return dt.strftime(TIME_FORMAT) if dt else None


def format_datetime(dt: datetime | None) -> str | None:
    return dt.strftime(DATETIME_FORMAT) if dt else None

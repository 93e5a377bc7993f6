"""
Calendar helpers: which day a timestamp belongs to, and month boundaries.
"""
import calendar
from datetime import date, datetime, timedelta, timezone, tzinfo


def as_utc(dt: datetime) -> datetime:
    """Return dt as an aware UTC datetime. Naive values are taken to be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def day_of(moment: datetime | date, tz: tzinfo) -> date:
    """Calendar day of `moment` in `tz`. Plain dates pass through unchanged."""
    if isinstance(moment, datetime):
        return as_utc(moment).astimezone(tz).date()
    return moment


def days_in_month(year: int, month: int) -> list[date]:
    """Every day of the month, in order. Raises ValueError for a bad month."""
    if not 1 <= month <= 12:
        raise ValueError(f"month must be in 1..12, got {month}")
    first = date(year, month, 1)
    count = calendar.monthrange(year, month)[1]
    return [first + timedelta(days=i) for i in range(count)]

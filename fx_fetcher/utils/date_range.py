"""Date helpers for the KST-based search dates used by both upstreams."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
KST_OFFSET = timedelta(hours=9)
SEARCH_DATE_FORMAT = "%Y%m%d"


@dataclass(frozen=True)
class DateRange:
    """Container representing a closed date range."""

    start: date
    end: date


def kst_today(now: datetime | None = None) -> date:
    """Return today's date in Korea by shifting UTC now by nine hours.

    Naive datetimes are treated as UTC.
    """

    current = now or datetime.now(timezone.utc)
    if current.tzinfo is not None:
        current = current.astimezone(timezone.utc).replace(tzinfo=None)
    return (current + KST_OFFSET).date()


def format_search_date(day: date) -> str:
    """Format ``day`` as the 8-digit ``YYYYMMDD`` string both APIs expect."""

    return day.strftime(SEARCH_DATE_FORMAT)


def parse_date(value: str | date) -> date:
    """Parse a date string in ISO format to :class:`date`."""

    if isinstance(value, date):
        return value
    return datetime.strptime(value, "%Y-%m-%d").date()


def trailing_window(end: date, days: int = 7) -> DateRange:
    """Return the window that starts ``days`` before ``end`` and ends on it."""

    if days < 0:
        raise ValueError("days must not be negative")
    return DateRange(start=end - timedelta(days=days), end=end)

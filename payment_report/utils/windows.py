from __future__ import annotations
"""
Centralized window logic for the chunked event cache.
Handles date parsing, range planning, gap detection and overlap checks so the
fetch path and the read path always agree on window boundaries.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Optional, Tuple

DATE_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True, order=True)
class DateWindow:
    """Inclusive calendar-date interval [start_date, end_date] (UTC)."""
    start_date: date
    end_date: date

    @property
    def start(self) -> str:
        return format_date(self.start_date)

    @property
    def end(self) -> str:
        return format_date(self.end_date)

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def as_pair(self) -> Tuple[str, str]:
        return self.start, self.end

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def overlaps(self, other: "DateWindow") -> bool:
        return self.end_date >= other.start_date and self.start_date <= other.end_date

    def __str__(self) -> str:
        return f"{self.start} to {self.end}"


def format_date(value: date) -> str:
    """YYYY-MM-DD"""
    return value.strftime(DATE_FORMAT)


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD string into a date. Raises ValueError on bad input."""
    return datetime.strptime(value, DATE_FORMAT).date()


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp as sent by Sentry (e.g. 2025-09-10T12:00:01.123Z).
    Naive timestamps are treated as UTC.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def timestamp_date(value: str) -> date:
    """
    UTC calendar date of a timestamp.
    Falls back to the date prefix for values fromisoformat cannot read
    (e.g. more than six fractional digits).
    """
    try:
        return parse_timestamp(value).date()
    except ValueError:
        return parse_date(value[:10])


def plan_windows(start_date: date, end_date: date, chunk_days: int) -> List[DateWindow]:
    """
    Partition [start_date, end_date] into chronological, non-overlapping windows.

    Every window spans exactly chunk_days days except possibly the last, which is
    truncated to end on end_date. Planning stops once the next window would start
    on or after end_date, so start_date >= end_date yields no windows.

    Example (chunk_days=7):
        2025-09-09 .. 2025-10-09 ->
        09-09..09-15, 09-16..09-22, 09-23..09-29, 09-30..10-06, 10-07..10-09
    """
    if chunk_days < 1:
        raise ValueError(f"chunk_days must be >= 1, got {chunk_days}")

    windows: List[DateWindow] = []
    current_start = start_date

    while current_start < end_date:
        current_end = current_start + timedelta(days=chunk_days - 1)
        if current_end > end_date:
            current_end = end_date

        windows.append(DateWindow(current_start, current_end))
        current_start = current_end + timedelta(days=1)

    return windows


def find_missing_windows(
    planned: Iterable[DateWindow],
    existing: Iterable[Tuple[str, str]],
) -> List[DateWindow]:
    """
    Return the planned windows whose exact (start, end) pair is not already stored.

    Matching is exact-pair equality, not overlap: a stored chunk with different
    boundaries never satisfies a planned window, even if it covers the same days.
    """
    existing_pairs = set(existing)
    return [window for window in planned if window.as_pair() not in existing_pairs]


def resolve_date_range(
    start: Optional[str],
    end: Optional[str],
    days: Optional[int],
    default_days: int,
    today: Optional[date] = None,
) -> Tuple[date, date]:
    """
    CLI defaulting rule:
    - no end date -> today (UTC)
    - no start date -> end date minus `days` (or default_days when days is not given)
    """
    end_date = parse_date(end) if end else (today or utc_today())

    if start:
        start_date = parse_date(start)
    else:
        start_date = end_date - timedelta(days=default_days if days is None else days)

    return start_date, end_date

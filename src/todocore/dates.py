"""Date helpers shared by the parser and the recurrence engine.

Dates are plain ``datetime.date`` values. A missing date is ``None``;
the sort engine maps ``None`` onto the sentinel extremes below.
"""

from __future__ import annotations

import re
from datetime import MAXYEAR, MINYEAR, date, timedelta

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Sort sentinels for absent dates
EARLIEST = date.min
LATEST = date.max
# Recurrence exists but its next occurrence can't be known yet
UNKNOWN_OCCURRENCE = date(8999, 12, 31)


def parse_iso_date(word: str) -> date | None:
    """Parse a ``yyyy-mm-dd`` word, returning None if it isn't a real date."""
    if not ISO_DATE_RE.match(word):
        return None
    try:
        return date.fromisoformat(word)
    except ValueError:
        return None


def format_date(value: date) -> str:
    return value.isoformat()


def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def add_months(year: int, month: int, months: int) -> tuple[int, int]:
    """Advance a (year, month) pair by a number of calendar months."""
    total = (month - 1) + months
    return year + total // 12, total % 12 + 1


def clamp_day(year: int, month: int, day: int) -> date:
    """Build a date, walking the day back until it exists in that month.

    ``clamp_day(2023, 2, 31)`` gives 2023-02-28.

    Raises:
        ValueError: If the year is outside the supported calendar.
    """
    if not MINYEAR <= year <= MAXYEAR:
        raise ValueError(f"year {year} is out of range")

    day = max(day, 1)
    while day > 1:
        try:
            return date(year, month, day)
        except ValueError:
            day -= 1
    return date(year, month, 1)


def days_until(target: date, today: date) -> int:
    return (target - today).days


def delta_label(target: date, today: date) -> str:
    """Human readable distance from today, e.g. ``in 3 days``."""
    delta = days_until(target, today)
    if delta == 0:
        return "today"
    if delta == 1:
        return "tomorrow"
    if delta == -1:
        return "yesterday"
    if delta > 0:
        return f"in {delta} days"
    return f"{-delta} days ago"

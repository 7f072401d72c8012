"""
Calendar helpers shared by the normalizer and the change detectors.

This module provides:
- ISO date formatting and arithmetic
- Weekday resolution and display labels
- Clock time parsing into minutes since midnight
- MM/DD resolution against a reference date
- (weekday, day-of-month) lookups for scraped pages
"""

import re
from datetime import date, datetime, timedelta
from typing import Dict, Optional, Tuple

DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

# Longest window in which no (weekday, day-of-month) pair can repeat.
MAX_LOOKUP_DAYS = 28

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_MONTH_DAY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})$")

DayKey = Tuple[str, int]


def format_date(value: date) -> str:
    """Format a date (or datetime) as YYYY-MM-DD."""
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def add_days(value: date, days: int) -> date:
    """Return a new date ``days`` after ``value``."""
    return value + timedelta(days=days)


def parse_iso_date(value: str) -> Optional[date]:
    """Parse YYYY-MM-DD, returning None for anything else."""
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def day_of_week(iso_date: str) -> str:
    """Three-letter weekday name for an ISO date string."""
    return DAY_NAMES[date.fromisoformat(iso_date).weekday()]


def normalize_weekday(token: str) -> Optional[str]:
    """
    Map a weekday token to its three-letter form.

    Accepts short or long names in any case ("sat", "Saturday", "Thurs").
    """
    if not token:
        return None
    prefix = token.strip()[:3].title()
    return prefix if prefix in DAY_NAMES else None


def format_time(iso_datetime: str) -> str:
    """Render the time part of an ISO datetime as H:MM (no leading zero on the hour)."""
    time_part = iso_datetime.split("T")[1]
    hours, minutes = time_part.split(":")[:2]
    return f"{int(hours)}:{minutes}"


def parse_time(value: Optional[str]) -> Optional[int]:
    """
    Convert H:MM or HH:MM into minutes since midnight.

    Returns None for missing values or any other shape, including
    out-of-range hours or minutes.
    """
    if not value:
        return None
    match = _TIME_RE.match(value.strip())
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def to_month_day(value: date) -> str:
    """Format a date as the MM/DD key used by timecards."""
    return f"{value.month:02d}/{value.day:02d}"


def resolve_month_day(month_day: str, reference: date) -> Optional[date]:
    """
    Resolve an MM/DD string to a full date relative to ``reference``.

    The reference year is used, except that December entries seen in
    January belong to the previous year.
    """
    match = _MONTH_DAY_RE.match(month_day.strip()) if month_day else None
    if not match:
        return None
    month, day = int(match.group(1)), int(match.group(2))
    year = reference.year
    if month == 12 and reference.month == 1:
        year -= 1
    try:
        return date(year, month, day)
    except ValueError:
        return None


def build_day_lookup(anchor: date, before: int = 7, after: int = 14) -> Dict[DayKey, date]:
    """
    Build a (weekday, day-of-month) -> date map around ``anchor``.

    The window covers ``before`` days earlier than the anchor through
    ``after - 1`` days later. It must not exceed 28 days, otherwise a key
    could map to two dates.
    """
    span = before + after
    if span <= 0 or span > MAX_LOOKUP_DAYS:
        raise ValueError(f"lookup window must be 1-{MAX_LOOKUP_DAYS} days, got {span}")

    lookup: Dict[DayKey, date] = {}
    for offset in range(-before, after):
        current = anchor + timedelta(days=offset)
        lookup[(DAY_NAMES[current.weekday()], current.day)] = current
    return lookup


def day_label(iso_date: str) -> str:
    """Display label for an ISO date, e.g. 'Fri 20 Feb'."""
    value = date.fromisoformat(iso_date)
    return f"{DAY_NAMES[value.weekday()]} {value.day} {MONTH_NAMES[value.month - 1]}"


def month_day_label(day: str, month_day: str) -> str:
    """Display label for a timecard entry using its own weekday and MM/DD."""
    match = _MONTH_DAY_RE.match(month_day.strip()) if month_day else None
    if not match or not 1 <= int(match.group(1)) <= 12:
        return f"{day} {month_day}".strip()
    return f"{day} {int(match.group(2))} {MONTH_NAMES[int(match.group(1)) - 1]}"

"""Scheduled-versus-punched time check for the reference day."""

from datetime import date
from typing import List, Optional

from portal.models import ScheduleSnapshot, TimecardSnapshot
from utilities.dates import day_label, format_date, parse_time, to_month_day

DEFAULT_THRESHOLD_MINUTES = 50


def _minutes_apart(actual: Optional[str], scheduled: Optional[str]) -> Optional[int]:
    actual_minutes, scheduled_minutes = parse_time(actual), parse_time(scheduled)
    if actual_minutes is None or scheduled_minutes is None:
        return None
    return abs(actual_minutes - scheduled_minutes)


def detect_timecard_discrepancy(
    schedule: Optional[ScheduleSnapshot],
    timecard: Optional[TimecardSnapshot],
    reference_date: Optional[date] = None,
    threshold_minutes: int = DEFAULT_THRESHOLD_MINUTES
) -> Optional[str]:
    """
    Compare the reference day's first punch pair with its scheduled shift.

    A boundary is reported only when the gap is strictly greater than
    ``threshold_minutes``; unparsable times are not compared.

    Args:
        schedule: Current schedule snapshot
        timecard: Current timecard snapshot
        reference_date: Day to check, defaults to today
        threshold_minutes: Tolerance in minutes

    Returns:
        The day label followed by one line per mismatched boundary, or None
    """
    if schedule is None or timecard is None:
        return None

    reference_date = reference_date or date.today()
    iso_date = format_date(reference_date)

    shift = next((s for s in schedule.shifts if s.date == iso_date and not s.off), None)
    if shift is None:
        return None

    month_day = to_month_day(reference_date)
    entry = next((e for e in timecard.entries if e.date == month_day), None)
    if entry is None or (not entry.clock_in1 and not entry.clock_out1):
        return None

    lines: List[str] = []
    for label, actual, scheduled in (
        ("Clock In", entry.clock_in1, shift.start),
        ("Clock Out", entry.clock_out1, shift.end),
    ):
        delta = _minutes_apart(actual, scheduled)
        if delta is not None and delta > threshold_minutes:
            lines.append(f"  {label} {actual} vs scheduled {scheduled} ({delta} min difference)")

    if not lines:
        return None
    return "\n".join([day_label(shift.date), *lines])

"""
Change detection between successive schedule and timecard snapshots.

This module provides:
- Display formatting for a single shift
- Schedule comparison (new days, changed start/end/off)
- Timecard comparison (new entries, per-field changes)

Both detectors return None on a first run (no previous snapshot) and when
nothing changed, otherwise a list of descriptions in the current snapshot's
date order.
"""

from typing import Dict, List, Optional, Tuple

import structlog

from portal.models import ScheduleSnapshot, Shift, TimecardEntry, TimecardSnapshot
from utilities.dates import day_label, month_day_label

logger = structlog.get_logger(__name__)

# Fields whose change counts as a schedule change; note is metadata only.
TRACKED_SHIFT_FIELDS = ("start", "end", "off")

TRACKED_TIMECARD_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("clock_in1", "Clock In"),
    ("clock_out1", "Clock Out"),
    ("clock_in2", "Clock In 2"),
    ("clock_out2", "Clock Out 2"),
    ("pay_code", "Pay Code"),
    ("amount", "Amount"),
    ("shift_total", "Shift Total"),
    ("daily_total", "Daily Total"),
)

NULL_PLACEHOLDER = "—"


def format_shift(shift: Shift) -> str:
    """Render a shift's content for display."""
    if shift.off:
        return shift.note or "Day Off"
    if shift.start and shift.end:
        return f"{shift.start}–{shift.end}"
    if shift.note:
        return shift.note
    return "No details"


def detect_schedule_changes(
    previous: Optional[ScheduleSnapshot],
    current: ScheduleSnapshot
) -> Optional[List[str]]:
    """
    Describe how the schedule moved since the previous snapshot.

    Args:
        previous: Last stored snapshot, or None on the first run
        current: Snapshot produced by this run

    Returns:
        Ordered descriptions, or None if there is nothing to report
    """
    if previous is None:
        return None

    previous_by_date: Dict[str, Shift] = {s.date: s for s in previous.shifts}
    changes: List[str] = []

    for shift in current.shifts:
        label = day_label(shift.date)
        before = previous_by_date.get(shift.date)

        if before is None:
            changes.append(f"{label} — New\n  {format_shift(shift)}")
            continue

        if any(getattr(before, f) != getattr(shift, f) for f in TRACKED_SHIFT_FIELDS):
            changes.append(
                f"{label} — Changed\n"
                f"  Was: {format_shift(before)}\n"
                f"  Now: {format_shift(shift)}"
            )

    logger.debug("Compared schedule snapshots", shifts=len(current.shifts), changes=len(changes))
    return changes or None


def _display(value: Optional[str]) -> str:
    return value if value is not None else NULL_PLACEHOLDER


def detect_timecard_changes(
    previous: Optional[TimecardSnapshot],
    current: TimecardSnapshot
) -> Optional[List[str]]:
    """
    Describe timecard entries that appeared or changed since the previous snapshot.

    Args:
        previous: Last stored snapshot, or None on the first run
        current: Snapshot produced by this run

    Returns:
        Ordered descriptions, or None if there is nothing to report
    """
    if previous is None:
        return None

    previous_by_date: Dict[str, TimecardEntry] = {e.date: e for e in previous.entries}
    changes: List[str] = []

    for entry in current.entries:
        label = month_day_label(entry.day, entry.date)
        before = previous_by_date.get(entry.date)

        if before is None:
            lines = [f"{label} — New entry"]
            for field, field_label in TRACKED_TIMECARD_FIELDS:
                value = getattr(entry, field)
                if value is not None:
                    lines.append(f"  {field_label}: {value}")
            changes.append("\n".join(lines))
            continue

        diffs = []
        for field, field_label in TRACKED_TIMECARD_FIELDS:
            old, new = getattr(before, field), getattr(entry, field)
            if old != new:
                diffs.append(f"  {field_label}: {_display(old)} → {_display(new)}")

        if diffs:
            changes.append("\n".join([f"{label} — Changed", *diffs]))

    logger.debug("Compared timecard snapshots", entries=len(current.entries), changes=len(changes))
    return changes or None

"""
Record normalization for schedule and timecard payloads.

This module provides:
- Schedule API bundle -> Shift list (regular shifts, holidays, time-off)
- Scraped schedule page text -> day blocks -> Shift list
- Timecard grid cells -> TimecardEntry list
- Combination of previous and current pay-period timecards

Every function builds its own local accumulation map and returns a new
sorted list. Bad individual records are logged and skipped.
"""

import re
from datetime import date, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import structlog
from pydantic import ValidationError

from utilities.dates import (
    DayKey, add_days, build_day_lookup, day_of_week, format_date, format_time,
    normalize_weekday, resolve_month_day,
)
from .errors import NormalizationError
from .models import (
    DayBlock, HolidayListItem, RegularShift, ScheduleApiResponse, Shift,
    TimecardEntry, TimeOffRequest,
)

logger = structlog.get_logger(__name__)

DEFAULT_HOLIDAY_NAME = "Holiday"

TIMECARD_ROWS = 7

# Model field -> DOM id suffix in the timecard grid ("<row>_<suffix>").
TIMECARD_COLUMNS = {
    "schedule": "scheduleshift",
    "absence": "absence",
    "clock_in1": "inpunch",
    "clock_out1": "outpunch",
    "clock_in2": "inpunch2",
    "clock_out2": "outpunch2",
    "pay_code": "name",
    "amount": "amount",
    "shift_total": "workedshifttotal",
    "daily_total": "dailytotal",
}

_TIMECARD_DATE_RE = re.compile(r"(Mon|Tue|Wed|Thu|Fri|Sat|Sun)\s+(\d{2}/\d{2})")

_WEEKDAY = (
    r"(Mon(?:day)?|Tue(?:s|sday)?|Wed(?:nesday)?|Thu(?:r|rs|rsday)?"
    r"|Fri(?:day)?|Sat(?:urday)?|Sun(?:day)?)\.?"
)
_MONTH = (
    r"(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?"
    r"|Aug(?:ust)?|Sep(?:t|tember)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)\.?"
)

_TIME_RANGE_RE = re.compile(
    r"(\d{1,2}):(\d{2})\s*([AaPp][Mm])?\s*[-–—]\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])?"
)

_OFF_RE = re.compile(
    r"\b(day off|off|nothing planned|absence|absent|holiday|leave|rest day"
    r"|no shift|time[- ]off|PTO|TOR)\b",
    re.IGNORECASE,
)

_DISCARDED_LINES = {"Today"}

# (weekday token, day-of-month, lines consumed, same-line trailing detail)
BoundaryMatch = Tuple[str, int, int, Optional[str]]


# Schedule API

def parse_schedule_response(payload: Optional[Mapping]) -> ScheduleApiResponse:
    """
    Validate a raw schedule events payload record by record.

    Missing lists are treated as empty; records that fail validation are
    skipped with a warning instead of failing the whole payload.
    """
    payload = payload or {}

    def _valid(key: str, model) -> list:
        records = []
        for index, raw in enumerate(payload.get(key) or []):
            try:
                records.append(model.model_validate(raw))
            except ValidationError as e:
                logger.warning(
                    "Skipping malformed schedule record",
                    section=key,
                    index=index,
                    error=str(e),
                )
        return records

    return ScheduleApiResponse(
        regular_shifts=_valid("regularShifts", RegularShift),
        holiday_list=_valid("holidayList", HolidayListItem),
        time_off_requests=_valid("timeOffRequests", TimeOffRequest),
    )


def map_api_to_shifts(
    response: ScheduleApiResponse,
    holiday_fallback: str = DEFAULT_HOLIDAY_NAME
) -> List[Shift]:
    """
    Convert a schedule events bundle into a date-sorted Shift list.

    Precedence per date: a regular shift sets the times; a holiday only
    annotates an existing shift; time-off only fills a date nothing else
    claimed.

    Args:
        response: Validated schedule events bundle
        holiday_fallback: Note used when a holiday entry carries no names

    Returns:
        Shifts sorted ascending by ISO date
    """
    shifts_by_date: Dict[str, Shift] = {}

    for regular in response.regular_shifts:
        shift_date = regular.start_date_time.split("T")[0]
        try:
            shifts_by_date[shift_date] = Shift(
                date=shift_date,
                day=day_of_week(shift_date),
                start=format_time(regular.start_date_time),
                end=format_time(regular.end_date_time),
                off=False,
                note=None,
            )
        except (IndexError, ValueError) as e:
            logger.warning("Skipping unparsable regular shift", date=shift_date, error=str(e))

    for item in response.holiday_list:
        names = [h.display_name for h in item.holidays]
        name = (names[0] if names else None) or holiday_fallback
        existing = shifts_by_date.get(item.date)
        if existing:
            shifts_by_date[item.date] = existing.model_copy(update={"note": name})
            continue
        try:
            shifts_by_date[item.date] = Shift(
                date=item.date, day=day_of_week(item.date), off=True, note=name
            )
        except ValueError as e:
            logger.warning("Skipping unparsable holiday", date=item.date, error=str(e))

    for request in response.time_off_requests:
        note = f"{request.request_sub_type.localized_name} ({request.current_status.name})"
        for period in request.periods:
            if period.start_date in shifts_by_date:
                continue
            try:
                shifts_by_date[period.start_date] = Shift(
                    date=period.start_date,
                    day=day_of_week(period.start_date),
                    off=True,
                    note=note,
                )
            except ValueError as e:
                logger.warning("Skipping unparsable time-off period", date=period.start_date, error=str(e))

    return sorted(shifts_by_date.values(), key=lambda s: s.date)


# Scraped schedule pages

class BoundaryMatcher:
    """Recognises a day boundary starting at ``lines[index]``."""

    pattern: re.Pattern

    def match(self, lines: Sequence[str], index: int) -> Optional[BoundaryMatch]:
        """Return (weekday, day-of-month, lines consumed, trailing text) or None."""
        raise NotImplementedError


class SplitLineBoundary(BoundaryMatcher):
    """Bare weekday line followed by a bare day-of-month line ("Sat" / "21")."""

    pattern = re.compile(rf"{_WEEKDAY}")
    day_pattern = re.compile(r"(\d{1,2})")

    def match(self, lines, index):
        if index + 1 >= len(lines):
            return None
        head = self.pattern.fullmatch(lines[index])
        tail = self.day_pattern.fullmatch(lines[index + 1])
        if not head or not tail:
            return None
        return head.group(1), int(tail.group(1)), 2, None


class InlineBoundary(BoundaryMatcher):
    """Weekday and day-of-month on one line ("Sat 21")."""

    pattern = re.compile(rf"{_WEEKDAY}\s+(\d{{1,2}})")

    def match(self, lines, index):
        found = self.pattern.fullmatch(lines[index])
        if not found:
            return None
        return found.group(1), int(found.group(2)), 1, None


class LongFormBoundary(BoundaryMatcher):
    """
    Weekday, month and day-of-month ("Saturday, February 21").

    Text after the day number on the same line is returned as the first
    detail of the new block.
    """

    pattern = re.compile(rf"{_WEEKDAY},\s*{_MONTH}\s+(\d{{1,2}})\b\s*(.*)")

    def match(self, lines, index):
        found = self.pattern.fullmatch(lines[index])
        if not found:
            return None
        return found.group(1), int(found.group(2)), 1, found.group(3) or None


BOUNDARY_MATCHERS: List[BoundaryMatcher] = [
    SplitLineBoundary(),
    InlineBoundary(),
    LongFormBoundary(),
]


def match_boundary(
    lines: Sequence[str],
    index: int,
    matchers: Iterable[BoundaryMatcher] = BOUNDARY_MATCHERS
) -> Optional[BoundaryMatch]:
    """Try each matcher in priority order and return the first hit."""
    for matcher in matchers:
        found = matcher.match(lines, index)
        if found and 1 <= found[1] <= 31:
            return found
    return None


def segment_day_blocks(text: str) -> List[DayBlock]:
    """
    Split scraped page text into per-day blocks in source order.

    Lines before the first boundary and the literal "Today" marker are
    dropped.
    """
    lines = [line.strip() for line in (text or "").splitlines()]
    lines = [line for line in lines if line]

    blocks: List[DayBlock] = []
    index = 0
    while index < len(lines):
        found = match_boundary(lines, index)
        if found:
            weekday, date_num, consumed, trailing = found
            blocks.append(DayBlock(
                day=normalize_weekday(weekday),
                date_num=date_num,
                details=[trailing] if trailing and trailing not in _DISCARDED_LINES else [],
            ))
            index += consumed
            continue
        line = lines[index]
        if blocks and line not in _DISCARDED_LINES:
            blocks[-1].details.append(line)
        index += 1
    return blocks


def _to_24_hour(hours: str, minutes: str, meridiem: Optional[str]) -> str:
    hour = int(hours)
    if meridiem:
        meridiem = meridiem.lower()
        if meridiem == "pm" and hour < 12:
            hour += 12
        elif meridiem == "am" and hour == 12:
            hour = 0
    return f"{hour}:{minutes}"


def classify_details(details: Sequence[str]) -> Tuple[Optional[str], Optional[str], bool, Optional[str]]:
    """
    Derive (start, end, off, note) from a day's raw detail lines.

    An off/leave line wins over a time range found in the same details.
    """
    off_line = next((line for line in details if _OFF_RE.search(line)), None)
    if off_line:
        return None, None, True, off_line

    found = _TIME_RANGE_RE.search(" ".join(details))
    if found:
        start = _to_24_hour(found.group(1), found.group(2), found.group(3))
        end = _to_24_hour(found.group(4), found.group(5), found.group(6))
        return start, end, False, None

    return None, None, False, " | ".join(details) or None


def shifts_from_day_blocks(blocks: Sequence[DayBlock], lookup: Mapping[DayKey, date]) -> List[Shift]:
    """Resolve day blocks to dated shifts; the first block for a date wins."""
    shifts_by_date: Dict[str, Shift] = {}

    for block in blocks:
        resolved = lookup.get((block.day, block.date_num))
        if resolved is None:
            logger.warning(
                "Skipping unresolvable day block",
                day=block.day,
                date_num=block.date_num,
            )
            continue

        iso_date = format_date(resolved)
        if iso_date in shifts_by_date:
            continue

        start, end, off, note = classify_details(block.details)
        shifts_by_date[iso_date] = Shift(
            date=iso_date,
            day=day_of_week(iso_date),
            start=start,
            end=end,
            off=off,
            note=note,
        )

    return sorted(shifts_by_date.values(), key=lambda s: s.date)


def map_scraped_pages(pages: Sequence[str], first_week_start: date) -> List[Shift]:
    """
    Normalize one scraped schedule page per week into a Shift list.

    Page ``n`` is resolved against a lookup anchored ``n`` weeks after
    ``first_week_start`` so day numbers from different months never collide.

    Raises:
        NormalizationError: if the pages contain text but no resolvable day
    """
    shifts_by_date: Dict[str, Shift] = {}
    saw_text = False

    for offset, text in enumerate(pages):
        if text and text.strip():
            saw_text = True
        lookup = build_day_lookup(add_days(first_week_start, 7 * offset))
        for shift in shifts_from_day_blocks(segment_day_blocks(text), lookup):
            shifts_by_date.setdefault(shift.date, shift)

    if saw_text and not shifts_by_date:
        raise NormalizationError("No resolvable schedule days found in page text")

    return sorted(shifts_by_date.values(), key=lambda s: s.date)


# Timecard grid

def _cell_value(cells: Mapping[str, Optional[str]], row: int, column: str) -> Optional[str]:
    value = (cells.get(f"{row}_{column}") or "").strip()
    # Punch cells may carry notes before the time ("Bonus Applied; 18:45").
    if "punch" in column and ";" in value:
        value = value.split(";")[-1].strip()
    return value or None


def parse_timecard_cells(
    cells: Mapping[str, Optional[str]],
    rows: int = TIMECARD_ROWS
) -> List[TimecardEntry]:
    """
    Build timecard entries from grid cell text keyed by "<row>_<column>".

    Rows without a parsable "<Weekday> MM/DD" date cell are skipped.
    """
    entries: List[TimecardEntry] = []
    for row in range(rows):
        date_text = cells.get(f"{row}_date")
        found = _TIMECARD_DATE_RE.search(date_text or "")
        if not found:
            continue
        values = {
            field: _cell_value(cells, row, column)
            for field, column in TIMECARD_COLUMNS.items()
        }
        entries.append(TimecardEntry(date=found.group(2), day=found.group(1), **values))
    return entries


def combine_timecard_periods(
    previous: Sequence[TimecardEntry],
    current: Sequence[TimecardEntry],
    reference: date,
    window_days: int = 14
) -> List[TimecardEntry]:
    """
    Merge previous and current pay-period entries into one window.

    Entries are kept when their resolved date falls within ``window_days``
    before ``reference`` (inclusive) up to ``reference``. For a repeated
    MM/DD the later entry wins, so the current period overrides the previous.
    """
    window_start = reference - timedelta(days=window_days)
    kept: Dict[str, Tuple[date, TimecardEntry]] = {}

    for entry in [*previous, *current]:
        resolved = resolve_month_day(entry.date, reference)
        if resolved is None:
            logger.warning("Skipping timecard entry with bad date", date=entry.date)
            continue
        if window_start <= resolved <= reference:
            kept[entry.date] = (resolved, entry)

    return [entry for _, entry in sorted(kept.values(), key=lambda pair: pair[0])]


def map_timecard_pages(
    previous_cells: Optional[Mapping[str, Optional[str]]],
    current_cells: Mapping[str, Optional[str]],
    reference: date,
    window_days: int = 14
) -> List[TimecardEntry]:
    """
    Parse and combine the previous and current timecard grids.

    Raises:
        NormalizationError: if neither grid has a single parsable row
    """
    previous = parse_timecard_cells(previous_cells or {})
    current = parse_timecard_cells(current_cells)
    if not previous and not current:
        raise NormalizationError("Could not parse timecard data")
    return combine_timecard_periods(previous, current, reference, window_days)

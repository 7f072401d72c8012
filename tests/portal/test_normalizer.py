"""
Test cases for schedule and timecard normalization.
Covers API precedence, scraped page segmentation and timecard window merging.
"""

import pytest
from datetime import date

from portal.errors import NormalizationError
from portal.models import DayBlock, ScheduleApiResponse, Shift, TimecardEntry
from portal.normalizer import (
    classify_details, combine_timecard_periods, map_api_to_shifts,
    map_scraped_pages, map_timecard_pages, match_boundary,
    parse_schedule_response, parse_timecard_cells, segment_day_blocks,
    shifts_from_day_blocks,
)
from utilities.dates import build_day_lookup


def entry(month_day, day="Mon", **fields):
    return TimecardEntry(date=month_day, day=day, **fields)


class TestScheduleApi:
    """Test cases for mapping the schedule events bundle."""

    def test_full_payload(self, schedule_payload):
        shifts = map_api_to_shifts(parse_schedule_response(schedule_payload))

        assert [s.date for s in shifts] == ["2026-02-20", "2026-02-21", "2026-02-23", "2026-03-17"]

        friday, saturday, monday, holiday = shifts
        assert (friday.day, friday.start, friday.end, friday.off) == ("Fri", "9:00", "17:00", False)
        assert saturday.off is True
        assert saturday.note == "Annual Leave (APPROVED)"
        assert (monday.start, monday.end) == ("14:30", "22:00")
        assert holiday.day == "Tue"
        assert holiday.off is True
        assert holiday.note == "St. Patrick's Day"

    def test_saturday_shift_without_leading_zero(self):
        response = parse_schedule_response({
            "regularShifts": [{"startDateTime": "2026-02-21T09:00:00", "endDateTime": "2026-02-21T14:00:00"}],
        })

        assert map_api_to_shifts(response) == [
            Shift(date="2026-02-21", day="Sat", start="9:00", end="14:00", off=False, note=None)
        ]

    def test_holiday_annotates_existing_shift(self):
        response = parse_schedule_response({
            "regularShifts": [{"startDateTime": "2026-03-17T10:00:00", "endDateTime": "2026-03-17T18:00:00"}],
            "holidayList": [{"date": "2026-03-17", "holidays": [{"displayName": "St. Patrick's Day"}]}],
        })

        [shift] = map_api_to_shifts(response)

        assert shift.off is False
        assert (shift.start, shift.end) == ("10:00", "18:00")
        assert shift.note == "St. Patrick's Day"

    def test_time_off_never_overrides_shift(self):
        response = parse_schedule_response({
            "regularShifts": [{"startDateTime": "2026-02-21T09:00:00", "endDateTime": "2026-02-21T13:00:00"}],
            "timeOffRequests": [{
                "requestSubType": {"localizedName": "Annual Leave"},
                "currentStatus": {"name": "PENDING"},
                "periods": [{"startDate": "2026-02-21"}, {"startDate": "2026-02-22"}],
            }],
        })

        shifts = map_api_to_shifts(response)

        assert shifts[0].off is False
        assert shifts[0].start == "9:00"
        assert shifts[1].date == "2026-02-22"
        assert shifts[1].note == "Annual Leave (PENDING)"

    def test_time_off_never_overrides_holiday(self):
        response = parse_schedule_response({
            "holidayList": [{"date": "2026-03-17", "holidays": [{"displayName": "St. Patrick's Day"}]}],
            "timeOffRequests": [{
                "requestSubType": {"localizedName": "Annual Leave"},
                "currentStatus": {"name": "APPROVED"},
                "periods": [{"startDate": "2026-03-17"}],
            }],
        })

        [shift] = map_api_to_shifts(response)
        assert shift.note == "St. Patrick's Day"

    def test_unnamed_holiday_uses_fallback(self):
        response = parse_schedule_response({
            "holidayList": [
                {"date": "2026-03-17", "holidays": []},
                {"date": "2026-04-06", "holidays": [{"displayName": None}]},
            ],
        })

        assert [s.note for s in map_api_to_shifts(response)] == ["Holiday", "Holiday"]
        assert [s.note for s in map_api_to_shifts(response, holiday_fallback="Bank Holiday")] == [
            "Bank Holiday", "Bank Holiday"
        ]

    def test_missing_lists_are_empty(self):
        assert map_api_to_shifts(parse_schedule_response({})) == []
        assert map_api_to_shifts(parse_schedule_response(None)) == []
        assert map_api_to_shifts(ScheduleApiResponse()) == []

    def test_malformed_records_are_skipped(self):
        response = parse_schedule_response({
            "regularShifts": [
                {"startDateTime": "2026-02-20T09:00:00"},
                {"startDateTime": "2026-02-23T09:00:00", "endDateTime": "2026-02-23T17:00:00"},
            ],
            "timeOffRequests": [{"periods": [{"startDate": "2026-02-24"}]}],
        })

        assert len(response.regular_shifts) == 1
        assert response.time_off_requests == []
        assert [s.date for s in map_api_to_shifts(response)] == ["2026-02-23"]


class TestDayBoundaries:
    """Test cases for day boundary recognition."""

    def test_split_line_boundary(self):
        assert match_boundary(["Sat", "21", "Day Off"], 0) == ("Sat", 21, 2, None)

    def test_inline_boundary(self):
        assert match_boundary(["Sat 21"], 0) == ("Sat", 21, 1, None)

    def test_long_form_boundary(self):
        assert match_boundary(["Saturday, February 21"], 0) == ("Saturday", 21, 1, None)

    def test_long_form_boundary_keeps_trailing_text(self):
        assert match_boundary(["Saturday, February 21 9:00 - 17:00"], 0) == (
            "Saturday", 21, 1, "9:00 - 17:00"
        )

    def test_long_form_trailing_text_becomes_detail(self):
        blocks = segment_day_blocks("Saturday, February 21 9:00 - 17:00\nSun 22\nDay Off")

        assert blocks == [
            DayBlock(day="Sat", date_num=21, details=["9:00 - 17:00"]),
            DayBlock(day="Sun", date_num=22, details=["Day Off"]),
        ]

        shifts = map_scraped_pages(["Saturday, February 21 9:00 - 17:00\nSun 22\nDay Off"], date(2026, 2, 20))

        assert (shifts[0].date, shifts[0].start, shifts[0].end) == ("2026-02-21", "9:00", "17:00")
        assert shifts[1].off is True

    def test_non_boundaries(self):
        assert match_boundary(["9:00 - 17:00"], 0) is None
        assert match_boundary(["Sat 32"], 0) is None
        assert match_boundary(["Sat"], 0) is None

    def test_segment_drops_preamble_and_today(self):
        text = "My Schedule\nToday\nFri\n20\nToday\n9:00 - 17:00\n\nSat 21\nDay Off\n"

        blocks = segment_day_blocks(text)

        assert blocks == [
            DayBlock(day="Fri", date_num=20, details=["9:00 - 17:00"]),
            DayBlock(day="Sat", date_num=21, details=["Day Off"]),
        ]

    def test_segment_empty_text(self):
        assert segment_day_blocks("") == []
        assert segment_day_blocks("Nothing to see here") == []


class TestClassifyDetails:
    """Test cases for deriving shift fields from detail lines."""

    def test_twelve_hour_range(self):
        assert classify_details(["9:00 AM - 5:00 PM", "Store 123"]) == ("9:00", "17:00", False, None)

    def test_midnight_and_noon(self):
        assert classify_details(["12:00 AM – 12:30 PM"]) == ("0:00", "12:30", False, None)

    def test_twenty_four_hour_range(self):
        assert classify_details(["14:30—22:00"]) == ("14:30", "22:00", False, None)

    def test_off_wins_over_time_range(self):
        assert classify_details(["9:00 - 17:00", "Annual Leave"]) == (None, None, True, "Annual Leave")

    @pytest.mark.parametrize("line", ["Day Off", "Nothing planned", "Rest day", "PTO", "Time-off approved"])
    def test_off_markers(self, line):
        assert classify_details([line]) == (None, None, True, line)

    def test_unrecognised_details_become_note(self):
        assert classify_details(["Training", "Room 4"]) == (None, None, False, "Training | Room 4")

    def test_no_details(self):
        assert classify_details([]) == (None, None, False, None)


class TestScrapedPages:
    """Test cases for scraped page normalization."""

    def test_single_page(self):
        text = (
            "Fri\n20\n9:00 AM - 5:00 PM\n"
            "Sat 21\nDay Off\n"
            "Sunday, February 22\nNothing planned\n"
            "Mon\n23\n2:30 PM – 10:00 PM\n"
        )

        shifts = map_scraped_pages([text], date(2026, 2, 20))

        assert [(s.date, s.day, s.start, s.end, s.off) for s in shifts] == [
            ("2026-02-20", "Fri", "9:00", "17:00", False),
            ("2026-02-21", "Sat", None, None, True),
            ("2026-02-22", "Sun", None, None, True),
            ("2026-02-23", "Mon", "14:30", "22:00", False),
        ]

    def test_second_page_resolves_against_next_week(self):
        pages = ["Fri 20\n9:00 - 17:00", "Fri 6\n10:00 - 18:00"]

        shifts = map_scraped_pages(pages, date(2026, 2, 20))

        assert [s.date for s in shifts] == ["2026-02-20", "2026-03-06"]

    def test_first_block_for_date_wins(self):
        pages = ["Fri 20\n9:00 - 17:00\nFri 20\nDay Off", "Fri 20\nHoliday"]

        [shift] = map_scraped_pages(pages, date(2026, 2, 20))

        assert (shift.start, shift.end, shift.off) == ("9:00", "17:00", False)

    def test_unresolvable_blocks_are_skipped(self):
        lookup = build_day_lookup(date(2026, 2, 20))
        blocks = [
            DayBlock(day="Mon", date_num=20, details=["9:00 - 17:00"]),
            DayBlock(day="Sat", date_num=21, details=["Day Off"]),
        ]

        shifts = shifts_from_day_blocks(blocks, lookup)

        assert [s.date for s in shifts] == ["2026-02-21"]

    def test_text_without_resolvable_days_raises(self):
        with pytest.raises(NormalizationError):
            map_scraped_pages(["Mon 20\n9:00 - 17:00"], date(2026, 2, 20))

    def test_empty_pages(self):
        assert map_scraped_pages(["", "   "], date(2026, 2, 20)) == []


class TestTimecardCells:
    """Test cases for timecard grid parsing."""

    def test_parse_cells(self, timecard_cells):
        entries = parse_timecard_cells(timecard_cells)

        assert [(e.day, e.date) for e in entries] == [("Thu", "02/19"), ("Fri", "02/20"), ("Sat", "02/21")]
        assert entries[0].clock_in1 == "8:58"
        assert entries[0].pay_code is None
        assert entries[1].clock_out1 == "17:00"
        assert entries[1].shift_total == "7:55"
        assert entries[2].absence == "Annual Leave"
        assert entries[2].clock_in1 is None

    def test_rows_without_date_are_skipped(self):
        cells = {"0_inpunch": "9:00", "1_date": "Tomorrow", "2_date": "Mon 02/23", "2_inpunch": " "}

        [only] = parse_timecard_cells(cells)

        assert only.date == "02/23"
        assert only.clock_in1 is None

    def test_only_seven_rows_are_read(self):
        cells = {f"{row}_date": f"Mon 03/{row + 1:02d}" for row in range(9)}
        assert len(parse_timecard_cells(cells)) == 7

    def test_semicolon_only_split_for_punches(self):
        cells = {"0_date": "Mon 02/23", "0_inpunch2": "Late; 13:05", "0_name": "Sick; Paid"}

        [parsed] = parse_timecard_cells(cells)

        assert parsed.clock_in2 == "13:05"
        assert parsed.pay_code == "Sick; Paid"


class TestTimecardWindow:
    """Test cases for combining pay periods."""

    def test_current_overrides_previous_within_window(self):
        previous = [entry("02/05", clock_in1="9:00"), entry("02/12", clock_in1="9:00")]
        current = [entry("02/12", clock_in1="9:10"), entry("02/19", clock_in1="8:55"), entry("02/21")]

        combined = combine_timecard_periods(previous, current, date(2026, 2, 20))

        assert [e.date for e in combined] == ["02/12", "02/19"]
        assert combined[0].clock_in1 == "9:10"

    def test_window_start_is_inclusive(self):
        combined = combine_timecard_periods([entry("02/06"), entry("02/05")], [], date(2026, 2, 20))
        assert [e.date for e in combined] == ["02/06"]

    def test_across_month_boundary(self):
        combined = combine_timecard_periods(
            [entry("02/16"), entry("02/20")], [entry("03/02")], date(2026, 3, 3)
        )
        assert [e.date for e in combined] == ["02/20", "03/02"]

    def test_across_year_boundary(self):
        combined = combine_timecard_periods(
            [entry("12/28"), entry("12/31")], [entry("01/02")], date(2026, 1, 5)
        )
        assert [e.date for e in combined] == ["12/28", "12/31", "01/02"]

    @pytest.mark.parametrize("reference,dates,expected", [
        (date(2026, 2, 24), ["02/20", "02/15", "02/11"], ["02/11", "02/15", "02/20"]),
        (date(2026, 2, 24), ["02/20", "02/09"], ["02/20"]),
        (date(2026, 2, 1), ["02/01", "01/25", "01/17"], ["01/25", "02/01"]),
        (date(2026, 1, 5), ["01/05", "12/28", "12/20"], ["12/28", "01/05"]),
    ])
    def test_window_examples(self, reference, dates, expected):
        combined = combine_timecard_periods([entry(d) for d in dates], [], reference)
        assert [e.date for e in combined] == expected

    def test_bad_dates_are_skipped(self):
        combined = combine_timecard_periods([entry("02/30")], [entry("02/19")], date(2026, 2, 20))
        assert [e.date for e in combined] == ["02/19"]

    def test_map_pages_without_previous(self, timecard_cells):
        entries = map_timecard_pages(None, timecard_cells, date(2026, 2, 20))
        assert [e.date for e in entries] == ["02/19", "02/20"]

    def test_map_pages_with_nothing_parsable(self):
        with pytest.raises(NormalizationError, match="Could not parse timecard data"):
            map_timecard_pages({}, {"0_date": "n/a"}, date(2026, 2, 20))

"""
Pytest configuration and shared fixtures.
"""

import pytest
from datetime import date, datetime, timezone

from portal.models import ScheduleSnapshot, Shift, TimecardEntry, TimecardSnapshot
from portal.store import SnapshotStore
from utilities.config import WatcherConfig


@pytest.fixture
def reference_date():
    """Friday 20 February 2026."""
    return date(2026, 2, 20)


@pytest.fixture
def watcher_config(tmp_path):
    """Watcher configuration isolated from any local .env file."""
    return WatcherConfig(
        _env_file=None,
        base_url="https://portal.example.com",
        session_cookies={"XSRF-TOKEN": "token-123", "JSESSIONID": "session-abc"},
        rate_limit_per_second=10.0,
        data_dir=str(tmp_path / "data"),
        log_file=None,
        email_enabled=False,
    )


@pytest.fixture
def snapshot_store(tmp_path):
    """Snapshot store writing into a temporary directory."""
    return SnapshotStore(tmp_path / "data")


@pytest.fixture
def sample_schedule():
    """Three days around the reference date, including a day off."""
    return ScheduleSnapshot(
        extracted_at=datetime(2026, 2, 19, 20, 0, tzinfo=timezone.utc),
        shifts=[
            Shift(date="2026-02-19", day="Thu", start="9:00", end="17:00"),
            Shift(date="2026-02-20", day="Fri", start="9:00", end="17:00"),
            Shift(date="2026-02-21", day="Sat", off=True, note="Annual Leave (APPROVED)"),
        ],
    )


@pytest.fixture
def sample_timecard():
    """Two punched days ending on the reference date."""
    return TimecardSnapshot(
        extracted_at=datetime(2026, 2, 20, 20, 0, tzinfo=timezone.utc),
        entries=[
            TimecardEntry(
                date="02/19", day="Thu", schedule="9:00-17:00",
                clock_in1="8:58", clock_out1="17:02", shift_total="8:04", daily_total="8:04",
            ),
            TimecardEntry(
                date="02/20", day="Fri", schedule="9:00-17:00",
                clock_in1="9:05", clock_out1="17:00", shift_total="7:55", daily_total="7:55",
            ),
        ],
    )


@pytest.fixture
def schedule_payload():
    """Raw schedule events payload as returned by the portal."""
    return {
        "regularShifts": [
            {"startDateTime": "2026-02-20T09:00:00", "endDateTime": "2026-02-20T17:00:00"},
            {"startDateTime": "2026-02-23T14:30:00", "endDateTime": "2026-02-23T22:00:00"},
        ],
        "holidayList": [
            {"date": "2026-03-17", "holidays": [{"displayName": "St. Patrick's Day"}]},
        ],
        "timeOffRequests": [
            {
                "requestSubType": {"localizedName": "Annual Leave"},
                "currentStatus": {"name": "APPROVED"},
                "periods": [{"startDate": "2026-02-21"}],
            },
        ],
    }


@pytest.fixture
def timecard_cells():
    """Timecard grid cells for the current pay period."""
    return {
        "0_date": "Thu 02/19",
        "0_scheduleshift": "9:00-17:00",
        "0_inpunch": "8:58",
        "0_outpunch": "17:02",
        "0_workedshifttotal": "8:04",
        "0_dailytotal": "8:04",
        "1_date": "Fri 02/20",
        "1_scheduleshift": "9:00-17:00",
        "1_inpunch": "9:05",
        "1_outpunch": "Bonus Applied; 17:00",
        "1_workedshifttotal": "7:55",
        "1_dailytotal": "7:55",
        "2_date": "Sat 02/21",
        "2_absence": "Annual Leave",
    }

"""
Pydantic models for schedule and timecard data.

Canonical records (Shift, TimecardEntry) and the snapshots built from them are
frozen and serialise with the portal's camelCase keys, so a stored snapshot
re-validates into the same model. Raw API models mirror the subset of the
schedule events payload the normalizer reads.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Shift(BaseModel):
    """One calendar day's work status."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    date: str = Field(..., description="ISO date (YYYY-MM-DD)")
    day: str = Field(..., description="Three-letter weekday derived from date")
    start: Optional[str] = Field(default=None, description="Start time (H:MM)")
    end: Optional[str] = Field(default=None, description="End time (H:MM)")
    off: bool = Field(default=False, description="Non-working day")
    note: Optional[str] = Field(default=None, description="Holiday, time-off or raw detail")


class TimecardEntry(BaseModel):
    """One day's clock activity from the timecard grid, keyed by MM/DD."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    date: str = Field(..., description="Partial date (MM/DD)")
    day: str = Field(..., description="Three-letter weekday from the source")
    schedule: Optional[str] = None
    absence: Optional[str] = None
    clock_in1: Optional[str] = Field(default=None, alias="clockIn1")
    clock_out1: Optional[str] = Field(default=None, alias="clockOut1")
    clock_in2: Optional[str] = Field(default=None, alias="clockIn2")
    clock_out2: Optional[str] = Field(default=None, alias="clockOut2")
    pay_code: Optional[str] = Field(default=None, alias="payCode")
    amount: Optional[str] = None
    shift_total: Optional[str] = Field(default=None, alias="shiftTotal")
    daily_total: Optional[str] = Field(default=None, alias="dailyTotal")


class ScheduleSnapshot(BaseModel):
    """Full schedule state for one run, sorted by date."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    extracted_at: Optional[datetime] = Field(default=None, alias="extractedAt")
    shifts: List[Shift] = Field(default_factory=list)


CURRENT_PERIOD = "Current Pay Period"
COMBINED_PERIOD = "Previous and Current Pay Period"


class TimecardSnapshot(BaseModel):
    """Full timecard state for one run, sorted by resolved date."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    extracted_at: Optional[datetime] = Field(default=None, alias="extractedAt")
    period: str = Field(default=CURRENT_PERIOD, description="Pay periods the entries were drawn from")
    entries: List[TimecardEntry] = Field(default_factory=list)


class DayBlock(BaseModel):
    """Lines grouped under one day boundary of a scraped schedule page."""

    day: str
    date_num: int
    details: List[str] = Field(default_factory=list)


# Raw schedule API payload

class RegularShift(BaseModel):
    """Worked shift as returned by the schedule events API."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    start_date_time: str = Field(..., alias="startDateTime")
    end_date_time: str = Field(..., alias="endDateTime")


class HolidayEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    display_name: Optional[str] = Field(default=None, alias="displayName")


class HolidayListItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: str
    holidays: List[HolidayEntry] = Field(default_factory=list)


class LocalizedName(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    localized_name: str = Field(..., alias="localizedName")


class StatusName(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str


class TimeOffPeriod(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    start_date: str = Field(..., alias="startDate")


class TimeOffRequest(BaseModel):
    """Time-off request spanning one or more periods."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    request_sub_type: LocalizedName = Field(..., alias="requestSubType")
    current_status: StatusName = Field(..., alias="currentStatus")
    periods: List[TimeOffPeriod] = Field(default_factory=list)


class ScheduleApiResponse(BaseModel):
    """Schedule events bundle; every list may be absent."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    regular_shifts: List[RegularShift] = Field(default_factory=list, alias="regularShifts")
    holiday_list: List[HolidayListItem] = Field(default_factory=list, alias="holidayList")
    time_off_requests: List[TimeOffRequest] = Field(default_factory=list, alias="timeOffRequests")

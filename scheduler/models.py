"""
Models for the daily run, alert sections and scheduler configuration.

This module defines Pydantic models for:
- Alert section kinds and rendered sections
- Daily run results
- Alert configuration
- Scheduler configuration
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class AlertKind(str, Enum):
    """Kinds of alert sections a run can produce, in report order."""
    FETCH_FAILURE = "fetch_failure"
    SCHEDULE_CHANGE = "schedule_change"
    DISCREPANCY = "discrepancy"
    TIMECARD_CHANGE = "timecard_change"


class AlertSection(BaseModel):
    """A titled group of change or discrepancy descriptions."""
    kind: AlertKind = Field(..., description="Section kind")
    title: str = Field(..., description="Section heading")
    items: List[str] = Field(default_factory=list, description="Non-empty descriptions in report order")


class RunResult(BaseModel):
    """Result of one fetch/diff/notify run."""
    run_id: str = Field(..., description="Unique run identifier")
    reference_date: date = Field(..., description="Date treated as today")
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    duration_seconds: float = Field(default=0.0)

    # Acquisition
    schedule_fetched: bool = Field(default=False)
    timecard_fetched: bool = Field(default=False)
    shifts_count: int = Field(default=0)
    entries_count: int = Field(default=0)

    # Alerts
    sections: List[AlertSection] = Field(default_factory=list)
    subject: Optional[str] = Field(default=None)
    notified: bool = Field(default=False)

    # Status
    errors: List[str] = Field(default_factory=list)

    @property
    def has_alerts(self) -> bool:
        return bool(self.sections)

    @property
    def success(self) -> bool:
        """At least one side of the run produced a snapshot."""
        return self.schedule_fetched or self.timecard_fetched


class AlertConfig(BaseModel):
    """Configuration for alert assembly and delivery."""
    enabled: bool = Field(default=True)
    log_enabled: bool = Field(default=True)
    subject_prefix: str = Field(default="Schedule Alert")
    discrepancy_threshold_minutes: int = Field(default=50, ge=1, le=1439)


class SchedulerConfig(BaseModel):
    """Configuration for the daily run service."""
    # Scheduling
    schedule_hour: int = Field(default=20, ge=0, le=23, description="Hour to run the daily check (24h format)")
    schedule_minute: int = Field(default=0, ge=0, le=59, description="Minute to run the daily check")
    timezone: str = Field(default="Europe/Dublin", description="Timezone for scheduling")

    # Acquisition
    schedule_source: Literal["api", "page"] = Field(default="api", description="Schedule events API or scraped pages")
    schedule_lookahead_days: int = Field(default=42, ge=1, le=90)
    schedule_page_weeks: int = Field(default=2, ge=1, le=8)
    timecard_window_days: int = Field(default=14, ge=1, le=60)

    # Normalization
    holiday_fallback_name: str = Field(default="Holiday")

    # Alerting
    alert_config: AlertConfig = Field(default_factory=AlertConfig)

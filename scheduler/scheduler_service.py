"""
Daily run service for schedule and timecard change detection.

This module provides:
- One complete run: fetch, normalize, diff, persist, notify
- Isolation between the schedule and timecard acquisitions
- Daily scheduling with APScheduler
"""

import asyncio
import signal
import sys
import time
import uuid
from datetime import date, datetime, timezone
from typing import List, Optional, TypeVar, Union
from zoneinfo import ZoneInfo

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.events import EVENT_JOB_EXECUTED, EVENT_JOB_ERROR

from portal.client import PortalClient
from portal.models import COMBINED_PERIOD, CURRENT_PERIOD, ScheduleSnapshot, TimecardSnapshot
from portal.normalizer import (
    map_api_to_shifts, map_scraped_pages, map_timecard_pages, parse_schedule_response,
)
from portal.store import SnapshotStore
from scheduler.alerting import AlertManager
from scheduler.change_detector import detect_schedule_changes, detect_timecard_changes
from scheduler.discrepancy import detect_timecard_discrepancy
from scheduler.models import RunResult, SchedulerConfig
from scheduler.notifier import Notifier
from utilities.dates import add_days, format_date
from utilities.logger import RunLogger

logger = structlog.get_logger(__name__)

SCHEDULE_KEY = "schedule"
TIMECARD_KEY = "timecard"

SnapshotT = TypeVar("SnapshotT")


class SchedulerService:
    """Runs the daily schedule/timecard check, once or on a cron schedule."""

    def __init__(
        self,
        config: SchedulerConfig,
        client: PortalClient,
        store: SnapshotStore,
        notifier: Notifier
    ):
        """
        Initialize scheduler service.

        Args:
            config: Scheduler configuration
            client: Portal client supplying raw payloads
            store: Snapshot store holding previous runs
            notifier: Alert delivery
        """
        self.config = config
        self.client = client
        self.store = store
        self.notifier = notifier
        self.scheduler = AsyncIOScheduler(timezone=config.timezone)
        self.logger = logger.bind(component="scheduler_service")

        self._setup_scheduler_listeners()

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        def signal_handler(signum, frame):
            self.logger.info(f"Received signal {signum}, shutting down gracefully...")
            self.stop()
            sys.exit(0)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def _setup_scheduler_listeners(self) -> None:
        """Setup scheduler event listeners."""
        def job_executed_listener(event):
            self.logger.info(
                "Job executed successfully",
                job_id=event.job_id,
                duration=getattr(event.retval, "duration_seconds", 0)
            )

        def job_error_listener(event):
            self.logger.error(
                "Job execution failed",
                job_id=event.job_id,
                error=str(event.exception)
            )

        self.scheduler.add_listener(job_executed_listener, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(job_error_listener, EVENT_JOB_ERROR)

    async def acquire_schedule(self, reference_date: date) -> ScheduleSnapshot:
        """Fetch and normalize the schedule starting at ``reference_date``."""
        if self.config.schedule_source == "page":
            pages = await self.client.fetch_schedule_pages(reference_date, self.config.schedule_page_weeks)
            shifts = map_scraped_pages(pages, reference_date)
        else:
            end = add_days(reference_date, self.config.schedule_lookahead_days)
            payload = await self.client.fetch_schedule_events(reference_date, end)
            shifts = map_api_to_shifts(
                parse_schedule_response(payload),
                holiday_fallback=self.config.holiday_fallback_name,
            )
        return ScheduleSnapshot(extracted_at=datetime.now(timezone.utc), shifts=shifts)

    async def acquire_timecard(self, reference_date: date) -> TimecardSnapshot:
        """Fetch both pay-period grids and normalize them into one window."""
        previous_cells, current_cells = await self.client.fetch_timecard_periods()
        entries = map_timecard_pages(
            previous_cells,
            current_cells,
            reference_date,
            window_days=self.config.timecard_window_days,
        )
        return TimecardSnapshot(
            extracted_at=datetime.now(timezone.utc),
            period=COMBINED_PERIOD if previous_cells else CURRENT_PERIOD,
            entries=entries,
        )

    def _settle(
        self,
        label: str,
        outcome: Union[SnapshotT, BaseException],
        errors: List[str],
        run_logger: RunLogger
    ) -> Optional[SnapshotT]:
        """Turn a gathered acquisition outcome into a snapshot or a recorded error."""
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            message = str(outcome) or type(outcome).__name__
            errors.append(f"{label} fetch failed: {message}")
            run_logger.log_acquisition_failed(label.lower(), message)
            return None
        return outcome

    def _save(self, name: str, reference_date: date, snapshot, records: int, errors: List[str], run_logger: RunLogger) -> None:
        try:
            path = self.store.save(name, reference_date, snapshot)
        except OSError as e:
            errors.append(f"Saving {name} snapshot failed: {e}")
            self.logger.error("Failed to save snapshot", name=name, error=str(e))
            return
        run_logger.log_snapshot_saved(name, str(path), records)

    async def run_once(self, reference_date: Optional[date] = None, notify: bool = True) -> RunResult:
        """
        Run one complete check.

        The previous snapshots are read before anything is saved. A failure
        in one acquisition is recorded and reported without stopping the
        other.

        Args:
            reference_date: Date treated as today (defaults to today in the scheduler timezone)
            notify: Send the alert if there is one

        Returns:
            RunResult describing what was fetched, found and sent
        """
        reference_date = reference_date or self._today()
        started = time.monotonic()
        result = RunResult(run_id=str(uuid.uuid4()), reference_date=reference_date)
        run_logger = RunLogger("daily_run").bind_context(
            run_id=result.run_id,
            reference_date=format_date(reference_date),
        )
        run_logger.log_run_start(self.config.schedule_source)

        previous_schedule = self.store.load_latest(SCHEDULE_KEY, ScheduleSnapshot)
        previous_timecard = self.store.load_latest(TIMECARD_KEY, TimecardSnapshot)

        schedule_outcome, timecard_outcome = await asyncio.gather(
            self.acquire_schedule(reference_date),
            self.acquire_timecard(reference_date),
            return_exceptions=True,
        )

        errors: List[str] = []
        schedule = self._settle("Schedule", schedule_outcome, errors, run_logger)
        timecard = self._settle("Timecard", timecard_outcome, errors, run_logger)

        if schedule is not None:
            self._save(SCHEDULE_KEY, reference_date, schedule, len(schedule.shifts), errors, run_logger)
        if timecard is not None:
            self._save(TIMECARD_KEY, reference_date, timecard, len(timecard.entries), errors, run_logger)

        alerts = AlertManager(self.config.alert_config)
        alerts.add_errors(errors)

        if schedule is not None:
            changes = detect_schedule_changes(previous_schedule, schedule)
            if changes:
                run_logger.log_changes(SCHEDULE_KEY, len(changes))
            alerts.add_schedule_changes(changes)

        if schedule is not None and timecard is not None:
            alerts.add_discrepancy(
                detect_timecard_discrepancy(
                    schedule,
                    timecard,
                    reference_date,
                    threshold_minutes=self.config.alert_config.discrepancy_threshold_minutes,
                )
            )

        if timecard is not None:
            changes = detect_timecard_changes(previous_timecard, timecard)
            if changes:
                run_logger.log_changes(TIMECARD_KEY, len(changes))
            alerts.add_timecard_changes(changes)

        notified = False
        if notify:
            notified = await alerts.dispatch(self.notifier, reference_date)

        result = result.model_copy(update={
            "schedule_fetched": schedule is not None,
            "timecard_fetched": timecard is not None,
            "shifts_count": len(schedule.shifts) if schedule is not None else 0,
            "entries_count": len(timecard.entries) if timecard is not None else 0,
            "sections": alerts.sections,
            "subject": alerts.build_subject() if alerts.has_alerts else None,
            "notified": notified,
            "errors": errors,
            "duration_seconds": round(time.monotonic() - started, 3),
        })

        run_logger.log_run_complete(
            len(result.sections), notified, result.duration_seconds, errors=len(errors)
        )
        return result

    def _today(self) -> date:
        """Current date in the scheduler timezone, matching the cron trigger."""
        return datetime.now(ZoneInfo(self.config.timezone)).date()

    async def _daily_run_job(self) -> RunResult:
        """Scheduled job wrapper."""
        return await self.run_once(self._today())

    def _add_scheduled_jobs(self) -> None:
        """Add the daily check to the scheduler."""
        self.scheduler.add_job(
            func=self._daily_run_job,
            trigger=CronTrigger(
                hour=self.config.schedule_hour,
                minute=self.config.schedule_minute,
                timezone=self.config.timezone
            ),
            id='daily_run',
            name='Daily Schedule Check',
            max_instances=1,
            replace_existing=True
        )
        self.logger.info(
            "Added daily run job",
            hour=self.config.schedule_hour,
            minute=self.config.schedule_minute,
            timezone=self.config.timezone
        )

    async def start(self) -> None:
        """Start the scheduler and keep running until interrupted."""
        try:
            self.logger.info("Starting scheduler service")
            self._setup_signal_handlers()
            self._add_scheduled_jobs()
            self.scheduler.start()

            self.logger.info(
                "Scheduler service started",
                timezone=self.config.timezone,
                schedule_hour=self.config.schedule_hour,
                schedule_minute=self.config.schedule_minute
            )

            while True:
                await asyncio.sleep(1)

        except Exception as e:
            self.logger.error(
                "Failed to start scheduler service",
                error=str(e)
            )
            raise

    def stop(self) -> None:
        """Stop the scheduler service."""
        self.logger.info("Stopping scheduler service")
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
        self.logger.info("Scheduler service stopped")

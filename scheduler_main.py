"""
Main entry point for the daily schedule check.

Runs one check immediately (--once) or starts the scheduler as a daemon
that runs the check every day at the configured time.
"""

import argparse
import asyncio
import sys
from datetime import date
from typing import List, Optional

import structlog
from utilities.logger import setup_logging
from utilities.config import WatcherConfig, config
from utilities.dates import parse_iso_date
from portal.client import PortalClient
from portal.store import SnapshotStore
from scheduler.scheduler_service import SchedulerService
from scheduler.models import SchedulerConfig, AlertConfig
from scheduler.notifier import build_notifier


def build_scheduler_config(settings: WatcherConfig) -> SchedulerConfig:
    """Map flat settings onto the run service configuration."""
    alert_config = AlertConfig(
        enabled=True,
        log_enabled=True,
        subject_prefix=settings.subject_prefix,
        discrepancy_threshold_minutes=settings.discrepancy_threshold_minutes
    )

    return SchedulerConfig(
        schedule_hour=settings.schedule_hour,
        schedule_minute=settings.schedule_minute,
        timezone=settings.timezone,
        schedule_source=settings.schedule_source,
        schedule_lookahead_days=settings.schedule_lookahead_days,
        schedule_page_weeks=settings.schedule_page_weeks,
        timecard_window_days=settings.timecard_window_days,
        holiday_fallback_name=settings.holiday_fallback_name,
        alert_config=alert_config
    )


def build_service(settings: WatcherConfig) -> SchedulerService:
    """Wire the portal client, snapshot store and notifier into a service."""
    return SchedulerService(
        build_scheduler_config(settings),
        PortalClient(settings),
        SnapshotStore(settings.get_data_dir_path()),
        build_notifier(settings)
    )


def _reference_date(value: str) -> date:
    parsed = parse_iso_date(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD")
    return parsed


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Watch the work schedule and timecard for changes"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single check and exit instead of starting the daemon"
    )
    parser.add_argument(
        "--date",
        type=_reference_date,
        default=None,
        metavar="YYYY-MM-DD",
        help="Reference date for --once (defaults to today)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch, compare and save snapshots but do not send alerts"
    )
    return parser.parse_args(argv)


async def main(argv: Optional[List[str]] = None) -> int:
    """Run once or start the daemon; returns the process exit code."""
    args = parse_args(argv)
    logger = structlog.get_logger(__name__)

    try:
        setup_logging(
            log_level=config.log_level,
            log_format=config.log_format,
            log_file=config.get_log_file_path(),
            debug=config.debug
        )

        service = build_service(config)

        if args.once or args.date:
            reference_date: date = args.date or date.today()
            logger.info(
                "Running in RUN ONCE MODE",
                reference_date=reference_date.isoformat(),
                dry_run=args.dry_run
            )
            result = await service.run_once(reference_date, notify=not args.dry_run)
            print("\n" + "=" * 60)
            print(f"Run {result.run_id} for {result.reference_date.isoformat()}")
            print("=" * 60)
            print(f"Schedule fetched: {result.schedule_fetched} ({result.shifts_count} shifts)")
            print(f"Timecard fetched: {result.timecard_fetched} ({result.entries_count} entries)")
            print(f"Alert: {result.subject or 'none'}")
            print(f"Notified: {result.notified}")
            print("=" * 60)
            return 0 if result.success else 1

        logger.info(
            "Running in DAEMON MODE",
            schedule_hour=config.schedule_hour,
            schedule_minute=config.schedule_minute,
            timezone=config.timezone
        )
        await service.start()
        return 0

    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
        return 0
    except Exception as e:
        logger.error("Failed to run schedule check", error=str(e))
        return 1


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()

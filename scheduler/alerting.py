"""
Alert assembly for change detection notifications.

This module provides:
- Plain-text rendering of titled alert sections
- Per-run collection of error, schedule, discrepancy and timecard sections
- Subject and body construction
- Delivery through a notifier with log-based fallback
"""

import asyncio
from datetime import date
from typing import Dict, List, Optional

import structlog

from scheduler.models import AlertConfig, AlertKind, AlertSection
from scheduler.notifier import Notifier
from utilities.dates import format_date

logger = structlog.get_logger(__name__)

SUBJECT_LABELS = {
    AlertKind.FETCH_FAILURE: "Fetch error",
    AlertKind.SCHEDULE_CHANGE: "Schedule changed",
    AlertKind.DISCREPANCY: "Timecard discrepancy",
    AlertKind.TIMECARD_CHANGE: "Timecard changed",
}

SECTION_ORDER = [
    AlertKind.FETCH_FAILURE,
    AlertKind.SCHEDULE_CHANGE,
    AlertKind.DISCREPANCY,
    AlertKind.TIMECARD_CHANGE,
]


def format_alert(title: str, items: List[str]) -> str:
    """Render a title, a matching dash underline and the items separated by blank lines."""
    return f"{title}\n{'-' * len(title)}\n" + "\n\n".join(items)


class AlertManager:
    """Collects one run's alert sections and delivers them."""

    def __init__(self, alert_config: AlertConfig):
        """
        Initialize alert manager.

        Args:
            alert_config: Alert configuration
        """
        self.config = alert_config
        self.logger = logger.bind(component="alert_manager")
        self._sections: Dict[AlertKind, AlertSection] = {}

    def _add(self, kind: AlertKind, title: str, items: Optional[List[str]]) -> None:
        items = [item for item in (items or []) if item]
        if items:
            self._sections[kind] = AlertSection(kind=kind, title=title, items=items)

    def add_errors(self, errors: Optional[List[str]]) -> None:
        self._add(AlertKind.FETCH_FAILURE, "FETCH ERRORS", errors)

    def add_schedule_changes(self, changes: Optional[List[str]]) -> None:
        self._add(AlertKind.SCHEDULE_CHANGE, "SCHEDULE CHANGES", changes)

    def add_discrepancy(self, discrepancy: Optional[str]) -> None:
        title = f"TIMECARD VS SCHEDULE (>{self.config.discrepancy_threshold_minutes} MIN)"
        self._add(AlertKind.DISCREPANCY, title, [discrepancy] if discrepancy else None)

    def add_timecard_changes(self, changes: Optional[List[str]]) -> None:
        self._add(AlertKind.TIMECARD_CHANGE, "TIMECARD CHANGES", changes)

    @property
    def sections(self) -> List[AlertSection]:
        return [self._sections[kind] for kind in SECTION_ORDER if kind in self._sections]

    @property
    def has_alerts(self) -> bool:
        return bool(self._sections)

    def render_sections(self) -> List[str]:
        return [format_alert(s.title, s.items) for s in self.sections]

    def build_subject(self) -> str:
        labels = [SUBJECT_LABELS[s.kind] for s in self.sections]
        return f"{self.config.subject_prefix}: {', '.join(labels) or 'Changes detected'}"

    def build_body(self, reference_date: date) -> str:
        header = f"Daily Run — {format_date(reference_date)}"
        return f"{header}\n{'=' * 40}\n\n" + "\n\n".join(self.render_sections()) + "\n"

    async def dispatch(self, notifier: Notifier, reference_date: date) -> bool:
        """
        Send the collected sections if there is anything to report.

        Delivery failures are logged, never raised.

        Returns:
            True if a notification was sent
        """
        if not self.config.enabled:
            self.logger.debug("Alerting is disabled")
            return False

        if not self.has_alerts:
            self.logger.info("No changes detected, nothing to send")
            return False

        subject = self.build_subject()
        body = self.build_body(reference_date)

        if self.config.log_enabled:
            self.logger.info(
                "Dispatching alert",
                subject=subject,
                sections=[s.kind.value for s in self.sections],
            )

        try:
            await asyncio.to_thread(notifier.send, subject, body)
        except Exception as e:
            self.logger.error("Failed to send alert", subject=subject, error=str(e))
            return False

        return True

"""
Async client for the workforce-management portal.
Fetches raw schedule and timecard payloads over an already-authenticated session.
"""

import re
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import httpx
from bs4 import BeautifulSoup
from asyncio_throttle import Throttler
import structlog

from utilities.config import WatcherConfig
from utilities.dates import add_days, format_date
from .errors import PortalError

logger = structlog.get_logger(__name__)

XSRF_COOKIE = "XSRF-TOKEN"

_CELL_ID_RE = re.compile(r"^\d+_\w+$")

SCHEDULE_ENTITIES = [
    "entity.regularshift",
    "entity.paycodeedit",
    "entity.holiday",
    "entity.timeoffrequest",
]


class PortalClient:
    """
    Fetches raw payloads from the portal using session cookies from configuration.
    Logging in is handled elsewhere; this client only replays the session.
    """

    def __init__(self, settings: WatcherConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the portal client.

        Args:
            settings: Watcher configuration
            transport: Optional httpx transport (used by tests)
        """
        self.settings = settings
        self.throttler = Throttler(rate_limit=settings.rate_limit_per_second)
        self.logger = logger.bind(component="portal_client")

        # HTTP client configuration
        self.client_config: Dict[str, Any] = {
            "base_url": settings.base_url,
            "timeout": settings.request_timeout,
            "headers": settings.get_headers(),
            "cookies": settings.session_cookies,
            "follow_redirects": True,
        }
        if transport is not None:
            self.client_config["transport"] = transport

    async def fetch_schedule_events(self, start: date, end: date) -> Dict[str, Any]:
        """
        Fetch the schedule events bundle for a date span.

        Args:
            start: First date of the span
            end: Last date of the span

        Returns:
            Raw JSON payload (regularShifts, holidayList, timeOffRequests)
        """
        xsrf_token = self.settings.session_cookies.get(XSRF_COOKIE)
        if not xsrf_token:
            raise PortalError(f"{XSRF_COOKIE} cookie not found in session cookies")

        body = {
            "data": {
                "calendarConfigId": self.settings.calendar_config_id,
                "includedEntities": SCHEDULE_ENTITIES,
                "dateSpan": {"start": format_date(start), "end": format_date(end)},
                "removeDuplicatedEntities": True,
                "hideInvisibleTORPayCodes": True,
            }
        }

        async with httpx.AsyncClient(**self.client_config) as client:
            response = await self._request(
                client,
                "POST",
                self.settings.schedule_events_path,
                json=body,
                headers={"x-xsrf-token": xsrf_token},
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise PortalError(f"Schedule API returned invalid JSON: {e}") from e

        self.logger.info("Fetched schedule events", start=format_date(start), end=format_date(end))
        return payload

    async def fetch_schedule_pages(self, first_week_start: date, weeks: int) -> List[str]:
        """
        Fetch the visible text of one schedule page per week.

        Args:
            first_week_start: Date the first page should start from
            weeks: Number of consecutive weekly pages

        Returns:
            Page text per week, in week order
        """
        pages: List[str] = []
        async with httpx.AsyncClient(**self.client_config) as client:
            for offset in range(weeks):
                week_start = add_days(first_week_start, 7 * offset)
                response = await self._request(
                    client,
                    "GET",
                    self.settings.schedule_page_path,
                    params={"startDate": format_date(week_start)},
                )
                soup = BeautifulSoup(response.text, "html.parser")
                pages.append(soup.get_text("\n"))

        self.logger.info("Fetched schedule pages", weeks=weeks)
        return pages

    async def fetch_timecard_cells(self, path: str) -> Dict[str, Optional[str]]:
        """
        Fetch a timecard page and collect its grid cells.

        Args:
            path: Timecard page path (current or previous pay period)

        Returns:
            Mapping of "<row>_<column>" element ids to display text
        """
        async with httpx.AsyncClient(**self.client_config) as client:
            response = await self._request(client, "GET", path)

        soup = BeautifulSoup(response.text, "html.parser")
        cells: Dict[str, Optional[str]] = {}
        for element in soup.find_all(id=_CELL_ID_RE):
            value = element.get("title") or element.get_text(" ", strip=True)
            cells[element["id"]] = value.strip() if value else None

        self.logger.info("Fetched timecard cells", path=path, cells=len(cells))
        return cells

    async def fetch_timecard_periods(self) -> Tuple[Optional[Dict[str, Optional[str]]], Dict[str, Optional[str]]]:
        """
        Fetch the previous (when configured) and current pay-period grids.

        The previous period only supplements the current one, so a failure
        fetching it is logged and the run continues without it.

        Returns:
            (previous cells or None, current cells)
        """
        previous = None
        if self.settings.timecard_previous_path:
            try:
                previous = await self.fetch_timecard_cells(self.settings.timecard_previous_path)
            except PortalError as e:
                self.logger.warning("Previous pay period unavailable", error=str(e))
        current = await self.fetch_timecard_cells(self.settings.timecard_current_path)
        return previous, current

    async def _request(self, client: httpx.AsyncClient, method: str, path: str, **kwargs) -> httpx.Response:
        """Send one throttled request and turn transport or status failures into PortalError."""
        async with self.throttler:
            try:
                response = await client.request(method, path, **kwargs)
            except httpx.HTTPError as e:
                self.logger.error("Portal request failed", method=method, path=path, error=str(e))
                raise PortalError(f"{method} {path} failed: {e}") from e

        if not response.is_success:
            self.logger.error("Portal returned error status", method=method, path=path, status_code=response.status_code)
            raise PortalError(f"{method} {path} returned {response.status_code}: {response.text[:200]}")
        return response

from __future__ import annotations
"""
Sentry Events API Client
Fetches issue events for a date window and reduces them to minimal records.

Pagination follows the cursor in the Link response header until Sentry
reports no further results or a page comes back empty.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

import requests

from payment_report.cache.chunk_model import MinimalEvent
from payment_report.sources import EventSource, extract_minimal_event
from payment_report.utils.windows import DateWindow, format_date, timestamp_date


class SentryFetchError(Exception):
    """Raised when a window's events cannot be fetched or are malformed"""
    pass


def log_sentry(message: str):
    """Log Sentry API messages with timestamp"""
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{timestamp}] [SENTRY] {message}")


def next_page_url(response: requests.Response) -> Optional[str]:
    """
    URL of the next page from the Link header, or None.
    Sentry always sends rel="next" and flags exhaustion with results="false".
    """
    link = response.links.get("next")
    if not link:
        return None
    if link.get("results") == "false":
        return None
    return link.get("url")


class SentryClient:
    """Client for the Sentry issue-events API"""

    def __init__(
        self,
        token: str,
        organization: str,
        base_url: str = "https://sentry.io/api/0",
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
    ):
        self.organization = organization
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        })

    @classmethod
    def from_settings(cls, settings, session: Optional[requests.Session] = None) -> "SentryClient":
        return cls(
            token=settings.require_sentry(),
            organization=settings.SENTRY_ORG,
            base_url=settings.SENTRY_BASE_URL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            session=session,
        )

    def events_url(self, issue_id: str) -> str:
        return f"{self.base_url}/organizations/{self.organization}/issues/{issue_id}/events/"

    # ============================================================
    # 📊 SENTRY API METHODS
    # ============================================================

    def _get_page(self, url: str, params: Optional[Dict[str, str]]) -> Tuple[List[Dict[str, Any]], requests.Response]:
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise SentryFetchError(f"Request to {url} failed: {e}") from e

        if not isinstance(data, list):
            raise SentryFetchError(f"Unexpected response from {url}: expected a list of events")

        return data, response

    def fetch_events(self, source: EventSource, start_date: date, end_date: date) -> List[MinimalEvent]:
        """
        Fetch every event of an issue dated within [start_date, end_date].

        Args:
            source: Event source (issue id + kind decide tag extraction)
            start_date: First day (inclusive, UTC)
            end_date: Last day (inclusive, UTC)

        Returns:
            Minimal event records in API order

        Raises:
            SentryFetchError: any page failed; nothing from this window is returned
        """
        window = DateWindow(start_date, end_date)
        log_sentry(f"Fetching {source.name}: {window}...")

        url: Optional[str] = self.events_url(source.source_id)
        params: Optional[Dict[str, str]] = {
            "full": "true",
            "start": f"{format_date(start_date)}T00:00:00Z",
            "end": f"{format_date(end_date)}T23:59:59Z",
        }

        events: List[MinimalEvent] = []
        page_num = 1

        while url:
            data, response = self._get_page(url, params)
            # The cursor URL carries the query string from here on
            params = None

            for raw in data:
                event_time = raw.get("dateCreated") or raw.get("dateReceived")
                if not event_time:
                    continue
                try:
                    in_range = window.contains(timestamp_date(event_time))
                except ValueError as e:
                    raise SentryFetchError(f"Malformed event timestamp {event_time!r}: {e}") from e
                if in_range:
                    events.append(extract_minimal_event(raw, source.kind))

            log_sentry(f"  Page {page_num}: {len(events)} events in range so far")

            if not data:
                break

            url = next_page_url(response)
            page_num += 1

        log_sentry(f"Fetched {len(events)} events in date range")
        return events

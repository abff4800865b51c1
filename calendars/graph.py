"""
Microsoft Graph calendar fetcher.

Reads the current month's events for one account through /me/calendarView.
Failures are logged and turned into an empty list so one broken account
cannot blank the combined view.
"""

import calendar
import logging
from datetime import datetime
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

# Microsoft Graph API endpoint
GRAPH_API_BASE = "https://graph.microsoft.com/v1.0"

SELECT_FIELDS = "subject,organizer,start,end"


def month_window(now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """
    First and last instant of the month containing `now`, in server local time.

    Both ends are inclusive: the window ends at 23:59:59 on the last day.
    """
    now = now or datetime.now()
    last_day = calendar.monthrange(now.year, now.month)[1]
    start = datetime(now.year, now.month, 1, 0, 0, 0)
    end = datetime(now.year, now.month, last_day, 23, 59, 59)
    # Attach the local UTC offset in effect at each boundary
    return start.astimezone(), end.astimezone()


def to_event_summary(event: dict[str, Any]) -> dict[str, Any]:
    """Map a Graph event to the {name, start, end} shape served to clients."""
    return {
        "name": event.get("subject"),
        "start": event.get("start"),
        "end": event.get("end"),
    }


class CalendarFetcher:
    """Fetches a month of events with a short-lived access credential."""

    def __init__(
        self,
        graph_base_url: str = GRAPH_API_BASE,
        max_events: int = 50,
        timezone: Optional[str] = None,
        timeout: float = 30,
        client: Optional[httpx.Client] = None,
    ):
        self.graph_base_url = graph_base_url.rstrip("/")
        self.max_events = max_events
        self.timezone = timezone
        self._client = client or httpx.Client(timeout=timeout)

    @classmethod
    def from_config(cls, config) -> "CalendarFetcher":
        return cls(
            graph_base_url=config.graph_base_url,
            max_events=config.max_events,
            timezone=config.calendar_timezone,
            timeout=config.provider_timeout_seconds,
        )

    def fetch_month_events(
        self, access_credential: str, now: Optional[datetime] = None
    ) -> list[dict[str, Any]]:
        """
        Get this month's events for the account behind the access credential.

        Args:
            access_credential: Bearer token for Microsoft Graph
            now: Reference time (defaults to the current local time)

        Returns:
            List of {name, start, end} dicts ordered by start time, or an
            empty list if anything goes wrong
        """
        start, end = month_window(now)
        params = {
            "startDateTime": start.isoformat(timespec="seconds"),
            "endDateTime": end.isoformat(timespec="seconds"),
            "$select": SELECT_FIELDS,
            "$orderby": "start/dateTime",
            "$top": self.max_events,
        }
        headers = {"Authorization": f"Bearer {access_credential}"}
        if self.timezone:
            # Return times in the configured zone instead of UTC
            headers["Prefer"] = f'outlook.timezone="{self.timezone}"'

        try:
            response = self._client.get(
                f"{self.graph_base_url}/me/calendarView",
                headers=headers,
                params=params,
            )
            response.raise_for_status()
            events = response.json().get("value", [])
            summaries = [to_event_summary(event) for event in events]
        except httpx.HTTPStatusError as e:
            logger.error(f"Calendar view request failed: HTTP {e.response.status_code}")
            return []
        except Exception as e:
            logger.error(f"Calendar view request failed: {e}")
            return []

        logger.info(f"Calendar view returned {len(summaries)} events")
        return summaries

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

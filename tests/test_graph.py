"""
Tests for calendars/graph.py
"""

from datetime import datetime
from unittest.mock import MagicMock

import httpx
import pytest

from calendars.graph import CalendarFetcher, month_window, to_event_summary


def _graph_event(subject: str, day: int) -> dict:
    return {
        "subject": subject,
        "organizer": {"emailAddress": {"name": "Org", "address": "org@x.com"}},
        "start": {"dateTime": f"2026-10-{day:02d}T09:00:00.0000000", "timeZone": "UTC"},
        "end": {"dateTime": f"2026-10-{day:02d}T10:00:00.0000000", "timeZone": "UTC"},
    }


class TestMonthWindow:
    def test_mid_month(self):
        start, end = month_window(datetime(2026, 10, 19, 15, 30))

        assert start.replace(tzinfo=None) == datetime(2026, 10, 1, 0, 0, 0)
        assert end.replace(tzinfo=None) == datetime(2026, 10, 31, 23, 59, 59)

    def test_december(self):
        start, end = month_window(datetime(2026, 12, 31, 23, 0))

        assert start.replace(tzinfo=None) == datetime(2026, 12, 1)
        assert end.replace(tzinfo=None) == datetime(2026, 12, 31, 23, 59, 59)

    def test_leap_february(self):
        _, end = month_window(datetime(2028, 2, 3))
        assert end.day == 29

    def test_boundaries_carry_local_offset(self):
        start, end = month_window(datetime(2026, 6, 10))
        assert start.tzinfo is not None
        assert end.tzinfo is not None


class TestEventSummary:
    def test_maps_subject_to_name_and_drops_organizer(self):
        summary = to_event_summary(_graph_event("Standup", 5))

        assert summary == {
            "name": "Standup",
            "start": {"dateTime": "2026-10-05T09:00:00.0000000", "timeZone": "UTC"},
            "end": {"dateTime": "2026-10-05T10:00:00.0000000", "timeZone": "UTC"},
        }


class TestFetchMonthEvents:
    @pytest.fixture
    def http_client(self):
        return MagicMock()

    @pytest.fixture
    def fetcher(self, http_client):
        return CalendarFetcher(client=http_client)

    def _respond_with(self, http_client, events):
        mock_response = MagicMock()
        mock_response.json.return_value = {"value": events}
        mock_response.raise_for_status = MagicMock()
        http_client.get.return_value = mock_response
        return mock_response

    def test_returns_events_in_provider_order(self, fetcher, http_client):
        self._respond_with(
            http_client, [_graph_event("First", 2), _graph_event("Second", 9)]
        )

        events = fetcher.fetch_month_events("at-1", now=datetime(2026, 10, 19))

        assert [e["name"] for e in events] == ["First", "Second"]

    def test_returns_exactly_k_events(self, fetcher, http_client):
        self._respond_with(http_client, [_graph_event(f"E{i}", 1) for i in range(50)])

        assert len(fetcher.fetch_month_events("at-1")) == 50

    def test_query_parameters(self, fetcher, http_client):
        self._respond_with(http_client, [])

        fetcher.fetch_month_events("at-1", now=datetime(2026, 10, 19))

        call = http_client.get.call_args
        assert call[0][0] == "https://graph.microsoft.com/v1.0/me/calendarView"
        params = call[1]["params"]
        assert params["$select"] == "subject,organizer,start,end"
        assert params["$orderby"] == "start/dateTime"
        assert params["$top"] == 50
        assert params["startDateTime"].startswith("2026-10-01T00:00:00")
        assert params["endDateTime"].startswith("2026-10-31T23:59:59")

    def test_bearer_header(self, fetcher, http_client):
        self._respond_with(http_client, [])

        fetcher.fetch_month_events("at-1")

        headers = http_client.get.call_args[1]["headers"]
        assert headers["Authorization"] == "Bearer at-1"
        assert "Prefer" not in headers

    def test_timezone_preference(self, http_client):
        self._respond_with(http_client, [])
        fetcher = CalendarFetcher(timezone="Europe/Stockholm", client=http_client)

        fetcher.fetch_month_events("at-1")

        headers = http_client.get.call_args[1]["headers"]
        assert headers["Prefer"] == 'outlook.timezone="Europe/Stockholm"'

    def test_http_error_returns_empty(self, fetcher, http_client):
        mock_response = self._respond_with(http_client, [])
        mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "401 Unauthorized",
            request=MagicMock(),
            response=MagicMock(status_code=401),
        )

        assert fetcher.fetch_month_events("expired") == []

    def test_network_error_returns_empty(self, fetcher, http_client):
        http_client.get.side_effect = httpx.ConnectError("connection refused")

        assert fetcher.fetch_month_events("at-1") == []

    def test_malformed_json_returns_empty(self, fetcher, http_client):
        mock_response = self._respond_with(http_client, [])
        mock_response.json.side_effect = ValueError("not json")

        assert fetcher.fetch_month_events("at-1") == []

    def test_malformed_shape_returns_empty(self, fetcher, http_client):
        self._respond_with(http_client, ["not-an-event"])

        assert fetcher.fetch_month_events("at-1") == []

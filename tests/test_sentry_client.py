"""
Tests for sources.py (minimal event projection) and sentry_client.py
(pagination, date filtering, failure handling). Uses a fake session; no network.
"""
from datetime import date

import pytest
import requests

from payment_report.sentry_client import SentryClient, SentryFetchError
from payment_report.settings import ConfigurationError
from payment_report.sources import PAYMENT_ERROR, PAYMENT_SUCCESS, extract_minimal_event, resolve_user_id

from conftest import FakeResponse, FakeSession, raw_sentry_event


class TestResolveUserId:

    def test_ip_only(self):
        assert resolve_user_id({"ip_address": "1.2.3.4"}) == "1.2.3.4"

    def test_nothing_is_anonymous(self):
        assert resolve_user_id({}) == "anonymous"
        assert resolve_user_id(None) == "anonymous"

    def test_preference_order(self):
        assert resolve_user_id({"id": "42", "email": "a@b.c", "ip_address": "1.2.3.4"}) == "42"
        assert resolve_user_id({"email": "a@b.c", "ip_address": "1.2.3.4"}) == "a@b.c"


class TestExtractMinimalEvent:

    def test_error_event_tags(self):
        raw = raw_sentry_event(
            "e1", "2025-09-10T10:00:00Z", user={"email": "x@y.z"},
            tags={"paymentErrorReason": "Insufficient Funds", "merchant_id": "m1", "storeId": "7", "browser": "Chrome"},
        )

        event = extract_minimal_event(raw, PAYMENT_ERROR)

        assert event.event_id == "e1"
        assert event.user_id == "x@y.z"
        assert event.tags == {"paymentErrorReason": "Insufficient Funds", "merchant_id": "m1", "storeId": "7"}

    def test_empty_reason_becomes_unknown(self):
        raw = raw_sentry_event("e1", "2025-09-10T10:00:00Z", tags={"paymentErrorReason": ""})
        assert extract_minimal_event(raw, PAYMENT_ERROR).tag("paymentErrorReason") == "Unknown"

    def test_success_event_keeps_merchant_only(self):
        raw = raw_sentry_event("e2", "2025-09-10T10:00:00Z", tags={"merchant_id": "m9", "storeId": "7"})
        assert extract_minimal_event(raw, PAYMENT_SUCCESS).tags == {"merchant_id": "m9"}

    def test_falls_back_to_date_received_and_event_id(self):
        raw = {"eventID": "abc", "dateReceived": "2025-09-10T11:00:00Z", "tags": []}
        event = extract_minimal_event(raw, PAYMENT_SUCCESS)
        assert event.timestamp == "2025-09-10T11:00:00Z"
        assert event.event_id == "abc"
        assert event.user_id == "anonymous"


def next_link(cursor, results="true"):
    return {"next": {"url": f"https://sentry.io/next?cursor={cursor}", "rel": "next", "results": results}}


class TestSentryClient:

    def make_client(self, responses):
        session = FakeSession(responses)
        client = SentryClient("tok", "acme", session=session, timeout=5)
        return client, session

    def test_follows_cursor_until_results_false(self, error_source):
        client, session = self.make_client([
            FakeResponse([raw_sentry_event("e1", "2025-09-10T10:00:00Z")], links=next_link("1")),
            FakeResponse([raw_sentry_event("e2", "2025-09-11T10:00:00Z")], links=next_link("2", results="false")),
        ])

        events = client.fetch_events(error_source, date(2025, 9, 9), date(2025, 9, 15))

        assert [e.event_id for e in events] == ["e1", "e2"]
        assert session.headers["Authorization"] == "Bearer tok"
        first, second = session.calls
        assert first["url"] == "https://sentry.io/api/0/organizations/acme/issues/6722248692/events/"
        assert first["params"] == {"full": "true", "start": "2025-09-09T00:00:00Z", "end": "2025-09-15T23:59:59Z"}
        assert second["url"] == "https://sentry.io/next?cursor=1"
        assert second["params"] is None

    def test_stops_on_empty_page(self, error_source):
        client, session = self.make_client([FakeResponse([], links=next_link("1"))])

        assert client.fetch_events(error_source, date(2025, 9, 9), date(2025, 9, 15)) == []
        assert len(session.calls) == 1

    def test_filters_events_outside_window_and_undated(self, error_source):
        client, _ = self.make_client([FakeResponse([
            raw_sentry_event("before", "2025-09-08T23:59:59Z"),
            raw_sentry_event("inside", "2025-09-15T23:00:00Z"),
            raw_sentry_event("after", "2025-09-16T00:00:01Z"),
            raw_sentry_event("undated", None),
        ])])

        events = client.fetch_events(error_source, date(2025, 9, 9), date(2025, 9, 15))

        assert [e.event_id for e in events] == ["inside"]

    @pytest.mark.parametrize("failure", [
        FakeResponse({"detail": "boom"}, status_code=500),
        requests.ConnectionError("down"),
        FakeResponse(ValueError("not json")),
        FakeResponse({"detail": "not a list"}),
    ])
    def test_any_page_failure_raises(self, error_source, failure):
        client, _ = self.make_client([
            FakeResponse([raw_sentry_event("e1", "2025-09-10T10:00:00Z")], links=next_link("1")),
            failure,
        ])

        with pytest.raises(SentryFetchError):
            client.fetch_events(error_source, date(2025, 9, 9), date(2025, 9, 15))

    def test_from_settings_requires_token(self, settings):
        settings.SENTRY_TOKEN = None
        with pytest.raises(ConfigurationError):
            SentryClient.from_settings(settings, session=FakeSession())

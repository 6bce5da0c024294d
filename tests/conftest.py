"""
Shared fixtures: settings rooted in tmp_path, payment sources, and a fake
requests session so no test touches the network.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest
import requests

from payment_report.cache.chunk_model import MinimalEvent
from payment_report.settings import Settings
from payment_report.sources import payment_sources


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, links: Optional[Dict[str, Dict[str, str]]] = None):
        self._payload = payload
        self.status_code = status_code
        self.links = links or {}

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Replays queued responses (or raises queued exceptions) and records calls"""

    def __init__(self, responses: Optional[List[Any]] = None):
        self.headers: Dict[str, str] = {}
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []

    def get(self, url: str, params: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if not self.responses:
            raise AssertionError(f"Unexpected request to {url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        SENTRY_TOKEN="test-token",
        SENTRY_ORG="test-org",
        GRAVITY_FORMS_URL="https://forms.example.com/",
        GRAVITY_FORMS_KEY="ck_test",
        GRAVITY_FORMS_SECRET="cs_test",
        SENDGRID_API_KEY="SG.test",
        SENDGRID_FROM_EMAIL="reports@example.com",
        REPORT_RECIPIENTS_STR="ops@example.com, finance@example.com",
        DATA_DIR=tmp_path / "data",
    )


@pytest.fixture
def error_source(settings):
    return payment_sources(settings)[0]


@pytest.fixture
def success_source(settings):
    return payment_sources(settings)[1]


def make_event(timestamp: str, event_id: str = "evt", user_id: str = "user-1", **tags) -> MinimalEvent:
    return MinimalEvent(timestamp=timestamp, event_id=event_id, user_id=user_id, tags=dict(tags))


def raw_sentry_event(
    event_id: str,
    date_created: Optional[str],
    user: Optional[Dict[str, Any]] = None,
    tags: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    event: Dict[str, Any] = {"id": event_id, "user": user}
    if date_created:
        event["dateCreated"] = date_created
    event["tags"] = [{"key": k, "value": v} for k, v in (tags or {}).items()]
    return event

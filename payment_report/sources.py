from __future__ import annotations
"""
Upstream event sources (one Sentry issue each) and how their raw events are
reduced to minimal records.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

from payment_report.cache.chunk_model import MinimalEvent
from payment_report.config.report_windows import ANONYMOUS_USER, UNKNOWN_LABEL

PAYMENT_ERROR = "payment_error"
PAYMENT_SUCCESS = "payment_success"


@dataclass(frozen=True)
class EventSource:
    source_id: str
    name: str
    kind: str

    @property
    def slug(self) -> str:
        """Directory-friendly name: lower-case, whitespace runs -> '_'"""
        return "_".join(self.name.lower().split())


def payment_sources(settings) -> Tuple[EventSource, EventSource]:
    """(error, success) sources configured for this run"""
    return (
        EventSource(settings.PAYMENT_ERROR_ISSUE_ID, "Payment Error", PAYMENT_ERROR),
        EventSource(settings.PAYMENT_SUCCESS_ISSUE_ID, "Payment Success", PAYMENT_SUCCESS),
    )


def resolve_user_id(user: Dict[str, Any]) -> str:
    """Explicit id, then email, then IP address, then the anonymous sentinel."""
    user = user or {}
    return user.get("id") or user.get("email") or user.get("ip_address") or ANONYMOUS_USER


def _extract_error_tags(tags: List[Dict[str, Any]]) -> Dict[str, Any]:
    extracted: Dict[str, Any] = {}
    for tag in tags:
        key = tag.get("key")
        if key == "paymentErrorReason":
            extracted["paymentErrorReason"] = tag.get("value") or UNKNOWN_LABEL
        elif key in ("merchant_id", "customerId", "storeState", "storeId"):
            extracted[key] = tag.get("value")
    return extracted


def _extract_success_tags(tags: List[Dict[str, Any]]) -> Dict[str, Any]:
    for tag in tags:
        if tag.get("key") == "merchant_id":
            return {"merchant_id": tag.get("value") or UNKNOWN_LABEL}
    return {}


TAG_EXTRACTORS = {
    PAYMENT_ERROR: _extract_error_tags,
    PAYMENT_SUCCESS: _extract_success_tags,
}


def extract_minimal_event(event: Dict[str, Any], kind: str) -> MinimalEvent:
    """Project a raw Sentry event onto the minimal record stored in chunks"""
    timestamp = (
        event.get("dateCreated")
        or event.get("dateReceived")
        or datetime.now(timezone.utc).isoformat()
    )
    extractor = TAG_EXTRACTORS.get(kind)
    tags = extractor(event.get("tags") or []) if extractor else {}

    return MinimalEvent(
        timestamp=timestamp,
        event_id=event.get("id") or event.get("eventID"),
        user_id=resolve_user_id(event.get("user")),
        tags=tags,
    )

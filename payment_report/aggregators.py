from __future__ import annotations
"""
Payment Aggregators

Pure functions over merged event lists (no I/O):
- Error breakdown: group by paymentErrorReason, invalid-card-number reasons
  collapsed into one bucket
- Success breakdown: group by merchant_id
- Gravity Forms entry summaries

Grouping rules:
- count = events in the group
- unique_users = distinct user ids in the group
- sorted by count DESC; ties keep first-seen order (stable sort)
"""

from typing import Any, Callable, Dict, List, Sequence

from payment_report.cache.chunk_model import MinimalEvent
from payment_report.config.report_windows import (
    CHART_TOP_REASONS,
    INVALID_CARD_BUCKET,
    INVALID_CARD_SUFFIX,
    OTHERS_LABEL,
    UNKNOWN_LABEL,
)
from payment_report.utils.metrics import safe_share_pct


def normalize_error_reason(reason: str) -> str:
    """Collapse every '<card> is not a valid card number' variant into one bucket"""
    if reason.endswith(INVALID_CARD_SUFFIX):
        return INVALID_CARD_BUCKET
    return reason


def group_events(
    events: Sequence[MinimalEvent],
    key_fn: Callable[[MinimalEvent], str],
    label: str,
) -> List[Dict[str, Any]]:
    """
    Group events by a categorical key.

    Returns:
        List of {label: key, 'count': int, 'unique_users': int}, count DESC
    """
    groups: Dict[str, Dict[str, Any]] = {}

    for event in events:
        key = key_fn(event)
        if key not in groups:
            groups[key] = {"count": 0, "users": set()}
        groups[key]["count"] += 1
        groups[key]["users"].add(event.user_id)

    results = [
        {label: key, "count": data["count"], "unique_users": len(data["users"])}
        for key, data in groups.items()
    ]
    # sorted() is stable, so equal counts stay in first-seen order
    return sorted(results, key=lambda item: item["count"], reverse=True)


def aggregate_payment_errors(events: Sequence[MinimalEvent]) -> List[Dict[str, Any]]:
    return group_events(
        events,
        lambda e: normalize_error_reason(e.tag("paymentErrorReason") or UNKNOWN_LABEL),
        "reason",
    )


def aggregate_payment_success(events: Sequence[MinimalEvent]) -> List[Dict[str, Any]]:
    return group_events(events, lambda e: e.tag("merchant_id") or UNKNOWN_LABEL, "merchant_id")


def count_unique_users(events: Sequence[MinimalEvent]) -> int:
    return len({event.user_id for event in events})


def with_percentages(items: List[Dict[str, Any]], total: int) -> List[Dict[str, Any]]:
    return [{**item, "percentage": safe_share_pct(item["count"], total)} for item in items]


def build_error_breakdown(events: Sequence[MinimalEvent], top_n: int = CHART_TOP_REASONS) -> Dict[str, Any]:
    """
    Error section of the report.

    - reasons: every reason with its percentage share
    - chart_reasons: top_n reasons, remainder folded into one 'Others' row
      (rendered as the "Top Payment Error Reasons" table)
    """
    reasons = aggregate_payment_errors(events)
    total_events = sum(item["count"] for item in reasons)

    top = reasons[:top_n]
    rest = reasons[top_n:]

    chart_reasons = with_percentages(top, total_events)
    if rest:
        others_count = sum(item["count"] for item in rest)
        chart_reasons.append({
            "reason": OTHERS_LABEL,
            "count": others_count,
            # Summed per reason, so a user seen under two folded reasons counts twice
            "unique_users": sum(item["unique_users"] for item in rest),
            "percentage": safe_share_pct(others_count, total_events),
        })

    return {
        "total_events": total_events,
        "total_users": count_unique_users(events),
        "chart_reasons": chart_reasons,
        "reasons": with_percentages(reasons, total_events),
    }


def build_success_breakdown(events: Sequence[MinimalEvent]) -> Dict[str, Any]:
    merchants = aggregate_payment_success(events)
    total_events = sum(item["count"] for item in merchants)

    return {
        "total_events": total_events,
        "total_users": count_unique_users(events),
        "merchants": with_percentages(merchants, total_events),
    }


# ============================================================
# GRAVITY FORMS SUMMARIES
# ============================================================

STATE_NAMES = {
    "NV": "Nevada",
    "ID": "Idaho",
    "WI": "Wisconsin",
    "UT": "Utah",
    "MO": "Missouri",
    "DE": "Delaware",
    "OK": "Oklahoma",
}

# Application form field ids
FIELD_ORIGIN = "120"
FIELD_CUSTOMER_TYPE = "151"
FIELD_STATE = "27"


def summarize_applications(entries: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    result = {
        "total": len(entries),
        "from_store_kiosks": 0,
        "first_time_applications": 0,
        "returning_customers": 0,
        "by_state": {},
    }

    for entry in entries:
        if entry.get(FIELD_ORIGIN) == "Store Kiosk":
            result["from_store_kiosks"] += 1

        customer_type = entry.get(FIELD_CUSTOMER_TYPE) or ""
        if customer_type == "FirstApplication":
            result["first_time_applications"] += 1
        elif customer_type == "NewLoan":
            result["returning_customers"] += 1

        state_code = entry.get(FIELD_STATE) or ""
        if state_code:
            state_name = STATE_NAMES.get(state_code, state_code)
            result["by_state"][state_name] = result["by_state"].get(state_name, 0) + 1

    return result


def summarize_please_wait(entries: Sequence[Dict[str, Any]]) -> Dict[str, int]:
    result = {"total": len(entries), "error_server": 0, "complete": 0}

    for entry in entries:
        status = entry.get("workflow_final_status") or ""
        if status == "error_server":
            result["error_server"] += 1
        elif status == "complete":
            result["complete"] += 1

    return result

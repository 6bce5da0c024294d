from __future__ import annotations
"""
Centralized metrics utilities for the payment report
"""


def safe_share_pct(count: float, total: float) -> float:
    """
    Unified percentage-share logic:
    - total > 0 → count / total as a percentage, rounded to 2 decimals
    - total == 0 → 0.0
    """
    if total > 0:
        return round((count / total) * 100, 2)
    return 0.0

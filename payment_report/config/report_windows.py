"""
Canonical configuration for report date windows and cache chunking.
Centralizing these values keeps the fetchers, the cache and the report
generators slicing time the same way.
"""

# Cache chunking
MONTHLY_CHUNK_DAYS = 30  # Used by the standalone fetcher (one chunk per 30-day period)
WEEKLY_CHUNK_DAYS = 7    # Used by the legacy cache migration

# Report ranges (days back from the end date)
DEFAULT_REPORT_DAYS = 30
WEEKLY_REPORT_DAYS = 7

# Chart shaping
CHART_TOP_REASONS = 12  # Reasons beyond this are folded into "Others"
OTHERS_LABEL = "Others"

# Error reason normalization
INVALID_CARD_SUFFIX = "is not a valid card number"
INVALID_CARD_BUCKET = "Invalid card number (grouped)"
UNKNOWN_LABEL = "Unknown"

# Anonymous user sentinel
ANONYMOUS_USER = "anonymous"

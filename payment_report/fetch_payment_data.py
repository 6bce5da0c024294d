from __future__ import annotations
"""
Payment Data Fetcher with Date-Range Chunking

Fetches Sentry payment events for the last N days into the chunk cache.
Windows already on disk are skipped, so re-running only fetches what is missing.

Usage:
    payment-report-fetch [--days N] [--issue error|success]
"""

import argparse
import sys
from datetime import timedelta
from typing import List, Optional

from payment_report.cache.chunk_store import DirectoryChunkStore
from payment_report.cache.event_cache import ChunkedEventCache
from payment_report.config.report_windows import DEFAULT_REPORT_DAYS, MONTHLY_CHUNK_DAYS
from payment_report.sentry_client import SentryClient
from payment_report.settings import ConfigurationError, Settings, load_settings
from payment_report.sources import payment_sources
from payment_report.utils.windows import utc_today


def build_event_cache(settings: Settings, client: SentryClient, chunk_days: int = MONTHLY_CHUNK_DAYS) -> ChunkedEventCache:
    """Directory-backed cache wired to the Sentry fetcher"""
    return ChunkedEventCache(
        store=DirectoryChunkStore(settings.RAW_DIR),
        fetcher=client.fetch_events,
        chunk_days=chunk_days,
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch Sentry payment events into the chunk cache.")
    parser.add_argument("--days", type=int, default=DEFAULT_REPORT_DAYS, help="Days back from today (default: %(default)s)")
    parser.add_argument("--issue", choices=["error", "success"], help="Only fetch one of the two payment issues")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)

    try:
        settings = load_settings()
        client = SentryClient.from_settings(settings)
    except ConfigurationError as e:
        print(f"[FETCH] ❌ Error: {e}")
        sys.exit(1)

    end_date = utc_today()
    start_date = end_date - timedelta(days=args.days)

    print("=" * 60)
    print("Payment Data Fetcher with Date-Range Chunking")
    print(f"Date Range: {start_date} to {end_date}")
    print(f"Chunk Size: {MONTHLY_CHUNK_DAYS} days")
    print("=" * 60)

    cache = build_event_cache(settings, client)
    error_source, success_source = payment_sources(settings)

    if args.issue in (None, "error"):
        cache.fetch_missing_chunks(error_source, start_date, end_date)
    if args.issue in (None, "success"):
        cache.fetch_missing_chunks(success_source, start_date, end_date)

    print("=" * 60)
    print("✓ Fetch complete")
    print("To generate a report, run:")
    print(f"  payment-report --start-date {start_date} --end-date {end_date}")


if __name__ == "__main__":
    main()

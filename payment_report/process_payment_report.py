from __future__ import annotations
"""
Payment Report Generator

Builds the report purely from cached chunks (no upstream calls):
load events in range -> aggregate -> render HTML.

Usage:
    payment-report [--start-date YYYY-MM-DD] [--end-date YYYY-MM-DD] [--days N]
"""

import argparse
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from payment_report.aggregators import build_error_breakdown, build_success_breakdown
from payment_report.cache.chunk_model import MinimalEvent
from payment_report.cache.chunk_store import ChunkStore, DirectoryChunkStore
from payment_report.cache.event_cache import load_events_in_range
from payment_report.config.report_windows import DEFAULT_REPORT_DAYS
from payment_report.gravity_forms_client import load_applications_data
from payment_report.report_renderer import render_html_report
from payment_report.settings import ConfigurationError, Settings, load_settings
from payment_report.sources import payment_sources
from payment_report.utils.windows import resolve_date_range


def log_report(message: str, level: str = "INFO"):
    """Log with timestamp and level prefix"""
    timestamp = datetime.now().strftime("%H:%M:%S")
    prefix = {
        "INFO": "ℹ️ ",
        "SUCCESS": "✅",
        "ERROR": "❌",
        "WARNING": "⚠️ ",
        "PROGRESS": "⏳"
    }.get(level, "")
    print(f"[{timestamp}] [REPORT] {prefix} {message}")


def load_payment_events(
    store: ChunkStore,
    settings: Settings,
    start_date: date,
    end_date: date,
) -> Tuple[List[MinimalEvent], List[MinimalEvent]]:
    """(error_events, success_events) merged from cached chunks"""
    error_source, success_source = payment_sources(settings)

    error_events = load_events_in_range(store, error_source, start_date, end_date)
    log_report(f"Loaded {len(error_events)} Payment Error events")

    success_events = load_events_in_range(store, success_source, start_date, end_date)
    log_report(f"Loaded {len(success_events)} Payment Success events")

    return error_events, success_events


def build_report_data(
    error_events: List[MinimalEvent],
    success_events: List[MinimalEvent],
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    error_data = build_error_breakdown(error_events)
    success_data = build_success_breakdown(success_events)

    log_report("=" * 60)
    log_report(f"Payment Success: {success_data['total_events']:,} events, {success_data['total_users']:,} users")
    log_report(f"Payment Error:   {error_data['total_events']:,} events, {error_data['total_users']:,} users")
    log_report("=" * 60)

    return error_data, success_data


def generate_report(settings: Settings, start_date: date, end_date: date, store: Optional[ChunkStore] = None) -> Path:
    store = store or DirectoryChunkStore(settings.RAW_DIR)

    log_report(f"Date Range: {start_date} to {end_date}")
    error_events, success_events = load_payment_events(store, settings, start_date, end_date)
    applications_data = load_applications_data(settings.MANUAL_DIR)

    error_data, success_data = build_report_data(error_events, success_events)
    return render_html_report(
        error_data, success_data, applications_data, start_date, end_date, settings.PROCESSED_DIR
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate the payment report from cached event chunks.")
    parser.add_argument("--start-date", help="First day of the report (YYYY-MM-DD)")
    parser.add_argument("--end-date", help="Last day of the report (YYYY-MM-DD, default: today)")
    parser.add_argument("--days", type=int, help=f"Days back from the end date (default: {DEFAULT_REPORT_DAYS})")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)

    try:
        start_date, end_date = resolve_date_range(args.start_date, args.end_date, args.days, DEFAULT_REPORT_DAYS)
    except ValueError as e:
        log_report(f"Invalid date: {e}", "ERROR")
        sys.exit(2)

    try:
        settings = load_settings()
        report_file = generate_report(settings, start_date, end_date)
    except ConfigurationError as e:
        log_report(f"Configuration error: {e}", "ERROR")
        sys.exit(1)
    except Exception as e:
        log_report(f"Fatal error: {e}", "ERROR")
        sys.exit(1)

    log_report(f"Report saved: {report_file}", "SUCCESS")


if __name__ == "__main__":
    main()

from __future__ import annotations
"""
Weekly Report Orchestrator

1. Fetch Gravity Forms application data
2. Fetch missing Sentry payment chunks into the cache
3. Load + aggregate cached events for the report period
4. Render the HTML report
5. Email the report

Steps 1, 2 and 5 degrade gracefully: a failure is logged and the run
continues. Missing Sentry credentials (when Sentry is not skipped) and a
period with no data at all are fatal.

Usage:
    weekly-report [--days N] [--start-date D] [--end-date D]
                  [--skip-email] [--skip-sentry] [--skip-gravity-forms]
"""

import argparse
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from payment_report.cache.chunk_store import DirectoryChunkStore
from payment_report.cache.event_cache import ChunkedEventCache
from payment_report.config.report_windows import MONTHLY_CHUNK_DAYS, WEEKLY_REPORT_DAYS
from payment_report.gravity_forms_client import (
    GravityFormsClient,
    fetch_gravity_forms_data,
    load_applications_data,
    save_applications_data,
)
from payment_report.process_payment_report import build_report_data, load_payment_events
from payment_report.report_mailer import send_report_email
from payment_report.report_renderer import render_html_report
from payment_report.sentry_client import SentryClient
from payment_report.settings import ConfigurationError, Settings, load_settings
from payment_report.sources import payment_sources
from payment_report.utils.windows import resolve_date_range


class NoReportDataError(RuntimeError):
    """Raised when the period has no payment events and no application data"""
    pass


def log_step(message: str, level: str = "INFO"):
    """Log with timestamp and pipeline context"""
    timestamp = datetime.now().strftime("%H:%M:%S")
    prefix = {
        "INFO": "ℹ️ ",
        "SUCCESS": "✅",
        "ERROR": "❌",
        "WARNING": "⚠️ ",
        "PROGRESS": "⏳"
    }.get(level, "")
    print(f"[{timestamp}] [PIPELINE] {prefix} {message}")


def run_weekly_report(
    settings: Settings,
    start_date: date,
    end_date: date,
    skip_email: bool = False,
    skip_sentry: bool = False,
    skip_gravity_forms: bool = False,
    sentry_client: Optional[SentryClient] = None,
    forms_client: Optional[GravityFormsClient] = None,
    mailer: Callable[..., None] = send_report_email,
) -> Dict[str, Any]:
    """
    Execute the full weekly report pipeline.

    Returns:
        Dict with 'html_file', 'email_sent', 'error_events', 'success_events'

    Raises:
        ConfigurationError: SENTRY_TOKEN missing while Sentry is not skipped
        NoReportDataError: nothing to report for the period
        ChunkCorruptedError: a cached chunk cannot be parsed
    """
    log_step("=" * 60)
    log_step("Weekly Application & Payment Report Generator")
    log_step(f"Report Period: {start_date} to {end_date}")
    log_step("=" * 60)

    # Fail before any work if the Sentry stage cannot run
    if not skip_sentry and sentry_client is None:
        sentry_client = SentryClient.from_settings(settings)

    store = DirectoryChunkStore(settings.RAW_DIR)

    # ====================================================================
    # STEP 1: GRAVITY FORMS
    # ====================================================================

    if not skip_gravity_forms:
        log_step("STEP 1: Fetching Gravity Forms Data", "PROGRESS")
        try:
            client = forms_client or GravityFormsClient.from_settings(settings)
            gravity_data = fetch_gravity_forms_data(client, start_date, end_date)
            save_applications_data(gravity_data, settings.MANUAL_DIR)
            log_step("Gravity Forms data saved", "SUCCESS")
        except Exception as e:
            log_step(f"Gravity Forms fetch failed: {e}", "WARNING")
            log_step("Continuing without fresh Gravity Forms data...", "WARNING")
    else:
        log_step("STEP 1: Skipping Gravity Forms fetch (--skip-gravity-forms)")

    # ====================================================================
    # STEP 2: SENTRY
    # ====================================================================

    if not skip_sentry:
        log_step("STEP 2: Fetching Sentry Payment Data", "PROGRESS")
        cache = ChunkedEventCache(store, sentry_client.fetch_events, MONTHLY_CHUNK_DAYS)

        for source in payment_sources(settings):
            try:
                cache.fetch_missing_chunks(source, start_date, end_date)
            except Exception as e:
                log_step(f"Sentry fetch failed for {source.name}: {e}", "WARNING")

        log_step("Sentry data fetch complete", "SUCCESS")
    else:
        log_step("STEP 2: Skipping Sentry fetch (--skip-sentry)")

    # ====================================================================
    # STEP 3: LOAD & AGGREGATE
    # ====================================================================

    log_step("STEP 3: Processing Data", "PROGRESS")

    error_events, success_events = load_payment_events(store, settings, start_date, end_date)
    applications_data = load_applications_data(settings.MANUAL_DIR)

    if not error_events and not success_events and not applications_data:
        log_step("No payment events and no application data for this period", "ERROR")
        raise NoReportDataError(f"No data available for {start_date} to {end_date}")

    error_data, success_data = build_report_data(error_events, success_events)

    # ====================================================================
    # STEP 4: RENDER
    # ====================================================================

    log_step("STEP 4: Generating Report", "PROGRESS")
    html_file = render_html_report(
        error_data, success_data, applications_data, start_date, end_date, settings.PROCESSED_DIR
    )

    # ====================================================================
    # STEP 5: EMAIL
    # ====================================================================

    email_sent = False
    if not skip_email:
        log_step("STEP 5: Sending Email", "PROGRESS")
        apps = (applications_data or {}).get("applications")
        ctx = {
            "start_date": str(start_date),
            "end_date": str(end_date),
            "success_events": success_data["total_events"],
            "success_users": success_data["total_users"],
            "error_events": error_data["total_events"],
            "error_users": error_data["total_users"],
            "applications_total": apps.get("total") if apps else None,
            "applications_first_time": apps.get("first_time_applications") if apps else None,
        }
        try:
            mailer(settings, html_file, ctx)
            email_sent = True
        except Exception as e:
            log_step(f"Email send failed: {e}", "WARNING")
    else:
        log_step("STEP 5: Skipping email (--skip-email)")

    log_step("=" * 60)
    log_step("Weekly Report Generation Complete!", "SUCCESS")
    log_step(f"HTML: {html_file}")
    log_step("=" * 60)

    return {
        "html_file": Path(html_file),
        "email_sent": email_sent,
        "error_events": len(error_events),
        "success_events": len(success_events),
    }


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Weekly Application & Payment Report Generator")
    parser.add_argument("--start-date", help="First day of the report (YYYY-MM-DD)")
    parser.add_argument("--end-date", help="Last day of the report (YYYY-MM-DD, default: today)")
    parser.add_argument("--days", type=int, help=f"Number of days to include (default: {WEEKLY_REPORT_DAYS})")
    parser.add_argument("--skip-email", action="store_true", help="Generate the report but don't send email")
    parser.add_argument("--skip-sentry", action="store_true", help="Skip fetching Sentry data (use cached)")
    parser.add_argument("--skip-gravity-forms", action="store_true", help="Skip fetching Gravity Forms data (use cached)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    """CLI Entrypoint for cron"""
    args = parse_args(argv)

    try:
        start_date, end_date = resolve_date_range(args.start_date, args.end_date, args.days, WEEKLY_REPORT_DAYS)
    except ValueError as e:
        log_step(f"Invalid date: {e}", "ERROR")
        sys.exit(2)

    try:
        settings = load_settings()
        run_weekly_report(
            settings,
            start_date,
            end_date,
            skip_email=args.skip_email,
            skip_sentry=args.skip_sentry,
            skip_gravity_forms=args.skip_gravity_forms,
        )
    except ConfigurationError as e:
        log_step(f"Configuration error: {e}", "ERROR")
        sys.exit(1)
    except Exception as e:
        log_step(f"Fatal error: {e}", "ERROR")
        sys.exit(1)


if __name__ == "__main__":
    main()

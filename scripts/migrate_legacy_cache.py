"""
Migration Script: Split the Legacy Payment Error Cache into Weekly Chunks

This is a one-time migration for installs that still have the single
pre-chunking cache file (e.g. data/raw/issue_6722248692_events_30d_2025-10-09.json).
Events are re-projected to minimal records and written as 7-day chunks; the
legacy file is renamed to *.backup, never deleted.

Usage:
    python -m scripts.migrate_legacy_cache --legacy-file data/raw/issue_6722248692_events_30d_2025-10-09.json

    Or for a dry-run (no writes, legacy file left in place):
    python -m scripts.migrate_legacy_cache --legacy-file ... --dry-run
"""
from __future__ import annotations

import sys
import os
import argparse
from pathlib import Path

# Ensure the repo root is on the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from payment_report.cache.chunk_store import DirectoryChunkStore
from payment_report.config.report_windows import WEEKLY_CHUNK_DAYS
from payment_report.legacy_migration import log_migrate, migrate_legacy_cache
from payment_report.settings import ConfigurationError, load_settings
from payment_report.sources import payment_sources


def main() -> None:
    parser = argparse.ArgumentParser(description="Split a legacy single-file event cache into per-window chunks.")
    parser.add_argument("--legacy-file", required=True, help="Path to the legacy cache JSON file.")
    parser.add_argument("--issue", choices=["error", "success"], default="error", help="Which payment issue the file belongs to.")
    parser.add_argument("--chunk-days", type=int, default=WEEKLY_CHUNK_DAYS, help="Chunk size in days (default: %(default)s).")
    parser.add_argument("--dry-run", action="store_true", help="Preview chunks without writing anything.")
    args = parser.parse_args()

    try:
        settings = load_settings()
        error_source, success_source = payment_sources(settings)
        source = error_source if args.issue == "error" else success_source

        store = DirectoryChunkStore(settings.RAW_DIR)
        summary = migrate_legacy_cache(
            store, Path(args.legacy_file), source, chunk_days=args.chunk_days, dry_run=args.dry_run
        )
    except ConfigurationError as e:
        log_migrate(f"❌ Configuration error: {e}")
        sys.exit(1)
    except Exception as e:
        log_migrate(f"❌ Fatal error: {e}")
        sys.exit(1)

    if summary is None:
        sys.exit(1)

    log_migrate(f"Chunked data saved to: {store.chunk_dir(source)}")
    if summary["backup_path"]:
        log_migrate(f"Backup of original cache: {summary['backup_path']}")


if __name__ == "__main__":
    main()

from __future__ import annotations
"""
Legacy Cache Migration (ONE-TIME ONLY)

Splits one oversized legacy cache file ({"events": [...raw Sentry events...]})
into per-window chunks, then renames the legacy file to <name>.backup.
The legacy file is never deleted.

Windows run from the earliest to the latest event date; windows with no
events are skipped.
"""

from collections import defaultdict
from datetime import date, datetime, timedelta
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from payment_report.cache.chunk_model import CachedChunk, ChunkKey, MinimalEvent
from payment_report.cache.chunk_store import ChunkStore
from payment_report.config.report_windows import WEEKLY_CHUNK_DAYS
from payment_report.sources import EventSource, extract_minimal_event
from payment_report.utils.windows import plan_windows

BACKUP_SUFFIX = ".backup"


def log_migrate(message: str) -> None:
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{timestamp}] [MIGRATE] {message}")


def migrate_legacy_cache(
    store: ChunkStore,
    legacy_path: Path,
    source: EventSource,
    chunk_days: int = WEEKLY_CHUNK_DAYS,
    dry_run: bool = False,
) -> Optional[Dict[str, Any]]:
    """
    Returns:
        Dict with 'events_migrated', 'chunks_written', 'chunks_skipped',
        'backup_path'; None if the legacy file does not exist
    """
    legacy_path = Path(legacy_path)
    if not legacy_path.exists():
        log_migrate(f"❌ Legacy cache file not found: {legacy_path}")
        return None

    if dry_run:
        log_migrate("DRY RUN: no chunks will be written and the legacy file stays in place.")

    log_migrate("=" * 60)
    log_migrate(f"Migrating {source.name} cache to chunked format")
    log_migrate(f"File: {legacy_path.name}")

    with open(legacy_path, "r", encoding="utf-8") as f:
        raw_events = json.load(f).get("events") or []
    log_migrate(f"✓ Loaded {len(raw_events)} events")

    events_by_date: Dict[date, List[MinimalEvent]] = defaultdict(list)
    for raw in raw_events:
        event = extract_minimal_event(raw, source.kind)
        events_by_date[event.event_date].append(event)

    summary = {
        "events_migrated": 0,
        "chunks_written": 0,
        "chunks_skipped": 0,
        "backup_path": None,
    }

    if events_by_date:
        min_date = min(events_by_date)
        max_date = max(events_by_date)
        log_migrate(f"✓ Date range: {min_date} to {max_date} ({len(events_by_date)} unique dates)")

        # Planning stops before end_date, so extend by a day to keep the last date's events
        windows = plan_windows(min_date, max_date + timedelta(days=1), chunk_days)
        log_migrate(f"✓ Will create up to {len(windows)} chunks ({chunk_days} days each)")

        for window in windows:
            chunk_events: List[MinimalEvent] = []
            for day in sorted(events_by_date):
                if window.contains(day):
                    chunk_events.extend(events_by_date[day])

            if not chunk_events:
                log_migrate(f"  ⚠ Skipped: {window} (no events)")
                summary["chunks_skipped"] += 1
                continue

            if not dry_run:
                store.save(source, CachedChunk(
                    key=ChunkKey.for_window(source.source_id, window),
                    source_name=source.name,
                    events=chunk_events,
                ))
            log_migrate(f"  ✓ Saved: {window} ({len(chunk_events)} events)")
            summary["chunks_written"] += 1
            summary["events_migrated"] += len(chunk_events)

    if not dry_run:
        backup_path = legacy_path.with_name(legacy_path.name + BACKUP_SUFFIX)
        legacy_path.rename(backup_path)
        summary["backup_path"] = backup_path
        log_migrate(f"Renamed legacy cache file to: {backup_path.name}")

    log_migrate(
        f"Migration complete: {summary['chunks_written']} chunk(s), "
        f"{summary['events_migrated']} event(s), {summary['chunks_skipped']} empty window(s) skipped"
    )
    return summary

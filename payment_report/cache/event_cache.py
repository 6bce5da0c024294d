from __future__ import annotations
"""
Chunked Event Cache

Fetch path:
  plan windows for [start, end] -> diff against stored chunk keys ->
  fetch only the missing windows -> persist each window independently.

Read path:
  load every stored chunk overlapping [start, end] -> keep events dated inside
  the range -> concatenate in chunk start-date order.

Stored chunks are authoritative for their exact span and are never re-fetched.
A window whose fetch fails gets no chunk, so the next run retries it.
"""

from datetime import date, datetime
from typing import Callable, Dict, List, Sequence

from payment_report.cache.chunk_model import CachedChunk, ChunkKey, MinimalEvent
from payment_report.cache.chunk_store import ChunkCorruptedError, ChunkStore
from payment_report.sources import EventSource
from payment_report.utils.windows import DateWindow, find_missing_windows, plan_windows

# fetch(source, start_date, end_date) -> events; raises on failure
Fetcher = Callable[[EventSource, date, date], Sequence[MinimalEvent]]


def log_cache(message: str, level: str = "INFO"):
    """Log cache messages with timestamp"""
    timestamp = datetime.now().strftime("%H:%M:%S")
    prefix = {
        "INFO": "ℹ️ ",
        "SUCCESS": "✅",
        "ERROR": "❌",
        "WARNING": "⚠️ ",
        "PROGRESS": "⏳"
    }.get(level, "")
    print(f"[{timestamp}] [CACHE] {prefix} {message}")


def filter_events_to_window(events: Sequence[MinimalEvent], window: DateWindow) -> List[MinimalEvent]:
    """Drop events whose UTC date is outside the window (pagination can cross bounds)"""
    return [event for event in events if window.contains(event.event_date)]


class ChunkedEventCache:
    """Window-chunked cache of minimal events for one or more sources"""

    def __init__(self, store: ChunkStore, fetcher: Fetcher, chunk_days: int):
        if chunk_days < 1:
            raise ValueError(f"chunk_days must be >= 1, got {chunk_days}")
        self.store = store
        self.fetcher = fetcher
        self.chunk_days = chunk_days

    # ============================================================
    # FETCH PATH
    # ============================================================

    def existing_windows(self, source: EventSource) -> List[DateWindow]:
        return [key.window for key in self.store.list_keys(source)]

    def fetch_missing_chunks(self, source: EventSource, start_date: date, end_date: date) -> Dict[str, int]:
        """
        Fetch and persist every planned window not already stored.

        Args:
            source: Event source (one upstream issue)
            start_date: Start of range
            end_date: End of range

        Returns:
            Dict with 'windows_planned', 'windows_missing', 'windows_saved',
            'windows_failed', 'events_saved'
        """
        log_cache("=" * 60)
        log_cache(f"Fetching: {source.name} (Issue #{source.source_id})")
        log_cache(f"Date Range: {start_date} to {end_date} ({self.chunk_days}-day chunks)")

        planned = plan_windows(start_date, end_date, self.chunk_days)
        existing = self.existing_windows(source)
        missing = find_missing_windows(planned, [w.as_pair() for w in existing])

        log_cache(f"Planned windows: {len(planned)}, existing chunks: {len(existing)}, missing: {len(missing)}")

        stats = {
            "windows_planned": len(planned),
            "windows_missing": len(missing),
            "windows_saved": 0,
            "windows_failed": 0,
            "events_saved": 0,
        }

        if not missing:
            log_cache(f"All {source.name} data already cached", "SUCCESS")
            return stats

        for idx, window in enumerate(missing, 1):
            log_cache(f"Fetching chunk {idx}/{len(missing)}: {window}", "PROGRESS")

            try:
                events = self.fetcher(source, window.start_date, window.end_date)
            except Exception as e:
                # No chunk is written, so the window stays eligible for the next run
                log_cache(f"Fetch FAILED for {source.name} {window}: {e}", "WARNING")
                stats["windows_failed"] += 1
                continue

            in_range = filter_events_to_window(events, window)
            if not in_range:
                log_cache(f"No events found for {window}; saving empty chunk", "WARNING")

            chunk = CachedChunk(
                key=ChunkKey.for_window(source.source_id, window),
                source_name=source.name,
                events=in_range,
            )
            self.store.save(source, chunk)
            log_cache(f"Saved chunk: {window} ({chunk.total_events} events)", "SUCCESS")

            stats["windows_saved"] += 1
            stats["events_saved"] += chunk.total_events

        log_cache(
            f"Completed {source.name}: {stats['windows_saved']} saved, {stats['windows_failed']} failed",
            "SUCCESS" if not stats["windows_failed"] else "WARNING"
        )
        return stats

    # ============================================================
    # READ PATH
    # ============================================================

    def load_events_in_range(self, source: EventSource, start_date: date, end_date: date) -> List[MinimalEvent]:
        """
        Merge every stored chunk overlapping [start_date, end_date].

        Order is chunk start-date ascending, then on-disk order within a chunk.
        No global timestamp sort and no cross-chunk deduplication.
        Corrupt chunks raise ChunkCorruptedError.
        """
        return load_events_in_range(self.store, source, start_date, end_date)


def load_events_in_range(store: ChunkStore, source: EventSource, start_date: date, end_date: date) -> List[MinimalEvent]:
    requested = DateWindow(start_date, end_date)
    keys = store.list_keys(source)

    if not keys:
        log_cache(f"No data found for {source.name}", "WARNING")
        return []

    all_events: List[MinimalEvent] = []
    for key in keys:
        if not key.window.overlaps(requested):
            continue

        chunk = store.load(source, key)
        try:
            in_range = filter_events_to_window(chunk.events, requested)
        except (AttributeError, TypeError, ValueError) as e:
            raise ChunkCorruptedError(f"Chunk {key.start} to {key.end} of {source.name} has an unreadable timestamp: {e}") from e
        all_events.extend(in_range)
        log_cache(f"Loaded chunk: {key.start} to {key.end} ({chunk.total_events} events)")

    return all_events

"""
Tests for cache/chunk_store.py and cache/chunk_model.py - on-disk layout,
serialization and the in-memory backend.
"""
import json
from datetime import date

import pytest

from payment_report.cache.chunk_model import CachedChunk, ChunkKey, MinimalEvent
from payment_report.cache.chunk_store import ChunkCorruptedError, DirectoryChunkStore, InMemoryChunkStore

from conftest import make_event


def make_chunk(source, start, end, events):
    return CachedChunk(key=ChunkKey(source.source_id, start, end), source_name=source.name, events=events)


class TestMinimalEvent:

    def test_tags_are_flattened_on_disk(self):
        event = make_event("2025-09-10T10:00:00Z", "e1", "u1", paymentErrorReason="Insufficient Funds", storeId="12")

        assert event.to_dict() == {
            "timestamp": "2025-09-10T10:00:00Z",
            "eventId": "e1",
            "userId": "u1",
            "paymentErrorReason": "Insufficient Funds",
            "storeId": "12",
        }

    def test_from_dict_splits_core_fields_and_tags(self):
        event = MinimalEvent.from_dict({
            "timestamp": "2025-09-10T10:00:00Z", "eventId": "e1", "userId": "u1", "merchant_id": "m-9",
        })

        assert event.event_id == "e1"
        assert event.user_id == "u1"
        assert event.tags == {"merchant_id": "m-9"}
        assert event.event_date == date(2025, 9, 10)


class TestDirectoryChunkStore:

    def test_file_layout_and_fields(self, tmp_path, error_source):
        store = DirectoryChunkStore(tmp_path / "raw")
        events = [make_event("2025-09-10T10:00:00Z", "e1", "u1", paymentErrorReason="Declined")]

        store.save(error_source, make_chunk(error_source, date(2025, 9, 9), date(2025, 9, 15), events))

        path = tmp_path / "raw" / "payment_error_6722248692" / "2025-09-09_to_2025-09-15.json"
        assert path.exists()
        data = json.loads(path.read_text())
        assert data["issueId"] == "6722248692"
        assert data["issueName"] == "Payment Error"
        assert data["dateRangeStart"] == "2025-09-09"
        assert data["dateRangeEnd"] == "2025-09-15"
        assert data["totalEvents"] == 1
        assert data["events"][0]["paymentErrorReason"] == "Declined"
        assert "fetchDate" in data

    def test_round_trip_preserves_order(self, tmp_path, error_source):
        store = DirectoryChunkStore(tmp_path / "raw")
        events = [
            make_event("2025-09-12T10:00:00Z", "e2", "u2"),
            make_event("2025-09-10T10:00:00Z", "e1", "u1"),
        ]
        chunk = make_chunk(error_source, date(2025, 9, 9), date(2025, 9, 15), events)
        store.save(error_source, chunk)

        loaded = store.load(error_source, chunk.key)

        assert loaded.events == events
        assert loaded.key == chunk.key
        assert loaded.source_name == "Payment Error"

    def test_list_keys_sorted_and_ignores_foreign_files(self, tmp_path, error_source):
        store = DirectoryChunkStore(tmp_path / "raw")
        store.save(error_source, make_chunk(error_source, date(2025, 9, 16), date(2025, 9, 22), []))
        store.save(error_source, make_chunk(error_source, date(2025, 9, 9), date(2025, 9, 15), []))
        chunk_dir = store.chunk_dir(error_source)
        (chunk_dir / "notes.json").write_text("{}")
        (chunk_dir / "2025-09-01_to_2025-09-08.json.backup").write_text("{}")

        keys = store.list_keys(error_source)

        assert [(k.start, k.end) for k in keys] == [
            ("2025-09-09", "2025-09-15"),
            ("2025-09-16", "2025-09-22"),
        ]

    def test_missing_directory_lists_nothing(self, tmp_path, error_source):
        assert DirectoryChunkStore(tmp_path / "raw").list_keys(error_source) == []

    def test_corrupt_chunk_raises(self, tmp_path, error_source):
        store = DirectoryChunkStore(tmp_path / "raw")
        key = ChunkKey(error_source.source_id, date(2025, 9, 9), date(2025, 9, 15))
        path = store.chunk_path(error_source, key)
        path.parent.mkdir(parents=True)
        path.write_text('{"fetchDate": "2025-09-16T00:00:00+00:00", "events": [')

        with pytest.raises(ChunkCorruptedError):
            store.load(error_source, key)

    def test_non_object_events_raise_corrupted(self, tmp_path, error_source):
        store = DirectoryChunkStore(tmp_path / "raw")
        key = ChunkKey(error_source.source_id, date(2025, 9, 9), date(2025, 9, 15))
        path = store.chunk_path(error_source, key)
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({
            "fetchDate": "2025-09-16T00:00:00+00:00", "issueId": error_source.source_id,
            "issueName": error_source.name, "dateRangeStart": "2025-09-09",
            "dateRangeEnd": "2025-09-15", "totalEvents": 2, "events": [1, "two"],
        }))

        with pytest.raises(ChunkCorruptedError):
            store.load(error_source, key)

    def test_sources_are_isolated(self, tmp_path, error_source, success_source):
        store = DirectoryChunkStore(tmp_path / "raw")
        store.save(error_source, make_chunk(error_source, date(2025, 9, 9), date(2025, 9, 15), []))

        assert store.list_keys(success_source) == []
        assert store.exists(error_source, ChunkKey(error_source.source_id, date(2025, 9, 9), date(2025, 9, 15)))


class TestInMemoryChunkStore:

    def test_reads_do_not_alias_writes(self, error_source):
        store = InMemoryChunkStore()
        chunk = make_chunk(error_source, date(2025, 9, 9), date(2025, 9, 15), [make_event("2025-09-10T00:00:00Z")])
        store.save(error_source, chunk)

        loaded = store.load(error_source, chunk.key)
        loaded.events.clear()

        assert len(store.load(error_source, chunk.key).events) == 1

from __future__ import annotations
"""
Chunk Storage Backends

Key-value storage for cached chunks: ChunkKey -> CachedChunk.

- DirectoryChunkStore: one JSON file per window under
  <raw_dir>/<source slug>_<source id>/<start>_to_<end>.json
- InMemoryChunkStore: dict-backed, same serialization, no disk I/O

The planner / gap detector / merge logic only talks to the ChunkStore
interface, so it runs unchanged against either backend.
"""

import copy
import json
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List

from payment_report.cache.chunk_model import CachedChunk, ChunkKey
from payment_report.sources import EventSource
from payment_report.utils.windows import parse_date

CHUNK_FILENAME_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})_to_(\d{4}-\d{2}-\d{2})\.json$")


class ChunkCorruptedError(Exception):
    """Raised when a stored chunk exists but cannot be parsed. Requires manual deletion."""
    pass


class ChunkStore(ABC):
    """Storage interface used by the chunked event cache"""

    @abstractmethod
    def list_keys(self, source: EventSource) -> List[ChunkKey]:
        """All stored chunk keys for a source, ascending by start date"""

    @abstractmethod
    def load(self, source: EventSource, key: ChunkKey) -> CachedChunk:
        """Load one chunk. Raises ChunkCorruptedError if it cannot be parsed."""

    @abstractmethod
    def save(self, source: EventSource, chunk: CachedChunk) -> None:
        """Persist one chunk"""

    def exists(self, source: EventSource, key: ChunkKey) -> bool:
        return key in self.list_keys(source)


class DirectoryChunkStore(ChunkStore):
    """Directory-of-JSON-files backend"""

    def __init__(self, raw_dir: Path):
        self.raw_dir = Path(raw_dir)

    def chunk_dir(self, source: EventSource) -> Path:
        return self.raw_dir / f"{source.slug}_{source.source_id}"

    def chunk_path(self, source: EventSource, key: ChunkKey) -> Path:
        return self.chunk_dir(source) / f"{key.start}_to_{key.end}.json"

    def list_keys(self, source: EventSource) -> List[ChunkKey]:
        chunk_dir = self.chunk_dir(source)
        if not chunk_dir.is_dir():
            return []

        keys = []
        for path in chunk_dir.iterdir():
            # Anything not shaped like a chunk filename is ignored
            match = CHUNK_FILENAME_RE.match(path.name)
            if not match:
                continue
            keys.append(ChunkKey(source.source_id, parse_date(match.group(1)), parse_date(match.group(2))))

        return sorted(keys, key=lambda k: (k.start_date, k.end_date))

    def load(self, source: EventSource, key: ChunkKey) -> CachedChunk:
        path = self.chunk_path(source, key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return CachedChunk.from_dict(data)
        except (json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as e:
            raise ChunkCorruptedError(f"Chunk file {path} is not valid cached data: {e}") from e

    def save(self, source: EventSource, chunk: CachedChunk) -> None:
        path = self.chunk_path(source, chunk.key)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(chunk.to_dict(), f, indent=2)


class InMemoryChunkStore(ChunkStore):
    """Dict-backed store. Chunks are kept serialized so reads never alias writes."""

    def __init__(self):
        self._chunks: Dict[ChunkKey, dict] = {}

    def list_keys(self, source: EventSource) -> List[ChunkKey]:
        keys = [k for k in self._chunks if k.source_id == source.source_id]
        return sorted(keys, key=lambda k: (k.start_date, k.end_date))

    def load(self, source: EventSource, key: ChunkKey) -> CachedChunk:
        data = self._chunks[key]
        try:
            return CachedChunk.from_dict(copy.deepcopy(data))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ChunkCorruptedError(f"Chunk {key} is not valid cached data: {e}") from e

    def save(self, source: EventSource, chunk: CachedChunk) -> None:
        self._chunks[chunk.key] = chunk.to_dict()

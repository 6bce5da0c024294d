from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List

from payment_report.utils.windows import DateWindow, format_date, parse_date, timestamp_date

# Keys every persisted event carries; everything else is a source-specific tag
CORE_EVENT_FIELDS = ("timestamp", "eventId", "userId")


@dataclass(frozen=True)
class ChunkKey:
    """
    Identity of one cached chunk: the source plus the exact window bounds.
    Storage backends decide how this key is serialized (file path, row key...).
    """
    source_id: str
    start_date: date
    end_date: date

    @classmethod
    def for_window(cls, source_id: str, window: DateWindow) -> "ChunkKey":
        return cls(source_id, window.start_date, window.end_date)

    @property
    def window(self) -> DateWindow:
        return DateWindow(self.start_date, self.end_date)

    @property
    def start(self) -> str:
        return format_date(self.start_date)

    @property
    def end(self) -> str:
        return format_date(self.end_date)


@dataclass
class MinimalEvent:
    """
    Reduced projection of an upstream event.
    Tags hold source-specific values (paymentErrorReason, merchant_id...).
    """
    timestamp: str
    event_id: str
    user_id: str
    tags: Dict[str, Any] = field(default_factory=dict)

    @property
    def event_date(self) -> date:
        return timestamp_date(self.timestamp)

    def tag(self, key: str, default: Any = None) -> Any:
        return self.tags.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        """On-disk shape: core fields plus tags flattened in"""
        record = {
            "timestamp": self.timestamp,
            "eventId": self.event_id,
            "userId": self.user_id,
        }
        record.update(self.tags)
        return record

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "MinimalEvent":
        tags = {k: v for k, v in record.items() if k not in CORE_EVENT_FIELDS}
        return cls(
            timestamp=record["timestamp"],
            event_id=record.get("eventId"),
            user_id=record.get("userId"),
            tags=tags,
        )


@dataclass
class CachedChunk:
    """One persisted window of events. Complete and immutable once written."""
    key: ChunkKey
    source_name: str
    events: List[MinimalEvent]
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_events(self) -> int:
        return len(self.events)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fetchDate": self.fetched_at.isoformat(),
            "issueId": self.key.source_id,
            "issueName": self.source_name,
            "dateRangeStart": self.key.start,
            "dateRangeEnd": self.key.end,
            "totalEvents": self.total_events,
            "events": [event.to_dict() for event in self.events],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CachedChunk":
        key = ChunkKey(
            source_id=str(data["issueId"]),
            start_date=parse_date(data["dateRangeStart"]),
            end_date=parse_date(data["dateRangeEnd"]),
        )
        fetched_at = datetime.fromisoformat(data["fetchDate"].replace("Z", "+00:00"))
        return cls(
            key=key,
            source_name=data.get("issueName", ""),
            events=[MinimalEvent.from_dict(e) for e in data.get("events", [])],
            fetched_at=fetched_at,
        )

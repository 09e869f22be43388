"""Snapshot repository - named, timestamped bundles of processed data.

A snapshot holds the unified records, the analytics output, the summary
report and optional goal-tracking data as one JSON document::

    {
      "id": "snapshot_1718000000000_k3j9x0a1b",
      "name": "...", "timestamp": "2024-06-10T06:13:20.000Z",
      "description": "...",
      "data": {"processedData": [...], "analytics": {...},
               "summary": {...}, "goalData": ...},
      "metadata": {"totalRecords": 10, "platforms": ["抖音"],
                   "dateRange": {"start": "...", "end": "..."},
                   "fileSize": 12345}
    }

Storage goes through a small key-value backend so the repository works
the same in memory (tests) and on disk (the CLI's JSON store).
"""

import datetime
import json
import logging
import os
import secrets
import string
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from social_metrics.errors import SnapshotFormatError
from social_metrics.processor.ingestion import parse_publish_time
from social_metrics.schema.models import AnalyticsData, UnifiedRecord


logger = logging.getLogger(__name__)

STORAGE_KEY = "data_snapshots"
METADATA_KEY = "snapshots_metadata"

_ID_ALPHABET = string.digits + string.ascii_lowercase


# ---------------------------------------------------------------------------
# Storage backends
# ---------------------------------------------------------------------------

class StorageBackend(Protocol):
    """String key-value store."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryBackend:
    """Dict-backed store, lost when the process exits."""

    def __init__(self):
        self._items: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileBackend:
    """All keys stored in a single JSON object on disk."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            try:
                return json.load(f)
            except json.JSONDecodeError as exc:
                raise SnapshotFormatError(f"Snapshot store {self.path} is corrupt: {exc}") from exc

    def _dump(self, items: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(items, f, ensure_ascii=False)
        os.replace(tmp, self.path)

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = value
        self._dump(items)

    def remove(self, key: str) -> None:
        items = self._load()
        if items.pop(key, None) is not None:
            self._dump(items)


# ---------------------------------------------------------------------------
# Snapshot models
# ---------------------------------------------------------------------------

@dataclass
class SnapshotMetadata:
    """Listing information for a snapshot."""
    id: str
    name: str
    timestamp: str
    description: str | None = None
    total_records: int = 0
    platforms: list[str] = field(default_factory=list)
    date_range: dict[str, str] = field(default_factory=lambda: {"start": "", "end": ""})
    file_size: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "timestamp": self.timestamp,
            "description": self.description,
            "totalRecords": self.total_records,
            "platforms": list(self.platforms),
            "dateRange": dict(self.date_range),
            "fileSize": self.file_size,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "SnapshotMetadata":
        return cls(
            id=d["id"],
            name=d["name"],
            timestamp=d["timestamp"],
            description=d.get("description"),
            total_records=d.get("totalRecords", 0),
            platforms=list(d.get("platforms", [])),
            date_range=dict(d.get("dateRange") or {"start": "", "end": ""}),
            file_size=d.get("fileSize", 0),
        )


@dataclass
class Snapshot:
    """A stored bundle; ``data`` keeps the JSON-ready payload."""
    id: str
    name: str
    timestamp: str
    data: dict[str, Any]
    total_records: int = 0
    platforms: list[str] = field(default_factory=list)
    date_range: dict[str, str] = field(default_factory=lambda: {"start": "", "end": ""})
    file_size: int = 0
    description: str | None = None

    @property
    def metadata(self) -> SnapshotMetadata:
        return SnapshotMetadata(
            id=self.id,
            name=self.name,
            timestamp=self.timestamp,
            description=self.description,
            total_records=self.total_records,
            platforms=list(self.platforms),
            date_range=dict(self.date_range),
            file_size=self.file_size,
        )

    def records(self) -> list[UnifiedRecord]:
        return [UnifiedRecord.from_dict(d) for d in self.data.get("processedData", [])]

    def analytics(self) -> AnalyticsData | None:
        raw = self.data.get("analytics")
        return AnalyticsData.from_dict(raw) if raw else None

    def to_dict(self) -> dict:
        meta = self.metadata.to_dict()
        return {
            "id": self.id,
            "name": self.name,
            "timestamp": self.timestamp,
            "description": self.description,
            "data": self.data,
            "metadata": {
                key: meta[key]
                for key in ("totalRecords", "platforms", "dateRange", "fileSize")
            },
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Snapshot":
        """Rebuild a snapshot, validating its structure first.

        Raises:
            SnapshotFormatError: If required keys are missing or mistyped.
        """
        if not is_valid_snapshot(d):
            raise SnapshotFormatError("Invalid snapshot file format")
        meta = d["metadata"]
        return cls(
            id=d["id"],
            name=d["name"],
            timestamp=d["timestamp"],
            description=d.get("description"),
            data=d["data"],
            total_records=meta["totalRecords"],
            platforms=list(meta["platforms"]),
            date_range=dict(meta.get("dateRange") or {"start": "", "end": ""}),
            file_size=meta.get("fileSize", 0),
        )


def is_valid_snapshot(d: Any) -> bool:
    """Check the keys every snapshot document must carry."""
    return (
        isinstance(d, dict)
        and isinstance(d.get("id"), str)
        and isinstance(d.get("name"), str)
        and isinstance(d.get("timestamp"), str)
        and isinstance(d.get("data"), dict)
        and isinstance(d["data"].get("processedData"), list)
        and isinstance(d.get("metadata"), dict)
        and isinstance(d["metadata"].get("totalRecords"), int)
        and isinstance(d["metadata"].get("platforms"), list)
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def generate_id() -> str:
    """``snapshot_<epoch ms>_<9 random base36 chars>``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"snapshot_{int(time.time() * 1000)}_{suffix}"


def _utc_timestamp() -> str:
    now = datetime.datetime.now(datetime.timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def _payload_size(payload: dict) -> int:
    return len(json.dumps(payload, ensure_ascii=False).encode("utf-8"))


# ---------------------------------------------------------------------------
# SnapshotRepository
# ---------------------------------------------------------------------------

class SnapshotRepository:
    """Create, store, list, delete, import and export snapshots.

    Args:
        backend: Key-value store; an :class:`InMemoryBackend` if omitted.
    """

    def __init__(self, backend: StorageBackend | None = None):
        self.backend = backend if backend is not None else InMemoryBackend()

    # ---- construction ----

    @staticmethod
    def create(records: list[UnifiedRecord], analytics: AnalyticsData | None,
               summary: dict, name: str, description: str | None = None,
               goal_data: Any = None) -> Snapshot:
        """Bundle processed data into a new (unsaved) snapshot."""
        records = list(records)
        payload = {
            "processedData": [r.to_dict() for r in records],
            "analytics": analytics.to_dict() if analytics is not None else None,
            "summary": summary,
            "goalData": goal_data,
        }
        platforms = list(dict.fromkeys(r.platform.value for r in records))
        times = sorted(r.publish_time for r in records
                       if parse_publish_time(r.publish_time) is not None)
        return Snapshot(
            id=generate_id(),
            name=name,
            timestamp=_utc_timestamp(),
            description=description,
            data=payload,
            total_records=len(records),
            platforms=platforms,
            date_range={"start": times[0] if times else "",
                        "end": times[-1] if times else ""},
            file_size=_payload_size(payload),
        )

    # ---- storage ----

    def _read(self, key: str) -> dict:
        stored = self.backend.get(key)
        if not stored:
            return {}
        try:
            return json.loads(stored)
        except json.JSONDecodeError as exc:
            raise SnapshotFormatError(f"Snapshot store entry {key!r} is corrupt: {exc}") from exc

    def _write(self, key: str, value: dict) -> None:
        self.backend.set(key, json.dumps(value, ensure_ascii=False))

    def save(self, snapshot: Snapshot) -> None:
        """Store (or overwrite) *snapshot* and its listing metadata."""
        snapshots = self._read(STORAGE_KEY)
        snapshots[snapshot.id] = snapshot.to_dict()
        self._write(STORAGE_KEY, snapshots)

        metadata = self._read(METADATA_KEY)
        metadata[snapshot.id] = snapshot.metadata.to_dict()
        self._write(METADATA_KEY, metadata)
        logger.info("Saved snapshot %s (%s)", snapshot.id, snapshot.name)

    def get(self, snapshot_id: str) -> Snapshot | None:
        stored = self._read(STORAGE_KEY).get(snapshot_id)
        return Snapshot.from_dict(stored) if stored else None

    def list(self) -> list[SnapshotMetadata]:
        """Listing metadata, newest first."""
        items = [SnapshotMetadata.from_dict(d) for d in self._read(METADATA_KEY).values()]
        return sorted(items, key=lambda m: m.timestamp, reverse=True)

    def delete(self, snapshot_id: str) -> bool:
        """Remove a snapshot; returns False if it did not exist."""
        snapshots = self._read(STORAGE_KEY)
        metadata = self._read(METADATA_KEY)
        if snapshot_id not in snapshots and snapshot_id not in metadata:
            return False
        snapshots.pop(snapshot_id, None)
        metadata.pop(snapshot_id, None)
        self._write(STORAGE_KEY, snapshots)
        self._write(METADATA_KEY, metadata)
        logger.info("Deleted snapshot %s", snapshot_id)
        return True

    def clear(self) -> None:
        self.backend.remove(STORAGE_KEY)
        self.backend.remove(METADATA_KEY)

    # ---- import / export ----

    @staticmethod
    def export_json(snapshot: Snapshot) -> str:
        return json.dumps(snapshot.to_dict(), ensure_ascii=False, indent=2)

    @staticmethod
    def export_filename(snapshot: Snapshot) -> str:
        return f"snapshot_{snapshot.name}_{snapshot.timestamp.split('T')[0]}.json"

    @staticmethod
    def import_json(text: str) -> Snapshot:
        """Parse an exported snapshot document.

        Raises:
            SnapshotFormatError: If *text* is not JSON or not a snapshot.
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SnapshotFormatError(f"Failed to parse snapshot file: {exc}") from exc
        return Snapshot.from_dict(data)

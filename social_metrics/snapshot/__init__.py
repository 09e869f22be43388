"""Snapshot package - persistence of processed data bundles."""

from .repository import (
    InMemoryBackend,
    JsonFileBackend,
    Snapshot,
    SnapshotMetadata,
    SnapshotRepository,
    StorageBackend,
    is_valid_snapshot,
)

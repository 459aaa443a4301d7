"""
In-memory track collection.

The collection owns every Track Record. Readers take immutable snapshots;
writers go through a single lock and replace records whole, so two merges
for the same track can never interleave field by field.
"""

import threading
from typing import Callable, Iterable, Optional

from loguru import logger

from .models import TrackRecord

Snapshot = tuple[TrackRecord, ...]


class DuplicateTrackError(ValueError):
    """Raised when a record id is already present in the collection."""

    def __init__(self, track_id: str):
        self.track_id = track_id
        super().__init__(f"Track id already in collection: {track_id}")


def _check_unique(records: Iterable[TrackRecord]) -> Snapshot:
    snapshot = tuple(records)
    seen: set[str] = set()
    for record in snapshot:
        if record.id in seen:
            raise DuplicateTrackError(record.id)
        seen.add(record.id)
    return snapshot


class TrackCollection:
    """Single-writer owner of the canonical track snapshot."""

    def __init__(self, records: Iterable[TrackRecord] = ()):
        self._records: Snapshot = _check_unique(records)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def snapshot(self) -> Snapshot:
        """Current records; the tuple never changes after it is returned."""
        return self._records

    def get(self, track_id: str) -> Optional[TrackRecord]:
        for record in self._records:
            if record.id == track_id:
                return record
        return None

    def replace_all(self, records: Iterable[TrackRecord]) -> Snapshot:
        """Swap in a whole new collection (e.g. after loading from disk)."""
        snapshot = _check_unique(records)
        with self._lock:
            self._records = snapshot
        logger.debug(f"Collection replaced: {len(snapshot)} tracks")
        return snapshot

    def add_new(self, records: Iterable[TrackRecord]) -> list[TrackRecord]:
        """Append records for files not seen before.

        Files are identified by source path; records for known paths are
        skipped so existing ids are never reassigned.

        Returns:
            The records actually added
        """
        with self._lock:
            known_paths = {record.source_path for record in self._records}
            known_ids = {record.id for record in self._records}
            added = []
            for record in records:
                if record.source_path in known_paths:
                    continue
                if record.id in known_ids:
                    raise DuplicateTrackError(record.id)
                known_paths.add(record.source_path)
                known_ids.add(record.id)
                added.append(record)
            self._records = self._records + tuple(added)

        logger.info(f"Added {len(added)} new tracks to collection")
        return added

    def update(
        self, track_id: str, fn: Callable[[TrackRecord], TrackRecord]
    ) -> Optional[TrackRecord]:
        """Replace one record with ``fn(current_record)``.

        ``fn`` sees the record as it is at commit time, not a stale copy.

        Returns:
            The new record, or None if ``track_id`` is unknown
        """
        with self._lock:
            for index, record in enumerate(self._records):
                if record.id == track_id:
                    updated = fn(record)
                    if updated.id != track_id:
                        raise ValueError("Track id cannot change during an update")
                    self._records = (
                        self._records[:index] + (updated,) + self._records[index + 1 :]
                    )
                    return updated
        return None

    def transform(self, fn: Callable[[Snapshot], Iterable[TrackRecord]]) -> Snapshot:
        """Derive a whole new snapshot from the current one in one step."""
        with self._lock:
            snapshot = _check_unique(fn(self._records))
            self._records = snapshot
        return snapshot

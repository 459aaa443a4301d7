"""
Collection persistence.

The whole collection is saved and loaded as one unit: save_all replaces
every stored record in a single transaction.
"""

import json
import sqlite3
from pathlib import Path
from typing import Iterable, Optional

from loguru import logger

from track_catalog.core.database import get_db_connection, init_database

from .models import TrackRecord


def load_all(db_path: Optional[Path] = None) -> list[TrackRecord]:
    """Load every stored Track Record in collection order."""
    init_database(db_path)
    with get_db_connection(db_path) as conn:
        rows = conn.execute(
            "SELECT id, name, source_path, metadata FROM tracks ORDER BY position"
        ).fetchall()

    records = []
    for row in rows:
        try:
            metadata = json.loads(row["metadata"]) if row["metadata"] else None
        except json.JSONDecodeError:
            logger.warning(f"Discarding unreadable metadata for track {row['id']}")
            metadata = None
        records.append(
            TrackRecord(
                id=row["id"],
                name=row["name"],
                source_path=row["source_path"],
                metadata=metadata,
            )
        )

    logger.debug(f"Loaded {len(records)} tracks from database")
    return records


def save_all(records: Iterable[TrackRecord], db_path: Optional[Path] = None) -> bool:
    """Replace the stored collection with ``records``.

    Returns:
        True on success, False if the write failed (nothing is changed then)
    """
    try:
        rows = [
            (
                record.id,
                position,
                record.name,
                record.source_path,
                json.dumps(record.metadata) if record.metadata is not None else None,
            )
            for position, record in enumerate(records)
        ]
        init_database(db_path)
        with get_db_connection(db_path) as conn:
            with conn:  # Single transaction: commit on success, rollback on error
                conn.execute("DELETE FROM tracks")
                conn.executemany(
                    "INSERT INTO tracks (id, position, name, source_path, metadata) "
                    "VALUES (?, ?, ?, ?, ?)",
                    rows,
                )
    except (sqlite3.Error, TypeError, ValueError):
        logger.exception("Failed to save track collection")
        return False

    logger.debug(f"Saved {len(rows)} tracks to database")
    return True

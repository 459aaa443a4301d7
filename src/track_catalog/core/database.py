"""
SQLite database operations for Track Catalog
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import get_data_dir

# Database schema version for migrations
SCHEMA_VERSION = 1


def get_database_path() -> Path:
    """Get the path to the SQLite database file."""
    return get_data_dir() / "track_catalog.db"


@contextmanager
def get_db_connection(db_path: Optional[Path] = None):
    """Get a database connection with proper cleanup and concurrency support."""
    path = db_path or get_database_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path, timeout=30.0)
    conn.row_factory = sqlite3.Row  # Enable dict-like access

    # WAL mode allows reads during writes
    conn.execute("PRAGMA journal_mode=WAL")

    try:
        yield conn
    finally:
        conn.close()


def init_database(db_path: Optional[Path] = None) -> None:
    """Create tables if needed and record the schema version."""
    with get_db_connection(db_path) as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS tracks (
                id TEXT PRIMARY KEY,
                position INTEGER NOT NULL,
                name TEXT NOT NULL,
                source_path TEXT NOT NULL DEFAULT '',
                metadata TEXT -- JSON object, NULL for untagged files
            )
        """)
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_tracks_position ON tracks (position)"
        )

        row = conn.execute("SELECT MAX(version) AS version FROM schema_version").fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0
        if current_version < SCHEMA_VERSION:
            conn.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            logger.info(f"Database schema at version {SCHEMA_VERSION}")
        conn.commit()

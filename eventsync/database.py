"""Database connection and schema management."""

import asyncio
import logging
from datetime import datetime
from typing import Optional

import aiosqlite

from eventsync.config import get_settings

logger = logging.getLogger(__name__)

# Global database connection
_db_connection: Optional[aiosqlite.Connection] = None
_db_lock = asyncio.Lock()


SCHEMA = """
-- Runtime switches
CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Local event -> remote object correspondence, one row per event
CREATE TABLE IF NOT EXISTS sync_mappings (
    local_event_id TEXT PRIMARY KEY,
    remote_object_id TEXT,
    status TEXT NOT NULL,
    last_attempt_at TIMESTAMP NOT NULL,
    last_error TEXT
);

-- Audit log
CREATE TABLE IF NOT EXISTS sync_log (
    id INTEGER PRIMARY KEY,
    local_event_id TEXT NOT NULL,
    action TEXT NOT NULL,
    status TEXT NOT NULL,
    details TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_sync_log_created ON sync_log(created_at);
CREATE INDEX IF NOT EXISTS idx_sync_log_event ON sync_log(local_event_id, created_at);
"""


async def get_database() -> aiosqlite.Connection:
    """Get the database connection, creating it if necessary."""
    global _db_connection

    async with _db_lock:
        if _db_connection is None:
            settings = get_settings()
            _db_connection = await aiosqlite.connect(settings.database_path)
            _db_connection.row_factory = aiosqlite.Row
            if settings.database_path != ":memory:":
                await _db_connection.execute("PRAGMA journal_mode = WAL")
            await init_schema(_db_connection)
        return _db_connection


async def init_schema(db: aiosqlite.Connection) -> None:
    """Initialize database schema."""
    await db.executescript(SCHEMA)
    await db.commit()
    logger.info("Database schema initialized")


async def close_database() -> None:
    """Close the database connection."""
    global _db_connection

    async with _db_lock:
        if _db_connection is not None:
            await _db_connection.close()
            _db_connection = None
            logger.info("Database connection closed")


async def get_setting(key: str) -> Optional[dict]:
    """Get a setting by key."""
    db = await get_database()
    cursor = await db.execute(
        "SELECT * FROM settings WHERE key = ?", (key,)
    )
    row = await cursor.fetchone()
    if row:
        return dict(row)
    return None


async def set_setting(key: str, value: str) -> None:
    """Set a setting value."""
    db = await get_database()
    now = datetime.utcnow().isoformat()

    await db.execute(
        """INSERT INTO settings (key, value, updated_at)
           VALUES (?, ?, ?)
           ON CONFLICT(key) DO UPDATE SET
           value = excluded.value,
           updated_at = excluded.updated_at""",
        (key, value, now)
    )
    await db.commit()

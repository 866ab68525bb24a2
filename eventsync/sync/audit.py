"""Audit log of sync attempts."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import aiosqlite

logger = logging.getLogger(__name__)


async def log_sync_attempt(
    db: aiosqlite.Connection,
    local_event_id: str,
    action: str,
    status: str,
    details: Optional[str] = None,
) -> None:
    """Append one entry to the sync log."""
    await db.execute(
        """INSERT INTO sync_log (local_event_id, action, status, details, created_at)
           VALUES (?, ?, ?, ?, ?)""",
        (
            local_event_id,
            action,
            status,
            details,
            datetime.now(timezone.utc).isoformat(),
        )
    )
    await db.commit()


async def get_sync_log(
    db: aiosqlite.Connection,
    page: int = 1,
    page_size: int = 50,
    local_event_id: Optional[str] = None,
    status_filter: Optional[str] = None,
) -> dict:
    """Get a page of sync log entries, newest first."""
    page = max(page, 1)
    page_size = min(max(page_size, 1), 500)

    where = []
    params: list = []
    if local_event_id:
        where.append("local_event_id = ?")
        params.append(local_event_id)
    if status_filter:
        where.append("status = ?")
        params.append(status_filter)
    where_clause = f"WHERE {' AND '.join(where)}" if where else ""

    cursor = await db.execute(
        f"SELECT COUNT(*) FROM sync_log {where_clause}", params
    )
    total = (await cursor.fetchone())[0]

    cursor = await db.execute(
        f"""SELECT * FROM sync_log {where_clause}
            ORDER BY created_at DESC, id DESC
            LIMIT ? OFFSET ?""",
        params + [page_size, (page - 1) * page_size]
    )
    rows = await cursor.fetchall()

    return {
        "entries": [dict(row) for row in rows],
        "total": total,
        "page": page,
        "page_size": page_size,
    }


async def cleanup_sync_log(db: aiosqlite.Connection, retention_days: int) -> int:
    """Delete log entries older than the retention window."""
    cutoff = (datetime.now(timezone.utc) - timedelta(days=retention_days)).isoformat()
    cursor = await db.execute(
        "DELETE FROM sync_log WHERE created_at < ?", (cutoff,)
    )
    await db.commit()

    deleted = cursor.rowcount
    if deleted:
        logger.info(f"Deleted {deleted} sync log entries older than {retention_days} days")
    return deleted

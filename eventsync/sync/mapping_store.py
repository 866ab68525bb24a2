"""Durable store of local event -> remote object mappings."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import aiosqlite

from eventsync.models import SyncMapping, SyncStatus

logger = logging.getLogger(__name__)

_MUTABLE_FIELDS = ("remote_object_id", "status", "last_error")


def _row_to_mapping(row: aiosqlite.Row) -> SyncMapping:
    return SyncMapping(
        local_event_id=row["local_event_id"],
        remote_object_id=row["remote_object_id"],
        status=SyncStatus(row["status"]),
        last_attempt_at=datetime.fromisoformat(row["last_attempt_at"]),
        last_error=row["last_error"],
    )


class SyncMappingStore:
    """
    Owns the ``sync_mappings`` table.

    ``upsert`` is the only mutation path besides ``remove``. It merges the
    given fields into the existing row (or a fresh ``Pending`` row) and
    enforces the mapping invariants:

    - ``remote_object_id`` is kept only while ``status`` is ``Synced``
    - ``Synced`` requires a remote object id
    - ``Failed`` requires a non-empty ``last_error``
    """

    def __init__(self, db: aiosqlite.Connection):
        self.db = db
        self._write_lock = asyncio.Lock()

    async def get(self, local_event_id: str) -> Optional[SyncMapping]:
        """Get the mapping for an event, if any."""
        cursor = await self.db.execute(
            "SELECT * FROM sync_mappings WHERE local_event_id = ?",
            (local_event_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return _row_to_mapping(row)

    async def list_all(self) -> list[SyncMapping]:
        """All mappings, most recently attempted first."""
        cursor = await self.db.execute(
            "SELECT * FROM sync_mappings ORDER BY last_attempt_at DESC"
        )
        rows = await cursor.fetchall()
        return [_row_to_mapping(row) for row in rows]

    async def upsert(self, local_event_id: str, **fields) -> SyncMapping:
        """
        Create or merge the mapping for an event.

        Creates a ``Pending`` mapping if none exists. Every call refreshes
        ``last_attempt_at``.
        """
        unknown = set(fields) - set(_MUTABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown mapping fields: {sorted(unknown)}")
        if not local_event_id:
            raise ValueError("local_event_id is required")

        async with self._write_lock:
            existing = await self.get(local_event_id)
            merged = {
                "remote_object_id": existing.remote_object_id if existing else None,
                "status": existing.status if existing else SyncStatus.PENDING,
                "last_error": existing.last_error if existing else None,
            }
            merged.update(fields)

            status = SyncStatus(merged["status"])
            remote_object_id = merged["remote_object_id"]
            last_error = merged["last_error"]

            if status != SyncStatus.SYNCED:
                remote_object_id = None
            elif not remote_object_id:
                raise ValueError(
                    f"Cannot mark {local_event_id} Synced without a remote object id"
                )
            if status == SyncStatus.FAILED and not last_error:
                raise ValueError(
                    f"Cannot mark {local_event_id} Failed without an error"
                )

            mapping = SyncMapping(
                local_event_id=local_event_id,
                remote_object_id=remote_object_id,
                status=status,
                last_attempt_at=datetime.now(timezone.utc),
                last_error=last_error,
            )

            await self.db.execute(
                """INSERT INTO sync_mappings
                   (local_event_id, remote_object_id, status, last_attempt_at, last_error)
                   VALUES (?, ?, ?, ?, ?)
                   ON CONFLICT(local_event_id) DO UPDATE SET
                   remote_object_id = excluded.remote_object_id,
                   status = excluded.status,
                   last_attempt_at = excluded.last_attempt_at,
                   last_error = excluded.last_error""",
                (
                    mapping.local_event_id,
                    mapping.remote_object_id,
                    mapping.status.value,
                    mapping.last_attempt_at.isoformat(),
                    mapping.last_error,
                )
            )
            await self.db.commit()

        logger.debug(f"Mapping {local_event_id} -> {mapping.status.value}")
        return mapping

    async def remove(self, local_event_id: str) -> bool:
        """Delete the mapping for an event. Returns True if one existed."""
        async with self._write_lock:
            cursor = await self.db.execute(
                "DELETE FROM sync_mappings WHERE local_event_id = ?",
                (local_event_id,)
            )
            await self.db.commit()
        return cursor.rowcount > 0

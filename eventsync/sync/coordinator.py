"""Orchestrates outbound sync of local calendar events."""

import asyncio
import logging
import weakref
from typing import Optional

import aiosqlite
import httpx

from eventsync.config import Settings, get_missing_settings
from eventsync.errors import ConfigurationError
from eventsync.models import (
    CalendarEvent,
    ConfigStatus,
    LifecycleKind,
    SyncMapping,
    SyncResult,
    SyncStatus,
    SyncStatusView,
)
from eventsync.sync.audit import log_sync_attempt
from eventsync.sync.mapping_store import SyncMappingStore
from eventsync.sync.strategies import SyncStrategy, create_strategy

logger = logging.getLogger(__name__)

NO_MAPPING_ERROR = "no mapping found"


def _describe(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__


def _status_view(mapping: Optional[SyncMapping]) -> SyncStatusView:
    if mapping is None:
        return SyncStatusView(synced=False, status=SyncStatus.PENDING)
    return SyncStatusView(
        synced=mapping.status == SyncStatus.SYNCED,
        status=mapping.status,
        error=mapping.last_error,
        remote_object_id=mapping.remote_object_id,
        last_attempt_at=mapping.last_attempt_at,
    )


class EventSyncCoordinator:
    """
    Public entry point for propagating event lifecycle changes.

    Sync is best-effort: no lifecycle call raises. Each one records its
    outcome in the mapping store and returns a SyncResult.

    Calls for the same ``local_event_id`` are serialized; calls for
    different events run independently.
    """

    def __init__(
        self,
        store: SyncMappingStore,
        strategy: Optional[SyncStrategy],
        config_status: ConfigStatus,
        audit_db: Optional[aiosqlite.Connection] = None,
    ):
        self.store = store
        self.strategy = strategy
        self.config_status = config_status
        self.audit_db = audit_db
        # Entries live only while some call holds or waits on the lock
        self._event_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._event_locks_guard = asyncio.Lock()

    async def _get_event_lock(self, local_event_id: str) -> asyncio.Lock:
        """Get or create the lock for one event."""
        async with self._event_locks_guard:
            lock = self._event_locks.get(local_event_id)
            if lock is None:
                lock = asyncio.Lock()
                self._event_locks[local_event_id] = lock
            return lock

    def _not_configured(self) -> SyncResult:
        return SyncResult.failed(_describe(ConfigurationError(self.config_status.missing)))

    async def _audit(self, local_event_id: str, kind: LifecycleKind, result: SyncResult) -> None:
        if self.audit_db is None:
            return
        try:
            await log_sync_attempt(
                self.audit_db,
                local_event_id,
                kind.value.lower(),
                "success" if result.success else "failure",
                result.error if not result.success else result.remote_object_id,
            )
        except Exception as e:
            logger.exception(f"Could not write sync log for {local_event_id}: {e}")

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    async def on_created(self, event: CalendarEvent) -> SyncResult:
        """Propagate a newly created event."""
        return await self._sync(LifecycleKind.CREATED, event)

    async def on_updated(self, event: CalendarEvent) -> SyncResult:
        """Propagate changes to an event (also used for manual retries)."""
        return await self._sync(LifecycleKind.UPDATED, event)

    async def _sync(self, kind: LifecycleKind, event: CalendarEvent) -> SyncResult:
        local_event_id = event.local_id
        lock = await self._get_event_lock(local_event_id)

        async with lock:
            logger.info(f"Syncing {kind.value.lower()} event {local_event_id}")
            try:
                reference = await self.store.get(local_event_id)
                known_remote_id = reference.remote_object_id if reference else None
                if known_remote_id:
                    # Stays Synced: the remote object exists until it is deleted
                    await self.store.upsert(local_event_id, last_error=None)
                else:
                    await self.store.upsert(
                        local_event_id, status=SyncStatus.PENDING, last_error=None
                    )
            except Exception as e:
                logger.exception(f"Mapping store unavailable for {local_event_id}: {e}")
                return SyncResult.failed(f"mapping store error: {_describe(e)}")

            if self.strategy is None:
                result = self._not_configured()
            else:
                try:
                    if kind == LifecycleKind.CREATED and not known_remote_id:
                        result = await self.strategy.create(event, reference)
                    else:
                        # A create for an event that already has a remote
                        # object updates it instead of creating a second one
                        result = await self.strategy.update(event, reference)
                except Exception as e:
                    logger.exception(f"Unexpected error syncing {local_event_id}: {e}")
                    result = SyncResult.failed(_describe(e))

            result = await self._record_outcome(local_event_id, known_remote_id, result)
            await self._audit(local_event_id, kind, result)
            return result

    async def _record_outcome(
        self,
        local_event_id: str,
        known_remote_id: Optional[str],
        result: SyncResult,
    ) -> SyncResult:
        """
        Write the strategy's result into the mapping.

        A failed update of an event that already has a remote object keeps
        it ``Synced`` with its id and records the error, so a retry updates
        and a delete still reaches that object.
        """
        if not result.success:
            result = SyncResult.failed(result.error)
            logger.warning(f"Sync failed for {local_event_id}: {result.error}")
            try:
                if known_remote_id:
                    await self.store.upsert(local_event_id, last_error=result.error)
                else:
                    await self.store.upsert(
                        local_event_id, status=SyncStatus.FAILED, last_error=result.error
                    )
            except Exception as e:
                logger.exception(f"Could not record sync failure for {local_event_id}: {e}")
            return result

        remote_id = result.remote_object_id or known_remote_id
        try:
            if remote_id:
                await self.store.upsert(
                    local_event_id,
                    status=SyncStatus.SYNCED,
                    remote_object_id=remote_id,
                    last_error=None,
                )
                logger.info(f"Event {local_event_id} synced as {remote_id}")
            else:
                # Dispatched, but the remote side has not reported an id yet
                logger.info(f"Event {local_event_id} dispatched without a remote id")
        except Exception as e:
            logger.exception(f"Could not record sync outcome for {local_event_id}: {e}")

        return SyncResult.ok(remote_id)

    async def on_deleted(self, local_event_id: str) -> SyncResult:
        """
        Propagate the deletion of an event.

        Without a mapping nothing is sent. On success the mapping is removed.
        On failure the mapping keeps its status and remote id so the delete
        can be retried, and records the error.
        """
        lock = await self._get_event_lock(local_event_id)

        async with lock:
            try:
                mapping = await self.store.get(local_event_id)
            except Exception as e:
                logger.exception(f"Mapping store unavailable for {local_event_id}: {e}")
                return SyncResult.failed(f"mapping store error: {_describe(e)}")

            if mapping is None:
                logger.info(f"No mapping for deleted event {local_event_id}, skipping")
                result = SyncResult.failed(NO_MAPPING_ERROR)
                await self._audit(local_event_id, LifecycleKind.DELETED, result)
                return result

            if self.strategy is None:
                result = self._not_configured()
            else:
                try:
                    result = await self.strategy.delete(local_event_id, mapping)
                except Exception as e:
                    logger.exception(f"Unexpected error deleting {local_event_id}: {e}")
                    result = SyncResult.failed(_describe(e))

            try:
                if result.success:
                    await self.store.remove(local_event_id)
                    logger.info(f"Deletion of {local_event_id} propagated, mapping removed")
                else:
                    logger.warning(f"Deletion failed for {local_event_id}: {result.error}")
                    await self.store.upsert(local_event_id, last_error=result.error)
            except Exception as e:
                logger.exception(f"Could not record deletion outcome for {local_event_id}: {e}")

            if result.success and not result.remote_object_id:
                result = SyncResult.ok(mapping.remote_object_id)
            await self._audit(local_event_id, LifecycleKind.DELETED, result)
            return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_sync_status(self, local_event_id: str) -> SyncStatusView:
        """Sync indicator for one event."""
        try:
            mapping = await self.store.get(local_event_id)
        except Exception as e:
            logger.exception(f"Could not read mapping for {local_event_id}: {e}")
            return SyncStatusView(
                synced=False,
                status=SyncStatus.PENDING,
                error=f"status unavailable: {_describe(e)}",
            )
        return _status_view(mapping)

    async def list_sync_statuses(self) -> dict[str, SyncStatusView]:
        """Sync indicators for every tracked event."""
        mappings = await self.store.list_all()
        return {m.local_event_id: _status_view(m) for m in mappings}

    def get_config_status(self) -> ConfigStatus:
        return self.config_status

    async def purge(self, local_event_id: str) -> bool:
        """Forget an event's mapping without contacting the remote platform."""
        lock = await self._get_event_lock(local_event_id)
        async with lock:
            removed = await self.store.remove(local_event_id)
        if removed:
            logger.info(f"Purged mapping for {local_event_id}")
        return removed


def build_coordinator(
    settings: Settings,
    db: aiosqlite.Connection,
    http_client: httpx.AsyncClient,
) -> EventSyncCoordinator:
    """
    Build a coordinator from settings.

    Configuration is validated here. If it is incomplete the coordinator is
    still returned, and reports the gap through ``get_config_status`` and a
    failed SyncResult on every lifecycle call.
    """
    strategy_name = (settings.sync_strategy or "").strip().lower()
    missing = get_missing_settings(settings)

    strategy: Optional[SyncStrategy] = None
    try:
        strategy = create_strategy(settings, http_client)
    except ConfigurationError as e:
        logger.warning(f"Event sync is not configured: {e}")

    return EventSyncCoordinator(
        store=SyncMappingStore(db),
        strategy=strategy,
        config_status=ConfigStatus(
            configured=strategy is not None,
            missing=missing,
            strategy=strategy_name,
        ),
        audit_db=db,
    )

"""Sync status and control API endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel

from eventsync.database import get_database, set_setting
from eventsync.errors import SyncError
from eventsync.limiter import limiter, trigger_rate_limit
from eventsync.models import CalendarEvent, ConfigStatus, SyncResult, SyncStatusView
from eventsync.sync.audit import get_sync_log
from eventsync.sync.coordinator import EventSyncCoordinator
from eventsync.sync.strategies import DirectApiStrategy, WebhookStrategy

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/sync", tags=["sync"])


class SyncLogEntry(BaseModel):
    """Sync log entry."""
    id: int
    local_event_id: str
    action: str
    status: str
    details: Optional[str] = None
    created_at: str


class SyncLogResponse(BaseModel):
    """Sync log response."""
    entries: list[SyncLogEntry]
    total: int
    page: int
    page_size: int


def get_coordinator(request: Request) -> EventSyncCoordinator:
    """Coordinator built by the application lifespan."""
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sync service not initialized",
        )
    return coordinator


@router.get("/config", response_model=ConfigStatus)
async def get_config_status(coordinator: EventSyncCoordinator = Depends(get_coordinator)):
    """Report whether the selected sync strategy is fully configured."""
    return coordinator.get_config_status()


@router.get("/events", response_model=dict[str, SyncStatusView])
async def list_sync_statuses(coordinator: EventSyncCoordinator = Depends(get_coordinator)):
    """Get the sync status of every tracked event."""
    return await coordinator.list_sync_statuses()


@router.get("/events/{local_event_id}", response_model=SyncStatusView)
async def get_event_sync_status(
    local_event_id: str,
    coordinator: EventSyncCoordinator = Depends(get_coordinator),
):
    """Get the sync status of one event."""
    return await coordinator.get_sync_status(local_event_id)


@router.post("/events/created", response_model=SyncResult)
@limiter.limit(trigger_rate_limit)
async def event_created(
    request: Request,
    event: CalendarEvent,
    coordinator: EventSyncCoordinator = Depends(get_coordinator),
):
    """Propagate a newly created event."""
    return await coordinator.on_created(event)


@router.post("/events/updated", response_model=SyncResult)
@limiter.limit(trigger_rate_limit)
async def event_updated(
    request: Request,
    event: CalendarEvent,
    coordinator: EventSyncCoordinator = Depends(get_coordinator),
):
    """Propagate an updated event, or retry a failed sync."""
    return await coordinator.on_updated(event)


@router.post("/events/{local_event_id}/deleted", response_model=SyncResult)
@limiter.limit(trigger_rate_limit)
async def event_deleted(
    request: Request,
    local_event_id: str,
    coordinator: EventSyncCoordinator = Depends(get_coordinator),
):
    """Propagate the deletion of an event."""
    return await coordinator.on_deleted(local_event_id)


@router.delete("/events/{local_event_id}")
async def purge_event_mapping(
    local_event_id: str,
    coordinator: EventSyncCoordinator = Depends(get_coordinator),
):
    """Forget an event's mapping without contacting the remote platform."""
    removed = await coordinator.purge(local_event_id)
    if not removed:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Mapping not found",
        )
    return {"status": "ok", "message": f"Mapping for {local_event_id} removed"}


@router.get("/calendars")
async def list_remote_calendars(coordinator: EventSyncCoordinator = Depends(get_coordinator)):
    """List the remote calendars available to the configured location."""
    strategy = coordinator.strategy
    if not isinstance(strategy, DirectApiStrategy):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Calendar listing requires the direct API strategy",
        )

    try:
        calendars = await strategy.list_calendars()
    except SyncError as e:
        logger.warning(f"Failed to list remote calendars: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e),
        )

    return {
        "calendars": [
            {"id": c.get("id"), "name": c.get("name"), "location_id": c.get("locationId")}
            for c in calendars
        ]
    }


@router.get("/log", response_model=SyncLogResponse)
async def get_log(
    page: int = 1,
    page_size: int = 50,
    local_event_id: Optional[str] = None,
    status_filter: Optional[str] = None,
):
    """Get the sync activity log."""
    db = await get_database()
    result = await get_sync_log(
        db,
        page=page,
        page_size=page_size,
        local_event_id=local_event_id,
        status_filter=status_filter,
    )
    return SyncLogResponse(
        entries=[SyncLogEntry(**entry) for entry in result["entries"]],
        total=result["total"],
        page=result["page"],
        page_size=result["page_size"],
    )


async def _set_webhook_enabled(coordinator: EventSyncCoordinator, enabled: bool) -> dict:
    strategy = coordinator.strategy
    if not isinstance(strategy, WebhookStrategy):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Webhook strategy is not active",
        )

    await set_setting("webhook_enabled", "true" if enabled else "false")
    strategy.dispatcher.set_enabled(enabled)
    return {"status": "ok", "webhook_enabled": enabled}


@router.post("/webhook/enable")
async def enable_webhook(coordinator: EventSyncCoordinator = Depends(get_coordinator)):
    """Resume webhook dispatch."""
    return await _set_webhook_enabled(coordinator, True)


@router.post("/webhook/disable")
async def disable_webhook(coordinator: EventSyncCoordinator = Depends(get_coordinator)):
    """Pause webhook dispatch. Sync attempts are recorded as failed while paused."""
    return await _set_webhook_enabled(coordinator, False)

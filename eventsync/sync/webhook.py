"""Outbound webhook notifications for event lifecycle changes."""

import logging
from typing import Optional

import httpx

from eventsync.models import CalendarEvent, LifecycleKind, SyncMapping, SyncResult

logger = logging.getLogger(__name__)

# Response keys that may carry the remote appointment id, in lookup order
REMOTE_ID_KEYS = ("appointment_id", "ghl_appointment_id")


def serialize_event(event: CalendarEvent) -> dict:
    """Flatten an event into the automation's snake_case payload."""
    return {
        "local_event_id": event.local_id,
        "client_id": event.client_id,
        "client_email": event.client_email,
        "client_phone": event.client_phone,
        "client_name": event.client_name,
        "event_title": event.title,
        "event_type": event.category,
        "start_date": event.start_date,
        "end_date": event.end_date,
        "start_time": event.start_time,
        "end_time": event.end_time,
        "description": event.description,
        "created_at": event.created_at or event.updated_at,
        "updated_at": event.updated_at or event.created_at,
    }


def serialize_mapping(mapping: Optional[SyncMapping]) -> Optional[dict]:
    if mapping is None:
        return None
    return {
        "local_event_id": mapping.local_event_id,
        "remote_object_id": mapping.remote_object_id,
        "sync_status": mapping.status.value.lower(),
        "last_sync_attempt": mapping.last_attempt_at.isoformat(),
        "sync_error": mapping.last_error,
    }


def build_envelope(
    kind: LifecycleKind,
    event: Optional[CalendarEvent],
    current_mapping: Optional[SyncMapping] = None,
    local_event_id: Optional[str] = None,
) -> dict:
    """Build the JSON body posted to the webhook."""
    if kind == LifecycleKind.DELETED or event is None:
        event_data = {
            "local_event_id": local_event_id or (event.local_id if event else None),
        }
    else:
        event_data = serialize_event(event)

    return {
        "event_type": kind.webhook_event_type,
        "event_data": event_data,
        "reference_mapping": serialize_mapping(current_mapping),
    }


def extract_remote_id(response: httpx.Response) -> Optional[str]:
    """Pull the remote appointment id out of a webhook response, if present."""
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    for key in REMOTE_ID_KEYS:
        if data.get(key):
            return str(data[key])
    return None


class WebhookDispatcher:
    """
    Posts lifecycle envelopes to a single automation endpoint.

    ``dispatch`` never raises: every outcome is reported as a SyncResult so
    that a failed notification cannot abort the local operation.
    """

    def __init__(self, http_client: httpx.AsyncClient, webhook_url: str, enabled: bool = True):
        self.http_client = http_client
        self.webhook_url = webhook_url
        self.enabled = enabled

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled
        logger.info(f"Webhook dispatch {'enabled' if enabled else 'disabled'}")

    async def dispatch(
        self,
        kind: LifecycleKind,
        event: Optional[CalendarEvent],
        current_mapping: Optional[SyncMapping] = None,
        local_event_id: Optional[str] = None,
    ) -> SyncResult:
        """Send one lifecycle notification."""
        if not self.enabled:
            logger.info("Webhook disabled, skipping dispatch")
            return SyncResult.failed("webhook disabled")

        try:
            payload = build_envelope(kind, event, current_mapping, local_event_id)
            target = payload["event_data"].get("local_event_id")
            logger.info(f"Dispatching {payload['event_type']} for {target}")

            response = await self.http_client.post(
                self.webhook_url,
                json=payload,
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            message = str(e) or e.__class__.__name__
            logger.warning(f"Webhook request failed: {message}")
            return SyncResult.failed(message)
        except Exception as e:
            logger.exception(f"Unexpected error dispatching webhook: {e}")
            return SyncResult.failed(str(e) or e.__class__.__name__)

        if not response.is_success:
            logger.warning(f"Webhook returned {response.status_code}")
            return SyncResult.failed(f"HTTP {response.status_code}: {response.text}")

        remote_id = extract_remote_id(response)
        logger.info(f"Webhook dispatched for {target} (remote id: {remote_id})")
        return SyncResult.ok(remote_id)

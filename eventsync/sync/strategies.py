"""Interchangeable ways of propagating an event to the remote platform."""

import logging
from typing import Optional, Protocol

import httpx

from eventsync.config import Settings, get_missing_settings
from eventsync.errors import ConfigurationError, ContactNotFound, SyncError
from eventsync.models import CalendarEvent, LifecycleKind, SyncMapping, SyncResult
from eventsync.sync.appointments import RemoteAppointmentClient, build_appointment
from eventsync.sync.contacts import RemoteContactResolver
from eventsync.sync.remote_client import LeadConnectorClient
from eventsync.sync.webhook import WebhookDispatcher

logger = logging.getLogger(__name__)


class SyncStrategy(Protocol):
    """
    Propagates one lifecycle transition.

    ``reference`` is the event's mapping as it was before the current
    attempt started. Implementations return a SyncResult and do not raise
    for remote failures.
    """

    name: str

    async def create(self, event: CalendarEvent, reference: Optional[SyncMapping]) -> SyncResult:
        ...

    async def update(self, event: CalendarEvent, reference: Optional[SyncMapping]) -> SyncResult:
        ...

    async def delete(self, local_event_id: str, reference: SyncMapping) -> SyncResult:
        ...


def _known_remote_id(reference: Optional[SyncMapping]) -> Optional[str]:
    return reference.remote_object_id if reference else None


class DirectApiStrategy:
    """Resolve the contact and manage the appointment through the REST API."""

    name = "api"

    def __init__(
        self,
        contacts: RemoteContactResolver,
        appointments: RemoteAppointmentClient,
        calendar_ids: dict[str, str],
    ):
        self.contacts = contacts
        self.appointments = appointments
        self.calendar_ids = calendar_ids

    async def create(self, event: CalendarEvent, reference: Optional[SyncMapping]) -> SyncResult:
        try:
            # Fail on bad config or dates before spending a contact lookup
            build_appointment(event, self.calendar_ids)
            contact = await self.contacts.resolve(event.client_email, event.client_phone)
            appointment = build_appointment(
                event, self.calendar_ids, contact_id=contact.remote_contact_id
            )
            remote_id = await self.appointments.create(appointment)
        except ContactNotFound:
            return SyncResult.failed("contact not found")
        except SyncError as e:
            return SyncResult.failed(str(e))
        except ValueError as e:
            return SyncResult.failed(f"invalid event data: {e}")
        return SyncResult.ok(remote_id)

    async def update(self, event: CalendarEvent, reference: Optional[SyncMapping]) -> SyncResult:
        remote_id = _known_remote_id(reference)
        if not remote_id:
            logger.info(f"No remote appointment known for {event.local_id}, creating one")
            return await self.create(event, reference)

        try:
            appointment = build_appointment(event, self.calendar_ids)
            await self.appointments.update(remote_id, appointment)
        except SyncError as e:
            return SyncResult.failed(str(e))
        except ValueError as e:
            return SyncResult.failed(f"invalid event data: {e}")
        return SyncResult.ok(remote_id)

    async def delete(self, local_event_id: str, reference: SyncMapping) -> SyncResult:
        remote_id = _known_remote_id(reference)
        if not remote_id:
            # Never reached the remote platform, nothing to remove there
            logger.info(f"No remote appointment known for {local_event_id}, nothing to delete")
            return SyncResult.ok()

        try:
            await self.appointments.delete(remote_id)
        except SyncError as e:
            return SyncResult.failed(str(e))
        return SyncResult.ok(remote_id)

    async def list_calendars(self) -> list[dict]:
        return await self.appointments.list_calendars()


class WebhookStrategy:
    """Notify a remote automation, which owns the appointment itself."""

    name = "webhook"

    def __init__(self, dispatcher: WebhookDispatcher):
        self.dispatcher = dispatcher

    async def create(self, event: CalendarEvent, reference: Optional[SyncMapping]) -> SyncResult:
        return await self.dispatcher.dispatch(LifecycleKind.CREATED, event, reference)

    async def update(self, event: CalendarEvent, reference: Optional[SyncMapping]) -> SyncResult:
        return await self.dispatcher.dispatch(LifecycleKind.UPDATED, event, reference)

    async def delete(self, local_event_id: str, reference: SyncMapping) -> SyncResult:
        return await self.dispatcher.dispatch(
            LifecycleKind.DELETED, None, reference, local_event_id=local_event_id
        )


def create_strategy(settings: Settings, http_client: httpx.AsyncClient) -> SyncStrategy:
    """
    Build the strategy selected by ``settings.sync_strategy``.

    Raises:
        ConfigurationError: a setting the strategy needs is missing
    """
    missing = get_missing_settings(settings)
    if missing:
        raise ConfigurationError(missing)

    if settings.sync_strategy.strip().lower() == "webhook":
        dispatcher = WebhookDispatcher(
            http_client, settings.webhook_url, enabled=settings.webhook_enabled
        )
        return WebhookStrategy(dispatcher)

    client = LeadConnectorClient(
        http_client,
        api_key=settings.remote_api_key,
        location_id=settings.remote_location_id,
        base_url=settings.remote_api_base_url,
        api_version=settings.remote_api_version,
    )
    return DirectApiStrategy(
        RemoteContactResolver(client),
        RemoteAppointmentClient(client),
        dict(settings.calendar_ids),
    )

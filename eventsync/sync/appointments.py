"""Remote appointment operations."""

import logging
from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from eventsync.config import category_label
from eventsync.errors import ConfigurationError, RemoteApiError
from eventsync.models import CalendarEvent
from eventsync.sync.remote_client import LeadConnectorClient

logger = logging.getLogger(__name__)

APPOINTMENTS_PATH = "/calendars/events/appointments"
CALENDARS_PATH = "/calendars/"


class Appointment(BaseModel):
    """Appointment body as the remote API expects it (camelCase on the wire)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    calendar_id: Optional[str] = None
    contact_id: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    title: Optional[str] = None
    notes: Optional[str] = None

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


def combine_date_time(date_str: str, time_str: str) -> str:
    """
    Combine ``YYYY-MM-DD`` and ``HH:MM[:SS]`` into an ISO-8601 timestamp.

    No timezone conversion: an offset is kept only if the time string
    already carries one.
    """
    combined = datetime.combine(
        date.fromisoformat(date_str.strip()),
        time.fromisoformat(time_str.strip()),
    )
    return combined.isoformat(timespec="seconds")


def default_notes(event: CalendarEvent) -> str:
    return f"{event.category} session for {event.client_name}".strip()


def build_appointment(
    event: CalendarEvent,
    calendar_ids: dict[str, str],
    contact_id: Optional[str] = None,
) -> Appointment:
    """
    Build the remote appointment for an event.

    Raises:
        ConfigurationError: no calendar is configured for the category
        ValueError: the event's date or time fields are malformed
    """
    calendar_id = calendar_ids.get(event.category)
    if not calendar_id:
        raise ConfigurationError([category_label(event.category)])

    return Appointment(
        calendar_id=calendar_id,
        contact_id=contact_id,
        start_time=combine_date_time(event.start_date, event.start_time),
        end_time=combine_date_time(event.end_date, event.end_time),
        title=event.title,
        notes=event.description or default_notes(event),
    )


class RemoteAppointmentClient:
    """Create, update and delete appointments on the remote platform."""

    def __init__(self, client: LeadConnectorClient):
        self.client = client

    async def create(self, appointment: Appointment) -> str:
        """Create an appointment and return its remote id."""
        logger.info(f"Creating remote appointment '{appointment.title}'")
        result = await self.client.request(
            "POST", APPOINTMENTS_PATH, json=appointment.to_payload()
        )
        remote_id = result.get("id")
        if not remote_id:
            raise RemoteApiError(200, "appointment created without an id")
        logger.info(f"Remote appointment created: {remote_id}")
        return str(remote_id)

    async def update(self, remote_id: str, appointment: Appointment) -> None:
        """Apply a partial update to an appointment."""
        logger.info(f"Updating remote appointment {remote_id}")
        await self.client.request(
            "PUT", f"{APPOINTMENTS_PATH}/{remote_id}", json=appointment.to_payload()
        )

    async def delete(self, remote_id: str) -> None:
        """Delete an appointment."""
        logger.info(f"Deleting remote appointment {remote_id}")
        await self.client.request("DELETE", f"{APPOINTMENTS_PATH}/{remote_id}")

    async def list_calendars(self) -> list[dict]:
        """List the calendars of the configured location."""
        result = await self.client.request(
            "GET", CALENDARS_PATH, params={"locationId": self.client.location_id}
        )
        return result.get("calendars") or []

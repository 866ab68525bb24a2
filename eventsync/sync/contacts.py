"""Resolve local clients to remote contacts."""

import logging
from typing import Optional

from eventsync.errors import ContactNotFound
from eventsync.models import RemoteContact
from eventsync.sync.remote_client import LeadConnectorClient

logger = logging.getLogger(__name__)

DUPLICATE_SEARCH_PATH = "/contacts/search/duplicate"


def _parse_contact(data: dict) -> RemoteContact:
    return RemoteContact(
        remote_contact_id=data["id"],
        email=data.get("email"),
        phone=data.get("phone"),
        first_name=data.get("firstName"),
        last_name=data.get("lastName"),
    )


class RemoteContactResolver:
    """Looks up a remote contact by email, then by phone."""

    def __init__(self, client: LeadConnectorClient):
        self.client = client

    async def _search(self, field: str, value: str) -> Optional[RemoteContact]:
        result = await self.client.request(
            "GET",
            DUPLICATE_SEARCH_PATH,
            params={"locationId": self.client.location_id, field: value},
        )
        contact = result.get("contact")
        if contact and contact.get("id"):
            return _parse_contact(contact)
        return None

    async def resolve(self, email: Optional[str], phone: Optional[str] = None) -> RemoteContact:
        """
        Find the remote contact for a client.

        Email is always tried before phone. Transport and API errors
        propagate unchanged.

        Raises:
            ContactNotFound: neither lookup matched
        """
        if email:
            contact = await self._search("email", email)
            if contact:
                logger.info(f"Found remote contact {contact.remote_contact_id} by email")
                return contact

        if phone:
            contact = await self._search("phone", phone)
            if contact:
                logger.info(f"Found remote contact {contact.remote_contact_id} by phone")
                return contact

        logger.info("Remote contact not found")
        raise ContactNotFound(email, phone)

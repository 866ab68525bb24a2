"""HTTP transport for the remote platform's REST API."""

import logging
from typing import Any, Optional

import httpx

from eventsync.errors import RemoteApiError, TransportError

logger = logging.getLogger(__name__)


class LeadConnectorClient:
    """Bearer-authenticated JSON client for the remote platform.

    Does not retry; every failure is raised to the caller.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        location_id: str,
        base_url: str = "https://services.leadconnectorhq.com",
        api_version: str = "2021-07-28",
    ):
        self.http_client = http_client
        self.api_key = api_key
        self.location_id = location_id
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Version": self.api_version,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
    ) -> dict[str, Any]:
        """
        Send a request and return the decoded JSON body.

        Raises:
            TransportError: the request never got a response
            RemoteApiError: the response status was not 2xx
        """
        url = f"{self.base_url}{path}"
        try:
            response = await self.http_client.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e!r}")
            raise TransportError(str(e) or e.__class__.__name__) from e

        if not response.is_success:
            logger.warning(f"{method} {path} returned {response.status_code}")
            raise RemoteApiError(response.status_code, response.text)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            logger.warning(f"{method} {path} returned a non-JSON body")
            return {}

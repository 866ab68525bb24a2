"""Error types raised by the sync layer."""

from typing import Optional


class SyncError(Exception):
    """Base class for all sync errors."""

    retryable = False


class ContactNotFound(SyncError):
    """No remote contact matches the client's email or phone."""

    def __init__(self, email: Optional[str] = None, phone: Optional[str] = None):
        self.email = email
        self.phone = phone
        super().__init__("contact not found")


class RemoteApiError(SyncError):
    """The remote platform answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"remote API error {status_code}: {body}")

    @property
    def retryable(self) -> bool:
        return self.status_code in (408, 429) or self.status_code >= 500


class TransportError(SyncError):
    """Network, DNS or timeout failure talking to the remote platform."""

    retryable = True


class ConfigurationError(SyncError):
    """Required configuration is missing or invalid."""

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(f"sync not configured: missing {', '.join(self.missing)}")

"""Data models shared by the sync layer and the API."""

from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SyncStatus(str, Enum):
    """Sync state of a single local event."""
    PENDING = "Pending"
    SYNCED = "Synced"
    FAILED = "Failed"


class LifecycleKind(str, Enum):
    """Local event lifecycle transition being propagated."""
    CREATED = "Created"
    UPDATED = "Updated"
    DELETED = "Deleted"

    @property
    def webhook_event_type(self) -> str:
        return f"calendar_event_{self.value.lower()}"


class CalendarEvent(BaseModel):
    """A scheduling event owned by the host application.

    Accepts both snake_case and camelCase field names.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    local_id: str = Field(min_length=1)
    client_id: Union[int, str]
    client_email: str = ""
    client_phone: Optional[str] = None
    client_name: str = ""
    title: str = ""
    category: str
    start_date: str
    end_date: str
    start_time: str
    end_time: str
    description: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class RemoteContact(BaseModel):
    """A contact record on the remote platform."""
    remote_contact_id: str
    email: Optional[str] = None
    phone: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class SyncMapping(BaseModel):
    """Persisted correspondence between a local event and its remote object."""
    local_event_id: str
    remote_object_id: Optional[str] = None
    status: SyncStatus = SyncStatus.PENDING
    last_attempt_at: datetime
    last_error: Optional[str] = None


class SyncResult(BaseModel):
    """Outcome of one sync operation, as seen by callers."""
    success: bool
    remote_object_id: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, remote_object_id: Optional[str] = None) -> "SyncResult":
        return cls(success=True, remote_object_id=remote_object_id)

    @classmethod
    def failed(cls, error: str) -> "SyncResult":
        return cls(success=False, error=error or "unknown error")


class SyncStatusView(BaseModel):
    """Sync indicator for the host UI."""
    synced: bool
    status: SyncStatus
    error: Optional[str] = None
    remote_object_id: Optional[str] = None
    last_attempt_at: Optional[datetime] = None


class ConfigStatus(BaseModel):
    """Whether the selected sync strategy has everything it needs."""
    configured: bool
    missing: list[str] = []
    strategy: Optional[str] = None

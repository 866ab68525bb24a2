"""Sync engine module."""

from eventsync.sync.coordinator import EventSyncCoordinator, build_coordinator
from eventsync.sync.mapping_store import SyncMappingStore
from eventsync.sync.strategies import (
    DirectApiStrategy,
    SyncStrategy,
    WebhookStrategy,
    create_strategy,
)

__all__ = [
    "EventSyncCoordinator",
    "build_coordinator",
    "SyncMappingStore",
    "SyncStrategy",
    "DirectApiStrategy",
    "WebhookStrategy",
    "create_strategy",
]

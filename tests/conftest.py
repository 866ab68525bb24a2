"""Pytest configuration and fixtures."""

import json
import os
from typing import Callable

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

# Set test environment variables before imports
os.environ["DATABASE_PATH"] = ":memory:"
os.environ["PUBLIC_URL"] = "http://localhost:3000"
os.environ["SYNC_STRATEGY"] = "api"
os.environ["REMOTE_API_KEY"] = "test-api-key"
os.environ["REMOTE_LOCATION_ID"] = "loc-1"
os.environ["CALENDAR_IDS"] = json.dumps(
    {"onboarding": "cal-onboarding", "handover": "cal-handover"}
)
os.environ["RATE_LIMIT_PER_MINUTE"] = "1000"

WEBHOOK_URL = "https://hooks.example.com/webhook-trigger/abc"


@pytest_asyncio.fixture
async def test_db():
    """Create a test database."""
    from eventsync.database import get_database, close_database
    import eventsync.database as db_module

    # Reset the global connection
    db_module._db_connection = None

    # Create in-memory database
    db = await get_database()

    yield db

    await close_database()
    db_module._db_connection = None


@pytest_asyncio.fixture
async def store(test_db):
    """Mapping store on the test database."""
    from eventsync.sync.mapping_store import SyncMappingStore

    return SyncMappingStore(test_db)


@pytest.fixture
def api_settings():
    """Fully configured direct-API settings."""
    from eventsync.config import Settings

    return Settings(
        sync_strategy="api",
        remote_api_key="test-api-key",
        remote_location_id="loc-1",
        calendar_ids={"onboarding": "cal-onboarding", "handover": "cal-handover"},
    )


@pytest.fixture
def webhook_settings():
    """Fully configured webhook settings."""
    from eventsync.config import Settings

    return Settings(sync_strategy="webhook", webhook_url=WEBHOOK_URL)


@pytest.fixture
def make_http_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Build an httpx client whose requests are answered by a handler."""
    def _make(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return _make


@pytest.fixture
def sample_event():
    """The onboarding event used across sync tests."""
    from eventsync.models import CalendarEvent

    return CalendarEvent(
        local_id="evt-1",
        client_id=42,
        client_email="a@b.com",
        client_phone="+15550100",
        client_name="Acme Corp",
        title="Kickoff",
        category="onboarding",
        start_date="2025-09-01",
        end_date="2025-09-01",
        start_time="09:00",
        end_time="10:00",
        created_at="2025-08-20T12:00:00Z",
        updated_at="2025-08-20T12:00:00Z",
    )


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    from eventsync.main import app

    with TestClient(app) as c:
        yield c

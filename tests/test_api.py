"""Tests for API endpoints."""

import httpx

from eventsync.models import SyncResult
from eventsync.sync.strategies import DirectApiStrategy, WebhookStrategy
from eventsync.sync.webhook import WebhookDispatcher

EVENT_BODY = {
    "localId": "evt-1",
    "clientId": 42,
    "clientEmail": "a@b.com",
    "clientName": "Acme Corp",
    "title": "Kickoff",
    "category": "onboarding",
    "startDate": "2025-09-01",
    "endDate": "2025-09-01",
    "startTime": "09:00",
    "endTime": "10:00",
}


class RecordingStrategy:
    name = "api"

    def __init__(self):
        self.calls: list[tuple] = []

    async def create(self, event, reference):
        self.calls.append(("create", event.local_id))
        return SyncResult.ok("appt-1")

    async def update(self, event, reference):
        self.calls.append(("update", event.local_id))
        return SyncResult.ok(reference.remote_object_id if reference else "appt-1")

    async def delete(self, local_event_id, reference):
        self.calls.append(("delete", local_event_id))
        return SyncResult.ok()


class CalendarListing:
    async def list_calendars(self):
        return [{"id": "cal-onboarding", "name": "Onboarding", "locationId": "loc-1"}]


def _use_strategy(client, strategy):
    client.app.state.coordinator.strategy = strategy
    return strategy


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_config_status(client):
    response = client.get("/api/sync/config")

    assert response.status_code == 200
    assert response.json() == {"configured": True, "missing": [], "strategy": "api"}


def test_create_then_read_status(client):
    strategy = _use_strategy(client, RecordingStrategy())

    response = client.post("/api/sync/events/created", json=EVENT_BODY)

    assert response.status_code == 200
    assert response.json() == {"success": True, "remote_object_id": "appt-1", "error": None}
    assert strategy.calls == [("create", "evt-1")]

    status = client.get("/api/sync/events/evt-1").json()
    assert status["synced"] is True
    assert status["status"] == "Synced"
    assert status["remote_object_id"] == "appt-1"

    listing = client.get("/api/sync/events").json()
    assert list(listing) == ["evt-1"]


def test_update_endpoint(client):
    strategy = _use_strategy(client, RecordingStrategy())
    client.post("/api/sync/events/created", json=EVENT_BODY)

    response = client.post(
        "/api/sync/events/updated", json={**EVENT_BODY, "startTime": "11:00"}
    )

    assert response.json()["success"] is True
    assert strategy.calls == [("create", "evt-1"), ("update", "evt-1")]


def test_snake_case_body_is_accepted(client):
    _use_strategy(client, RecordingStrategy())
    body = {
        "local_id": "evt-2",
        "client_id": "c-42",
        "category": "handover",
        "start_date": "2025-09-02",
        "end_date": "2025-09-02",
        "start_time": "14:00",
        "end_time": "15:00",
    }

    response = client.post("/api/sync/events/created", json=body)

    assert response.status_code == 200
    assert response.json()["success"] is True


def test_invalid_event_body(client):
    response = client.post("/api/sync/events/created", json={"localId": "evt-1"})
    assert response.status_code == 422


def test_delete_without_mapping(client):
    strategy = _use_strategy(client, RecordingStrategy())

    response = client.post("/api/sync/events/evt-unknown/deleted")

    assert response.status_code == 200
    assert response.json() == {"success": False, "remote_object_id": None, "error": "no mapping found"}
    assert strategy.calls == []


def test_delete_removes_mapping(client):
    _use_strategy(client, RecordingStrategy())
    client.post("/api/sync/events/created", json=EVENT_BODY)

    response = client.post("/api/sync/events/evt-1/deleted")

    assert response.json()["success"] is True
    assert client.get("/api/sync/events").json() == {}


def test_purge_mapping(client):
    _use_strategy(client, RecordingStrategy())
    client.post("/api/sync/events/created", json=EVENT_BODY)

    response = client.delete("/api/sync/events/evt-1")
    assert response.status_code == 200

    response = client.delete("/api/sync/events/evt-1")
    assert response.status_code == 404


def test_sync_log(client):
    _use_strategy(client, RecordingStrategy())
    client.post("/api/sync/events/created", json=EVENT_BODY)
    client.post("/api/sync/events/evt-unknown/deleted")

    response = client.get("/api/sync/log", params={"status_filter": "failure"})

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["entries"][0]["local_event_id"] == "evt-unknown"
    assert data["entries"][0]["action"] == "deleted"


def test_calendars_require_direct_api(client):
    _use_strategy(client, RecordingStrategy())

    response = client.get("/api/sync/calendars")
    assert response.status_code == 400


def test_calendars_listing(client):
    _use_strategy(client, DirectApiStrategy(None, CalendarListing(), {}))

    response = client.get("/api/sync/calendars")

    assert response.status_code == 200
    assert response.json() == {
        "calendars": [{"id": "cal-onboarding", "name": "Onboarding", "location_id": "loc-1"}]
    }


def test_webhook_toggle_requires_webhook_strategy(client):
    response = client.post("/api/sync/webhook/disable")
    assert response.status_code == 400


def test_webhook_toggle(client):
    transport = httpx.MockTransport(lambda request: httpx.Response(200))
    dispatcher = WebhookDispatcher(
        httpx.AsyncClient(transport=transport), "https://hooks.example.com/x"
    )
    _use_strategy(client, WebhookStrategy(dispatcher))

    response = client.post("/api/sync/webhook/disable")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "webhook_enabled": False}
    assert dispatcher.enabled is False

    result = client.post("/api/sync/events/created", json=EVENT_BODY).json()
    assert result == {"success": False, "remote_object_id": None, "error": "webhook disabled"}

    client.post("/api/sync/webhook/enable")
    assert dispatcher.enabled is True

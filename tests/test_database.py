"""Tests for database module."""

import pytest

from eventsync.database import get_database, get_setting, set_setting


@pytest.mark.asyncio
async def test_database_connection(test_db):
    """Test database connection."""
    db = await get_database()
    assert db is not None

    cursor = await db.execute("SELECT 1")
    result = await cursor.fetchone()
    assert result[0] == 1


@pytest.mark.asyncio
async def test_schema_tables_exist(test_db):
    """Test that all required tables exist."""
    db = await get_database()

    for table in ["settings", "sync_mappings", "sync_log"]:
        cursor = await db.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table,)
        )
        result = await cursor.fetchone()
        assert result is not None, f"Table {table} does not exist"


@pytest.mark.asyncio
async def test_sync_mappings_columns(test_db):
    """The mapping table holds exactly the mapping fields."""
    db = await get_database()
    cursor = await db.execute("PRAGMA table_info(sync_mappings)")
    columns = {row["name"] for row in await cursor.fetchall()}

    assert columns == {
        "local_event_id",
        "remote_object_id",
        "status",
        "last_attempt_at",
        "last_error",
    }


@pytest.mark.asyncio
async def test_settings(test_db):
    """Test settings get/set."""
    result = await get_setting("test_key")
    assert result is None

    await set_setting("test_key", "test_value")

    result = await get_setting("test_key")
    assert result is not None
    assert result["value"] == "test_value"


@pytest.mark.asyncio
async def test_settings_update(test_db):
    """Test updating a setting."""
    await set_setting("webhook_enabled", "true")

    result = await get_setting("webhook_enabled")
    assert result["value"] == "true"

    await set_setting("webhook_enabled", "false")

    result = await get_setting("webhook_enabled")
    assert result["value"] == "false"

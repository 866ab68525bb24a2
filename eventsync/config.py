"""Application configuration management."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


# Human-readable names used when reporting missing configuration
_CATEGORY_LABELS = {
    "onboarding": "Onboarding Calendar ID",
    "handover": "Handover Calendar ID",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_path: str = "/data/event-sync.db"

    # Server
    public_url: str = "http://localhost:3000"
    log_level: str = "info"

    # Rate limiting
    rate_limit_per_minute: int = 60

    # Strategy selection: "api" (direct REST calls) or "webhook"
    sync_strategy: str = "api"

    # Remote platform (direct-API strategy)
    remote_api_base_url: str = "https://services.leadconnectorhq.com"
    remote_api_version: str = "2021-07-28"
    remote_api_key: Optional[str] = None
    remote_location_id: Optional[str] = None
    event_categories: list[str] = ["onboarding", "handover"]
    calendar_ids: dict[str, str] = {}

    # Webhook strategy
    webhook_url: Optional[str] = None
    webhook_enabled: bool = True

    # Outbound HTTP
    request_timeout_seconds: float = 15.0

    # Retention settings (days)
    sync_log_retention_days: int = 90

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def category_label(category: str) -> str:
    """Display name of the calendar-id setting for an event category."""
    return _CATEGORY_LABELS.get(category, f"{category.capitalize()} Calendar ID")


def get_missing_settings(settings: Settings) -> list[str]:
    """
    List the settings required by the selected strategy that are not set.

    Direct-API sync needs credentials, a location and a calendar for every
    category. Webhook sync needs only the webhook URL.
    """
    missing: list[str] = []
    strategy = (settings.sync_strategy or "").strip().lower()

    if strategy == "webhook":
        if not settings.webhook_url:
            missing.append("Webhook URL")
        return missing

    if strategy != "api":
        return [f"Valid sync strategy (got '{settings.sync_strategy}')"]

    if not settings.remote_api_key:
        missing.append("API Key")
    if not settings.remote_location_id:
        missing.append("Location ID")
    for category in settings.event_categories:
        if not settings.calendar_ids.get(category):
            missing.append(category_label(category))
    return missing

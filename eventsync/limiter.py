"""Shared request rate limiter."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from eventsync.config import get_settings

limiter = Limiter(key_func=get_remote_address)


def trigger_rate_limit() -> str:
    """Limit applied to endpoints that trigger outbound sync calls."""
    return f"{get_settings().rate_limit_per_minute}/minute"

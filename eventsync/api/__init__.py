"""API endpoints module."""

from fastapi import APIRouter

from eventsync.api.sync import router as sync_router

api_router = APIRouter(prefix="/api")

api_router.include_router(sync_router)

__all__ = ["api_router"]

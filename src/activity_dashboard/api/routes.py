"""Main API routes for Activity Dashboard."""

from fastapi import APIRouter

from .admin_activity import router as admin_activity_router
from .events import router as events_router

# Main API router
router = APIRouter()

# Include sub-routers
router.include_router(admin_activity_router, prefix="/admin", tags=["admin"])
router.include_router(events_router, tags=["events"])

"""
API v1 router.

Mounted by the application under ``API_V1_STR``.
"""

from fastapi import APIRouter

from .endpoints import (
    files,
    settings,
    analytics,
    health,
)

# Create the main API router
api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(files.router, prefix="/files", tags=["files"])
api_router.include_router(settings.router, prefix="/settings", tags=["settings"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])

__all__ = ["api_router"]

"""Per-owner settings endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.dependencies import get_current_owner_id
from schemas.settings import UserSettingsResponse, UserSettingsUpdate
from services.settings_service import SettingsService

router = APIRouter()


@router.get("", response_model=UserSettingsResponse)
async def get_settings(
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    """Get the owner's settings, creating defaults on first access."""
    return await SettingsService(db).get_or_create(owner_id)


@router.patch("", response_model=UserSettingsResponse)
async def update_settings(
    update: UserSettingsUpdate,
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    """
    Update settings.

    - **webhook_url**: must be a well-formed http(s) URL
    - **processing_timeout**: minutes, 1-30
    - **polling_interval**: seconds, 1-10
    """
    return await SettingsService(db).update(owner_id, update)

"""Service for per-owner processing settings."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_cached_settings
from models.user_settings import UserSettings
from schemas.settings import UserSettingsUpdate

logger = logging.getLogger(__name__)


class SettingsService:
    """Reads and updates owner settings, creating defaults on first access."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_or_create(self, owner_id: str) -> UserSettings:
        result = await self.db.execute(
            select(UserSettings).where(UserSettings.owner_id == owner_id)
        )
        settings = result.scalar_one_or_none()
        if settings is not None:
            return settings

        settings = UserSettings(
            owner_id=owner_id,
            webhook_url=get_cached_settings().DEFAULT_WEBHOOK_URL,
            processing_timeout=5,
            polling_interval=2,
            auto_approve=False,
            enable_webhook=True,
            enable_archive=True,
        )
        self.db.add(settings)
        await self.db.commit()
        await self.db.refresh(settings)
        logger.info(f"Created default settings for owner {owner_id}")
        return settings

    async def update(self, owner_id: str, data: UserSettingsUpdate) -> UserSettings:
        settings = await self.get_or_create(owner_id)

        update_data = data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if field == "webhook_url":
                if value is None:
                    continue
                value = str(value)  # Convert HttpUrl to string
            elif value is None and field != "archive_folder_id":
                continue
            setattr(settings, field, value)

        await self.db.commit()
        await self.db.refresh(settings)
        logger.info(f"Updated settings for owner {owner_id}: {sorted(update_data)}")
        return settings

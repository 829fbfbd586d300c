"""Per-owner settings schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl


class UserSettingsResponse(BaseModel):
    """Settings as stored."""
    model_config = ConfigDict(from_attributes=True)

    owner_id: str
    webhook_url: str
    processing_timeout: int
    polling_interval: int
    auto_approve: bool
    enable_webhook: bool
    enable_archive: bool
    archive_folder_id: Optional[str] = None
    updated_at: datetime


class UserSettingsUpdate(BaseModel):
    """Partial settings update; omitted fields are left unchanged."""
    webhook_url: Optional[HttpUrl] = Field(None, description="Extraction webhook endpoint")
    processing_timeout: Optional[int] = Field(None, ge=1, le=30, description="Minutes")
    polling_interval: Optional[int] = Field(None, ge=1, le=10, description="Seconds")
    auto_approve: Optional[bool] = None
    enable_webhook: Optional[bool] = None
    enable_archive: Optional[bool] = None
    archive_folder_id: Optional[str] = Field(None, max_length=255)

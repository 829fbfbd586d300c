"""Per-owner processing settings."""

from sqlalchemy import Column, String, Integer, Boolean

from .base import Base, TimestampMixin


class UserSettings(TimestampMixin, Base):
    """Webhook, polling and archive configuration for one owner."""
    __tablename__ = "user_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(String(36), nullable=False, unique=True, index=True)

    webhook_url = Column(String(2048), nullable=False)
    processing_timeout = Column(Integer, nullable=False, default=5)  # minutes
    polling_interval = Column(Integer, nullable=False, default=2)  # seconds
    auto_approve = Column(Boolean, nullable=False, default=False)
    enable_webhook = Column(Boolean, nullable=False, default=True)
    enable_archive = Column(Boolean, nullable=False, default=True)
    archive_folder_id = Column(String(255), nullable=True)

    def __repr__(self):
        return f"<UserSettings owner={self.owner_id} webhook={self.webhook_url}>"

"""Database models for DocGrid."""

from .base import Base
from .file_record import FileRecord, FileStatus
from .user_settings import UserSettings

__all__ = [
    "Base",
    "FileRecord",
    "FileStatus",
    "UserSettings",
]

"""Core functionality for DocGrid."""

from .config import get_settings, get_cached_settings
from .database import get_db, get_session_maker
from .dependencies import get_current_owner_id

__all__ = [
    "get_settings",
    "get_cached_settings",
    "get_db",
    "get_session_maker",
    "get_current_owner_id",
]

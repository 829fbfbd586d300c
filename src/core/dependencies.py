"""Common dependencies for FastAPI endpoints."""

from typing import Optional
from fastapi import Header

from .config import get_cached_settings


async def get_current_owner_id(
    x_user_id: Optional[str] = Header(default=None),
) -> str:
    """
    Resolve the owner of the request.

    Authentication is handled in front of this service; the authenticated
    user id is forwarded in the ``X-User-Id`` header. Requests without it
    act as the configured default owner.
    """
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()
    return get_cached_settings().DEFAULT_OWNER_ID

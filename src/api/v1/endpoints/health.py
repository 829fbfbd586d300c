"""Health check endpoint.

Reports whether the database answers and whether uploads can be stored.
"""

import logging
import os

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text

from core.database import get_db
from core.config import get_cached_settings
from schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _upload_storage_status(upload_dir: str) -> str:
    if not os.path.isdir(upload_dir):
        return "missing"
    if not os.access(upload_dir, os.W_OK):
        return "read_only"
    return "ok"


@router.get("/health", response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """Check the database and the upload directory."""
    settings = get_cached_settings()
    services = {"api": "ok"}

    try:
        await db.execute(text("SELECT 1"))
        services["database"] = "ok"
    except Exception as e:
        logger.error(f"Health check database query failed: {e}")
        services["database"] = "error"

    services["upload_storage"] = _upload_storage_status(settings.UPLOAD_DIR)

    return HealthResponse(
        status="ok" if all(v == "ok" for v in services.values()) else "degraded",
        version=settings.VERSION,
        services=services,
    )

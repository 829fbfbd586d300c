"""Review analytics endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.dependencies import get_current_owner_id
from schemas.analytics import AnalyticsResponse
from services.analytics_service import AnalyticsService

router = APIRouter()


@router.get("", response_model=AnalyticsResponse)
async def get_analytics(
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    """Totals, approval breakdown and the last six months of uploads."""
    return await AnalyticsService(db).summary(owner_id)

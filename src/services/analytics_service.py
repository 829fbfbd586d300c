"""Review statistics computed from an owner's file records."""

import calendar
import logging
from datetime import datetime
from typing import List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.ext.asyncio import AsyncSession

from models.base import utcnow
from models.file_record import FileRecord, FileStatus
from schemas.analytics import AnalyticsResponse, MonthlyCount
from services.file_repository import SQLAlchemyFileRepository

logger = logging.getLogger(__name__)

MONTHS_SHOWN = 6


class AnalyticsService:
    """Aggregates totals and a six month volume histogram per owner."""

    def __init__(self, db: AsyncSession):
        self.repository = SQLAlchemyFileRepository(db)

    async def summary(self, owner_id: str, now: Optional[datetime] = None) -> AnalyticsResponse:
        files = await self.repository.list_for_owner(owner_id)
        now = now or utcnow()

        total = len(files)
        completed = [f for f in files if f.status == FileStatus.COMPLETE.value]
        approved = sum(1 for f in files if f.is_approved)
        modified = sum(1 for f in files if f.edited_table_data is not None)
        approved_without_changes = max(0, approved - modified)

        accuracy = 0
        if completed:
            accuracy = round(approved_without_changes / len(completed) * 100)

        return AnalyticsResponse(
            total_files=total,
            approved_without_changes=approved_without_changes,
            modified_before_approval=modified,
            monthly_data=self._monthly_counts(files, now),
            processing_accuracy=accuracy,
            avg_processing_time=self._average_processing_time(completed),
        )

    def _monthly_counts(self, files: List[FileRecord], now: datetime) -> List[MonthlyCount]:
        total = len(files)
        counts = []
        for offset in range(MONTHS_SHOWN - 1, -1, -1):
            period = now.replace(day=1) - relativedelta(months=offset)
            count = sum(
                1 for f in files
                if (f.created_at.year, f.created_at.month) == (period.year, period.month)
            )
            counts.append(
                MonthlyCount(
                    month=calendar.month_abbr[period.month],
                    files=count,
                    # Bar height, scaled so one month holding every file caps at 100
                    value=min(100.0, count / max(1, total) * 100 * MONTHS_SHOWN),
                )
            )
        return counts

    def _average_processing_time(self, completed: List[FileRecord]) -> Optional[str]:
        if not completed:
            return None
        seconds = sum(
            (f.updated_at - f.created_at).total_seconds() for f in completed
        ) / len(completed)
        return f"{seconds / 60:.1f} minutes"

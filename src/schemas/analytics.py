"""Analytics schemas."""

from typing import List, Optional

from pydantic import BaseModel


class MonthlyCount(BaseModel):
    month: str
    files: int
    value: float


class AnalyticsResponse(BaseModel):
    """Review statistics for one owner."""
    total_files: int
    approved_without_changes: int
    modified_before_approval: int
    monthly_data: List[MonthlyCount]
    processing_accuracy: int
    avg_processing_time: Optional[str] = None

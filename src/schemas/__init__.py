"""Pydantic schemas for request/response validation."""

from .common import ErrorResponse, HealthResponse
from .file_record import (
    FileRecordResponse,
    FileListResponse,
    TableUpdate,
    CellUpdate,
    InsertRequest,
    ReviewTableResponse,
    ApprovalRequest,
)
from .settings import UserSettingsResponse, UserSettingsUpdate
from .analytics import AnalyticsResponse, MonthlyCount

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "FileRecordResponse",
    "FileListResponse",
    "TableUpdate",
    "CellUpdate",
    "InsertRequest",
    "ReviewTableResponse",
    "ApprovalRequest",
    "UserSettingsResponse",
    "UserSettingsUpdate",
    "AnalyticsResponse",
    "MonthlyCount",
]

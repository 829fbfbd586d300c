"""Schemas for uploaded files and their extracted tables."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FileRecordResponse(BaseModel):
    """Full file record as seen by the review UI."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: str
    original_name: str
    stored_name: str
    content_type: str
    file_size: int
    status: str
    progress: int
    webhook_url: Optional[str] = None
    table_data: Optional[List[List[str]]] = None
    edited_table_data: Optional[List[List[str]]] = None
    is_approved: bool
    archive_id: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: datetime


class FileListResponse(BaseModel):
    """Response for listing files."""
    files: List[FileRecordResponse]
    total: int


class TableUpdate(BaseModel):
    """Full-table replace sent by the review grid."""
    table_data: List[List[str]] = Field(..., description="Rows of cells, row 0 holds the headers")
    expected_version: Optional[int] = Field(
        None, description="Version the client last read; omit for last-write-wins"
    )

    @field_validator("table_data")
    @classmethod
    def validate_table(cls, v):
        """Reject tables without a header row."""
        if not v or not v[0]:
            raise ValueError("table_data must contain a non-empty header row")
        return v


class CellUpdate(BaseModel):
    """Single-cell edit from the review grid."""
    row: int = Field(..., ge=0)
    col: int = Field(..., ge=0)
    value: str
    expected_version: Optional[int] = None


class InsertRequest(BaseModel):
    """Insert a blank row or column; appended when position is omitted."""
    position: Optional[int] = Field(None, ge=0)
    expected_version: Optional[int] = None


class ReviewTableResponse(BaseModel):
    """Table after an edit, with the cells this request changed."""
    file: FileRecordResponse
    dirty_cells: List[List[int]] = Field(default_factory=list)


class ApprovalRequest(BaseModel):
    """Optional body for approving a file."""
    expected_version: Optional[int] = None

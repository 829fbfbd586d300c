"""FileRecord model for uploaded documents and their extracted tables."""

import enum

from sqlalchemy import Column, String, Integer, Boolean, JSON

from .base import Base, TimestampMixin


class FileStatus(str, enum.Enum):
    """Processing stages a FileRecord moves through, in order."""
    UPLOADING = "uploading"
    PROCESSING = "processing"
    EXTRACTING = "extracting"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (FileStatus.COMPLETE, FileStatus.ERROR)


class FileRecord(TimestampMixin, Base):
    """One uploaded document and its processing/review state."""
    __tablename__ = "files"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(String(36), nullable=False, index=True)

    # File metadata
    original_name = Column(String(500), nullable=False)
    stored_name = Column(String(100), nullable=False, unique=True)
    content_type = Column(String(100), nullable=False)
    file_size = Column(Integer, nullable=False)  # bytes

    # Processing state
    status = Column(String(20), nullable=False, default=FileStatus.UPLOADING.value)
    progress = Column(Integer, nullable=False, default=0)
    webhook_url = Column(String(2048))

    # Extracted table, row 0 holds the headers
    table_data = Column(JSON, nullable=True)
    edited_table_data = Column(JSON, nullable=True)

    # Review
    is_approved = Column(Boolean, nullable=False, default=False)
    archive_id = Column(String(255), nullable=True)

    # Bumped on every write; stale writers are rejected
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<FileRecord {self.id} {self.original_name} ({self.status})>"

    @property
    def file_status(self) -> FileStatus:
        return FileStatus(self.status)

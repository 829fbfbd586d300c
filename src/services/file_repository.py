"""Storage access for FileRecords."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from core.exceptions import ConflictError, NotFoundError
from models.file_record import FileRecord, FileStatus

logger = logging.getLogger(__name__)


class FileRepository(ABC):
    """get/list/create/update/delete by id.

    Every update bumps the record's version. Callers that pass
    ``expected_version`` get a ``ConflictError`` when the stored version has
    moved on since they read it.
    """

    @abstractmethod
    async def get(self, file_id: int) -> Optional[FileRecord]:
        ...

    @abstractmethod
    async def list_for_owner(self, owner_id: str) -> List[FileRecord]:
        ...

    @abstractmethod
    async def create(self, **fields: Any) -> FileRecord:
        ...

    @abstractmethod
    async def update(
        self,
        file_id: int,
        changes: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> FileRecord:
        ...

    @abstractmethod
    async def delete(self, file_id: int) -> bool:
        ...

    async def get_for_owner(self, file_id: int, owner_id: str) -> FileRecord:
        """Fetch a record, hiding other owners' files behind a not-found."""
        record = await self.get(file_id)
        if record is None or record.owner_id != owner_id:
            raise NotFoundError("File not found", {"file_id": file_id})
        return record


class SQLAlchemyFileRepository(FileRepository):
    """FileRepository backed by an async SQLAlchemy session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, file_id: int) -> Optional[FileRecord]:
        return await self.db.get(FileRecord, file_id, populate_existing=True)

    async def list_for_owner(self, owner_id: str) -> List[FileRecord]:
        result = await self.db.execute(
            select(FileRecord)
            .where(FileRecord.owner_id == owner_id)
            .order_by(FileRecord.created_at.desc(), FileRecord.id.desc())
        )
        return list(result.scalars().all())

    async def create(self, **fields: Any) -> FileRecord:
        fields.setdefault("status", FileStatus.UPLOADING.value)
        fields.setdefault("progress", 0)
        record = FileRecord(**fields)
        self.db.add(record)
        await self.db.commit()
        await self.db.refresh(record)
        logger.info(f"Created file record {record.id} for {record.original_name}")
        return record

    async def update(
        self,
        file_id: int,
        changes: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> FileRecord:
        record = await self.get(file_id)
        if record is None:
            raise NotFoundError("File not found", {"file_id": file_id})

        if expected_version is not None and record.version != expected_version:
            raise ConflictError(
                "File was modified by another writer",
                {"file_id": file_id, "expected_version": expected_version,
                 "current_version": record.version},
            )

        for field, value in changes.items():
            setattr(record, field, value)

        try:
            await self.db.commit()
        except StaleDataError as e:
            await self.db.rollback()
            raise ConflictError(
                "File was modified by another writer", {"file_id": file_id}
            ) from e
        return record

    async def delete(self, file_id: int) -> bool:
        record = await self.get(file_id)
        if record is None:
            return False
        await self.db.delete(record)
        await self.db.commit()
        return True

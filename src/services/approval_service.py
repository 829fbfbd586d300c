"""Approval of reviewed files."""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from models.file_record import FileRecord
from services.archive_client import ArchiveClient
from services.file_repository import SQLAlchemyFileRepository
from services.settings_service import SettingsService

logger = logging.getLogger(__name__)


class ApprovalService:
    """Marks files approved and archives them when the owner enabled it.

    Approval is not gated on the processing status.
    """

    def __init__(self, db: AsyncSession, archive_client: Optional[ArchiveClient] = None):
        self.db = db
        self.repository = SQLAlchemyFileRepository(db)
        self.archive_client = archive_client or ArchiveClient()

    async def approve(
        self,
        owner_id: str,
        file_id: int,
        expected_version: Optional[int] = None,
    ) -> FileRecord:
        record = await self.repository.get_for_owner(file_id, owner_id)
        settings = await SettingsService(self.db).get_or_create(owner_id)

        changes = {"is_approved": True}
        if settings.enable_archive:
            changes["archive_id"] = await self.archive_client.upload(
                record, settings.archive_folder_id
            )

        record = await self.repository.update(
            file_id, changes, expected_version=expected_version
        )
        logger.info(f"File {file_id} approved by owner {owner_id}")
        return record

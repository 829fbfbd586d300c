"""Cloud archive client for approved files.

Mock implementation: no network I/O, returns a Drive-style file id.
"""

import logging
import time
from typing import Optional

from models.file_record import FileRecord

logger = logging.getLogger(__name__)


class ArchiveClient:
    """Uploads approved documents to the archive folder."""

    async def upload(self, record: FileRecord, folder_id: Optional[str] = None) -> str:
        archive_id = f"drive_{int(time.time() * 1000)}"
        logger.info(
            f"Archived file {record.id} ({record.original_name}) "
            f"to folder {folder_id or 'root'} as {archive_id}"
        )
        return archive_id

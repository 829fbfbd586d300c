"""File lifecycle state machine.

Drives one upload through

    uploading (0 -> 25) -> processing (50) -> extracting (75) -> complete (100)
                                                               \\-> error (100)

``error`` is reachable from every in-flight stage. Each transition is
committed on its own so pollers observe progress as it happens, and the
pipeline always ends in ``complete`` or ``error``: failures are recorded as a
diagnostic table instead of being raised.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.config import get_cached_settings
from core.database import get_session_maker
from core.exceptions import (
    ConflictError,
    NormalizationError,
    NotFoundError,
    WebhookTimeoutError,
    WebhookTransportError,
)
from models.file_record import FileRecord, FileStatus
from services.approval_service import ApprovalService
from services.diagnostics import (
    TIMEOUT_MESSAGE,
    extraction_failed_table,
    format_timeout,
    transport_failure_table,
)
from services.extraction_webhook import ExtractionWebhookClient, WebhookPayload
from services.file_repository import SQLAlchemyFileRepository
from services.settings_service import SettingsService
from services.table_normalizer import normalize_response, rectangularize

logger = logging.getLogger(__name__)

STAGE_PROGRESS = {
    FileStatus.UPLOADING: 0,
    FileStatus.PROCESSING: 50,
    FileStatus.EXTRACTING: 75,
    FileStatus.COMPLETE: 100,
    FileStatus.ERROR: 100,
}

# Progress reported once background processing has picked the file up
DISPATCH_PROGRESS = 25

_FORWARD_ORDER = [
    FileStatus.UPLOADING,
    FileStatus.PROCESSING,
    FileStatus.EXTRACTING,
    FileStatus.COMPLETE,
]


def can_transition(current: FileStatus, target: FileStatus) -> bool:
    """Forward moves only; terminal states accept nothing further."""
    if current.is_terminal:
        return False
    if target is FileStatus.ERROR:
        return True
    return _FORWARD_ORDER.index(target) >= _FORWARD_ORDER.index(current)


class FileLifecycle:
    """Runs the extraction pipeline for uploaded files."""

    def __init__(
        self,
        session_factory=None,
        webhook_client: Optional[ExtractionWebhookClient] = None,
        upload_dir: Optional[str] = None,
        max_conflict_retries: int = 3,
    ):
        self.session_factory = session_factory or get_session_maker()
        self.webhook_client = webhook_client
        self.upload_dir = Path(upload_dir or get_cached_settings().UPLOAD_DIR)
        self.max_conflict_retries = max_conflict_retries

    async def process(self, file_id: int) -> FileStatus:
        """Send the stored document to its webhook and record the outcome."""
        try:
            return await self._run(file_id)
        except NotFoundError:
            logger.warning(f"File {file_id} disappeared during processing")
            return FileStatus.ERROR
        except Exception as e:
            logger.exception(f"Unexpected error while processing file {file_id}")
            return await self._record_unexpected_failure(file_id, e)

    async def _run(self, file_id: int) -> FileStatus:
        record = await self._load(file_id)
        if record.file_status.is_terminal:
            logger.warning(f"File {file_id} already {record.status}, not reprocessing")
            return record.file_status

        original_name = record.original_name
        webhook_url = record.webhook_url or ""

        await self.transition(file_id, FileStatus.UPLOADING, DISPATCH_PROGRESS)
        payload = WebhookPayload(
            file_id=record.id,
            original_name=original_name,
            content_type=record.content_type,
            content=(self.upload_dir / record.stored_name).read_bytes(),
        )

        await self.transition(file_id, FileStatus.PROCESSING)
        try:
            result = await self._send(webhook_url, payload)
        except WebhookTimeoutError as e:
            message = TIMEOUT_MESSAGE.format(minutes=format_timeout(e.timeout_seconds))
            return await self._fail_transport(file_id, e.kind, message, original_name, webhook_url)
        except WebhookTransportError as e:
            return await self._fail_transport(file_id, e.kind, str(e), original_name, webhook_url)

        # The body is read even for error statuses, for the diagnostics
        await self.transition(file_id, FileStatus.EXTRACTING)

        if not result.ok:
            message = f"Webhook returned HTTP {result.status_code} {result.reason}".strip()
            if result.body:
                message = f"{message}: {result.body[:200]}"
            return await self._fail_transport(file_id, "HTTP error", message, original_name, webhook_url)

        try:
            table = normalize_response(result.body)
        except NormalizationError as e:
            logger.warning(f"No usable table in webhook response for {original_name}: {e}")
            return await self.transition(
                file_id, FileStatus.ERROR, table_data=extraction_failed_table()
            )

        table = rectangularize(table)
        logger.info(
            f"Extracted {len(table)} rows x {len(table[0])} columns from {original_name}"
        )
        status = await self.transition(file_id, FileStatus.COMPLETE, table_data=table)
        if status is FileStatus.COMPLETE:
            await self._auto_approve(file_id)
        return status

    async def _send(self, url: str, payload: WebhookPayload):
        if self.webhook_client is not None:
            return await self.webhook_client.send(url, payload)
        async with ExtractionWebhookClient() as client:
            return await client.send(url, payload)

    async def _load(self, file_id: int) -> FileRecord:
        async with self.session_factory() as db:
            record = await SQLAlchemyFileRepository(db).get(file_id)
        if record is None:
            raise NotFoundError("File not found", {"file_id": file_id})
        return record

    async def transition(
        self,
        file_id: int,
        status: FileStatus,
        progress: Optional[int] = None,
        table_data: Optional[List[List[str]]] = None,
    ) -> FileStatus:
        """Persist one stage change.

        Backwards moves and moves out of a terminal state are ignored and the
        current status is returned. Version conflicts with concurrent writers
        are retried against a fresh read.
        """
        if progress is None:
            progress = STAGE_PROGRESS[status]

        for attempt in range(1, self.max_conflict_retries + 1):
            async with self.session_factory() as db:
                repository = SQLAlchemyFileRepository(db)
                record = await repository.get(file_id)
                if record is None:
                    raise NotFoundError("File not found", {"file_id": file_id})

                current = record.file_status
                if not can_transition(current, status) or progress < (record.progress or 0):
                    logger.warning(
                        f"Ignoring transition of file {file_id} "
                        f"from {current.value} ({record.progress}%) to {status.value} ({progress}%)"
                    )
                    return current

                changes: Dict[str, Any] = {"status": status.value, "progress": progress}
                if table_data is not None:
                    changes["table_data"] = table_data
                try:
                    await repository.update(file_id, changes, expected_version=record.version)
                except ConflictError:
                    logger.warning(
                        f"Version conflict on file {file_id} moving to {status.value} "
                        f"(attempt {attempt}/{self.max_conflict_retries})"
                    )
                    continue

            logger.info(f"File {file_id}: {status.value} ({progress}%)")
            return status

        raise ConflictError(
            "Could not record lifecycle transition", {"file_id": file_id, "status": status.value}
        )

    async def _fail_transport(
        self,
        file_id: int,
        error_kind: str,
        message: str,
        original_name: str,
        webhook_url: str,
    ) -> FileStatus:
        logger.warning(f"Processing failed for {original_name}: {error_kind} - {message}")
        return await self.transition(
            file_id,
            FileStatus.ERROR,
            table_data=transport_failure_table(error_kind, message, original_name, webhook_url),
        )

    async def _record_unexpected_failure(self, file_id: int, error: Exception) -> FileStatus:
        try:
            record = await self._load(file_id)
            return await self._fail_transport(
                file_id,
                "Processing failed",
                str(error) or error.__class__.__name__,
                record.original_name,
                record.webhook_url or "",
            )
        except Exception:
            logger.exception(f"Could not record failure for file {file_id}")
            return FileStatus.ERROR

    async def _auto_approve(self, file_id: int) -> None:
        try:
            async with self.session_factory() as db:
                record = await SQLAlchemyFileRepository(db).get(file_id)
                if record is None:
                    return
                settings = await SettingsService(db).get_or_create(record.owner_id)
                if not settings.auto_approve:
                    return
                await ApprovalService(db).approve(record.owner_id, file_id)
            logger.info(f"File {file_id} auto-approved")
        except Exception as e:
            logger.error(f"Auto-approval failed for file {file_id}: {e}")

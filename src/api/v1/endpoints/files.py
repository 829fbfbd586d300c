"""File upload, review and approval endpoints."""

import logging
import os
import re
import uuid
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, UploadFile
from fastapi.responses import FileResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_cached_settings
from core.database import get_db
from core.dependencies import get_current_owner_id
from core.exceptions import BaseAPIException
from schemas.common import ErrorResponse
from schemas.file_record import (
    ApprovalRequest,
    CellUpdate,
    FileListResponse,
    FileRecordResponse,
    InsertRequest,
    ReviewTableResponse,
    TableUpdate,
)
from services.approval_service import ApprovalService
from services.file_lifecycle import FileLifecycle
from services.file_repository import SQLAlchemyFileRepository
from services.review_session import ReviewSession
from services.settings_service import SettingsService
from services.table_export import export_filename, table_to_csv

logger = logging.getLogger(__name__)

router = APIRouter(
    responses={
        404: {"model": ErrorResponse, "description": "File not found"},
        409: {"model": ErrorResponse, "description": "Version conflict or file not editable"},
    }
)

MAX_FILENAME_LENGTH = 255


def _sanitize_filename(filename: str) -> str:
    """Strip path components and control characters from filename."""
    name = os.path.basename(filename.replace("\\", "/"))
    name = re.sub(r'[\x00-\x1f]', '', name)
    if len(name) > MAX_FILENAME_LENGTH:
        base, ext = os.path.splitext(name)
        name = base[:MAX_FILENAME_LENGTH - len(ext)] + ext
    return name or "unnamed"


def _http_error(e: BaseAPIException) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.message)


async def _process_upload(file_id: int) -> None:
    await FileLifecycle().process(file_id)


@router.post("/upload", response_model=FileRecordResponse, status_code=201)
async def upload_file(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    """Upload a document and queue it for table extraction.

    Unsupported extensions and oversized files are rejected before any
    record is created.
    """
    settings = get_cached_settings()
    safe_filename = _sanitize_filename(file.filename or "unnamed")

    extension = Path(safe_filename).suffix.lower()
    if extension not in settings.ALLOWED_EXTENSIONS:
        logger.warning(f"File upload rejected: unsupported extension '{extension}' from owner {owner_id}")
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {extension or 'none'}. "
                   f"Allowed: {', '.join(settings.ALLOWED_EXTENSIONS)}",
        )

    contents = await file.read()
    if len(contents) > settings.MAX_UPLOAD_SIZE:
        logger.warning(f"File upload rejected: too large ({len(contents)} bytes) from owner {owner_id}")
        raise HTTPException(
            status_code=400,
            detail=f"File too large. Max size: {settings.MAX_UPLOAD_SIZE // (1024 * 1024)} MB",
        )

    # Store file
    stored_name = f"{uuid.uuid4().hex}{extension}"
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    with open(os.path.join(settings.UPLOAD_DIR, stored_name), "wb") as f:
        f.write(contents)

    owner_settings = await SettingsService(db).get_or_create(owner_id)
    record = await SQLAlchemyFileRepository(db).create(
        owner_id=owner_id,
        original_name=safe_filename,
        stored_name=stored_name,
        content_type=file.content_type or "application/octet-stream",
        file_size=len(contents),
        webhook_url=owner_settings.webhook_url,
    )
    logger.info(
        f"File upload accepted: {safe_filename} ({record.content_type}, {len(contents)} bytes) "
        f"from owner {owner_id}"
    )

    if owner_settings.enable_webhook:
        background_tasks.add_task(_process_upload, record.id)
    else:
        logger.info(f"Webhook disabled for owner {owner_id}, file {record.id} left in uploading")

    return record


@router.get("", response_model=FileListResponse)
async def list_files(
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    """List the owner's files, newest first."""
    files = await SQLAlchemyFileRepository(db).list_for_owner(owner_id)
    return FileListResponse(files=files, total=len(files))


@router.get("/{file_id}", response_model=FileRecordResponse)
async def get_file(
    file_id: int,
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    """Get one file; this is what the review UI polls while processing."""
    try:
        return await SQLAlchemyFileRepository(db).get_for_owner(file_id, owner_id)
    except BaseAPIException as e:
        raise _http_error(e)


@router.patch("/{file_id}", response_model=FileRecordResponse)
async def update_table(
    file_id: int,
    update: TableUpdate,
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    """Replace the whole table.

    Written to both ``table_data`` and ``edited_table_data``. Without
    ``expected_version`` the last write wins.
    """
    session = ReviewSession(SQLAlchemyFileRepository(db), file_id, owner_id)
    try:
        await session.load(expected_version=update.expected_version)
        await session.replace_table(update.table_data)
    except BaseAPIException as e:
        raise _http_error(e)
    return session.record


@router.put("/{file_id}/cells", response_model=ReviewTableResponse)
async def update_cell(
    file_id: int,
    update: CellUpdate,
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    """Edit one cell. Writing the value already stored changes nothing."""
    session = ReviewSession(SQLAlchemyFileRepository(db), file_id, owner_id)
    try:
        await session.load(expected_version=update.expected_version)
        await session.set_cell(update.row, update.col, update.value)
    except BaseAPIException as e:
        raise _http_error(e)
    return _review_response(session)


@router.post("/{file_id}/rows", response_model=ReviewTableResponse)
async def insert_row(
    file_id: int,
    request: InsertRequest,
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    """Insert a blank row below the header."""
    session = ReviewSession(SQLAlchemyFileRepository(db), file_id, owner_id)
    try:
        await session.load(expected_version=request.expected_version)
        await session.insert_row(request.position)
    except BaseAPIException as e:
        raise _http_error(e)
    return _review_response(session)


@router.post("/{file_id}/columns", response_model=ReviewTableResponse)
async def insert_column(
    file_id: int,
    request: InsertRequest,
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    """Insert a column headed ``Column N``."""
    session = ReviewSession(SQLAlchemyFileRepository(db), file_id, owner_id)
    try:
        await session.load(expected_version=request.expected_version)
        await session.insert_column(request.position)
    except BaseAPIException as e:
        raise _http_error(e)
    return _review_response(session)


def _review_response(session: ReviewSession) -> ReviewTableResponse:
    return ReviewTableResponse(
        file=FileRecordResponse.model_validate(session.record),
        dirty_cells=[[row, col] for row, col in sorted(session.dirty_cells)],
    )


@router.post("/{file_id}/approve", response_model=FileRecordResponse)
async def approve_file(
    file_id: int,
    request: Optional[ApprovalRequest] = None,
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    """Approve a file, archiving it when the owner has archiving enabled."""
    expected_version = request.expected_version if request else None
    try:
        return await ApprovalService(db).approve(owner_id, file_id, expected_version)
    except BaseAPIException as e:
        raise _http_error(e)


@router.delete("/{file_id}", status_code=204)
async def delete_file(
    file_id: int,
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    """Delete a file record and its stored document."""
    repository = SQLAlchemyFileRepository(db)
    try:
        record = await repository.get_for_owner(file_id, owner_id)
    except BaseAPIException as e:
        raise _http_error(e)

    stored_path = Path(get_cached_settings().UPLOAD_DIR) / record.stored_name
    await repository.delete(file_id)
    stored_path.unlink(missing_ok=True)
    logger.info(f"Deleted file {file_id} ({record.original_name}) for owner {owner_id}")
    return Response(status_code=204)


@router.get("/{file_id}/content")
async def get_file_content(
    file_id: int,
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    """Stream the original document for the side-by-side view."""
    try:
        record = await SQLAlchemyFileRepository(db).get_for_owner(file_id, owner_id)
    except BaseAPIException as e:
        raise _http_error(e)

    stored_path = Path(get_cached_settings().UPLOAD_DIR) / record.stored_name
    if not stored_path.is_file():
        raise HTTPException(status_code=404, detail="Stored document not found")
    return FileResponse(
        stored_path,
        media_type=record.content_type,
        filename=record.original_name,
        content_disposition_type="inline",
    )


@router.get("/{file_id}/export.csv")
async def export_csv(
    file_id: int,
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    """Download the current table as CSV."""
    try:
        record = await SQLAlchemyFileRepository(db).get_for_owner(file_id, owner_id)
    except BaseAPIException as e:
        raise _http_error(e)

    if not record.table_data:
        raise HTTPException(status_code=409, detail="File has no table to export")

    filename = export_filename(record.original_name)
    if filename.isascii():
        disposition = f'attachment; filename="{filename}"'
    else:
        disposition = f"attachment; filename*=utf-8''{quote(filename)}"
    return Response(
        content=table_to_csv(record.table_data),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": disposition},
    )

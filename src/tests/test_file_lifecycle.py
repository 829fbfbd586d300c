"""Tests for the file lifecycle state machine."""

import asyncio
from pathlib import Path
from typing import List

import httpx
import pytest

import services.file_lifecycle as file_lifecycle
from core.exceptions import ConflictError
from models.file_record import FileRecord, FileStatus
from services.diagnostics import extraction_failed_table
from services.file_lifecycle import FileLifecycle, can_transition
from services.file_repository import SQLAlchemyFileRepository
from services.settings_service import SettingsService
from schemas.settings import UserSettingsUpdate


async def _reload(session_factory, file_id: int) -> FileRecord:
    async with session_factory() as session:
        return await SQLAlchemyFileRepository(session).get(file_id)


@pytest.fixture
def lifecycle_for(session_factory, webhook_factory, test_settings):
    def _build(handler, timeout_seconds: float = 5.0) -> FileLifecycle:
        return FileLifecycle(
            session_factory=session_factory,
            webhook_client=webhook_factory(handler, timeout_seconds=timeout_seconds),
            upload_dir=test_settings.UPLOAD_DIR,
        )
    return _build


class TestTransitions:
    """can_transition rules."""

    def test_forward_moves_allowed(self):
        assert can_transition(FileStatus.UPLOADING, FileStatus.PROCESSING)
        assert can_transition(FileStatus.PROCESSING, FileStatus.EXTRACTING)
        assert can_transition(FileStatus.EXTRACTING, FileStatus.COMPLETE)
        assert can_transition(FileStatus.UPLOADING, FileStatus.UPLOADING)

    def test_error_reachable_from_in_flight_states(self):
        for status in (FileStatus.UPLOADING, FileStatus.PROCESSING, FileStatus.EXTRACTING):
            assert can_transition(status, FileStatus.ERROR)

    def test_backward_moves_rejected(self):
        assert not can_transition(FileStatus.EXTRACTING, FileStatus.PROCESSING)
        assert not can_transition(FileStatus.PROCESSING, FileStatus.UPLOADING)

    def test_terminal_states_are_final(self):
        for terminal in (FileStatus.COMPLETE, FileStatus.ERROR):
            for target in FileStatus:
                assert not can_transition(terminal, target)


class TestProcess:
    """End-to-end processing against a mocked webhook."""

    @pytest.mark.asyncio
    async def test_table_response_completes(self, make_file, lifecycle_for, session_factory):
        record = await make_file(content=b"%PDF-1.4 invoice")
        received: List[bytes] = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(request.content)
            return httpx.Response(200, text='{"data": [["Item", "Qty"], ["Bolt"], ["Nut", 2, 9]]}')

        status = await lifecycle_for(handler).process(record.id)

        assert status is FileStatus.COMPLETE
        assert received == [b"%PDF-1.4 invoice"]
        stored = await _reload(session_factory, record.id)
        assert stored.status == "complete"
        assert stored.progress == 100
        assert stored.table_data == [["Item", "Qty"], ["Bolt", ""], ["Nut", "2"]]
        assert stored.edited_table_data is None
        assert stored.is_approved is False

    @pytest.mark.asyncio
    async def test_non_json_response_records_generic_diagnostic(
        self, make_file, lifecycle_for, session_factory
    ):
        record = await make_file()
        handler = lambda request: httpx.Response(200, text="<html>Workflow started</html>")

        status = await lifecycle_for(handler).process(record.id)

        assert status is FileStatus.ERROR
        stored = await _reload(session_factory, record.id)
        assert stored.status == "error"
        assert stored.progress == 100
        assert stored.table_data == extraction_failed_table()

    @pytest.mark.asyncio
    async def test_deeply_nested_response_records_generic_diagnostic(
        self, make_file, lifecycle_for, session_factory
    ):
        record = await make_file()
        body = "[" * 100000 + "]" * 100000
        handler = lambda request: httpx.Response(200, text=body)

        status = await lifecycle_for(handler).process(record.id)

        assert status is FileStatus.ERROR
        stored = await _reload(session_factory, record.id)
        assert stored.table_data == extraction_failed_table()

    @pytest.mark.asyncio
    async def test_timeout_records_transport_diagnostic(
        self, make_file, lifecycle_for, session_factory
    ):
        record = await make_file(original_name="slow scan.png")

        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(1)
            return httpx.Response(200, text="[]")

        status = await lifecycle_for(handler, timeout_seconds=0.05).process(record.id)

        assert status is FileStatus.ERROR
        stored = await _reload(session_factory, record.id)
        table = stored.table_data
        assert table[0] == ["Status", "Message"]
        assert table[1] == ["Error", "Timeout"]
        assert table[2][0] == "Message"
        assert "timed out" in table[2][1]
        assert table[3] == ["Filename", "slow scan.png"]
        assert table[4] == ["Webhook URL", record.webhook_url]
        assert table[5][0] == "Suggestion"
        assert all(len(row) == 2 for row in table)

    @pytest.mark.asyncio
    async def test_connection_failure_records_transport_diagnostic(
        self, make_file, lifecycle_for, session_factory
    ):
        record = await make_file()

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        status = await lifecycle_for(handler).process(record.id)

        assert status is FileStatus.ERROR
        stored = await _reload(session_factory, record.id)
        assert stored.table_data[1] == ["Error", "Transport failure"]
        assert "connection refused" in stored.table_data[2][1]

    @pytest.mark.asyncio
    async def test_error_status_records_http_diagnostic(
        self, make_file, lifecycle_for, session_factory
    ):
        record = await make_file()
        handler = lambda request: httpx.Response(502, text="bad gateway")

        status = await lifecycle_for(handler).process(record.id)

        assert status is FileStatus.ERROR
        stored = await _reload(session_factory, record.id)
        assert stored.table_data[1] == ["Error", "HTTP error"]
        assert "502" in stored.table_data[2][1]
        assert "bad gateway" in stored.table_data[2][1]

    @pytest.mark.asyncio
    async def test_progress_is_monotonic(self, make_file, session_factory, webhook_factory, test_settings):
        record = await make_file()
        observed = []

        class RecordingLifecycle(FileLifecycle):
            async def transition(self, file_id, status, progress=None, table_data=None):
                result = await super().transition(file_id, status, progress, table_data)
                stored = await _reload(self.session_factory, file_id)
                observed.append((stored.status, stored.progress))
                return result

        lifecycle = RecordingLifecycle(
            session_factory=session_factory,
            webhook_client=webhook_factory(lambda request: httpx.Response(200, text='[["A"]]')),
            upload_dir=test_settings.UPLOAD_DIR,
        )
        await lifecycle.process(record.id)

        assert observed == [
            ("uploading", 25),
            ("processing", 50),
            ("extracting", 75),
            ("complete", 100),
        ]
        progress = [p for _, p in observed]
        assert progress == sorted(progress)

    @pytest.mark.asyncio
    async def test_terminal_record_is_not_reprocessed(self, make_file, lifecycle_for, session_factory):
        record = await make_file(
            status=FileStatus.COMPLETE, progress=100, table_data=[["Done"]]
        )
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, text='[["Other"]]')

        status = await lifecycle_for(handler).process(record.id)

        assert status is FileStatus.COMPLETE
        assert calls == []
        stored = await _reload(session_factory, record.id)
        assert stored.table_data == [["Done"]]

    @pytest.mark.asyncio
    async def test_transition_out_of_terminal_state_is_ignored(
        self, make_file, lifecycle_for, session_factory
    ):
        record = await make_file(status=FileStatus.ERROR, progress=100, table_data=[["x"]])
        lifecycle = lifecycle_for(lambda request: httpx.Response(200))

        status = await lifecycle.transition(record.id, FileStatus.PROCESSING)

        assert status is FileStatus.ERROR
        stored = await _reload(session_factory, record.id)
        assert stored.status == "error"
        assert stored.version == record.version

    @pytest.mark.asyncio
    async def test_missing_stored_document_ends_in_error(
        self, make_file, lifecycle_for, session_factory, test_settings
    ):
        record = await make_file()
        (Path(test_settings.UPLOAD_DIR) / record.stored_name).unlink()

        status = await lifecycle_for(lambda request: httpx.Response(200)).process(record.id)

        assert status is FileStatus.ERROR
        stored = await _reload(session_factory, record.id)
        assert stored.progress == 100
        assert stored.table_data[1] == ["Error", "Processing failed"]

    @pytest.mark.asyncio
    async def test_auto_approve(self, make_file, lifecycle_for, session_factory):
        record = await make_file(owner_id="42")
        async with session_factory() as session:
            await SettingsService(session).update("42", UserSettingsUpdate(auto_approve=True))

        handler = lambda request: httpx.Response(200, text='[{"total": "12.00"}]')
        await lifecycle_for(handler).process(record.id)

        stored = await _reload(session_factory, record.id)
        assert stored.status == "complete"
        assert stored.is_approved is True
        assert stored.archive_id.startswith("drive_")


class TestVersionConflicts:
    """Lifecycle writes racing other writers."""

    @pytest.fixture
    def conflicts(self, monkeypatch):
        """Make the next N repository updates fail with a version conflict."""
        pending = {"count": 0}

        class ConflictingRepository(SQLAlchemyFileRepository):
            async def update(self, file_id, changes, expected_version=None):
                if pending["count"] > 0:
                    pending["count"] -= 1
                    raise ConflictError("File was modified by another writer", {"file_id": file_id})
                return await super().update(file_id, changes, expected_version)

        monkeypatch.setattr(file_lifecycle, "SQLAlchemyFileRepository", ConflictingRepository)
        return pending

    @pytest.mark.asyncio
    async def test_conflict_is_retried(self, make_file, lifecycle_for, session_factory, conflicts):
        record = await make_file()
        conflicts["count"] = 1

        status = await lifecycle_for(lambda request: httpx.Response(200, text='[["A"], ["1"]]')).process(record.id)

        assert status is FileStatus.COMPLETE
        assert conflicts["count"] == 0
        stored = await _reload(session_factory, record.id)
        assert stored.status == "complete"
        assert stored.progress == 100
        assert stored.table_data == [["A"], ["1"]]

    @pytest.mark.asyncio
    async def test_transition_gives_up_after_retries(self, make_file, lifecycle_for, session_factory, conflicts):
        record = await make_file()
        conflicts["count"] = 10
        lifecycle = lifecycle_for(lambda request: httpx.Response(200))

        with pytest.raises(ConflictError):
            await lifecycle.transition(record.id, FileStatus.PROCESSING)

        assert conflicts["count"] == 10 - lifecycle.max_conflict_retries
        stored = await _reload(session_factory, record.id)
        assert stored.status == "uploading"
        assert stored.version == record.version

    @pytest.mark.asyncio
    async def test_exhausted_retries_still_end_in_error(
        self, make_file, lifecycle_for, session_factory, conflicts
    ):
        record = await make_file()
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, text='[["A"]]')

        lifecycle = lifecycle_for(handler)
        conflicts["count"] = lifecycle.max_conflict_retries

        status = await lifecycle.process(record.id)

        assert status is FileStatus.ERROR
        assert calls == []
        stored = await _reload(session_factory, record.id)
        assert stored.status == "error"
        assert stored.progress == 100
        assert stored.table_data[1] == ["Error", "Processing failed"]

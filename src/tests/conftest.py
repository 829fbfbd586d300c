"""Pytest configuration for tests."""

import os
import sys
from pathlib import Path
from typing import AsyncGenerator, Callable, List, Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"

from core import config, database  # noqa: E402
from models.base import Base  # noqa: E402
from models.file_record import FileRecord, FileStatus  # noqa: E402
from services.extraction_webhook import ExtractionWebhookClient  # noqa: E402

WEBHOOK_URL = "http://n8n.test/webhook/extract"


@pytest.fixture(autouse=True)
def test_settings(tmp_path, monkeypatch):
    """Point uploads at a temp dir and rebuild the cached settings."""
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("DEFAULT_WEBHOOK_URL", WEBHOOK_URL)
    monkeypatch.setenv("USE_CREATE_ALL", "true")
    config.reset_settings_cache()
    settings = config.get_cached_settings()
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    yield settings
    config.reset_settings_cache()


@pytest.fixture
async def test_engine(test_settings):
    """In-memory SQLite shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    database.configure_engine(engine)
    yield engine
    await database.close_db()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_file(session_factory, test_settings) -> Callable:
    """Create a stored document plus its FileRecord."""
    counter = {"n": 0}

    async def _make(
        owner_id: str = "1",
        original_name: str = "invoice.pdf",
        content: bytes = b"%PDF-1.4 test",
        status: FileStatus = FileStatus.UPLOADING,
        progress: int = 0,
        table_data: Optional[List[List[str]]] = None,
        webhook_url: str = WEBHOOK_URL,
    ) -> FileRecord:
        counter["n"] += 1
        stored_name = f"stored-{counter['n']}.pdf"
        (Path(test_settings.UPLOAD_DIR) / stored_name).write_bytes(content)
        async with session_factory() as session:
            record = FileRecord(
                owner_id=owner_id,
                original_name=original_name,
                stored_name=stored_name,
                content_type="application/pdf",
                file_size=len(content),
                status=status.value,
                progress=progress,
                webhook_url=webhook_url,
                table_data=table_data,
            )
            session.add(record)
            await session.commit()
            await session.refresh(record)
            return record

    return _make


@pytest.fixture
def webhook_factory() -> Callable:
    """Build a webhook client whose HTTP calls go to a handler function."""

    def _factory(handler, timeout_seconds: float = 5.0) -> ExtractionWebhookClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return ExtractionWebhookClient(timeout_seconds=timeout_seconds, http_client=http_client)

    return _factory


@pytest.fixture
async def client(test_engine) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client talking to the app in-process."""
    from core.app import create_app

    app = create_app()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

"""Database configuration with async SQLAlchemy."""

from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
import logging

from .config import get_cached_settings

logger = logging.getLogger(__name__)


# Create engine and session maker lazily
_engine = None
_async_session_maker = None


def get_engine():
    """Get or create the async engine."""
    global _engine
    if _engine is None:
        settings = get_cached_settings()
        url = str(settings.DATABASE_URL)
        if url.startswith("sqlite"):
            # SQLite has no connection pool sizing
            _engine = create_async_engine(url, echo=False, future=True)
        else:
            _engine = create_async_engine(
                url,
                echo=False,
                future=True,
                pool_size=settings.MAX_CONNECTIONS_COUNT,
                max_overflow=10,
                pool_pre_ping=True,
                pool_recycle=300,
                pool_timeout=10,
            )
    return _engine


def get_session_maker():
    """Get or create the async session maker."""
    global _async_session_maker
    if _async_session_maker is None:
        _async_session_maker = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _async_session_maker


def configure_engine(engine) -> None:
    """Bind the module to an externally created engine (tests, scripts)."""
    global _engine, _async_session_maker
    _engine = engine
    _async_session_maker = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with get_session_maker()() as session:
        try:
            yield session
            # Don't auto-commit - let the service layer handle it
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """Initialize database.

    Tables are created directly only when USE_CREATE_ALL is set; otherwise
    the Alembic migrations under ``migrations/`` own the schema.
    """
    # Import all models here to ensure they're registered
    from models import FileRecord, UserSettings  # noqa
    from models.base import Base

    settings = get_cached_settings()
    if not settings.USE_CREATE_ALL:
        logger.info("Database initialization - relying on migrations")
        return

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


async def close_db() -> None:
    """Close database connections."""
    global _engine, _async_session_maker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _async_session_maker = None

"""Configuration management using Pydantic settings."""

from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
import os


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # API Settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "DocGrid"
    VERSION: str = "1.0.0"

    # CORS
    BACKEND_CORS_ORIGINS: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5000",
            "http://localhost:8000",
            "http://127.0.0.1:3000",
        ]
    )
    FRONTEND_URL: str = Field(default="http://localhost:3000")

    # Database
    # SQLite is only meant for local runs and tests; point this at
    # postgresql+asyncpg://... in any shared deployment.
    DATABASE_URL: str = Field(default="sqlite+aiosqlite:///./docgrid.db")
    MAX_CONNECTIONS_COUNT: int = Field(default=10)

    # Uploads
    UPLOAD_DIR: str = Field(default="/tmp/docgrid/uploads")
    MAX_UPLOAD_SIZE: int = Field(default=10 * 1024 * 1024)  # 10 MB
    ALLOWED_EXTENSIONS: List[str] = Field(
        default=[".pdf", ".doc", ".docx", ".png", ".jpg", ".jpeg"]
    )

    # Extraction webhook (n8n workflow)
    DEFAULT_WEBHOOK_URL: str = Field(
        default="http://localhost:5678/webhook/document-extraction"
    )
    WEBHOOK_TIMEOUT_SECONDS: float = Field(default=180.0)  # 3 minutes
    WEBHOOK_USER_AGENT: str = Field(default="DocGrid/1.0")

    # Owner used when no X-User-Id header is sent (auth lives upstream)
    DEFAULT_OWNER_ID: str = Field(default="1")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Environment settings
    ENVIRONMENT: str = Field(default="development")
    USE_CREATE_ALL: bool = Field(default=True)


def get_settings() -> Settings:
    """Get settings instance."""
    return Settings(ENVIRONMENT=os.getenv("ENVIRONMENT", "development"))


# Don't create a global instance - use get_settings() instead
# This ensures environment variables are loaded correctly
_settings = None

def get_cached_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = get_settings()
    return _settings


def reset_settings_cache() -> None:
    """Drop the cached settings so the next access re-reads the environment."""
    global _settings
    _settings = None

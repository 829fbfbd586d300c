"""Service layer for business logic."""

from .file_repository import FileRepository, SQLAlchemyFileRepository
from .table_normalizer import TableNormalizer, normalize_response, rectangularize
from .extraction_webhook import ExtractionWebhookClient, WebhookPayload, WebhookResult
from .file_lifecycle import FileLifecycle
from .review_session import ReviewSession
from .settings_service import SettingsService
from .approval_service import ApprovalService
from .archive_client import ArchiveClient
from .analytics_service import AnalyticsService

__all__ = [
    "FileRepository",
    "SQLAlchemyFileRepository",
    "TableNormalizer",
    "normalize_response",
    "rectangularize",
    "ExtractionWebhookClient",
    "WebhookPayload",
    "WebhookResult",
    "FileLifecycle",
    "ReviewSession",
    "SettingsService",
    "ApprovalService",
    "ArchiveClient",
    "AnalyticsService",
]

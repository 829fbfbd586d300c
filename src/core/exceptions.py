"""Custom exceptions for the application."""

from typing import Any, Dict, Optional


class BaseAPIException(Exception):
    """Base exception for all API exceptions."""

    def __init__(
        self,
        message: str = "An error occurred",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(BaseAPIException):
    """Raised when validation fails."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 422, details)


class NotFoundError(BaseAPIException):
    """Raised when a resource is not found."""

    def __init__(self, message: str = "Resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 404, details)


class ConflictError(BaseAPIException):
    """Raised when there's a conflict with existing data."""

    def __init__(self, message: str = "Conflict", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 409, details)


class BadRequestError(BaseAPIException):
    """Raised when the request is malformed."""

    def __init__(self, message: str = "Bad request", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 400, details)


class NormalizationError(Exception):
    """Raised when a webhook response cannot be turned into a table.

    Never surfaces through the API: the lifecycle turns it into an
    ``error`` record carrying a diagnostic table.
    """


class WebhookTransportError(Exception):
    """Raised when the extraction webhook could not be reached."""

    kind = "Transport failure"


class WebhookTimeoutError(WebhookTransportError):
    """Raised when the extraction webhook did not answer within the timeout."""

    kind = "Timeout"

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Webhook did not respond within {timeout_seconds:g} seconds")

"""Client for the external extraction webhook (n8n workflow).

One POST per upload carrying the raw file bytes. No retries: a call either
returns a response (any HTTP status) or raises a transport error.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional
from urllib.parse import quote

import httpx

from core.config import get_cached_settings
from core.exceptions import WebhookTimeoutError, WebhookTransportError

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class WebhookPayload:
    """The document handed to the extraction workflow."""
    file_id: int
    original_name: str
    content_type: Optional[str]
    content: bytes


@dataclass
class WebhookResult:
    """HTTP-level outcome of a webhook call."""
    status_code: int
    body: str
    reason: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def _encode_uri_component(value: str) -> str:
    return quote(value, safe="-_.!~*'()")


def _header_safe(value: str) -> str:
    """Header values must be ASCII; fall back to the percent-encoded form."""
    return value if value.isascii() else _encode_uri_component(value)


class ExtractionWebhookClient:
    """Sends documents to the extraction webhook."""

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        user_agent: Optional[str] = None,
    ):
        settings = get_cached_settings()
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None
            else settings.WEBHOOK_TIMEOUT_SECONDS
        )
        self.user_agent = user_agent or settings.WEBHOOK_USER_AGENT
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=self.timeout_seconds)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

    def build_headers(self, payload: WebhookPayload) -> Dict[str, str]:
        """Request headers; the filename is repeated under every name receivers look for."""
        content_type = payload.content_type or DEFAULT_CONTENT_TYPE
        filename = _header_safe(payload.original_name)
        return {
            "Content-Type": content_type,
            "Content-Length": str(len(payload.content)),
            "X-Original-Name": _encode_uri_component(payload.original_name),
            "X-Filename": filename,
            "X-File-Name": filename,
            "filename": filename,
            "original-filename": filename,
            "X-File-Type": content_type,
            "X-Request-ID": uuid.uuid4().hex,
            "X-File-ID": str(payload.file_id),
            "X-Timestamp": datetime.now(timezone.utc).isoformat(),
            "User-Agent": self.user_agent,
            "Accept": "application/json, text/plain, */*",
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "Pragma": "no-cache",
        }

    async def send(self, url: str, payload: WebhookPayload) -> WebhookResult:
        """POST the document to ``url``.

        Returns the response for any HTTP status. Raises
        ``WebhookTimeoutError`` when the whole exchange exceeds the timeout and
        ``WebhookTransportError`` when the request could not be completed.
        """
        headers = self.build_headers(payload)
        logger.info(
            f"Sending {payload.original_name} ({len(payload.content)} bytes) "
            f"to extraction webhook {url}"
        )

        try:
            response = await asyncio.wait_for(
                self.http_client.post(
                    url,
                    content=payload.content,
                    headers=headers,
                    timeout=self.timeout_seconds,
                ),
                timeout=self.timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning(f"Extraction webhook timed out after {self.timeout_seconds}s: {url}")
            raise WebhookTimeoutError(self.timeout_seconds) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Extraction webhook request failed: {e}")
            raise WebhookTransportError(str(e) or e.__class__.__name__) from e

        result = WebhookResult(
            status_code=response.status_code,
            body=response.text,
            reason=response.reason_phrase,
        )
        logger.info(
            f"Webhook response: {result.status_code} {result.reason} "
            f"({len(result.body)} chars)"
        )
        if result.status_code == 524:
            logger.warning("Webhook gateway timed out - the n8n workflow may be taking too long")
        return result

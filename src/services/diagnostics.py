"""Diagnostic tables shown to the reviewer in place of extracted data."""

from typing import List

Table = List[List[str]]

STATUS_HEADER = ["Status", "Message"]

TIMEOUT_MESSAGE = (
    "Processing timed out ({minutes}) - your n8n workflow may be taking too long"
)


def extraction_failed_table() -> Table:
    """The webhook answered, but nothing in the answer looked like a table."""
    return [
        list(STATUS_HEADER),
        ["Error", "Document processing failed"],
        ["Suggestion", "Please try uploading again or check document format"],
    ]


def format_timeout(seconds: float) -> str:
    if seconds % 60 == 0:
        minutes = int(seconds // 60)
        return f"{minutes} minute" + ("" if minutes == 1 else "s")
    return f"{seconds:g} seconds"


def transport_failure_table(
    error_kind: str,
    message: str,
    original_name: str,
    webhook_url: str,
) -> Table:
    """The webhook call itself failed (non-2xx, timeout or network error)."""
    return [
        list(STATUS_HEADER),
        ["Error", error_kind],
        ["Message", message],
        ["Filename", original_name],
        ["Webhook URL", webhook_url or ""],
        ["Suggestion", "Check your n8n workflow or try a smaller file"],
    ]

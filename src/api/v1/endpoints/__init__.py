"""API v1 endpoints.

This module exports all available endpoints to be included in the router.
"""

__all__ = [
    "files",
    "settings",
    "analytics",
    "health",
]

"""API version 1."""

from .router import api_router

__all__ = ["api_router"]

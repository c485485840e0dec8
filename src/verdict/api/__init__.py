"""HTTP API for the rating refresh service."""

from verdict.api.router import api_router

__all__ = ["api_router"]

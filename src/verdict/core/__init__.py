"""Core utilities: constants, logging, exceptions."""

from verdict.core.exceptions import VerdictError
from verdict.core.logging import get_logger, setup_logging

__all__ = [
    "VerdictError",
    "get_logger",
    "setup_logging",
]

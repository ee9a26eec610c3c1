"""Utility functions for central-publisher."""

from central_publisher.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]

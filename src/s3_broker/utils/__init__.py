"""Utility functions for the S3 Service Broker."""

from .context import (
    get_context_dict,
    get_correlation_id,
    with_correlation_id,
)
from .errors import sanitize_dict, sanitize_error_message, sanitize_exception

__all__ = [
    "get_correlation_id",
    "with_correlation_id",
    "get_context_dict",
    "sanitize_error_message",
    "sanitize_exception",
    "sanitize_dict",
]

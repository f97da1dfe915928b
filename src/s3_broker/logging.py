"""Structured logging configuration for the S3 Service Broker."""

import json
import logging
import sys
from typing import Any

from .constants import CONTROLLER, LOG_LEVELS
from .utils.context import get_context_dict


def setup_structured_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging."""
    logging.basicConfig(
        level=LOG_LEVELS.get(level.upper(), logging.INFO),
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    # botocore is chatty at DEBUG and echoes request parameters
    logging.getLogger("botocore").setLevel(logging.WARNING)


def log_broker_event(
    logger: logging.Logger,
    operation: str,
    instance_id: str,
    binding_id: str | None,
    event: str,
    reason: str,
    message: str,
    level: int = logging.INFO,
    **kwargs: Any,
) -> None:
    """Log a structured broker event."""
    log_data = {
        "controller": CONTROLLER,
        "operation": operation,
        "instance_id": instance_id,
        "event": event,
        "reason": reason,
        "message": message,
    }
    if binding_id:
        log_data["binding_id"] = binding_id
    log_data.update(get_context_dict(kwargs))
    logger.log(level, json.dumps(sanitize_secrets(log_data), default=str))


def sanitize_secrets(log_data: dict[str, Any]) -> dict[str, Any]:
    """Remove secret fields from log data."""
    secret_fields = {"secret_access_key", "secret_key", "session_token", "password", "client_secret", "uri"}
    sanitized = log_data.copy()
    for field in secret_fields:
        if field in sanitized:
            sanitized[field] = "***REDACTED***"
    return sanitized

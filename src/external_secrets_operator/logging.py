"""Structured logging configuration for the External Secrets Operator."""

import json
import logging
import os
import sys
from typing import Any

from .constants import CONTROLLER_NAME
from .utils.errors import sanitize_dict


def setup_structured_logging(level: str | None = None) -> None:
    """Configure structured JSON logging.

    The level comes from ``LOG_LEVEL`` when not given, defaulting to INFO.
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # botocore logs request bodies at DEBUG, which may carry secret values
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def log_resource_event(
    logger: logging.Logger,
    resource_kind: str,
    resource_name: str,
    namespace: str,
    uid: str,
    event: str,
    reason: str,
    message: str,
    controller: str = CONTROLLER_NAME,
    level: int = logging.INFO,
    **kwargs: Any,
) -> None:
    """Log a structured resource event as one JSON line."""
    log_data = {
        "controller": controller,
        "resource": resource_kind,
        "name": resource_name,
        "namespace": namespace,
        "uid": uid,
        "event": event,
        "reason": reason,
        "message": message,
    }
    log_data.update(sanitize_secrets(kwargs))
    logger.log(level, json.dumps(log_data, default=str))


def sanitize_secrets(log_data: dict[str, Any]) -> dict[str, Any]:
    """Redact secret-bearing fields from log data."""
    return sanitize_dict(log_data)

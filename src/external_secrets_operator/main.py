"""Main entry point for the External Secrets Operator."""

from __future__ import annotations

import logging
import os
from typing import Any

import kopf

from . import handlers  # noqa: F401
from . import health
from . import logging as structured_logging
from .config import OperatorConfig
from .handlers.external_secret import configure_handler
from .tracing import initialize_tracing
from .utils.errors import ConfigurationError

logger = logging.getLogger(__name__)


def load_config() -> OperatorConfig:
    """Read configuration from the environment, failing startup when it is malformed."""
    try:
        return OperatorConfig.from_env()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        raise kopf.PermanentError(f"Invalid configuration: {e}") from e


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the operator."""
    # Set up structured JSON logging
    structured_logging.setup_structured_logging()
    initialize_tracing()

    config = load_config()

    # Status is owned by the reconciler, keep kopf's bookkeeping in annotations
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()

    settings.posting.level = logging.WARNING
    settings.networking.request_timeout = 30.0
    settings.execution.max_workers = int(os.getenv("MAX_WORKERS", "4"))

    configure_handler(config)

    # Start metrics HTTP server with health check endpoints
    metrics_port = int(os.getenv("METRICS_PORT", "8080"))
    health.start_metrics_server(metrics_port)
    health.set_ready(True)

    logger.info(
        f"Operator configured: poll interval {config.poll_interval_millis}ms, "
        f"region {config.default_region}, metrics on :{metrics_port}"
    )


@kopf.on.cleanup()
def shutdown(**_: Any) -> None:
    health.set_ready(False)

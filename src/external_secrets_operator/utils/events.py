"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_POLICY_DENIED,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_SECRET_CREATED,
    EVENT_REASON_SECRET_UPDATED,
    EVENT_REASON_VALIDATE_FAILED,
)


def emit_event(
    body: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        body: Resource object the event refers to
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        body,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_failed(body: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(body, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_validate_failed(body: dict[str, Any], message: str) -> None:
    """Emit validation failed event."""
    emit_event(body, EVENT_REASON_VALIDATE_FAILED, message, type_="Warning")


def emit_policy_denied(body: dict[str, Any], message: str) -> None:
    """Emit policy denied event."""
    emit_event(body, EVENT_REASON_POLICY_DENIED, message, type_="Warning")


def emit_secret_created(body: dict[str, Any], secret_name: str) -> None:
    """Emit secret created event."""
    emit_event(body, EVENT_REASON_SECRET_CREATED, f"Secret {secret_name} created")


def emit_secret_updated(body: dict[str, Any], secret_name: str) -> None:
    """Emit secret updated event."""
    emit_event(body, EVENT_REASON_SECRET_UPDATED, f"Secret {secret_name} updated")

"""Namespace permission policy for role assumption and key names."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from ..constants import (
    ANNOTATION_PERMITTED_KEY_NAME,
    ANNOTATION_PERMITTED_ROLE,
    MESSAGE_KEY_NOT_PERMITTED,
    MESSAGE_ROLE_NOT_PERMITTED,
)
from ..models import SecretRequest
from ..utils.errors import PolicyDeniedError

logger = logging.getLogger(__name__)

UNRESTRICTED_PATTERNS = {"", ".*"}


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str] | None:
    try:
        return re.compile(pattern)
    except re.error:
        logger.warning(f"Namespace policy pattern is not a valid regular expression: {pattern!r}")
        return None


def _annotations(namespace: dict[str, Any] | None) -> dict[str, str]:
    if not namespace:
        return {}
    return (namespace.get("metadata") or {}).get("annotations") or {}


def _matches(pattern: str | None, value: str, full: bool = False) -> bool:
    if pattern is None or pattern.strip() in UNRESTRICTED_PATTERNS:
        return True
    compiled = _compile(pattern)
    # An unparsable pattern permits nothing
    if compiled is None:
        return False
    if full:
        return compiled.fullmatch(value) is not None
    return compiled.match(value) is not None


def is_permitted(namespace: dict[str, Any] | None, role_arn: str | None) -> bool:
    """Decide whether ``role_arn`` may be assumed in ``namespace``.

    The ``iam.amazonaws.com/permitted`` annotation holds a regular expression
    that must match the whole role ARN, so ``role/app`` does not permit
    ``role/app-admin``. A missing annotation, an empty one or ``.*`` permits
    every role. A request without a role is always permitted.

    Args:
        namespace: Namespace object (only ``metadata.annotations`` is read)
        role_arn: Requested role, or None

    Returns:
        True if the role may be assumed
    """
    if not role_arn:
        return True
    return _matches(_annotations(namespace).get(ANNOTATION_PERMITTED_ROLE), role_arn, full=True)


def is_key_permitted(namespace: dict[str, Any] | None, key: str) -> bool:
    """Decide whether a backend key or path may be read in ``namespace``.

    Unlike roles, key patterns only need to match from the start of the key,
    so ``/team-a/`` permits everything below that prefix.
    """
    return _matches(_annotations(namespace).get(ANNOTATION_PERMITTED_KEY_NAME), key)


@dataclass(frozen=True)
class PolicyDecision:
    allowed: bool
    message: str = ""


def evaluate(namespace: dict[str, Any] | None, request: SecretRequest) -> PolicyDecision:
    """Evaluate every namespace restriction for a SecretRequest."""
    if not is_permitted(namespace, request.role_arn):
        return PolicyDecision(False, MESSAGE_ROLE_NOT_PERMITTED.format(role_arn=request.role_arn))

    key_pattern = _annotations(namespace).get(ANNOTATION_PERMITTED_KEY_NAME)
    for item in request.data:
        if not is_key_permitted(namespace, item.source):
            return PolicyDecision(False, MESSAGE_KEY_NOT_PERMITTED.format(key=item.source, pattern=key_pattern))

    return PolicyDecision(True)


def enforce(namespace: dict[str, Any] | None, request: SecretRequest) -> None:
    """Raise PolicyDeniedError if the namespace denies the request."""
    decision = evaluate(namespace, request)
    if not decision.allowed:
        raise PolicyDeniedError(decision.message)

"""Error taxonomy and message sanitization for the External Secrets Operator."""

from __future__ import annotations

import re
from typing import Any

from ..constants import (
    OUTCOME_BACKEND_ERROR,
    OUTCOME_CLUSTER_ERROR,
    OUTCOME_INVALID_SPEC,
    OUTCOME_POLICY_DENIED,
    OUTCOME_WRITE_FAILED,
)


class ExternalSecretError(Exception):
    """Base class for errors surfaced in an ExternalSecret status."""

    outcome: str = OUTCOME_BACKEND_ERROR
    retryable: bool = True

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(Exception):
    """Raised when operator configuration cannot be loaded. Fatal at startup."""


class InvalidSpecError(ExternalSecretError):
    """The ExternalSecret spec is malformed."""

    outcome = OUTCOME_INVALID_SPEC
    retryable = False


class PolicyDeniedError(ExternalSecretError):
    """The namespace policy does not permit the request."""

    outcome = OUTCOME_POLICY_DENIED


class BackendError(ExternalSecretError):
    """Base class for failures reported by a secret backend."""

    outcome = OUTCOME_BACKEND_ERROR
    kind = "BackendError"

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class BackendNotFoundError(BackendError):
    """The requested key or path does not exist in the backend."""

    kind = "NotFound"


class BackendAccessDeniedError(BackendError):
    """The backend rejected the credentials or the assumed role."""

    kind = "AccessDenied"


class TransientBackendError(BackendError):
    """Network, timeout or throttling failure. Safe to retry."""

    kind = "Transient"


class ClusterApiError(ExternalSecretError):
    """A cluster API read failed."""

    outcome = OUTCOME_CLUSTER_ERROR

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class WriteFailedError(ClusterApiError):
    """The cluster API rejected a Secret or status write."""

    outcome = OUTCOME_WRITE_FAILED


# Patterns that might expose sensitive information
SENSITIVE_PATTERNS = [
    r"access[_\s]?key[_\s]?id\s*[:=]\s*([A-Z0-9]{20})",
    r"secret[_\s]?access[_\s]?key\s*[:=]\s*([A-Za-z0-9/+=]{40})",
    r"session[_\s]?token\s*[:=]\s*([A-Za-z0-9/+=]+)",
    r"x-vault-token\s*[:=]\s*([A-Za-z0-9\.\-_]+)",
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "access_key_id",
    "secret_access_key",
    "session_token",
    "password",
    "credentials",
    "token",
}

# Keys that mark a whole value as sensitive in sanitize_dict
SENSITIVE_KEYS = SENSITIVE_FIELDS | {"secretstring", "secretbinary", "value", "data"}


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove sensitive information.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message

    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(pattern, "[REDACTED]", sanitized, flags=re.IGNORECASE)

    for field in SENSITIVE_FIELDS:
        sanitized = re.sub(
            rf"\b{field}\s*[:=]\s*([^\s,;\)]+)",
            rf"{field}: [REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )

    return sanitized


def sanitize_exception(error: Exception) -> str:
    """Sanitize exception message.

    Args:
        error: Exception object

    Returns:
        Sanitized error message
    """
    return sanitize_error_message(str(error))


def sanitize_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """Sanitize dictionary by redacting sensitive fields.

    Args:
        data: Dictionary to sanitize
        sensitive_keys: Additional keys to redact (merged with SENSITIVE_KEYS)

    Returns:
        Sanitized dictionary with sensitive values redacted
    """
    all_sensitive = SENSITIVE_KEYS | (sensitive_keys or set())
    sanitized: dict[str, Any] = {}

    for key, value in data.items():
        if key.lower() in all_sensitive:
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, sensitive_keys)
        elif isinstance(value, str):
            sanitized[key] = sanitize_error_message(value)
        else:
            sanitized[key] = value

    return sanitized


def describe_error(error: ExternalSecretError) -> str:
    """Render an error for the status field.

    Backend errors are prefixed with their kind so clients can tell
    NotFound, AccessDenied and Transient failures apart.
    """
    message = sanitize_error_message(error.message)
    if isinstance(error, BackendError):
        return f"{error.kind}: {message}"
    return message

"""Operator configuration loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Mapping

from .constants import SUPPORTED_BACKENDS
from .utils.errors import ConfigurationError

DEFAULT_POLL_INTERVAL_MILLIS = 10_000
DEFAULT_REGION = "us-west-2"
DEFAULT_BACKEND_CALL_TIMEOUT_SECONDS = 10.0
DEFAULT_ROLE_SESSION_NAME = "external-secrets-operator"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class BackendSettings:
    """Per-backend polling settings."""

    interval_polling_millis: int | None = None
    check_updated: bool = False


@dataclass(frozen=True)
class OperatorConfig:
    """Immutable operator configuration.

    Runtime changes go through ``with_backend_settings`` which returns a new
    instance; the scheduler picks it up from the next cycle.
    """

    poll_interval_millis: int = DEFAULT_POLL_INTERVAL_MILLIS
    default_region: str = DEFAULT_REGION
    backend_call_timeout_seconds: float = DEFAULT_BACKEND_CALL_TIMEOUT_SECONDS
    role_session_name: str = DEFAULT_ROLE_SESSION_NAME
    vault_addr: str | None = None
    vault_token: str | None = None
    vault_namespace: str | None = None
    backends: Mapping[str, BackendSettings] = field(default_factory=dict)

    def backend(self, backend_type: str) -> BackendSettings:
        """Return settings for a backend, falling back to defaults."""
        return self.backends.get(backend_type, BackendSettings())

    def check_updated(self, backend_type: str) -> bool:
        return self.backend(backend_type).check_updated

    def interval_for(self, backend_type: str, override_millis: int | None = None) -> int:
        """Effective polling interval in milliseconds.

        Resource override wins over the backend's ``intervalPolling`` which
        wins over the global default.
        """
        if override_millis:
            return override_millis
        backend_interval = self.backend(backend_type).interval_polling_millis
        if backend_interval:
            return backend_interval
        return self.poll_interval_millis

    def with_backend_settings(self, backend_type: str, **changes: object) -> OperatorConfig:
        """Return a copy with updated settings for one backend."""
        backends = dict(self.backends)
        backends[backend_type] = replace(self.backend(backend_type), **changes)
        return replace(self, backends=backends)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> OperatorConfig:
        """Load configuration from environment variables.

        Raises:
            ConfigurationError: If a value cannot be parsed
        """
        env = os.environ if environ is None else environ

        backends = {}
        for backend_type in SUPPORTED_BACKENDS:
            prefix = _env_prefix(backend_type)
            backends[backend_type] = BackendSettings(
                interval_polling_millis=_parse_int(env, f"{prefix}_INTERVAL_POLLING", None),
                check_updated=_parse_bool(env, f"{prefix}_CHECK_UPDATED", False),
            )

        poll_interval = _parse_int(env, "POLLER_INTERVAL_MILLISECONDS", DEFAULT_POLL_INTERVAL_MILLIS)
        if poll_interval is None or poll_interval <= 0:
            raise ConfigurationError("POLLER_INTERVAL_MILLISECONDS must be a positive integer")

        timeout_raw = env.get("BACKEND_CALL_TIMEOUT_SECONDS", str(DEFAULT_BACKEND_CALL_TIMEOUT_SECONDS))
        try:
            timeout = float(timeout_raw)
        except ValueError as e:
            raise ConfigurationError(f"BACKEND_CALL_TIMEOUT_SECONDS is not a number: {timeout_raw!r}") from e
        if timeout <= 0:
            raise ConfigurationError("BACKEND_CALL_TIMEOUT_SECONDS must be positive")

        return cls(
            poll_interval_millis=poll_interval,
            default_region=env.get("AWS_REGION") or env.get("AWS_DEFAULT_REGION") or DEFAULT_REGION,
            backend_call_timeout_seconds=timeout,
            role_session_name=env.get("ROLE_SESSION_NAME", DEFAULT_ROLE_SESSION_NAME),
            vault_addr=env.get("VAULT_ADDR"),
            vault_token=env.get("VAULT_TOKEN"),
            vault_namespace=env.get("VAULT_NAMESPACE"),
            backends=backends,
        )


def _env_prefix(backend_type: str) -> str:
    # systemManager -> SYSTEM_MANAGER
    out = []
    for char in backend_type:
        if char.isupper():
            out.append("_")
        out.append(char.upper())
    return "".join(out)


def _parse_int(env: Mapping[str, str], name: str, default: int | None) -> int | None:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} is not an integer: {raw!r}") from e


def _parse_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} is not a boolean: {raw!r}")

"""Builder and cache for secret backend clients."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from .. import metrics
from ..config import OperatorConfig
from ..constants import BACKEND_SECRETS_MANAGER, BACKEND_SYSTEM_MANAGER, BACKEND_VAULT
from ..services.aws.secrets_manager import SecretsManagerBackend
from ..services.aws.session import create_aws_client
from ..services.aws.ssm import SystemManagerBackend
from ..services.backends.base import SecretBackend
from ..services.vault.client import VaultBackend, create_vault_client
from ..utils.errors import InvalidSpecError

logger = logging.getLogger(__name__)

ClientKey = tuple[str, str, str | None]


@dataclass
class _CachedBackend:
    backend: SecretBackend
    refresh_at: datetime | None = None

    def expired(self, now: datetime) -> bool:
        return self.refresh_at is not None and now >= self.refresh_at


def create_backend(
    backend_type: str,
    region: str,
    config: OperatorConfig,
    role_arn: str | None = None,
) -> tuple[SecretBackend, datetime | None]:
    """Create a backend client for one ``(backend_type, region, role_arn)``.

    Returns:
        Tuple of (backend, refresh_at), ``refresh_at`` being when assumed
        role credentials must be renewed

    Raises:
        InvalidSpecError: If the backend type is not supported
    """
    timeout = config.backend_call_timeout_seconds

    if backend_type == BACKEND_SYSTEM_MANAGER:
        client, refresh_at = create_aws_client("ssm", region, timeout, role_arn, config.role_session_name)
        return SystemManagerBackend(client, region), refresh_at
    if backend_type == BACKEND_SECRETS_MANAGER:
        client, refresh_at = create_aws_client("secretsmanager", region, timeout, role_arn, config.role_session_name)
        return SecretsManagerBackend(client, region), refresh_at
    if backend_type == BACKEND_VAULT:
        client = create_vault_client(config.vault_addr, config.vault_token, config.vault_namespace, timeout)
        return VaultBackend(client, region), None

    raise InvalidSpecError(f"Unsupported backendType: {backend_type}")


class BackendClientResolver:
    """Resolve and cache backend clients.

    Clients are keyed by ``(backend_type, region, role_arn)`` so that
    regions and assumed roles never share credentials. The lock is only
    taken on a cache miss; cached clients are used concurrently.
    """

    def __init__(
        self,
        config: OperatorConfig,
        factory: Callable[..., tuple[SecretBackend, datetime | None]] = create_backend,
    ) -> None:
        self.config = config
        self._factory = factory
        self._clients: dict[ClientKey, _CachedBackend] = {}
        self._lock = threading.Lock()

    def resolve(self, backend_type: str, region: str | None = None, role_arn: str | None = None) -> SecretBackend:
        """Return the client for a backend, creating it on first use."""
        key: ClientKey = (backend_type, region or self.config.default_region, role_arn)
        now = datetime.now(timezone.utc)

        cached = self._clients.get(key)
        if cached is not None and not cached.expired(now):
            return cached.backend

        with self._lock:
            cached = self._clients.get(key)
            if cached is not None and not cached.expired(now):
                return cached.backend

            backend, refresh_at = self._factory(key[0], key[1], self.config, role_arn=key[2])
            self._clients[key] = _CachedBackend(backend, refresh_at)
            metrics.backend_clients_created_total.labels(backend=key[0], region=key[1]).inc()
            logger.info(
                f"Created {key[0]} client for region {key[1]}"
                + (f" with role {role_arn}" if role_arn else "")
            )
            return backend

    def update_config(self, config: OperatorConfig) -> None:
        """Swap configuration and drop cached clients built from the old one."""
        with self._lock:
            self.config = config
            self._clients.clear()

    def __len__(self) -> int:
        return len(self._clients)

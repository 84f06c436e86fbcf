"""HashiCorp Vault KV v2 backend."""

from __future__ import annotations

import json
import logging

import hvac
from hvac.exceptions import Forbidden, InvalidPath, Unauthorized, VaultDown, VaultError
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import RequestException, Timeout

from ...constants import BACKEND_VAULT
from ...models import FetchedValue
from ...utils.errors import (
    BackendAccessDeniedError,
    BackendError,
    BackendNotFoundError,
    TransientBackendError,
)
from ..backends.base import backend_call, last_segment

logger = logging.getLogger(__name__)


def split_mount_point(key: str) -> tuple[str, str]:
    """Split ``mount/[data/]path`` into the KV mount point and the path below it.

    Examples:
        >>> split_mount_point("secret/app/db")
        ('secret', 'app/db')
        >>> split_mount_point("secret/data/app/db")
        ('secret', 'app/db')
        >>> split_mount_point("secret")
        ('secret', '')
    """
    mount_point, _, path = key.strip("/").partition("/")
    for prefix in ("data/", "metadata/"):
        if path.startswith(prefix):
            path = path[len(prefix):]
    return mount_point, path


def create_vault_client(
    addr: str | None,
    token: str | None,
    namespace: str | None,
    timeout_seconds: float,
) -> hvac.Client:
    """Create an hvac client with a bounded request timeout."""
    return hvac.Client(url=addr, token=token, namespace=namespace, timeout=timeout_seconds)


class VaultBackend:
    """Vault KV v2 backend.

    ``read_secret_version`` without a version returns the latest version;
    older versions stay in Vault's metadata and are never listed.
    """

    backend_type = BACKEND_VAULT

    def __init__(self, client: hvac.Client, region: str = "") -> None:
        self.client = client
        self.region = region

    def fetch_one(self, key: str) -> FetchedValue:
        with backend_call(self.backend_type, "fetch_one", key):
            return self._read(key)

    def fetch_path(self, path: str, recursive: bool = False) -> list[tuple[str, FetchedValue]]:
        """Fetch every secret directly below ``path``."""
        mount_point, sub_path = split_mount_point(path)
        with backend_call(self.backend_type, "fetch_path", path):
            try:
                response = self.client.secrets.kv.v2.list_secrets(path=sub_path, mount_point=mount_point)
            except (VaultError, RequestException) as e:
                raise translate_vault_error(e, path) from e

            keys = (response.get("data") or {}).get("keys", [])
            names = sorted(key for key in keys if not key.endswith("/"))
            if not names:
                raise BackendNotFoundError(f"no secrets found under path {path}", key=path)

            base = "/".join(part for part in (mount_point, sub_path.strip("/")) if part)
            return [(last_segment(name), self._read(f"{base}/{name}")) for name in names]

    def _read(self, key: str) -> FetchedValue:
        mount_point, path = split_mount_point(key)
        if not path:
            raise BackendNotFoundError(f"{key} does not name a secret below a KV mount point", key=key)
        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=path,
                mount_point=mount_point,
                raise_on_deleted_version=True,
            )
        except (VaultError, RequestException) as e:
            raise translate_vault_error(e, key) from e

        payload = response.get("data") or {}
        data = payload.get("data")
        if data is None:
            raise BackendNotFoundError(f"{key} has no data", key=key)
        metadata = payload.get("metadata") or {}

        return FetchedValue(
            value=json.dumps(data, sort_keys=True).encode("utf-8"),
            fingerprint=str(metadata.get("version", "")),
            source=key,
        )


def translate_vault_error(error: VaultError | RequestException, key: str) -> BackendError:
    """Map hvac and requests errors onto the backend error taxonomy."""
    if isinstance(error, InvalidPath):
        return BackendNotFoundError(f"{key} not found", key=key)
    if isinstance(error, (Forbidden, Unauthorized)):
        return BackendAccessDeniedError(f"access denied reading {key}", key=key)
    if isinstance(error, Timeout):
        return TransientBackendError(f"timed out reading {key}", key=key)
    if isinstance(error, RequestsConnectionError):
        return TransientBackendError(f"could not connect to Vault reading {key}", key=key)
    if isinstance(error, VaultDown):
        return TransientBackendError(f"Vault is sealed or down reading {key}", key=key)
    return TransientBackendError(f"failed reading {key}: {type(error).__name__}", key=key)

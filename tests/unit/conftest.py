"""Shared fixtures for unit tests."""

from __future__ import annotations

from typing import Any

import pytest

from external_secrets_operator.config import OperatorConfig
from external_secrets_operator.models import FetchedValue, SecretRequest
from external_secrets_operator.services.backends.base import last_segment
from external_secrets_operator.utils.cache import invalidate_cache
from external_secrets_operator.utils.errors import BackendNotFoundError
from external_secrets_operator.utils.secrets import SECRET_CREATED, SECRET_UNCHANGED, SECRET_UPDATED


class FakeBackend:
    """In-memory backend holding the current version of each key."""

    def __init__(self, backend_type: str = "systemManager", region: str = "us-west-2") -> None:
        self.backend_type = backend_type
        self.region = region
        self.values: dict[str, tuple[str, int]] = {}
        self.calls: list[tuple[str, str]] = []
        self.error: Exception | None = None

    def put(self, key: str, value: str) -> None:
        """Store a new version of ``key``."""
        _, version = self.values.get(key, ("", 0))
        self.values[key] = (value, version + 1)

    def _fetched(self, key: str) -> FetchedValue:
        value, version = self.values[key]
        return FetchedValue(value=value.encode("utf-8"), fingerprint=str(version), source=key)

    def fetch_one(self, key: str) -> FetchedValue:
        self.calls.append(("fetch_one", key))
        if self.error is not None:
            raise self.error
        if key not in self.values:
            raise BackendNotFoundError(f"{key} not found", key=key)
        return self._fetched(key)

    def fetch_path(self, path: str, recursive: bool = False) -> list[tuple[str, FetchedValue]]:
        self.calls.append(("fetch_path", path))
        if self.error is not None:
            raise self.error
        prefix = path.rstrip("/") + "/"
        keys = sorted(
            key for key in self.values
            if key.startswith(prefix) and (recursive or "/" not in key[len(prefix):])
        )
        if not keys:
            raise BackendNotFoundError(f"no parameters found under path {path}", key=path)
        return [(last_segment(key), self._fetched(key)) for key in keys]


class FakeResolver:
    """Backend resolver keyed like the real one, handing out FakeBackends."""

    def __init__(self) -> None:
        self.backends: dict[tuple[str, str, str | None], FakeBackend] = {}
        self.config: OperatorConfig | None = None

    def backend(self, backend_type: str = "systemManager", region: str = "us-west-2", role_arn: str | None = None) -> FakeBackend:
        key = (backend_type, region, role_arn)
        if key not in self.backends:
            self.backends[key] = FakeBackend(backend_type, region)
        return self.backends[key]

    def resolve(self, backend_type: str, region: str | None = None, role_arn: str | None = None) -> FakeBackend:
        return self.backend(backend_type, region or "us-west-2", role_arn)

    def update_config(self, config: OperatorConfig) -> None:
        self.config = config


class FakeCluster:
    """In-memory cluster gateway recording Secret and status writes."""

    def __init__(self) -> None:
        self.namespaces: dict[str, dict[str, str]] = {}
        self.secrets: dict[tuple[str, str], dict[str, bytes]] = {}
        self.status: dict[tuple[str, str], dict[str, Any]] = {}
        self.secret_writes: list[tuple[str, str]] = []
        self.write_error: Exception | None = None

    def annotate(self, namespace: str, annotations: dict[str, str]) -> None:
        self.namespaces[namespace] = annotations

    def read_namespace(self, name: str) -> dict[str, Any]:
        return {"metadata": {"name": name, "annotations": dict(self.namespaces.get(name, {}))}}

    def secret_exists(self, namespace: str, name: str) -> bool:
        return (namespace, name) in self.secrets

    def write_secret(self, request: SecretRequest, data: dict[str, bytes]) -> str:
        if self.write_error is not None:
            raise self.write_error
        key = (request.namespace, request.name)
        existing = self.secrets.get(key)
        if existing == data:
            return SECRET_UNCHANGED
        self.secrets[key] = dict(data)
        self.secret_writes.append(key)
        return SECRET_CREATED if existing is None else SECRET_UPDATED

    def write_status(self, namespace: str, name: str, status: dict[str, Any]) -> None:
        # Merge patch semantics: null deletes, nested dicts merge
        current = self.status.setdefault((namespace, name), {})
        for field, value in status.items():
            if isinstance(value, dict):
                merged = dict(current.get(field) or {})
                for sub_key, sub_value in value.items():
                    if sub_value is None:
                        merged.pop(sub_key, None)
                    else:
                        merged[sub_key] = sub_value
                current[field] = merged
            else:
                current[field] = value


def make_body(
    name: str = "test-secret",
    namespace: str = "default",
    backend_type: str = "systemManager",
    data: list[dict[str, Any]] | None = None,
    status: dict[str, Any] | None = None,
    **spec: Any,
) -> dict[str, Any]:
    """Build an ExternalSecret object."""
    body: dict[str, Any] = {
        "apiVersion": "kubernetes-client.io/v1",
        "kind": "ExternalSecret",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "uid": f"uid-{name}",
            "generation": 1,
        },
        "spec": {
            "backendType": backend_type,
            "data": data if data is not None else [{"key": "/app/password", "name": "password"}],
            **spec,
        },
    }
    if status is not None:
        body["status"] = status
    return body


@pytest.fixture(autouse=True)
def clear_cache():
    """Start every test with an empty Kubernetes read cache."""
    invalidate_cache()
    yield
    invalidate_cache()


@pytest.fixture
def config() -> OperatorConfig:
    return OperatorConfig()


@pytest.fixture
def cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver()

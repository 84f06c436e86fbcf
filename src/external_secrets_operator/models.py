"""Models for ExternalSecret reconciliation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ReconcileState(str, Enum):
    """States a SecretRequest passes through during one reconciliation cycle."""

    PENDING = "Pending"
    POLICY_CHECK = "PolicyCheck"
    FETCHING = "Fetching"
    DIFFING = "Diffing"
    WRITING = "Writing"
    DONE = "Done"
    FAILED = "Failed"
    DENIED = "Denied"


@dataclass(frozen=True)
class DataItem:
    """One entry of ``spec.data``.

    Exactly one of ``key`` and ``path`` is set. ``name`` is required for
    key items and ignored for path items.
    """

    key: str | None = None
    name: str | None = None
    path: str | None = None
    property_name: str | None = None
    is_binary: bool = False
    recursive: bool = False

    @property
    def is_path(self) -> bool:
        return self.path is not None

    @property
    def source(self) -> str:
        return self.path if self.path is not None else self.key or ""


@dataclass(frozen=True)
class SecretRequest:
    """Parsed ExternalSecret resource."""

    name: str
    namespace: str
    backend_type: str
    region: str
    data: tuple[DataItem, ...]
    role_arn: str | None = None
    poll_interval_millis: int | None = None
    uid: str | None = None
    generation: int = 0

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class FetchedValue:
    """A raw backend value with the fingerprint of its current version."""

    value: bytes
    fingerprint: str
    source: str = ""


@dataclass
class FetchResult:
    """Combined result of fetching every data item of a SecretRequest."""

    values: dict[str, FetchedValue] = field(default_factory=dict)

    def add(self, target_name: str, fetched: FetchedValue) -> None:
        self.values[target_name] = fetched

    @property
    def fingerprints(self) -> dict[str, str]:
        return {name: fetched.fingerprint for name, fetched in self.values.items()}

    @property
    def data(self) -> dict[str, bytes]:
        return {name: fetched.value for name, fetched in self.values.items()}

    def __contains__(self, target_name: object) -> bool:
        return target_name in self.values

    def __len__(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class SyncState:
    """Sync bookkeeping persisted in the ExternalSecret status."""

    fingerprints: dict[str, str] | None = None
    outcome: str | None = None
    message: str | None = None
    last_attempt: str | None = None
    last_sync: str | None = None

    @classmethod
    def from_status(cls, status: dict[str, Any] | None) -> SyncState:
        status = status or {}
        fingerprints = status.get("fingerprints")
        return cls(
            fingerprints=dict(fingerprints) if fingerprints is not None else None,
            outcome=status.get("outcome"),
            message=status.get("status"),
            last_attempt=status.get("lastAttempt"),
            last_sync=status.get("lastSync"),
        )


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one reconciliation cycle."""

    state: ReconcileState
    outcome: str
    message: str
    written: bool = False
    fingerprints: dict[str, str] | None = None
    secret_action: str | None = None

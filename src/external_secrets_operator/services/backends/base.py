"""Base secret backend interface."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator, Protocol

from ... import metrics
from ...models import FetchedValue
from ...tracing import trace_span
from ...utils.errors import BackendError


class SecretBackend(Protocol):
    """Protocol defining secret backend operations.

    Implementations translate store-specific errors into
    BackendNotFoundError, BackendAccessDeniedError and TransientBackendError.
    """

    backend_type: str
    region: str

    def fetch_one(self, key: str) -> FetchedValue:
        """Fetch the current value of a single key."""
        ...

    def fetch_path(self, path: str, recursive: bool = False) -> list[tuple[str, FetchedValue]]:
        """Fetch the current value of every key under a path.

        Returns:
            List of (target_name, value) pairs, target_name being the last
            segment of each key
        """
        ...


def last_segment(key: str) -> str:
    """Return the last ``/``-separated segment of a key."""
    return key.rstrip("/").rsplit("/", 1)[-1]


@contextmanager
def backend_call(backend_type: str, operation: str, key: str) -> Iterator[None]:
    """Record metrics and a trace span around one backend operation."""
    start_time = time.time()
    with trace_span(f"backend_{operation}", attributes={"backend.type": backend_type, "backend.key": key}):
        try:
            yield
            metrics.backend_call_total.labels(backend=backend_type, operation=operation, result="success").inc()
        except BackendError as e:
            metrics.backend_call_total.labels(backend=backend_type, operation=operation, result=e.kind).inc()
            raise
        finally:
            duration = time.time() - start_time
            metrics.backend_call_duration_seconds.labels(backend=backend_type, operation=operation).observe(duration)

"""Reconciliation of an ExternalSecret into its target Secret."""

from __future__ import annotations

import base64
import binascii
import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

from ..builders.backend import BackendClientResolver
from ..builders.secret_request import add_fetched_values, create_secret_request_from_body
from ..config import OperatorConfig
from ..constants import (
    KIND_EXTERNAL_SECRET,
    MESSAGE_UNCHANGED,
    OUTCOME_SUCCESS,
    OUTCOME_UNCHANGED,
    STATUS_ERROR,
    STATUS_SUCCESS,
)
from ..models import (
    DataItem,
    FetchedValue,
    FetchResult,
    ReconcileResult,
    ReconcileState,
    SecretRequest,
    SyncState,
)
from ..tracing import set_span_status, trace_span
from ..utils.conditions import set_ready_condition
from ..utils.errors import (
    BackendNotFoundError,
    ExternalSecretError,
    InvalidSpecError,
    PolicyDeniedError,
    WriteFailedError,
    describe_error,
)
from ..utils.secrets import SECRET_UNCHANGED
from . import policy
from .changes import has_changed

logger = logging.getLogger(__name__)

_READY_REASONS = {
    "success": "Synced",
    "unchanged": "Unchanged",
    "policy-denied": "PolicyDenied",
    "invalid-spec": "InvalidSpec",
    "backend-error": "BackendError",
    "write-failed": "WriteFailed",
    "cluster-error": "ClusterError",
}


class Cluster(Protocol):
    """Cluster operations the reconciler depends on."""

    def read_namespace(self, name: str) -> dict[str, Any]: ...

    def secret_exists(self, namespace: str, name: str) -> bool: ...

    def write_secret(self, request: SecretRequest, data: dict[str, bytes]) -> str: ...

    def write_status(self, namespace: str, name: str, status: dict[str, Any]) -> None: ...


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def transform_value(item: DataItem, fetched: FetchedValue) -> FetchedValue:
    """Apply ``property`` selection and ``isBinary`` decoding to a value.

    Raises:
        BackendNotFoundError: If the property is absent from the value
        InvalidSpecError: If an ``isBinary`` value is not base64
    """
    value = fetched.value

    if item.property_name:
        try:
            document = json.loads(value)
        except ValueError as e:
            raise BackendNotFoundError(
                f"property {item.property_name} not found in {item.source}: value is not JSON", key=item.source
            ) from e
        if not isinstance(document, dict) or item.property_name not in document:
            raise BackendNotFoundError(f"property {item.property_name} not found in {item.source}", key=item.source)
        selected = document[item.property_name]
        value = selected.encode("utf-8") if isinstance(selected, str) else json.dumps(selected).encode("utf-8")

    if item.is_binary:
        try:
            value = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidSpecError(f"{item.source} is marked isBinary but is not valid base64") from e

    if value is fetched.value:
        return fetched
    return FetchedValue(value=value, fingerprint=fetched.fingerprint, source=fetched.source)


def _fingerprint_patch(previous: dict[str, str] | None, current: dict[str, str]) -> dict[str, str | None]:
    # Merge patch keeps absent keys, null them to drop names no longer synced
    patch: dict[str, str | None] = {name: None for name in (previous or {}) if name not in current}
    patch.update(current)
    return patch


class Reconciler:
    """Runs one reconciliation cycle for an ExternalSecret.

    The cycle walks Pending, PolicyCheck, Fetching, Diffing, Writing and
    Done. Any error ends it in Failed and a namespace policy denial ends
    it in Denied. Nothing is written to the target Secret unless every
    data item was fetched.
    """

    def __init__(
        self,
        cluster: Cluster,
        resolver: BackendClientResolver,
        config: OperatorConfig,
        clock: Callable[[], str] = utc_now,
    ) -> None:
        self.cluster = cluster
        self.resolver = resolver
        self.config = config
        self._clock = clock

    def update_config(self, config: OperatorConfig) -> None:
        """Replace configuration; effective from the next cycle."""
        self.config = config

    def reconcile(self, body: dict[str, Any]) -> ReconcileResult:
        """Reconcile one ExternalSecret object and write its status."""
        meta = body.get("metadata", {})
        name = meta.get("name", "")
        namespace = meta.get("namespace", "default")
        previous = SyncState.from_status(body.get("status"))
        config = self.config

        with trace_span("reconcile_external_secret", kind=KIND_EXTERNAL_SECRET, attributes={"name": name}):
            result = self._run_cycle(body, namespace, previous, config)
            set_span_status(result.state is ReconcileState.DONE, result.message)

        status = self._build_status(body, previous, result)
        try:
            self.cluster.write_status(namespace, name, status)
        except WriteFailedError as e:
            # Retried with the next cycle, which re-fetches and re-diffs
            logger.error(f"Failed to write status of {namespace}/{name}: {describe_error(e)}")
        return result

    def _run_cycle(
        self,
        body: dict[str, Any],
        namespace: str,
        previous: SyncState,
        config: OperatorConfig,
    ) -> ReconcileResult:
        state = ReconcileState.PENDING
        try:
            request = create_secret_request_from_body(body, config.default_region)

            state = self._transition(request, state, ReconcileState.POLICY_CHECK)
            policy.enforce(self.cluster.read_namespace(namespace), request)

            state = self._transition(request, state, ReconcileState.FETCHING)
            fetched = self.fetch(request)

            state = self._transition(request, state, ReconcileState.DIFFING)
            changed = has_changed(previous.fingerprints, fetched.fingerprints, config.check_updated(request.backend_type))
            if not changed and self.cluster.secret_exists(request.namespace, request.name):
                self._transition(request, state, ReconcileState.DONE)
                return ReconcileResult(
                    ReconcileState.DONE,
                    OUTCOME_UNCHANGED,
                    MESSAGE_UNCHANGED,
                    fingerprints=previous.fingerprints,
                )

            state = self._transition(request, state, ReconcileState.WRITING)
            write_result = self.cluster.write_secret(request, fetched.data)

            self._transition(request, state, ReconcileState.DONE)
            return ReconcileResult(
                ReconcileState.DONE,
                OUTCOME_SUCCESS,
                STATUS_SUCCESS,
                written=write_result != SECRET_UNCHANGED,
                fingerprints=fetched.fingerprints,
                secret_action=write_result,
            )
        except PolicyDeniedError as e:
            logger.info(f"ExternalSecret {namespace}/{body.get('metadata', {}).get('name')} denied: {e.message}")
            return ReconcileResult(ReconcileState.DENIED, e.outcome, describe_error(e))
        except ExternalSecretError as e:
            logger.warning(
                f"ExternalSecret {namespace}/{body.get('metadata', {}).get('name')} failed in {state.value}: "
                f"{describe_error(e)}"
            )
            return ReconcileResult(ReconcileState.FAILED, e.outcome, describe_error(e))

    def fetch(self, request: SecretRequest) -> FetchResult:
        """Fetch every data item; any failure discards the whole result."""
        backend = self.resolver.resolve(request.backend_type, request.region, request.role_arn)
        result = FetchResult()

        for item in request.data:
            if item.is_path:
                entries = backend.fetch_path(item.path, recursive=item.recursive)
                transformed = [(target, transform_value(item, fetched)) for target, fetched in entries]
                add_fetched_values(result, transformed, item.path)
            else:
                fetched = transform_value(item, backend.fetch_one(item.key))
                add_fetched_values(result, [(item.name, fetched)], item.key)

        return result

    @staticmethod
    def _transition(request: SecretRequest, current: ReconcileState, target: ReconcileState) -> ReconcileState:
        logger.debug(f"ExternalSecret {request.key}: {current.value} -> {target.value}")
        return target

    def _build_status(self, body: dict[str, Any], previous: SyncState, result: ReconcileResult) -> dict[str, Any]:
        now = self._clock()
        generation = body.get("metadata", {}).get("generation", 0)
        ready = result.state is ReconcileState.DONE

        if result.outcome == OUTCOME_SUCCESS:
            text = STATUS_SUCCESS
        elif result.outcome == OUTCOME_UNCHANGED:
            text = f"{STATUS_SUCCESS}, {MESSAGE_UNCHANGED}"
        else:
            text = f"{STATUS_ERROR}, {result.message}"

        conditions = (body.get("status") or {}).get("conditions", [])
        status: dict[str, Any] = {
            "status": text,
            "outcome": result.outcome,
            "state": result.state.value,
            "lastAttempt": now,
            "observedGeneration": generation,
            "conditions": set_ready_condition(
                conditions,
                ready,
                _READY_REASONS.get(result.outcome, "Failed"),
                text,
                generation,
            ),
        }

        if result.outcome == OUTCOME_SUCCESS and result.fingerprints is not None:
            status["fingerprints"] = _fingerprint_patch(previous.fingerprints, result.fingerprints)
            status["lastSync"] = now

        return status

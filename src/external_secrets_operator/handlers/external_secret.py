"""Handler for ExternalSecret CRD."""

from __future__ import annotations

import asyncio
from typing import Any

import kopf

from .. import metrics
from ..builders.backend import BackendClientResolver
from ..config import OperatorConfig
from ..constants import API_GROUP_VERSION, KIND_EXTERNAL_SECRET, OUTCOME_INVALID_SPEC
from ..models import ReconcileResult, ReconcileState, SyncState
from ..reconciler.engine import Cluster, Reconciler
from ..reconciler.scheduler import PollScheduler
from ..services.cluster import ClusterGateway
from ..utils.events import (
    emit_policy_denied,
    emit_reconcile_failed,
    emit_secret_created,
    emit_secret_updated,
    emit_validate_failed,
)
from ..utils.secrets import SECRET_CREATED, SECRET_UPDATED
from .base import BaseHandler


def resource_key(meta: dict[str, Any]) -> str:
    return f"{meta.get('namespace', 'default')}/{meta.get('name', '')}"


def interval_override(spec: dict[str, Any]) -> int | None:
    """Return a usable ``pollIntervalMillis`` or None.

    Malformed values are reported by the reconciler as an invalid spec,
    the poll loop falls back to the configured interval meanwhile.
    """
    value = spec.get("pollIntervalMillis")
    if isinstance(value, bool):
        return None
    try:
        millis = int(value)
    except (TypeError, ValueError):
        return None
    return millis if millis > 0 else None


def awaiting_spec_change(body: dict[str, Any]) -> bool:
    """True when the current generation was already rejected as an invalid spec.

    Such a resource is only reconciled again once its spec, and with it
    ``metadata.generation``, changes.
    """
    status = body.get("status") or {}
    if status.get("outcome") != OUTCOME_INVALID_SPEC:
        return False
    generation = (body.get("metadata") or {}).get("generation", 0)
    return status.get("observedGeneration") == generation


class ExternalSecretHandler(BaseHandler):
    """Handler for ExternalSecret resources."""

    def __init__(
        self,
        config: OperatorConfig,
        cluster: Cluster | None = None,
        resolver: BackendClientResolver | None = None,
    ):
        super().__init__(KIND_EXTERNAL_SECRET)
        self.config = config
        self.cluster = cluster if cluster is not None else ClusterGateway()
        self.resolver = resolver if resolver is not None else BackendClientResolver(config)
        self.reconciler = Reconciler(self.cluster, self.resolver, config)
        self.scheduler = PollScheduler(self.reconcile, config)

    def update_config(self, config: OperatorConfig) -> None:
        """Apply new configuration from the next cycle on."""
        self.config = config
        self.resolver.update_config(config)
        self.reconciler.update_config(config)
        self.scheduler.update_config(config)

    def sync(self, body: dict[str, Any]) -> bool:
        """Trigger a cycle for ``body`` through the scheduler."""
        return self.scheduler.trigger(resource_key(body.get("metadata", {})), body)

    def interval_seconds(self, spec: dict[str, Any]) -> float:
        millis = self.scheduler.interval_for(interval_override(spec), spec.get("backendType", ""))
        return millis / 1000.0

    def forget(self, meta: dict[str, Any]) -> None:
        self.scheduler.forget(resource_key(meta))
        self.log_info(meta, "Stopped polling", event="deleted", reason="Deleted")

    def reconcile(self, body: dict[str, Any]) -> ReconcileResult:
        """Run one cycle and report its outcome as events, logs and metrics."""
        meta = body.get("metadata", {})
        previous = SyncState.from_status(body.get("status"))
        result = self.reconcile_with_metrics(meta, lambda: self.reconciler.reconcile(body))
        self._report(body, previous, result)
        return result

    def _report(self, body: dict[str, Any], previous: SyncState, result: ReconcileResult) -> None:
        meta = body.get("metadata", {})
        secret_name = meta.get("name", "")
        # Repeated failures only produce an event when the outcome changes
        repeated = previous.outcome == result.outcome

        if result.state is ReconcileState.DENIED:
            metrics.policy_denied_total.labels(namespace=meta.get("namespace", "default")).inc()
            self.log_warning(meta, result.message, event="denied", reason="PolicyDenied")
            if not repeated:
                emit_policy_denied(body, result.message)
            return

        if result.state is ReconcileState.FAILED:
            self.log_warning(meta, result.message, event="failed", reason="ReconcileFailed", outcome=result.outcome)
            if repeated:
                return
            if result.outcome == OUTCOME_INVALID_SPEC:
                emit_validate_failed(body, result.message)
            else:
                emit_reconcile_failed(body, result.message)
            return

        if result.secret_action == SECRET_CREATED:
            emit_secret_created(body, secret_name)
        elif result.secret_action == SECRET_UPDATED:
            emit_secret_updated(body, secret_name)

        self.log_info(
            meta,
            f"Synced with outcome {result.outcome}",
            event="synced",
            reason="Synced",
            outcome=result.outcome,
            secret=result.secret_action or "unchanged",
        )


# Global handler instance, built by the startup handler
_handler: ExternalSecretHandler | None = None


def configure_handler(config: OperatorConfig, **kwargs: Any) -> ExternalSecretHandler:
    """Create the global handler, or push new configuration into it."""
    global _handler
    if _handler is None:
        _handler = ExternalSecretHandler(config, **kwargs)
    else:
        _handler.update_config(config)
    return _handler


def get_handler() -> ExternalSecretHandler:
    if _handler is None:
        raise kopf.PermanentError("ExternalSecret handler used before operator startup")
    return _handler


@kopf.daemon(API_GROUP_VERSION, KIND_EXTERNAL_SECRET, cancellation_timeout=1.0)
async def poll_external_secret(
    body: kopf.Body,
    spec: kopf.Spec,
    stopped: kopf.DaemonStopped,
    **kwargs: Any,
) -> None:
    """Reconcile an ExternalSecret every polling interval until it is deleted.

    Cycles run on a worker thread so idle daemons hold no thread between ticks.
    """
    handler = get_handler()
    while not stopped:
        if not awaiting_spec_change(body):
            await asyncio.to_thread(handler.sync, body)
        await asyncio.sleep(handler.interval_seconds(spec))


@kopf.on.update(API_GROUP_VERSION, KIND_EXTERNAL_SECRET, field="spec")
def handle_external_secret_update(body: kopf.Body, **kwargs: Any) -> None:
    """Reconcile immediately when the spec changes."""
    get_handler().sync(body)


@kopf.on.delete(API_GROUP_VERSION, KIND_EXTERNAL_SECRET, optional=True)
def handle_external_secret_delete(meta: kopf.Meta, **kwargs: Any) -> None:
    """Drop scheduling state; the target Secret is garbage collected via its owner reference."""
    get_handler().forget(meta)

"""Prometheus metrics for the External Secrets Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "external_secrets_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "external_secrets_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

# Backend call metrics
backend_call_total = Counter(
    "external_secrets_operator_backend_call_total",
    "Total number of secret backend calls",
    ["backend", "operation", "result"],
)

backend_call_duration_seconds = Histogram(
    "external_secrets_operator_backend_call_duration_seconds",
    "Duration of secret backend calls in seconds",
    ["backend", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

backend_clients_created_total = Counter(
    "external_secrets_operator_backend_clients_created_total",
    "Total number of backend clients created",
    ["backend", "region"],
)

# Secret write metrics
secret_writes_total = Counter(
    "external_secrets_operator_secret_writes_total",
    "Total number of target Secret writes",
    ["operation", "result"],
)

# Policy metrics
policy_denied_total = Counter(
    "external_secrets_operator_policy_denied_total",
    "Total number of reconciliations denied by namespace policy",
    ["namespace"],
)

# Kubernetes API call metrics
api_call_total = Counter(
    "external_secrets_operator_api_call_total",
    "Total number of Kubernetes API calls",
    ["operation", "result"],
)

# Error metrics
error_total = Counter(
    "external_secrets_operator_error_total",
    "Total number of errors",
    ["kind", "error_type"],
)

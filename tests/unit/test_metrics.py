"""Tests for Prometheus metrics."""

from __future__ import annotations

import pytest
from prometheus_client import REGISTRY

from external_secrets_operator import metrics


class TestMetricsExist:
    """Test that all expected metrics are defined."""

    @pytest.mark.parametrize(
        "metric, name",
        [
            (metrics.reconcile_total, "external_secrets_operator_reconcile"),
            (metrics.reconcile_duration_seconds, "external_secrets_operator_reconcile_duration_seconds"),
            (metrics.backend_call_total, "external_secrets_operator_backend_call"),
            (metrics.backend_call_duration_seconds, "external_secrets_operator_backend_call_duration_seconds"),
            (metrics.backend_clients_created_total, "external_secrets_operator_backend_clients_created"),
            (metrics.secret_writes_total, "external_secrets_operator_secret_writes"),
            (metrics.policy_denied_total, "external_secrets_operator_policy_denied"),
            (metrics.api_call_total, "external_secrets_operator_api_call"),
            (metrics.error_total, "external_secrets_operator_error"),
        ],
    )
    def test_metric_names(self, metric, name):
        """Test metric names (counters drop the _total suffix in _name)."""
        assert metric._name == name


class TestMetricsRecording:
    """Test that metrics record values."""

    def test_counter_increments(self):
        """Test that a labelled counter increments."""
        labels = {"backend": "vault", "operation": "fetch_one", "result": "success"}
        before = REGISTRY.get_sample_value("external_secrets_operator_backend_call_total", labels) or 0.0

        metrics.backend_call_total.labels(**labels).inc()

        assert REGISTRY.get_sample_value("external_secrets_operator_backend_call_total", labels) == before + 1

    def test_histogram_observes(self):
        """Test that a histogram counts observations."""
        labels = {"kind": "MetricsTest"}

        metrics.reconcile_duration_seconds.labels(**labels).observe(0.3)

        assert REGISTRY.get_sample_value("external_secrets_operator_reconcile_duration_seconds_count", labels) == 1.0

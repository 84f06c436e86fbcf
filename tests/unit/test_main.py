"""Tests for operator startup."""

from __future__ import annotations

from unittest.mock import patch

import kopf
import pytest

from external_secrets_operator import health, main


class TestLoadConfig:
    """Test cases for load_config."""

    def test_valid_environment(self, monkeypatch):
        """Test that configuration is read from the environment."""
        monkeypatch.setenv("POLLER_INTERVAL_MILLISECONDS", "3000")

        assert main.load_config().poll_interval_millis == 3000

    def test_malformed_environment_is_fatal(self, monkeypatch):
        """Test that malformed configuration stops the operator."""
        monkeypatch.setenv("POLLER_INTERVAL_MILLISECONDS", "often")

        with pytest.raises(kopf.PermanentError, match="POLLER_INTERVAL_MILLISECONDS"):
            main.load_config()


class TestConfigure:
    """Test cases for the startup handler."""

    @patch("external_secrets_operator.main.health.start_metrics_server")
    @patch("external_secrets_operator.main.configure_handler")
    @patch("external_secrets_operator.main.initialize_tracing")
    def test_configure(self, mock_tracing, mock_configure_handler, mock_server, monkeypatch):
        """Test that startup wires settings, the handler and the metrics server."""
        monkeypatch.setenv("METRICS_PORT", "9090")
        settings = kopf.OperatorSettings()

        try:
            main.configure(settings)

            assert settings.networking.request_timeout == 30.0
            assert isinstance(settings.persistence.progress_storage, kopf.AnnotationsProgressStorage)
            mock_tracing.assert_called_once()
            mock_configure_handler.assert_called_once()
            mock_server.assert_called_once_with(9090)
            assert health.is_ready()
        finally:
            health.set_ready(False)

"""Tests for structured logging."""

from __future__ import annotations

import json
import logging

from external_secrets_operator.logging import log_resource_event, sanitize_secrets


class TestLogResourceEvent:
    """Test cases for log_resource_event."""

    def test_json_record(self, caplog):
        """Test that the event is logged as a single JSON object."""
        logger = logging.getLogger("test.structured")

        with caplog.at_level(logging.INFO, logger="test.structured"):
            log_resource_event(
                logger,
                resource_kind="ExternalSecret",
                resource_name="db",
                namespace="team-a",
                uid="uid-db",
                event="synced",
                reason="Synced",
                message="ok",
                backend="systemManager",
            )

        record = json.loads(caplog.records[-1].getMessage())
        assert record == {
            "controller": "external-secrets-operator",
            "resource": "ExternalSecret",
            "name": "db",
            "namespace": "team-a",
            "uid": "uid-db",
            "event": "synced",
            "reason": "Synced",
            "message": "ok",
            "backend": "systemManager",
        }

    def test_extra_fields_sanitized(self, caplog):
        """Test that secret-bearing extra fields are redacted."""
        logger = logging.getLogger("test.structured")

        with caplog.at_level(logging.INFO, logger="test.structured"):
            log_resource_event(logger, "ExternalSecret", "db", "team-a", "uid", "e", "r", "m", token="s.abc")

        assert json.loads(caplog.records[-1].getMessage())["token"] == "[REDACTED]"


class TestSanitizeSecrets:
    """Test cases for sanitize_secrets."""

    def test_redacts(self):
        """Test that sensitive keys are redacted."""
        assert sanitize_secrets({"password": "x", "name": "db"}) == {"password": "[REDACTED]", "name": "db"}

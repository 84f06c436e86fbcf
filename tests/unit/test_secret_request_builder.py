"""Tests for the SecretRequest builder."""

from __future__ import annotations

import pytest

from conftest import make_body
from external_secrets_operator.builders.secret_request import (
    add_fetched_values,
    create_data_item_from_spec,
    create_secret_request_from_body,
)
from external_secrets_operator.models import DataItem, FetchedValue, FetchResult
from external_secrets_operator.utils.errors import InvalidSpecError


class TestCreateDataItem:
    """Test cases for create_data_item_from_spec."""

    def test_key_item(self):
        """Test parsing a key item."""
        item = create_data_item_from_spec({"key": "/app/db", "name": "db", "property": "password"}, 0)

        assert item == DataItem(key="/app/db", name="db", property_name="password")
        assert item.is_path is False
        assert item.source == "/app/db"

    def test_path_item(self):
        """Test parsing a path item."""
        item = create_data_item_from_spec({"path": "/app", "recursive": True, "isBinary": True}, 0)

        assert item.is_path is True
        assert item.recursive is True
        assert item.is_binary is True
        assert item.source == "/app"

    @pytest.mark.parametrize(
        "raw, match",
        [
            ({"key": "/a", "path": "/b", "name": "a"}, "only one of key and path"),
            ({"name": "a"}, "must set key or path"),
            ({"key": "/a"}, "requires name"),
            ({"key": "/a", "name": "a", "recursive": True}, "recursive is only valid with path"),
            ({"path": "/a", "property": "x"}, "property is only valid with key"),
            ("not-an-object", "must be an object"),
        ],
    )
    def test_invalid_items(self, raw, match):
        """Test that malformed items are rejected."""
        with pytest.raises(InvalidSpecError, match=match):
            create_data_item_from_spec(raw, 0)


class TestCreateSecretRequest:
    """Test cases for create_secret_request_from_body."""

    def test_parses_body(self):
        """Test a complete body."""
        body = make_body(
            name="db",
            namespace="team-a",
            region="eu-west-1",
            roleArn="arn:aws:iam::123456789012:role/app",
            pollIntervalMillis=2000,
            data=[{"key": "/app/password", "name": "password"}, {"path": "/app/extra"}],
        )

        request = create_secret_request_from_body(body, "us-west-2")

        assert request.key == "team-a/db"
        assert request.backend_type == "systemManager"
        assert request.region == "eu-west-1"
        assert request.role_arn == "arn:aws:iam::123456789012:role/app"
        assert request.poll_interval_millis == 2000
        assert request.uid == "uid-db"
        assert request.generation == 1
        assert len(request.data) == 2

    def test_default_region(self):
        """Test that the controller region applies when none is given."""
        request = create_secret_request_from_body(make_body(), "us-west-2")
        assert request.region == "us-west-2"

    @pytest.mark.parametrize(
        "body, match",
        [
            (make_body(backend_type=""), "backendType is required"),
            (make_body(backend_type="gcpSecretsManager"), "Unsupported backendType"),
            (make_body(backend_type="vault", roleArn="arn:aws:iam::1:role/x"), "roleArn is not supported"),
            (make_body(data=[]), "at least one data item"),
            (make_body(backend_type="secretsManager", data=[{"path": "/a", "recursive": True}]), "recursive"),
            (
                make_body(data=[{"key": "/a", "name": "dup"}, {"key": "/b", "name": "dup"}]),
                "duplicate target names: dup",
            ),
            (make_body(pollIntervalMillis="fast"), "must be an integer"),
            (make_body(pollIntervalMillis=0), "must be positive"),
        ],
    )
    def test_invalid_bodies(self, body, match):
        """Test that invalid specs are rejected."""
        with pytest.raises(InvalidSpecError, match=match):
            create_secret_request_from_body(body, "us-west-2")


class TestAddFetchedValues:
    """Test cases for add_fetched_values."""

    def test_merges_entries(self):
        """Test that distinct names are merged."""
        result = FetchResult()
        add_fetched_values(result, [("a", FetchedValue(b"1", "1"))], "/x")
        add_fetched_values(result, [("b", FetchedValue(b"2", "1"))], "/y")

        assert result.data == {"a": b"1", "b": b"2"}
        assert result.fingerprints == {"a": "1", "b": "1"}

    def test_collision_rejected(self):
        """Test that a path expansion colliding with another item is rejected."""
        result = FetchResult()
        add_fetched_values(result, [("password", FetchedValue(b"1", "1"))], "/app/password")

        with pytest.raises(InvalidSpecError, match="target name password from /other collides"):
            add_fetched_values(result, [("password", FetchedValue(b"2", "1"))], "/other")

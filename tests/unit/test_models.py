"""Tests for reconciliation models."""

from __future__ import annotations

from external_secrets_operator.models import DataItem, FetchedValue, FetchResult, SyncState


class TestDataItem:
    """Test cases for DataItem."""

    def test_key_item(self):
        """Test that a key item reports its key as the source."""
        item = DataItem(key="/app/db", name="db", property_name="password")

        assert item.is_path is False
        assert item.source == "/app/db"
        assert item.property_name == "password"

    def test_path_item(self):
        """Test that a path item reports its path as the source."""
        item = DataItem(path="/app/", recursive=True)

        assert item.is_path is True
        assert item.source == "/app/"


class TestFetchResult:
    """Test cases for FetchResult."""

    def test_fingerprints_and_data(self):
        """Test that values and fingerprints are keyed by target name."""
        result = FetchResult()
        result.add("password", FetchedValue(b"foo", "3", "/app/password"))

        assert "password" in result
        assert len(result) == 1
        assert result.fingerprints == {"password": "3"}
        assert result.data == {"password": b"foo"}


class TestSyncState:
    """Test cases for SyncState.from_status."""

    def test_from_status(self):
        """Test that persisted status fields are read back."""
        state = SyncState.from_status(
            {"fingerprints": {"password": "3"}, "outcome": "success", "status": "SUCCESS", "lastSync": "t"}
        )

        assert state.fingerprints == {"password": "3"}
        assert state.outcome == "success"
        assert state.message == "SUCCESS"
        assert state.last_sync == "t"

    def test_empty_status(self):
        """Test that a resource without status has no fingerprints."""
        assert SyncState.from_status(None) == SyncState()

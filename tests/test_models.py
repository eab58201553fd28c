"""
Unit tests for models.py
"""

import dataclasses

import pytest

from mysql_backup.errors import ConfigurationError
from mysql_backup.models import (
    BackupEngine,
    ConnectionConfig,
    ConnectionSlot,
    CopyStats,
    SessionState,
    SlotStatus,
    TableSnapshot,
)


class TestBackupEngine:
    """Tests for BackupEngine enum."""

    def test_values(self):
        """Test enum values."""
        assert BackupEngine.MYSQLDUMP.value == "mysqldump"
        assert BackupEngine.NATIVE.value == "native"

    def test_from_string(self):
        """Test creating from string."""
        assert BackupEngine("native") == BackupEngine.NATIVE

    def test_invalid_value(self):
        """Test invalid value raises error."""
        with pytest.raises(ValueError):
            BackupEngine("xtrabackup")


class TestConnectionConfig:
    """Tests for ConnectionConfig dataclass."""

    def test_defaults(self):
        """Test default values."""
        config = ConnectionConfig(host="localhost", username="root", database="app")
        assert config.port == 3306
        assert config.password == ""
        assert config.ssl is False

    def test_immutable(self):
        """Test that the config cannot be changed after creation."""
        config = ConnectionConfig(host="localhost", username="root", database="app")
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.host = "other"

    def test_validate_ok(self):
        """Test validation of a complete config."""
        config = ConnectionConfig(host="localhost", username="root", database="app")
        assert config.validate() is config

    def test_validate_names_missing_fields(self):
        """Test that every missing field is reported."""
        config = ConnectionConfig(host="", username="root", database="")
        with pytest.raises(ConfigurationError) as excinfo:
            config.validate()
        assert "host" in str(excinfo.value)
        assert "database" in str(excinfo.value)
        assert "username" not in str(excinfo.value)

    def test_repr_hides_password(self):
        """Test the password does not appear in repr."""
        config = ConnectionConfig(host="h", username="u", database="a", password="hunter2")
        assert "hunter2" not in repr(config)

    def test_describe(self):
        """Test the host:port/database description."""
        config = ConnectionConfig(host="db", username="u", database="app", port=3307)
        assert config.describe() == "db:3307/app"


class TestTableSnapshot:
    """Tests for TableSnapshot dataclass."""

    def test_default_rows(self):
        """Test that each snapshot gets its own row list."""
        a = TableSnapshot(name="a", create_statement="CREATE TABLE a")
        b = TableSnapshot(name="b", create_statement="CREATE TABLE b")
        a.rows.append({"id": 1})
        assert b.rows == []


class TestCopyStats:
    """Tests for CopyStats dataclass."""

    def test_defaults(self):
        """Test default values."""
        stats = CopyStats()
        assert stats.tables_copied == 0
        assert stats.rows_copied == 0
        assert stats.errors == {}


class TestSessionState:
    """Tests for connection slots."""

    def test_initial_state(self):
        """Test both slots start untested."""
        state = SessionState()
        assert state.source.status == SlotStatus.UNTESTED
        assert state.target.status == SlotStatus.UNTESTED
        assert state.source.label == "source"
        assert state.target.label == "target"
        assert not state.source.ready

    def test_mark_ok_and_reset(self):
        """Test slot transitions."""
        slot = ConnectionSlot("source")
        config = ConnectionConfig(host="h", username="u", database="d")

        slot.mark_ok(config)
        assert slot.ready
        assert slot.config == config

        slot.reset()
        assert not slot.ready
        assert slot.config is None

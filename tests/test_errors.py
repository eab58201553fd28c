"""
Unit tests for errors.py
"""

import pytest
from mysql.connector import Error as MySQLError

from mysql_backup.errors import (
    BackupToolError,
    CompressionError,
    ConfigurationError,
    DatabaseConnectionError,
    DumpError,
    NotificationError,
    QueryError,
    RestoreError,
    classify_connection_error,
)


class TestHierarchy:
    """Tests for the exception hierarchy."""

    @pytest.mark.parametrize("error_class", [
        CompressionError,
        ConfigurationError,
        DatabaseConnectionError,
        DumpError,
        NotificationError,
        QueryError,
        RestoreError,
    ])
    def test_subclasses_base(self, error_class):
        """Test every error derives from BackupToolError."""
        assert issubclass(error_class, BackupToolError)


class TestClassifyConnectionError:
    """Tests for classify_connection_error."""

    def test_connection_refused(self):
        """Test refused connections."""
        error = classify_connection_error(MySQLError(
            msg="Can't connect to MySQL server on '10.0.0.1:3306' (111 Connection refused)",
            errno=2003
        ))
        assert isinstance(error, DatabaseConnectionError)
        assert error.hint.startswith("Connection refused")
        assert "Connection refused" in str(error)

    def test_refused_by_errno_only(self):
        """Test errno matching when the text is unhelpful."""
        error = classify_connection_error(MySQLError(msg="socket error", errno=2003))
        assert error.hint.startswith("Connection refused")

    def test_access_denied(self):
        """Test bad credentials."""
        error = classify_connection_error(MySQLError(
            msg="Access denied for user 'root'@'localhost'", errno=1045
        ))
        assert error.hint.startswith("Access denied")

    def test_host_not_found(self):
        """Test unknown hosts, even when reported under the refused errno."""
        error = classify_connection_error(MySQLError(
            msg="Can't connect to MySQL server on 'nohost:3306' (-2 Name or service not known)",
            errno=2003
        ))
        assert error.hint.startswith("Host not found")

    def test_unknown_database(self):
        """Test a missing database."""
        error = classify_connection_error(MySQLError(msg="Unknown database 'nope'", errno=1049))
        assert error.hint.startswith("Unknown database")

    def test_unmatched_keeps_text(self):
        """Test that unknown errors keep the driver text and have no hint."""
        error = classify_connection_error(RuntimeError("something odd"))
        assert str(error) == "something odd"
        assert error.hint is None

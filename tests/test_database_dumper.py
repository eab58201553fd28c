"""
Unit tests for database_dumper.py
"""

import tempfile
from datetime import datetime, timezone
from pathlib import Path
from unittest import mock

import pytest

from mysql_backup.database_dumper import DatabaseCopier, DatabaseDumper, TableFilter
from mysql_backup.errors import DumpError, QueryError
from mysql_backup.models import ConnectionConfig

NOW = datetime(2024, 1, 15, 10, 30, 45, 123000, tzinfo=timezone.utc)


def make_connection(tables):
    """Mock DatabaseConnection serving `tables` as {name: (ddl, rows)}."""
    conn = mock.MagicMock()
    conn.config = ConnectionConfig(host="localhost", username="root", database="shop")
    conn.get_tables.return_value = list(tables)
    conn.get_create_table.side_effect = lambda name: tables[name][0]
    conn.fetch_rows.side_effect = lambda name: tables[name][1]
    return conn


class TestTableFilter:
    """Tests for TableFilter."""

    def test_no_patterns_selects_everything(self):
        """Test the default filter."""
        assert TableFilter().apply(["a", "b"]) == ["a", "b"]

    def test_exact_exclude(self):
        """Test exact pattern match."""
        table_filter = TableFilter(exclude=["test_data"])
        assert table_filter.is_selected("test_data") is False
        assert table_filter.is_selected("test_data_2") is True

    def test_wildcard_exclude(self):
        """Test suffix and prefix wildcards."""
        table_filter = TableFilter(exclude=["*_backup", "tmp_*"])
        assert table_filter.is_selected("users_backup") is False
        assert table_filter.is_selected("tmp_data") is False
        assert table_filter.is_selected("backup_users") is True

    def test_include(self):
        """Test that include limits the selection."""
        table_filter = TableFilter(include=["users", "order*"])
        assert table_filter.apply(["users", "orders", "products"]) == ["users", "orders"]

    def test_exclude_wins_over_include(self):
        """Test exclusion applies after inclusion."""
        table_filter = TableFilter(include=["order*"], exclude=["orders_old"])
        assert table_filter.apply(["orders", "orders_old"]) == ["orders"]

    def test_keeps_server_order(self):
        """Test that filtering keeps the listing order."""
        assert TableFilter(exclude=["b"]).apply(["c", "b", "a"]) == ["c", "a"]


class TestDatabaseDumper:
    """Tests for DatabaseDumper.backup."""

    def test_backup_writes_tables_in_order(self):
        """Test the dump file layout across tables."""
        conn = make_connection({
            "users": ("CREATE TABLE `users` (`id` int)", [{"id": 1}]),
            "empty": ("CREATE TABLE `empty` (`id` int)", []),
        })

        with tempfile.TemporaryDirectory() as tmpdir:
            artifact = DatabaseDumper(conn).backup(Path(tmpdir), now=NOW)
            content = artifact.path.read_text()

            assert artifact.path.name == "shop-2024-01-15T10-30-45-123Z.sql"
            assert artifact.size == artifact.path.stat().st_size
            assert artifact.compressed is False
            assert artifact.created_at == NOW

        assert content == (
            "CREATE TABLE `users` (`id` int);\n\n"
            "INSERT INTO `users` (`id`) VALUES (1);\n"
            "\n"
            "CREATE TABLE `empty` (`id` int);\n\n"
            "\n"
        )

    def test_backup_creates_output_dir(self):
        """Test that a missing output directory is created."""
        conn = make_connection({"t": ("CREATE TABLE `t` (`id` int)", [])})

        with tempfile.TemporaryDirectory() as tmpdir:
            output_dir = Path(tmpdir) / "nested" / "backups"
            artifact = DatabaseDumper(conn).backup(output_dir, now=NOW)
            assert artifact.path.parent == output_dir
            assert artifact.path.exists()

    def test_backup_applies_filter(self):
        """Test that excluded tables are not dumped."""
        conn = make_connection({
            "users": ("CREATE TABLE `users` (`id` int)", []),
            "users_backup": ("CREATE TABLE `users_backup` (`id` int)", []),
        })

        with tempfile.TemporaryDirectory() as tmpdir:
            artifact = DatabaseDumper(conn, TableFilter(exclude=["*_backup"])).backup(Path(tmpdir), now=NOW)
            content = artifact.path.read_text()

        assert "`users_backup`" not in content
        conn.get_create_table.assert_called_once_with("users")

    def test_empty_database_is_a_failure(self):
        """Test that a zero-byte dump raises DumpError."""
        conn = make_connection({})

        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(DumpError, match="empty"):
                DatabaseDumper(conn).backup(Path(tmpdir), now=NOW)

    def test_partial_output_left_in_place(self):
        """Test that a failure mid-dump leaves the written part on disk."""
        conn = make_connection({
            "users": ("CREATE TABLE `users` (`id` int)", [{"id": 1}]),
            "orders": ("CREATE TABLE `orders` (`id` int)", []),
        })
        conn.fetch_rows.side_effect = [[{"id": 1}], QueryError("boom")]

        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(QueryError):
                DatabaseDumper(conn).backup(Path(tmpdir), now=NOW)

            files = list(Path(tmpdir).iterdir())
            assert len(files) == 1
            assert "CREATE TABLE `users`" in files[0].read_text()


class TestDatabaseCopier:
    """Tests for DatabaseCopier.copy."""

    @pytest.fixture
    def source(self):
        return make_connection({
            "users": ("CREATE TABLE `users` (`id` int)", [{"id": 1}, {"id": 2}]),
            "orders": ("CREATE TABLE `orders` (`id` int)", []),
        })

    def test_copy_statements(self, source):
        """Test the statements sent to the target."""
        target = mock.MagicMock()

        stats = DatabaseCopier(source, target).copy()

        assert stats.tables_copied == 2
        assert stats.rows_copied == 2
        assert stats.errors == {}
        statements = [c.args[0] for c in target.execute.call_args_list]
        assert statements == [
            "SET FOREIGN_KEY_CHECKS=0",
            "DROP TABLE IF EXISTS `users`",
            "CREATE TABLE `users` (`id` int)",
            "INSERT INTO `users` (`id`) VALUES (1),(2);",
            "DROP TABLE IF EXISTS `orders`",
            "CREATE TABLE `orders` (`id` int)",
            "SET FOREIGN_KEY_CHECKS=1",
        ]

    def test_table_failure_continues(self, source):
        """Test that one failing table is recorded and the next is copied."""
        def execute(sql):
            if sql.startswith("CREATE TABLE `users`"):
                raise QueryError("no privilege")
            return 0

        target = mock.MagicMock()
        target.execute.side_effect = execute

        stats = DatabaseCopier(source, target).copy()

        assert stats.errors == {"users": "no privilege"}
        assert stats.tables_copied == 1
        assert target.execute.call_args_list[-1] == mock.call("SET FOREIGN_KEY_CHECKS=1")

    def test_foreign_key_checks_restored_on_abort(self, source):
        """Test that FK checks are re-enabled when the copy aborts."""
        target = mock.MagicMock()
        source.get_tables.side_effect = RuntimeError("listing failed")

        with pytest.raises(RuntimeError):
            DatabaseCopier(source, target).copy()

        assert target.execute.call_args_list == [
            mock.call("SET FOREIGN_KEY_CHECKS=0"),
            mock.call("SET FOREIGN_KEY_CHECKS=1"),
        ]

"""
Whole-database dump and copy orchestration for MySQL Backup.
"""

import fnmatch
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .connection import DatabaseConnection
from .errors import BackupToolError, DumpError
from .models import BackupArtifact, CopyStats
from .table_dumper import INSERT_BATCH_SIZE, TableDumper, iter_insert_statements
from .utils import backup_filename


class TableFilter:
    """Include/exclude table selection with fnmatch-style patterns.

    Supports:
    - Exact matches: 'users_backup'
    - Wildcard patterns: '*_old', 'tmp_*', '*_backup_*'
    """

    def __init__(
        self,
        include: Optional[list[str]] = None,
        exclude: Optional[list[str]] = None
    ):
        self.include = include or []
        self.exclude = exclude or []
        self._include_patterns = self._compile(self.include)
        self._exclude_patterns = self._compile(self.exclude)

    @staticmethod
    def _compile(patterns: list[str]) -> list[re.Pattern]:
        return [re.compile(fnmatch.translate(pattern)) for pattern in patterns]

    def is_selected(self, table: str) -> bool:
        if self._include_patterns and not any(p.match(table) for p in self._include_patterns):
            return False
        for pattern, compiled in zip(self.exclude, self._exclude_patterns):
            if compiled.match(table):
                logging.debug(f"Table '{table}' excluded by pattern '{pattern}'")
                return False
        return True

    def apply(self, tables: list[str]) -> list[str]:
        selected = [t for t in tables if self.is_selected(t)]
        skipped = len(tables) - len(selected)
        if skipped > 0:
            logging.info(f"Skipped {skipped} table(s) by include/exclude patterns")
        return selected


class DatabaseDumper:
    """Writes a whole database to one SQL file through the client library."""

    def __init__(
        self,
        connection: DatabaseConnection,
        table_filter: Optional[TableFilter] = None,
        batch_size: int = INSERT_BATCH_SIZE
    ):
        self.connection = connection
        self.table_filter = table_filter or TableFilter()
        self.table_dumper = TableDumper(connection, batch_size)

    def backup(self, output_dir: Path, now: Optional[datetime] = None) -> BackupArtifact:
        """Dump every selected table into `<database>-<timestamp>.sql`.

        The file is closed on success and on error. A partially written file
        is left in place for the caller to handle.
        """
        now = now or datetime.now(timezone.utc)
        output_dir = Path(output_dir)
        database = self.connection.config.database
        backup_file = output_dir / backup_filename(database, now)

        logging.info(f"Starting backup of database: {database}")
        logging.info(f"Backup location: {backup_file}")

        tables = self.table_filter.apply(self.connection.get_tables())
        total_rows = 0

        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            with open(backup_file, 'w', encoding='utf-8') as file_handle:
                for table in tables:
                    logging.info(f"Backing up table: {table}")
                    total_rows += self.table_dumper.dump_table(table, file_handle)
            size = backup_file.stat().st_size
        except OSError as e:
            raise DumpError(f"Failed to write backup file {backup_file}: {e}") from e

        if size == 0:
            raise DumpError(f"Backup file is empty: {backup_file}")

        logging.info(f"Backup completed: {len(tables)} table(s), {total_rows} row(s), {size:,} bytes")
        return BackupArtifact(path=backup_file, size=size, created_at=now)


class DatabaseCopier:
    """Copies schema and data table by table from a source to a target connection."""

    def __init__(
        self,
        source: DatabaseConnection,
        target: DatabaseConnection,
        table_filter: Optional[TableFilter] = None,
        batch_size: int = INSERT_BATCH_SIZE
    ):
        self.source = source
        self.target = target
        self.table_filter = table_filter or TableFilter()
        self.batch_size = batch_size
        self.table_dumper = TableDumper(source, batch_size)

    def copy(self) -> CopyStats:
        """Copy every selected table.

        Foreign key checks on the target are disabled for the duration of the
        copy and re-enabled even if the copy aborts. A failure on one table
        is recorded and the next table is attempted.
        """
        stats = CopyStats()
        logging.info("Starting database copy...")

        self.target.execute("SET FOREIGN_KEY_CHECKS=0")
        try:
            for table in self.table_filter.apply(self.source.get_tables()):
                logging.info(f"Copying table: {table}")
                try:
                    stats.rows_copied += self._copy_table(table)
                    stats.tables_copied += 1
                except BackupToolError as e:
                    logging.error(f"Error copying table {table}: {e}")
                    stats.errors[table] = str(e)
        finally:
            self.target.execute("SET FOREIGN_KEY_CHECKS=1")

        logging.info(
            f"Database copy finished: {stats.tables_copied} table(s), "
            f"{stats.rows_copied} row(s), {len(stats.errors)} error(s)"
        )
        return stats

    def _copy_table(self, table: str) -> int:
        snapshot = self.table_dumper.extract(table)
        self.target.execute(f"DROP TABLE IF EXISTS `{table}`")
        self.target.execute(snapshot.create_statement)
        for statement in iter_insert_statements(table, snapshot.rows, self.batch_size):
            self.target.execute(statement)
        self.target.commit()
        return len(snapshot.rows)

"""
Table dumping functionality for MySQL Backup.
"""

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Iterator, TextIO

from .connection import DatabaseConnection
from .errors import DumpError
from .models import TableSnapshot

INSERT_BATCH_SIZE = 500


def _format_datetime(value: date) -> str:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return f"'{value.strftime('%Y-%m-%d %H:%M:%S')}'"
    return f"'{value.strftime('%Y-%m-%d')} 00:00:00'"


def _format_string(value: Any) -> str:
    escaped = str(value).replace("'", "\\'")
    return f"'{escaped}'"


def _format_time(value: timedelta) -> str:
    """TIME columns arrive as timedelta; write them as signed total hours."""
    sign = '-' if value < timedelta(0) else ''
    value = abs(value)
    seconds = value.days * 86400 + value.seconds
    text = f"{sign}{seconds // 3600}:{seconds % 3600 // 60:02d}:{seconds % 60:02d}"
    if value.microseconds:
        text += f".{value.microseconds:06d}"
    return f"'{text}'"


def _format_set(value: Any) -> str:
    """SET columns arrive as Python sets of member names."""
    return _format_string(','.join(sorted(value)))


# Exact-type dispatch; subclasses fall through to the isinstance checks below.
_TYPE_FORMATTERS: dict[type, Callable[[Any], str]] = {
    type(None): lambda v: 'NULL',
    bool: lambda v: '1' if v else '0',
    int: str,
    float: str,
    Decimal: str,
    bytes: lambda v: f"X'{v.hex()}'",
    bytearray: lambda v: f"X'{v.hex()}'",
    datetime: _format_datetime,
    date: _format_datetime,
    timedelta: _format_time,
    set: _format_set,
    frozenset: _format_set,
    str: _format_string,
}


def format_sql_value(value: Any) -> str:
    """Format one cell as a SQL literal.

    Only single quotes are escaped in string values. Backslashes and
    control characters are written as-is.
    """
    formatter = _TYPE_FORMATTERS.get(type(value))
    if formatter:
        return formatter(value)

    if isinstance(value, (datetime, date)):
        return _format_datetime(value)
    if isinstance(value, timedelta):
        return _format_time(value)
    if isinstance(value, (set, frozenset)):
        return _format_set(value)
    return _format_string(value)


def iter_insert_statements(
    table: str,
    rows: list[dict[str, Any]],
    batch_size: int = INSERT_BATCH_SIZE
) -> Iterator[str]:
    """Yield one INSERT statement (without trailing newline) per batch of rows.

    Column names come from the first row. Every other row must carry the
    same columns, otherwise DumpError is raised.
    """
    if not rows:
        return

    columns = list(rows[0].keys())
    column_set = set(columns)
    quoted_columns = ','.join(f'`{col}`' for col in columns)

    for start in range(0, len(rows), batch_size):
        batch = rows[start:start + batch_size]
        tuples = []
        for offset, row in enumerate(batch):
            if set(row.keys()) != column_set:
                raise DumpError(
                    f"Row {start + offset} of table '{table}' has columns "
                    f"{sorted(row.keys())}, expected {sorted(columns)}"
                )
            values = ','.join(format_sql_value(row[col]) for col in columns)
            tuples.append(f"({values})")
        yield f"INSERT INTO `{table}` ({quoted_columns}) VALUES {','.join(tuples)};"


class TableDumper:
    """Extracts single tables and writes them as SQL."""

    def __init__(self, connection: DatabaseConnection, batch_size: int = INSERT_BATCH_SIZE):
        self.connection = connection
        self.batch_size = batch_size

    def extract(self, table: str) -> TableSnapshot:
        """Read the CREATE TABLE text and all rows of a table."""
        create_statement = self.connection.get_create_table(table)
        rows = self.connection.fetch_rows(table)
        logging.debug(f"Extracted {len(rows)} row(s) from '{table}'")
        return TableSnapshot(name=table, create_statement=create_statement, rows=rows)

    def write(self, snapshot: TableSnapshot, file_handle: TextIO) -> int:
        """Write a snapshot to an open stream and return the number of rows written."""
        file_handle.write(f"{snapshot.create_statement};\n\n")

        for statement in iter_insert_statements(snapshot.name, snapshot.rows, self.batch_size):
            file_handle.write(f"{statement}\n")

        file_handle.write("\n")
        return len(snapshot.rows)

    def dump_table(self, table: str, file_handle: TextIO) -> int:
        """Extract a table and write it to the stream."""
        snapshot = self.extract(table)
        return self.write(snapshot, file_handle)

"""
Database connection management for MySQL Backup.
"""

import logging
from typing import Optional, Any

import mysql.connector
from mysql.connector import Error as MySQLError

from .errors import DatabaseConnectionError, QueryError, classify_connection_error
from .models import ConnectionConfig


class DatabaseConnection:
    """Manages a MySQL connection with context manager support."""

    DEFAULT_CHARSET = 'utf8mb4'

    def __init__(self, config: ConnectionConfig):
        self.config = config
        self.connection = None

    def __enter__(self) -> "DatabaseConnection":
        """Context manager entry - establish connection."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - close connection."""
        self.disconnect()

    def connect(self) -> None:
        """Establish database connection.

        Driver errors are remapped to DatabaseConnectionError with a hint
        describing the likely cause.
        """
        options = {
            'host': self.config.host,
            'port': self.config.port,
            'user': self.config.username,
            'password': self.config.password,
            'database': self.config.database,
            'charset': self.DEFAULT_CHARSET,
            'use_unicode': True,
        }
        if self.config.ssl:
            options['ssl_disabled'] = False

        try:
            self.connection = mysql.connector.connect(**options)
            logging.info(f"Connected to {self.config.describe()}")
        except MySQLError as e:
            error = classify_connection_error(e)
            logging.error(f"Failed to connect to database: {error}")
            raise error from e

    def disconnect(self) -> None:
        """Close database connection."""
        if self.connection and self.connection.is_connected():
            self.connection.close()
            logging.debug("Database connection closed")

    def ping(self) -> None:
        """Round-trip to the server to prove the session is usable."""
        self._require_connection()
        try:
            self.connection.ping(reconnect=False)
        except MySQLError as e:
            raise classify_connection_error(e) from e

    def _require_connection(self) -> None:
        if self.connection is None or not self.connection.is_connected():
            raise DatabaseConnectionError(
                f"Not connected to {self.config.host}:{self.config.port}"
            )

    def execute_query(self, query: str, params: Optional[tuple] = None) -> list[tuple]:
        """Execute a query and return results."""
        self._require_connection()
        cursor = self.connection.cursor()
        try:
            cursor.execute(query, params)
            return cursor.fetchall()
        except mysql.connector.InterfaceError as e:
            raise classify_connection_error(e) from e
        except MySQLError as e:
            raise QueryError(f"Query failed: {e}") from e
        finally:
            cursor.close()

    def execute(self, statement: str) -> int:
        """Execute a statement that returns no rows; return affected row count."""
        self._require_connection()
        cursor = self.connection.cursor()
        try:
            cursor.execute(statement)
            return cursor.rowcount
        except mysql.connector.InterfaceError as e:
            raise classify_connection_error(e) from e
        except MySQLError as e:
            raise QueryError(f"Statement failed: {e}") from e
        finally:
            cursor.close()

    def commit(self) -> None:
        self.connection.commit()

    def get_tables(self) -> list[str]:
        """Get list of all tables in the current database, in server order."""
        results = self.execute_query("SHOW TABLES")
        return [row[0] for row in results]

    def get_create_table(self, table: str) -> str:
        """Get CREATE TABLE statement exactly as the server reports it."""
        results = self.execute_query(f"SHOW CREATE TABLE `{table}`")
        return results[0][1]

    def fetch_rows(self, table: str) -> list[dict[str, Any]]:
        """Fetch every row of a table as column -> value mappings."""
        self._require_connection()
        cursor = self.connection.cursor(dictionary=True)
        try:
            cursor.execute(f"SELECT * FROM `{table}`")
            return cursor.fetchall()
        except mysql.connector.InterfaceError as e:
            raise classify_connection_error(e) from e
        except MySQLError as e:
            raise QueryError(f"Failed to read rows from '{table}': {e}") from e
        finally:
            cursor.close()

    def get_database_size(self) -> int:
        """Total data + index size of the current database in bytes."""
        results = self.execute_query(
            "SELECT SUM(data_length + index_length) "
            "FROM information_schema.TABLES WHERE table_schema = %s",
            (self.config.database,)
        )
        size = results[0][0] if results else None
        return int(size or 0)

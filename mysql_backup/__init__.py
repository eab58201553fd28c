"""
MySQL Backup
============
A command-line tool to back up, restore, copy and test MySQL databases:
- mysqldump-based or built-in SQL dumps
- gzip / tar.gz compression
- Selective table restore
- Whole-database copy between servers
- Slack notifications
"""

__version__ = "1.0.0"

from .commands import (
    backup_command,
    config_command,
    copy_command,
    list_command,
    restore_command,
    test_command,
)
from .compression import Compressor
from .config import ConfigLoader
from .connection import DatabaseConnection
from .database_dumper import DatabaseCopier, DatabaseDumper, TableFilter
from .errors import (
    BackupToolError,
    CompressionError,
    ConfigurationError,
    DatabaseConnectionError,
    DumpError,
    NotificationError,
    QueryError,
    RestoreError,
)
from .main import main
from .models import (
    BackupArtifact,
    BackupEngine,
    BackupResult,
    CompressionResult,
    ConnectionConfig,
    CopyStats,
    RestoreRequest,
    SessionState,
    SlotStatus,
    TableSnapshot,
)
from .mysqldump import MySQLDumpTool
from .notification import SlackNotifier
from .table_dumper import INSERT_BATCH_SIZE, TableDumper, format_sql_value
from .utils import setup_logging

__all__ = [
    # Main entry point
    "main",
    # Commands
    "backup_command",
    "config_command",
    "copy_command",
    "list_command",
    "restore_command",
    "test_command",
    # Core classes
    "Compressor",
    "ConfigLoader",
    "DatabaseConnection",
    "DatabaseCopier",
    "DatabaseDumper",
    "MySQLDumpTool",
    "SlackNotifier",
    "TableDumper",
    "TableFilter",
    # Models
    "BackupArtifact",
    "BackupEngine",
    "BackupResult",
    "CompressionResult",
    "ConnectionConfig",
    "CopyStats",
    "RestoreRequest",
    "SessionState",
    "SlotStatus",
    "TableSnapshot",
    # Errors
    "BackupToolError",
    "CompressionError",
    "ConfigurationError",
    "DatabaseConnectionError",
    "DumpError",
    "NotificationError",
    "QueryError",
    "RestoreError",
    # Utilities
    "INSERT_BATCH_SIZE",
    "format_sql_value",
    "setup_logging",
]

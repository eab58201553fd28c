"""
Exception types for MySQL Backup.
"""

from typing import Optional


class BackupToolError(Exception):
    """Base class for all errors raised by the tool."""


class ConfigurationError(BackupToolError):
    """Required connection or tool settings are missing or invalid."""


class DatabaseConnectionError(BackupToolError):
    """The database server could not be reached or refused the session."""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.hint = hint


class QueryError(BackupToolError):
    """A statement sent to the server failed."""


class DumpError(BackupToolError):
    """A dump produced no usable output."""


class RestoreError(BackupToolError):
    """Applying a dump to the target database failed."""


class CompressionError(BackupToolError):
    """Compressing or decompressing a backup file failed."""


class NotificationError(BackupToolError):
    """A webhook notification could not be delivered."""


# (driver errno, message fragments, hint); checked in order, most specific first
CONNECTION_HINTS = [
    (
        1045,
        ("access denied",),
        "Access denied: verify the username and password",
    ),
    (
        1049,
        ("unknown database",),
        "Unknown database: make sure the database exists",
    ),
    (
        2005,
        ("unknown mysql server host", "name or service not known", "enotfound"),
        "Host not found: check the hostname",
    ),
    (
        2003,
        ("can't connect", "connection refused", "econnrefused"),
        "Connection refused: check that the MySQL server is running "
        "and the host and port are correct",
    ),
]


def classify_connection_error(error: Exception) -> DatabaseConnectionError:
    """Map a driver error to a DatabaseConnectionError carrying a readable hint."""
    errno = getattr(error, 'errno', None)
    text = str(error)
    lowered = text.lower()

    for _code, fragments, hint in CONNECTION_HINTS:
        if any(fragment in lowered for fragment in fragments):
            return DatabaseConnectionError(f"{hint} ({text})", hint=hint)

    for code, _fragments, hint in CONNECTION_HINTS:
        if errno == code:
            return DatabaseConnectionError(f"{hint} ({text})", hint=hint)

    return DatabaseConnectionError(text)

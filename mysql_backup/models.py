"""
Data models and enums for MySQL Backup.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .errors import ConfigurationError


class BackupEngine(Enum):
    """How a backup is produced."""
    MYSQLDUMP = "mysqldump"
    NATIVE = "native"


class SlotStatus(Enum):
    """Connection test state of a session slot."""
    UNTESTED = "untested"
    TESTED_OK = "tested-ok"


@dataclass(frozen=True)
class ConnectionConfig:
    """Connection parameters for one database, fixed for a command run."""
    host: str
    username: str
    database: str
    password: str = ""
    port: int = 3306
    ssl: bool = False

    REQUIRED_FIELDS = ('host', 'username', 'database')

    def missing_fields(self) -> list[str]:
        return [name for name in self.REQUIRED_FIELDS if not getattr(self, name)]

    def validate(self) -> "ConnectionConfig":
        """Raise ConfigurationError if any required field is empty."""
        missing = self.missing_fields()
        if missing:
            raise ConfigurationError(
                f"Missing required connection settings: {', '.join(missing)}"
            )
        return self

    def describe(self) -> str:
        return f"{self.host}:{self.port}/{self.database}"

    def __repr__(self) -> str:
        # Keep the password out of logs and tracebacks.
        return (
            f"ConnectionConfig(host={self.host!r}, port={self.port}, "
            f"username={self.username!r}, database={self.database!r}, ssl={self.ssl})"
        )


@dataclass
class TableSnapshot:
    """Schema and rows of one table, held only while it is being written."""
    name: str
    create_statement: str
    rows: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class BackupArtifact:
    """A finished backup file."""
    path: Path
    size: int
    created_at: datetime
    compressed: bool = False
    compression_ratio: Optional[float] = None


@dataclass
class RestoreRequest:
    """What to restore and where."""
    backup_file: Path
    target_database: str
    tables: Optional[list[str]] = None


@dataclass
class BackupResult:
    """Outcome of a backup command, as reported to notifications."""
    success: bool
    backup_file: str
    size: int
    duration: float
    timestamp: datetime
    error: Optional[str] = None


@dataclass
class CompressionResult:
    """Output of a compression step."""
    path: Path
    size: int
    ratio: Optional[float] = None


@dataclass
class CopyStats:
    """Statistics for a database copy."""
    tables_copied: int = 0
    rows_copied: int = 0
    errors: dict[str, str] = field(default_factory=dict)


@dataclass
class ConnectionSlot:
    """One side (source or target) of an interactive session."""
    label: str
    status: SlotStatus = SlotStatus.UNTESTED
    config: Optional[ConnectionConfig] = None

    @property
    def ready(self) -> bool:
        return self.status == SlotStatus.TESTED_OK and self.config is not None

    def mark_ok(self, config: ConnectionConfig) -> None:
        self.status = SlotStatus.TESTED_OK
        self.config = config

    def reset(self) -> None:
        self.status = SlotStatus.UNTESTED
        self.config = None


@dataclass
class SessionState:
    """Connection slots of the interactive menu."""
    source: ConnectionSlot = field(default_factory=lambda: ConnectionSlot("source"))
    target: ConnectionSlot = field(default_factory=lambda: ConnectionSlot("target"))

"""
Utility functions for MySQL Backup.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

BACKUP_EXTENSIONS = ('.sql', '.gz', '.dump')


def setup_logging(log_settings: dict[str, Any]) -> None:
    """Setup logging configuration."""
    log_level = getattr(logging, str(log_settings.get('level') or 'INFO').upper())
    log_file = log_settings.get('file')

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def backup_timestamp(now: datetime) -> str:
    """UTC ISO-8601 timestamp with ':' and '.' replaced so it is safe in file names.

    >>> backup_timestamp(datetime(2024, 1, 15, 10, 30, 45, 123000, tzinfo=timezone.utc))
    '2024-01-15T10-30-45-123Z'
    """
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    iso = now.strftime('%Y-%m-%dT%H:%M:%S.') + f"{now.microsecond // 1000:03d}Z"
    return iso.replace(':', '-').replace('.', '-')


def backup_filename(database: str, now: datetime) -> str:
    return f"{database}-{backup_timestamp(now)}.sql"


def format_size(size: int) -> str:
    """Bytes as megabytes with two decimals."""
    return f"{size / 1024 / 1024:.2f} MB"


def format_duration(seconds: float) -> str:
    return f"{seconds:.2f} seconds"


def list_backup_files(directory: Path) -> list[Path]:
    """Backup files in a directory, sorted by name."""
    return sorted(
        path for path in Path(directory).iterdir()
        if path.is_file() and path.name.endswith(BACKUP_EXTENSIONS)
    )


def remove_partial_file(path: Path) -> None:
    """Best-effort removal of a backup file left behind by a failed run."""
    try:
        if path.exists():
            path.unlink()
            logging.info(f"Removed partial backup file: {path}")
    except OSError as e:
        logging.debug(f"Could not remove partial backup file {path}: {e}")

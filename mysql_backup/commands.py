"""
Command implementations for MySQL Backup.

Each command returns a process exit code: 0 on success, 1 on a fatal error.
Collaborators (compressor, notifier) are created per invocation and can be
passed in by callers and tests.
"""

import argparse
import logging
import tempfile
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

from .compression import Compressor
from .config import ConfigLoader, render_template
from .connection import DatabaseConnection
from .database_dumper import DatabaseCopier, DatabaseDumper, TableFilter
from .errors import BackupToolError, DatabaseConnectionError, DumpError, RestoreError
from .models import BackupArtifact, BackupEngine, BackupResult, ConnectionConfig, RestoreRequest
from .mysqldump import MySQLDumpTool
from .notification import SlackNotifier
from .utils import backup_filename, format_duration, format_size, list_backup_files, remove_partial_file

NotifierFactory = Callable[[Optional[str]], SlackNotifier]

TROUBLESHOOTING_TIPS = [
    "Verify database server is running",
    "Check host and port are correct",
    "Verify username and password",
    "Check firewall rules",
    "Ensure database exists",
]


def split_list(value: Optional[str]) -> Optional[list[str]]:
    """Comma-separated CLI value to a list of names."""
    if not value:
        return None
    items = [item.strip() for item in value.split(',') if item.strip()]
    return items or None


def connection_overrides(args: argparse.Namespace, prefix: str = '') -> dict[str, Any]:
    """Connection fields given on the command line, optionally under a flag prefix."""
    def get(name: str) -> Any:
        return getattr(args, f"{prefix}{name}", None)

    return {
        'host': get('host'),
        'port': get('port'),
        'username': get('user'),
        'password': get('password'),
        'database': get('database'),
        'ssl': get('ssl') or None,
    }


def check_connection(config: ConnectionConfig) -> None:
    """Connect and ping; raises DatabaseConnectionError with a hint on failure."""
    logging.info(f"Testing connection to {config.describe()}")
    with DatabaseConnection(config) as conn:
        conn.ping()
    logging.info(f"Connection successful: {config.describe()}")


def _log_failure(action: str, error: Exception) -> None:
    hint = getattr(error, 'hint', None)
    logging.error(f"{action} failed: {error}")
    if hint:
        logging.error(f"Hint: {hint}")


def run_backup(
    config: ConnectionConfig,
    output_dir: Path,
    engine: BackupEngine = BackupEngine.MYSQLDUMP,
    include_tables: Optional[list[str]] = None,
    exclude_tables: Optional[list[str]] = None,
    compressor: Optional[Compressor] = None,
    now: Optional[datetime] = None
) -> BackupArtifact:
    """Produce one backup file, optionally gzip it, and remove partial output on failure."""
    now = now or datetime.now(timezone.utc)
    output_dir = Path(output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DumpError(f"Cannot create backup directory {output_dir}: {e}") from e
    backup_file = output_dir / backup_filename(config.database, now)

    if engine is BackupEngine.MYSQLDUMP:
        tool = MySQLDumpTool(config)
        if not tool.check_tools(tool.dump_binary):
            raise DumpError(f"{tool.dump_binary} command not found. {tool.INSTALL_HINT}")

    try:
        if engine is BackupEngine.MYSQLDUMP:
            artifact = tool.dump(
                backup_file,
                include_tables=include_tables,
                exclude_tables=exclude_tables,
                now=now
            )
        else:
            with DatabaseConnection(config) as conn:
                dumper = DatabaseDumper(conn, TableFilter(include_tables, exclude_tables))
                artifact = dumper.backup(output_dir, now=now)
    except BackupToolError:
        remove_partial_file(backup_file)
        raise

    if compressor is None:
        return artifact

    try:
        result = compressor.compress_file(artifact.path, remove_source=True)
    except BackupToolError:
        remove_partial_file(Path(f"{artifact.path}.gz"))
        raise

    return BackupArtifact(
        path=result.path,
        size=result.size,
        created_at=artifact.created_at,
        compressed=True,
        compression_ratio=result.ratio
    )


def backup_command(
    args: argparse.Namespace,
    loader: ConfigLoader,
    compressor: Optional[Compressor] = None,
    notifier_factory: NotifierFactory = SlackNotifier
) -> int:
    start = time.monotonic()
    timestamp = datetime.now(timezone.utc)
    database = args.database or ''

    try:
        config = loader.get_connection('database', connection_overrides(args))
        database = config.database
        check_connection(config)

        if compressor is None and loader.get_compress(args.compress):
            compressor = Compressor()

        artifact = run_backup(
            config,
            Path(loader.get_backup_dir(args.output)),
            engine=BackupEngine(args.engine),
            include_tables=split_list(args.include_tables),
            exclude_tables=split_list(args.exclude_tables),
            compressor=compressor,
            now=timestamp
        )
    except BackupToolError as e:
        _log_failure("Backup", e)
        if args.notify_slack:
            notifier_factory(loader.get_slack_webhook(args.slack_webhook)).notify_backup_complete(
                BackupResult(
                    success=False,
                    backup_file='',
                    size=0,
                    duration=time.monotonic() - start,
                    timestamp=timestamp,
                    error=str(e)
                ),
                database
            )
        return 1

    duration = time.monotonic() - start
    logging.info("=" * 50)
    logging.info("BACKUP COMPLETE")
    logging.info(f"Database: {database}")
    logging.info(f"Backup File: {artifact.path}")
    logging.info(f"Size: {format_size(artifact.size)}")
    if artifact.compression_ratio is not None:
        logging.info(f"Compression: {artifact.compression_ratio:.1f}% smaller")
    logging.info(f"Duration: {format_duration(duration)}")

    if args.notify_slack:
        notifier_factory(loader.get_slack_webhook(args.slack_webhook)).notify_backup_complete(
            BackupResult(
                success=True,
                backup_file=str(artifact.path),
                size=artifact.size,
                duration=duration,
                timestamp=timestamp
            ),
            database
        )
    return 0


def restore_command(
    args: argparse.Namespace,
    loader: ConfigLoader,
    compressor: Optional[Compressor] = None,
    notifier_factory: NotifierFactory = SlackNotifier
) -> int:
    start = time.monotonic()
    database = args.database or ''
    backup_file = Path(args.file)

    try:
        if not backup_file.exists():
            raise RestoreError(f"Backup file not found: {backup_file}")

        config = loader.get_connection('database', connection_overrides(args))
        database = config.database
        check_connection(config)

        tool = MySQLDumpTool(config)
        if not tool.check_tools(tool.client_binary):
            raise RestoreError(f"{tool.client_binary} command not found. {tool.INSTALL_HINT}")

        # Decompress into a scratch directory; files next to the backup are left alone.
        with tempfile.TemporaryDirectory(prefix='mysql-backup-') as scratch_dir:
            file_to_restore = backup_file
            if backup_file.name.endswith(('.gz', '.tgz')):
                file_to_restore = (compressor or Compressor()).decompress_file(
                    backup_file, Path(scratch_dir) / f"{database}.sql"
                )

            logging.warning(f"This will overwrite data in database '{database}'")
            tool.restore(RestoreRequest(
                backup_file=file_to_restore,
                target_database=database,
                tables=split_list(args.tables)
            ))
    except BackupToolError as e:
        _log_failure("Restore", e)
        if args.notify_slack:
            notifier_factory(loader.get_slack_webhook(args.slack_webhook)).notify_restore_complete(
                False, database, time.monotonic() - start, str(e)
            )
        return 1

    duration = time.monotonic() - start
    logging.info("=" * 50)
    logging.info("RESTORE COMPLETE")
    logging.info(f"Database: {database}")
    logging.info(f"Backup File: {backup_file}")
    logging.info(f"Duration: {format_duration(duration)}")

    if args.notify_slack:
        notifier_factory(loader.get_slack_webhook(args.slack_webhook)).notify_restore_complete(
            True, database, duration
        )
    return 0


def test_command(args: argparse.Namespace, loader: ConfigLoader) -> int:
    try:
        config = loader.get_connection('database', connection_overrides(args))
        with DatabaseConnection(config) as conn:
            conn.ping()
            size = conn.get_database_size()
            tables = conn.get_tables()
    except BackupToolError as e:
        _log_failure("Connection test", e)
        if isinstance(e, DatabaseConnectionError):
            print("Troubleshooting tips:")
            for tip in TROUBLESHOOTING_TIPS:
                print(f"  - {tip}")
        return 1

    print("Connection Test Successful!")
    print(f"  Host: {config.host}:{config.port}")
    print(f"  Database: {config.database}")
    print(f"  Size: {format_size(size)}")
    print(f"  Tables: {len(tables)}")
    if 0 < len(tables) <= 20:
        print("  Table List:")
        for table in tables:
            print(f"    - {table}")
    elif len(tables) > 20:
        print("  Sample Tables:")
        for table in tables[:10]:
            print(f"    - {table}")
        print(f"    ... and {len(tables) - 10} more")
    return 0


def copy_databases(source: ConnectionConfig, target: ConnectionConfig, table_filter: Optional[TableFilter] = None):
    with DatabaseConnection(source) as src, DatabaseConnection(target) as tgt:
        return DatabaseCopier(src, tgt, table_filter).copy()


def copy_command(args: argparse.Namespace, loader: ConfigLoader) -> int:
    try:
        source = loader.get_connection('source', connection_overrides(args, 'source_'))
        target = loader.get_connection('target', connection_overrides(args, 'target_'))
        stats = copy_databases(
            source,
            target,
            TableFilter(split_list(args.include_tables), split_list(args.exclude_tables))
        )
    except BackupToolError as e:
        _log_failure("Copy", e)
        return 1

    if stats.errors:
        logging.warning(f"Copy finished with {len(stats.errors)} failed table(s)")
        for table, error in stats.errors.items():
            logging.warning(f"  - {table}: {error}")
        return 1

    logging.info("Database copy completed successfully!")
    return 0


def list_command(args: argparse.Namespace, loader: ConfigLoader) -> int:
    backup_dir = Path(loader.get_backup_dir(args.path)).resolve()

    if not backup_dir.exists():
        print(f"No backups found at: {backup_dir}")
        return 0

    try:
        backup_files = list_backup_files(backup_dir)
    except OSError as e:
        logging.error(f"Error listing backups: {e}")
        return 1

    if not backup_files:
        print("No backup files found")
        return 0

    print(f"Found {len(backup_files)} backup(s):")
    for path in backup_files:
        stats = path.stat()
        modified = datetime.fromtimestamp(stats.st_mtime).strftime('%Y-%m-%d %H:%M:%S')
        print(f"  {path.name}")
        print(f"     Size: {format_size(stats.st_size)} | Modified: {modified}")
    return 0


def config_command(args: argparse.Namespace, loader: ConfigLoader) -> int:
    try:
        template = render_template(args.format)
        Path(args.output).write_text(template)
    except (BackupToolError, OSError) as e:
        logging.error(f"Error creating config: {e}")
        return 1

    logging.info(f"Configuration template created: {args.output}")
    if args.format == 'env':
        logging.info("Copy this file to .env and update with your values")
    return 0

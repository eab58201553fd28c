#!/usr/bin/env python3
"""
MySQL Backup - CLI Entry Point
==============================
Back up, restore, copy and test MySQL databases:
- backup   mysqldump or client-library dump, optional gzip
- restore  plain or gzip-compressed SQL, optional table subset
- test     connectivity check with database size and table list
- copy     source -> target copy, table by table
- list     backups in the backup directory
- config   write a configuration template

Without a subcommand an interactive menu is started.
"""

import argparse
import logging
import sys
from typing import Optional

import yaml
from dotenv import load_dotenv

from . import __version__
from .commands import (
    backup_command,
    config_command,
    copy_command,
    list_command,
    restore_command,
    test_command,
)
from .config import ConfigLoader
from .errors import ConfigurationError
from .menu import InteractiveSession
from .models import BackupEngine
from .utils import setup_logging

COMMANDS = {
    'backup': backup_command,
    'restore': restore_command,
    'test': test_command,
    'copy': copy_command,
    'list': list_command,
    'config': config_command,
}


def add_connection_arguments(parser: argparse.ArgumentParser, prefix: str = '', label: str = 'Database') -> None:
    """Add host/port/user/password/database/ssl flags, optionally under a prefix like 'source-'."""
    dest = prefix.replace('-', '_')
    short = not prefix
    parser.add_argument(
        *(['-H'] if short else []), f'--{prefix}host',
        dest=f'{dest}host', help=f'{label} host'
    )
    parser.add_argument(
        *(['-P'] if short else []), f'--{prefix}port',
        dest=f'{dest}port', type=int, help=f'{label} port (default: 3306)'
    )
    parser.add_argument(
        *(['-u'] if short else []), f'--{prefix}user',
        dest=f'{dest}user', help=f'{label} username (default: root)'
    )
    parser.add_argument(
        *(['-p'] if short else []), f'--{prefix}password',
        dest=f'{dest}password', help=f'{label} password'
    )
    parser.add_argument(
        *(['-d'] if short else []), f'--{prefix}database',
        dest=f'{dest}database', help=f'{label} name'
    )
    parser.add_argument(
        f'--{prefix}ssl', dest=f'{dest}ssl', action='store_true',
        help=f'Require TLS for the {label.lower()} connection'
    )


def add_notification_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--notify-slack', action='store_true',
        help='Send Slack notification on completion'
    )
    parser.add_argument('--slack-webhook', help='Slack webhook URL (default: SLACK_WEBHOOK_URL)')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='mysql-backup',
        description='MySQL Backup - back up, restore, copy and test MySQL databases'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('-c', '--config', help='Path to YAML configuration file')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose output')
    parser.add_argument('--log-file', help='Also write log output to this file')

    # Accepted after the subcommand too; SUPPRESS keeps a top-level value from being reset.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        '-v', '--verbose', action='store_true', default=argparse.SUPPRESS,
        help='Enable verbose output'
    )
    common.add_argument('--log-file', default=argparse.SUPPRESS, help='Also write log output to this file')

    subparsers = parser.add_subparsers(dest='command')

    backup = subparsers.add_parser('backup', help='Create a database backup', parents=[common])
    add_connection_arguments(backup)
    backup.add_argument('-o', '--output', help='Output directory (default: BACKUP_DIR or ./backups)')
    backup.add_argument('-c', '--compress', action='store_true', help='Compress backup file')
    backup.add_argument(
        '--engine',
        choices=[engine.value for engine in BackupEngine],
        default=BackupEngine.MYSQLDUMP.value,
        help='Use the mysqldump binary or the built-in dump writer (default: mysqldump)'
    )
    backup.add_argument('--include-tables', help='Comma-separated list of tables to include')
    backup.add_argument('--exclude-tables', help='Comma-separated list of tables to exclude')
    add_notification_arguments(backup)

    restore = subparsers.add_parser('restore', help='Restore database from backup', parents=[common])
    add_connection_arguments(restore)
    restore.add_argument('-f', '--file', required=True, help='Backup file path')
    restore.add_argument('--tables', help='Comma-separated list of tables to restore (selective restore)')
    add_notification_arguments(restore)

    test = subparsers.add_parser('test', help='Test database connection', parents=[common])
    add_connection_arguments(test)

    copy = subparsers.add_parser('copy', help='Copy a database from source to target', parents=[common])
    add_connection_arguments(copy, 'source-', 'Source')
    add_connection_arguments(copy, 'target-', 'Target')
    copy.add_argument('--include-tables', help='Comma-separated list of tables to include')
    copy.add_argument('--exclude-tables', help='Comma-separated list of tables to exclude')

    list_parser = subparsers.add_parser('list', help='List available backups', parents=[common])
    list_parser.add_argument('--path', help='Backup directory path (default: BACKUP_DIR or ./backups)')

    config = subparsers.add_parser('config', help='Generate configuration file template', parents=[common])
    config.add_argument('-o', '--output', default='.env.example', help='Output file path (default: .env.example)')
    config.add_argument('--format', choices=['env', 'yaml'], default='env', help='Template format (default: env)')

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv()

    # Load configuration
    try:
        loader = ConfigLoader(args.config)
    except FileNotFoundError:
        print(f"Error: Configuration file '{args.config}' not found")
        sys.exit(1)
    except yaml.YAMLError as e:
        print(f"Error: Invalid YAML in configuration file: {e}")
        sys.exit(1)
    except ConfigurationError as e:
        print(f"Error: {e}")
        sys.exit(1)

    # Setup logging
    log_settings = loader.get_logging_settings()
    if args.verbose:
        log_settings['level'] = 'DEBUG'
    if args.log_file:
        log_settings['file'] = args.log_file
    setup_logging(log_settings)

    if args.command is None:
        sys.exit(InteractiveSession(loader).run())

    try:
        exit_code = COMMANDS[args.command](args, loader)
    except Exception as e:
        logging.error(f"Fatal error: {e}")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == '__main__':
    main()

"""
mysqldump / mysql client driver for MySQL Backup.

Backups and restores run the native client binaries as child processes.
Commands are argument vectors (never a shell string) and the password only
reaches the child through MYSQL_PWD in its own environment.
"""

import logging
import os
import re
import shutil
import subprocess
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Iterable, Iterator, Optional

from .errors import DumpError, RestoreError
from .models import BackupArtifact, ConnectionConfig, RestoreRequest

# Statements bound to one table; group 1 is the table name.
TABLE_STATEMENT_PATTERN = re.compile(
    r'^\s*(?:/\*!\d+\s+)?'
    r'(?:CREATE\s+TABLE(?:\s+IF\s+NOT\s+EXISTS)?|DROP\s+TABLE(?:\s+IF\s+EXISTS)?'
    r'|INSERT\s+(?:IGNORE\s+)?INTO|REPLACE\s+INTO|LOCK\s+TABLES|ALTER\s+TABLE)'
    r'\s+`?([^`\s(]+)`?',
    re.IGNORECASE
)

# mysqldump writes triggers as `/*!50003 CREATE*/ ... TRIGGER `t` BEFORE INSERT ON `table` ...`
TRIGGER_STATEMENT_PATTERN = re.compile(
    r'\bTRIGGER\s+\S+\s+(?:BEFORE|AFTER)\s+(?:INSERT|UPDATE|DELETE)\s+ON\s+`?([^`\s]+)`?',
    re.IGNORECASE
)


def statement_table(statement: str) -> Optional[str]:
    """Name of the table a dump statement belongs to, or None."""
    match = TABLE_STATEMENT_PATTERN.match(statement) or TRIGGER_STATEMENT_PATTERN.search(statement)
    return match.group(1) if match else None


def iter_selected_statements(lines: Iterable[str], tables: list[str]) -> Iterator[str]:
    """Yield the parts of a SQL dump that belong to the given tables.

    Statements that are not bound to a table (SET, UNLOCK TABLES, comments,
    routines) are always kept. A statement ends on a line ending with the
    current delimiter; `DELIMITER` lines switch it and are always kept, so a
    trigger body between `DELIMITER ;;` and `DELIMITER ;` stays whole.
    """
    wanted = set(tables)
    delimiter = ';'
    buffer: list[str] = []

    def keep(statement: str) -> bool:
        table = statement_table(statement)
        return table is None or table in wanted

    for line in lines:
        if not buffer:
            stripped = line.strip()
            if not stripped or stripped.startswith('--'):
                yield line
                continue
            if stripped.upper().startswith('DELIMITER '):
                delimiter = stripped.split()[1]
                yield line
                continue

        buffer.append(line)
        if line.rstrip().endswith(delimiter):
            statement = ''.join(buffer)
            buffer = []
            if keep(statement):
                yield statement

    if buffer:
        statement = ''.join(buffer)
        if keep(statement):
            yield statement


class MySQLDumpTool:
    """Runs mysqldump and mysql for one connection."""

    DUMP_BINARY = 'mysqldump'
    CLIENT_BINARY = 'mysql'
    CHUNK_SIZE = 64 * 1024
    INSTALL_HINT = 'Install with: apt-get install mysql-client'
    FULL_BACKUP_OPTIONS = ['--single-transaction', '--routines', '--triggers', '--events']
    BENIGN_STDERR_PATTERNS = [
        re.compile(r'Using a password on the command line interface can be insecure', re.IGNORECASE),
    ]

    def __init__(
        self,
        config: ConnectionConfig,
        dump_binary: str = DUMP_BINARY,
        client_binary: str = CLIENT_BINARY
    ):
        self.config = config
        self.dump_binary = dump_binary
        self.client_binary = client_binary

    def check_tools(self, *tools: str) -> bool:
        """Check if the given commands (default: mysqldump and mysql) are on PATH."""
        tools = tools or (self.dump_binary, self.client_binary)
        missing = [tool for tool in tools if shutil.which(tool) is None]
        if missing:
            logging.error(f"Missing required tools: {', '.join(missing)}")
            logging.error(f"Please install MySQL client tools. {self.INSTALL_HINT}")
            return False
        return True

    def _connection_args(self) -> list[str]:
        args = [
            '-h', self.config.host,
            '-P', str(self.config.port),
            '-u', self.config.username,
        ]
        if self.config.ssl:
            args.append('--ssl-mode=REQUIRED')
        return args

    def child_env(self) -> dict[str, str]:
        """Environment for a child process, carrying the password as MYSQL_PWD."""
        env = os.environ.copy()
        if self.config.password:
            env['MYSQL_PWD'] = self.config.password
        else:
            env.pop('MYSQL_PWD', None)
        return env

    def build_dump_command(
        self,
        full: bool = True,
        include_tables: Optional[list[str]] = None,
        exclude_tables: Optional[list[str]] = None
    ) -> list[str]:
        command = [self.dump_binary] + self._connection_args()

        if full:
            command.extend(self.FULL_BACKUP_OPTIONS)

        for table in exclude_tables or []:
            command.append(f'--ignore-table={self.config.database}.{table}')

        command.append(self.config.database)

        if include_tables:
            command.extend(include_tables)

        return command

    def build_restore_command(self, database: str) -> list[str]:
        return [self.client_binary] + self._connection_args() + [database]

    @classmethod
    def filter_stderr(cls, text: str) -> str:
        """Drop known harmless warning lines from client stderr output."""
        lines = [
            line for line in text.splitlines()
            if line.strip() and not any(p.search(line) for p in cls.BENIGN_STDERR_PATTERNS)
        ]
        return '\n'.join(lines)

    @staticmethod
    def _read_stderr(buffer: IO[bytes]) -> str:
        buffer.seek(0)
        return buffer.read().decode('utf-8', errors='ignore')

    def dump(
        self,
        output_path: Path,
        full: bool = True,
        include_tables: Optional[list[str]] = None,
        exclude_tables: Optional[list[str]] = None,
        now: Optional[datetime] = None
    ) -> BackupArtifact:
        """Run mysqldump, streaming its output into output_path.

        Raises DumpError on a nonzero exit status, on a write failure (the
        child is killed first) and on an empty output file.
        """
        output_path = Path(output_path)
        command = self.build_dump_command(full, include_tables, exclude_tables)
        logging.info(f"Executing backup command for MySQL database: {self.config.database}")
        logging.debug(f"mysqldump command: {' '.join(command)}")

        with tempfile.TemporaryFile() as stderr_buffer:
            try:
                process = subprocess.Popen(
                    command,
                    stdout=subprocess.PIPE,
                    stderr=stderr_buffer,
                    stdin=subprocess.DEVNULL,
                    env=self.child_env()
                )
            except FileNotFoundError as e:
                raise DumpError(
                    f"{self.dump_binary} command not found. {self.INSTALL_HINT}"
                ) from e

            try:
                with open(output_path, 'wb') as f:
                    for chunk in iter(lambda: process.stdout.read(self.CHUNK_SIZE), b''):
                        f.write(chunk)
            except OSError as e:
                process.kill()
                process.wait()
                raise DumpError(f"Failed to write dump to {output_path}: {e}") from e
            finally:
                process.stdout.close()

            returncode = process.wait()
            stderr_text = self.filter_stderr(self._read_stderr(stderr_buffer))

        if returncode != 0:
            raise DumpError(
                f"mysqldump exited with code {returncode}: {stderr_text or 'no error output'}"
            )
        if stderr_text:
            logging.warning(f"mysqldump: {stderr_text}")

        size = output_path.stat().st_size
        logging.info(f"Database dump completed. File size: {size:,} bytes")
        if size == 0:
            raise DumpError(f"Dump file is empty: {output_path}")

        return BackupArtifact(
            path=output_path,
            size=size,
            created_at=now or datetime.now(timezone.utc)
        )

    def restore(self, request: RestoreRequest) -> None:
        """Feed a SQL file to the mysql client.

        With request.tables set, only statements for those tables are sent.
        """
        backup_file = Path(request.backup_file)
        if not backup_file.exists():
            raise RestoreError(f"Backup file not found: {backup_file}")

        command = self.build_restore_command(request.target_database)
        logging.info(f"Starting MySQL restore for database: {request.target_database}")
        if request.tables:
            logging.info(f"Restoring only tables: {', '.join(request.tables)}")

        with tempfile.TemporaryFile() as stderr_buffer:
            try:
                if request.tables:
                    returncode = self._restore_selected(command, backup_file, request.tables, stderr_buffer)
                else:
                    with open(backup_file, 'rb') as f:
                        returncode = subprocess.run(
                            command,
                            stdin=f,
                            stdout=subprocess.DEVNULL,
                            stderr=stderr_buffer,
                            env=self.child_env()
                        ).returncode
            except FileNotFoundError as e:
                raise RestoreError(
                    f"{self.client_binary} command not found. {self.INSTALL_HINT}"
                ) from e
            stderr_text = self.filter_stderr(self._read_stderr(stderr_buffer))

        if returncode != 0:
            raise RestoreError(
                f"mysql exited with code {returncode}: {stderr_text or 'no error output'}"
            )
        if stderr_text:
            logging.warning(f"mysql: {stderr_text}")
        logging.info(f"MySQL restore completed for database: {request.target_database}")

    def _restore_selected(
        self,
        command: list[str],
        backup_file: Path,
        tables: list[str],
        stderr_buffer: IO[bytes]
    ) -> int:
        process = subprocess.Popen(
            command,
            stdin=subprocess.PIPE,
            stdout=subprocess.DEVNULL,
            stderr=stderr_buffer,
            env=self.child_env()
        )
        try:
            with open(backup_file, 'r', encoding='utf-8', errors='surrogateescape') as f:
                for statement in iter_selected_statements(f, tables):
                    process.stdin.write(statement.encode('utf-8', errors='surrogateescape'))
        except BrokenPipeError:
            # The client exited early; its status and stderr say why.
            logging.debug("mysql closed its input before the dump was fully sent")
        except OSError as e:
            process.kill()
            process.wait()
            raise RestoreError(f"Failed to stream {backup_file} to mysql: {e}") from e
        finally:
            try:
                process.stdin.close()
            except BrokenPipeError:
                pass
        return process.wait()

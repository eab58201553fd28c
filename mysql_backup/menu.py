"""
Interactive menu for MySQL Backup.

The session keeps a source and a target connection slot. Copy needs both
slots tested; each backup action needs its own slot tested.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from .commands import check_connection, copy_databases, run_backup
from .config import ConfigLoader
from .errors import BackupToolError
from .models import BackupEngine, ConnectionSlot, SessionState
from .utils import format_size

SEPARATOR = '-' * 60


def available_actions(state: SessionState) -> list[tuple[str, str]]:
    """Menu entries as (action, label) for the current session state."""
    both_ready = state.source.ready and state.target.ready
    return [
        ('test', 'Test database connections'),
        ('copy', 'Copy source -> target') if both_ready
        else ('copy-disabled', 'Copy source -> target (test connections first)'),
        ('backup-source', 'Backup source database') if state.source.ready
        else ('backup-disabled', 'Backup source database (test connections first)'),
        ('backup-target', 'Backup target database') if state.target.ready
        else ('backup-disabled', 'Backup target database (test connections first)'),
        ('exit', 'Exit'),
    ]


class InteractiveSession:
    """Menu loop over a SessionState."""

    def __init__(
        self,
        loader: ConfigLoader,
        input_func: Callable[[str], str] = input,
        output_func: Callable[[str], None] = print,
        state: Optional[SessionState] = None
    ):
        self.loader = loader
        self.input = input_func
        self.output = output_func
        self.state = state or SessionState()

    def show_greeting(self) -> None:
        self.output(SEPARATOR)
        self.output("  MySQL Database Backup & Copy Tool")
        self.output(SEPARATOR)

    def choose_action(self) -> str:
        actions = available_actions(self.state)
        for number, (_action, label) in enumerate(actions, start=1):
            self.output(f"  {number}. {label}")

        while True:
            answer = self.input("Select an option: ").strip()
            if answer.isdigit() and 1 <= int(answer) <= len(actions):
                return actions[int(answer) - 1][0]
            self.output(f"Please enter a number between 1 and {len(actions)}")

    def test_connections(self) -> None:
        for slot in (self.state.source, self.state.target):
            self._test_slot(slot)

    def _test_slot(self, slot: ConnectionSlot) -> None:
        try:
            config = self.loader.get_connection(slot.label)
            check_connection(config)
        except BackupToolError as e:
            slot.reset()
            self.output(f"Connection failed ({slot.label}): {e}")
            return
        slot.mark_ok(config)
        self.output(f"Connection successful ({slot.label}): {config.describe()}")

    def copy(self) -> None:
        try:
            stats = copy_databases(self.state.source.config, self.state.target.config)
        except BackupToolError as e:
            self.output(f"Copy failed: {e}")
            return
        if stats.errors:
            self.output(f"Copy finished with {len(stats.errors)} failed table(s)")
        else:
            self.output(f"Database copy completed: {stats.tables_copied} table(s), {stats.rows_copied} row(s)")

    def backup(self, slot: ConnectionSlot) -> None:
        try:
            artifact = run_backup(
                slot.config,
                Path(self.loader.get_backup_dir()),
                engine=BackupEngine.NATIVE
            )
        except BackupToolError as e:
            self.output(f"Backup failed: {e}")
            return
        self.output(f"Backup completed: {artifact.path} ({format_size(artifact.size)})")

    def handle(self, action: str) -> bool:
        """Run one action; return False when the session should end."""
        if action == 'test':
            self.test_connections()
        elif action == 'copy' and self.state.source.ready and self.state.target.ready:
            self.copy()
        elif action == 'backup-source' and self.state.source.ready:
            self.backup(self.state.source)
        elif action == 'backup-target' and self.state.target.ready:
            self.backup(self.state.target)
        elif action == 'exit':
            self.output("Goodbye!")
            return False
        else:
            self.output("Please test connections first!")
        return True

    def run(self) -> int:
        self.show_greeting()
        running = True
        while running:
            try:
                action = self.choose_action()
            except (EOFError, KeyboardInterrupt):
                logging.debug("Input closed, leaving interactive session")
                self.output("Goodbye!")
                break
            running = self.handle(action)
            if running:
                self.output(SEPARATOR)
        return 0

"""
Slack webhook notifications for MySQL Backup.
"""

import logging
import time
from typing import Any, Optional

import requests

from .errors import NotificationError
from .models import BackupResult
from .utils import format_duration, format_size

FOOTER = 'DB Backup CLI'


def _status(success: bool) -> tuple[str, str, str]:
    """(color, emoji, status label) for a job outcome."""
    if success:
        return 'good', ':white_check_mark:', 'Successful'
    return 'danger', ':x:', 'Failed'


def build_backup_message(result: BackupResult, database: str) -> dict[str, Any]:
    color, emoji, status = _status(result.success)
    fields = [
        {'title': 'Database', 'value': database, 'short': True},
        {'title': 'Status', 'value': status, 'short': True},
        {'title': 'Backup File', 'value': result.backup_file, 'short': False},
        {'title': 'Size', 'value': format_size(result.size), 'short': True},
        {'title': 'Duration', 'value': format_duration(result.duration), 'short': True},
        {'title': 'Timestamp', 'value': result.timestamp.isoformat(), 'short': False},
    ]
    if result.error:
        fields.append({'title': 'Error', 'value': result.error, 'short': False})

    return {
        'text': f"{emoji} Database Backup {status}",
        'attachments': [
            {
                'color': color,
                'fields': fields,
                'footer': FOOTER,
                'ts': int(result.timestamp.timestamp()),
            }
        ],
    }


def build_restore_message(
    success: bool,
    database: str,
    duration: float,
    error: Optional[str] = None
) -> dict[str, Any]:
    color, emoji, status = _status(success)
    fields = [
        {'title': 'Database', 'value': database, 'short': True},
        {'title': 'Status', 'value': status, 'short': True},
        {'title': 'Duration', 'value': format_duration(duration), 'short': True},
    ]
    if error:
        fields.append({'title': 'Error', 'value': error, 'short': False})

    return {
        'text': f"{emoji} Database Restore {status}",
        'attachments': [
            {
                'color': color,
                'fields': fields,
                'footer': FOOTER,
                'ts': int(time.time()),
            }
        ],
    }


class SlackNotifier:
    """Posts job outcomes to a Slack incoming webhook.

    Delivery failures are logged and never raised to the caller.
    """

    def __init__(self, webhook_url: Optional[str], timeout_seconds: int = 10):
        self.webhook_url = webhook_url
        self.timeout_seconds = timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    def send(self, message: dict[str, Any]) -> None:
        """POST a message; raises NotificationError on any delivery failure."""
        try:
            response = requests.post(self.webhook_url, json=message, timeout=self.timeout_seconds)
            response.raise_for_status()
        except requests.RequestException as e:
            raise NotificationError(f"Slack webhook request failed: {e}") from e

    def _deliver(self, message: dict[str, Any], kind: str) -> bool:
        if not self.enabled:
            logging.warning("Slack webhook not configured, skipping notification")
            return False
        try:
            self.send(message)
        except NotificationError as e:
            logging.error(f"Failed to send {kind} notification: {e}")
            return False
        logging.info(f"{kind.capitalize()} notification sent successfully")
        return True

    def notify_backup_complete(self, result: BackupResult, database: str) -> bool:
        return self._deliver(build_backup_message(result, database), 'backup')

    def notify_restore_complete(
        self,
        success: bool,
        database: str,
        duration: float,
        error: Optional[str] = None
    ) -> bool:
        return self._deliver(build_restore_message(success, database, duration, error), 'restore')

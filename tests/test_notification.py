"""
Unit tests for notification.py
"""

import logging
from datetime import datetime, timezone
from unittest import mock

import pytest
import requests

from mysql_backup.errors import NotificationError
from mysql_backup.models import BackupResult
from mysql_backup.notification import (
    FOOTER,
    SlackNotifier,
    build_backup_message,
    build_restore_message,
)

WEBHOOK = "https://hooks.slack.com/services/T000/B000/XXXX"
NOW = datetime(2024, 1, 15, 10, 30, 45, tzinfo=timezone.utc)


@pytest.fixture
def success_result():
    return BackupResult(
        success=True,
        backup_file="backups/shop-2024-01-15T10-30-45-000Z.sql",
        size=3 * 1024 * 1024,
        duration=12.5,
        timestamp=NOW
    )


def field_map(message):
    return {f['title']: f['value'] for f in message['attachments'][0]['fields']}


class TestBuildBackupMessage:
    """Tests for build_backup_message."""

    def test_success(self, success_result):
        """Test a successful backup message."""
        message = build_backup_message(success_result, "shop")

        assert message['text'] == ":white_check_mark: Database Backup Successful"
        attachment = message['attachments'][0]
        assert attachment['color'] == 'good'
        assert attachment['footer'] == FOOTER
        assert attachment['ts'] == int(NOW.timestamp())
        assert field_map(message) == {
            'Database': 'shop',
            'Status': 'Successful',
            'Backup File': 'backups/shop-2024-01-15T10-30-45-000Z.sql',
            'Size': '3.00 MB',
            'Duration': '12.50 seconds',
            'Timestamp': NOW.isoformat(),
        }

    def test_failure_includes_error(self):
        """Test a failed backup message carries the error."""
        result = BackupResult(
            success=False,
            backup_file="",
            size=0,
            duration=0.5,
            timestamp=NOW,
            error="mysqldump exited with code 2"
        )
        message = build_backup_message(result, "shop")

        assert message['text'] == ":x: Database Backup Failed"
        assert message['attachments'][0]['color'] == 'danger'
        assert field_map(message)['Error'] == "mysqldump exited with code 2"


class TestBuildRestoreMessage:
    """Tests for build_restore_message."""

    def test_success(self):
        message = build_restore_message(True, "shop", 2.0)
        assert message['text'] == ":white_check_mark: Database Restore Successful"
        assert field_map(message) == {
            'Database': 'shop',
            'Status': 'Successful',
            'Duration': '2.00 seconds',
        }

    def test_failure(self):
        message = build_restore_message(False, "shop", 1.0, error="ERROR 1064")
        assert message['text'] == ":x: Database Restore Failed"
        assert field_map(message)['Error'] == "ERROR 1064"


class TestSlackNotifier:
    """Tests for SlackNotifier class."""

    def test_enabled(self):
        assert SlackNotifier(WEBHOOK).enabled is True
        assert SlackNotifier(None).enabled is False
        assert SlackNotifier("").enabled is False

    @mock.patch('mysql_backup.notification.requests.post')
    def test_send(self, mock_post):
        """Test the webhook is posted as JSON with a timeout."""
        SlackNotifier(WEBHOOK, timeout_seconds=5).send({'text': 'hi'})

        mock_post.assert_called_once_with(WEBHOOK, json={'text': 'hi'}, timeout=5)
        mock_post.return_value.raise_for_status.assert_called_once()

    @mock.patch('mysql_backup.notification.requests.post')
    def test_send_http_error(self, mock_post):
        """Test an HTTP error status raises NotificationError."""
        mock_post.return_value.raise_for_status.side_effect = requests.HTTPError("404 Client Error")

        with pytest.raises(NotificationError, match="404"):
            SlackNotifier(WEBHOOK).send({'text': 'hi'})

    @mock.patch('mysql_backup.notification.requests.post')
    def test_notify_backup_complete(self, mock_post, success_result):
        """Test the backup message is delivered."""
        assert SlackNotifier(WEBHOOK).notify_backup_complete(success_result, "shop") is True

        payload = mock_post.call_args.kwargs['json']
        assert payload['text'] == ":white_check_mark: Database Backup Successful"

    @mock.patch('mysql_backup.notification.requests.post')
    def test_no_webhook_is_noop(self, mock_post, success_result, caplog):
        """Test nothing is sent without a webhook."""
        caplog.set_level(logging.WARNING)

        assert SlackNotifier(None).notify_backup_complete(success_result, "shop") is False

        mock_post.assert_not_called()
        assert "not configured" in caplog.text

    @mock.patch('mysql_backup.notification.requests.post')
    def test_delivery_failure_is_logged(self, mock_post, caplog):
        """Test that network errors are logged and not raised."""
        mock_post.side_effect = requests.ConnectionError("connection reset")
        caplog.set_level(logging.ERROR)

        assert SlackNotifier(WEBHOOK).notify_restore_complete(False, "shop", 1.0, "boom") is False
        assert "Failed to send restore notification" in caplog.text

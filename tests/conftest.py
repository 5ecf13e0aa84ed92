"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone

import pytest


@pytest.fixture
def mock_settings(tmp_path):
    """Provide mock settings for testing."""
    from commsync.config import Settings

    return Settings(
        session_email="me@example.com",
        state_db_path=tmp_path / "state.sqlite3",
        gmail_credentials_path=tmp_path / "credentials.json",
        gmail_token_path=tmp_path / "token.json",
        log_level="DEBUG",
        debug=True,
    )


@pytest.fixture
def base_time() -> datetime:
    return datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_message(base_time):
    """Factory for messages with sensible defaults.

    ``minutes`` offsets the timestamp from ``base_time``.
    """
    from commsync.models import Message, Participant

    def _make(
        id: str = "m1",
        *,
        channel: str = "gmail",
        sender: str = "alice@example.com",
        sender_name: str | None = None,
        recipients: tuple[str, ...] = ("me@example.com",),
        minutes: int = 0,
        **fields,
    ) -> Message:
        return Message(
            id=id,
            channel=channel,
            sender=Participant(name=sender_name or sender, address=sender),
            recipients=[Participant(name=r, address=r) for r in recipients],
            timestamp=base_time + timedelta(minutes=minutes),
            **fields,
        )

    return _make


@pytest.fixture
def sample_email_data() -> dict:
    """Provide sample Gmail API message data."""
    return {
        "id": "msg123456",
        "threadId": "thread789",
        "labelIds": ["INBOX", "UNREAD"],
        "snippet": "Weekly Newsletter - Python Tips",
        "internalDate": "1700000000000",
        "payload": {
            "mimeType": "multipart/alternative",
            "headers": [
                {"name": "Subject", "value": "Weekly Newsletter - Python Tips"},
                {"name": "From", "value": "Python Weekly <newsletter@python.org>"},
                {"name": "To", "value": "user@example.com"},
                {"name": "Cc", "value": "Team <team@example.com>"},
            ],
            "parts": [
                {
                    "mimeType": "text/plain",
                    # "Hello from Python" base64url, unpadded
                    "body": {"data": "SGVsbG8gZnJvbSBQeXRob24"},
                },
                {
                    "mimeType": "application/pdf",
                    "filename": "tips.pdf",
                    "body": {"attachmentId": "att-1", "size": 2048},
                },
            ],
        },
    }

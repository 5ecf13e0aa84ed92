"""Unit tests for Gmail message parsing helpers."""

import base64
from datetime import datetime, timezone

from commsync.gmail.parsing import gmail_to_message
from commsync.models import Channel


def _b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode()).decode().rstrip("=")


def test_gmail_to_message_parses_basic_fields(sample_email_data) -> None:
    message = gmail_to_message(sample_email_data)

    assert message.id == "msg123456"
    assert message.thread_id == "thread789"
    assert message.channel is Channel.GMAIL
    assert message.subject == "Weekly Newsletter - Python Tips"
    assert message.sender.address == "newsletter@python.org"
    assert message.sender.name == "Python Weekly"
    assert [r.address for r in message.recipients] == ["user@example.com", "team@example.com"]
    assert message.timestamp == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
    assert message.body == "Hello from Python"
    assert message.read is False
    assert message.forwarded is False
    assert message.linked_account_id is None


def test_attachments(sample_email_data) -> None:
    (attachment,) = gmail_to_message(sample_email_data).attachments

    assert attachment.name == "tips.pdf"
    assert attachment.mime_type == "application/pdf"
    assert attachment.byte_size == 2048
    assert attachment.locator == "att-1"


def test_html_preferred_over_plain() -> None:
    message = gmail_to_message(
        {
            "id": "m1",
            "payload": {
                "headers": [{"name": "From", "value": "a@example.com"}],
                "parts": [
                    {"mimeType": "text/plain", "body": {"data": _b64("plain")}},
                    {"mimeType": "text/html", "body": {"data": _b64("<p>html</p>")}},
                ],
            },
        }
    )

    assert message.body == "<p>html</p>"


def test_date_header_used_without_internal_date() -> None:
    message = gmail_to_message(
        {
            "id": "m1",
            "labelIds": ["SENT"],
            "payload": {
                "headers": [
                    {"name": "From", "value": "me@example.com"},
                    {"name": "Date", "value": "Tue, 14 Nov 2023 22:13:20 +0000"},
                ]
            },
        },
        linked_account_id="box-1",
    )

    assert message.timestamp == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
    assert message.labels == ["SENT"]
    assert message.read is True
    assert message.linked_account_id == "box-1"


def test_forwarded_block_is_parsed() -> None:
    body = (
        "FYI\n\n"
        "---------- Forwarded message ---------\n"
        "From: Alice <alice@example.com>\n"
        "Date: Mon, 1 Jan 2024\n"
        "Subject: Numbers\n"
        "To: Bob <bob@example.com>, carol@example.com\n"
        "\n"
        "The numbers are in.\n"
    )
    message = gmail_to_message(
        {
            "id": "fw1",
            "payload": {
                "mimeType": "text/plain",
                "headers": [
                    {"name": "From", "value": "me@example.com"},
                    {"name": "To", "value": "dave@example.com"},
                    {"name": "Subject", "value": "Fwd: Numbers"},
                ],
                "body": {"data": _b64(body)},
            },
        }
    )

    assert message.forwarded is True
    assert message.original_sender is not None
    assert message.original_sender.address == "alice@example.com"
    assert [p.address for p in message.all_recipients] == ["bob@example.com", "carol@example.com"]


def test_malformed_payload_is_defaulted() -> None:
    message = gmail_to_message({"id": "x", "labelIds": "INBOX", "payload": None})

    assert message.labels == ["INBOX"]
    assert message.sender.address == ""
    assert message.body == ""


def test_forwarded_html_block_is_parsed() -> None:
    html = (
        "<div>see below</div><div>---------- Forwarded message ---------<br>"
        "From: <b>Alice</b> &lt;alice@example.com&gt;<br>\n"
        "To: bob@example.com<br></div><div>Body text</div>"
    )
    message = gmail_to_message(
        {
            "id": "fw2",
            "payload": {
                "mimeType": "text/html",
                "headers": [
                    {"name": "From", "value": "me@example.com"},
                    {"name": "Subject", "value": "FW: Numbers"},
                ],
                "body": {"data": _b64(html)},
            },
        }
    )

    assert message.original_sender is not None
    assert message.original_sender.address == "alice@example.com"
    assert [p.address for p in message.all_recipients] == ["bob@example.com"]

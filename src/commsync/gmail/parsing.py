"""Helpers for parsing Gmail API messages into internal models."""

from __future__ import annotations

import base64
import binascii
import re
from email.utils import getaddresses
from html import unescape
from typing import Any

from commsync.models import Attachment, Channel, Message, Participant
from commsync.utils.dates import parse_timestamp

_FORWARD_MARKER = re.compile(r"-+\s*Forwarded message\s*-+", re.IGNORECASE)
_FORWARD_SUBJECT = re.compile(r"^\s*(fwd|fw)\s*:", re.IGNORECASE)
_BREAK = re.compile(r"<\s*(br|/p|/div|/tr|/li)\b[^>]*>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]+>")
_FORWARD_FIELDS = frozenset({"from", "date", "sent", "subject", "to", "cc"})


def _header_map(message: dict[str, Any]) -> dict[str, str]:
    payload = message.get("payload") or {}
    headers = payload.get("headers") or []
    result: dict[str, str] = {}
    for h in headers:
        name = h.get("name")
        value = h.get("value")
        if isinstance(name, str) and isinstance(value, str):
            # Gmail can include duplicates; keep the first for now.
            result.setdefault(name.lower(), value)
    return result


def _parse_participants(value: str | None) -> list[Participant]:
    if not value:
        return []
    # getaddresses returns list[(name, addr)]
    return [
        Participant(name=name or addr, address=addr)
        for name, addr in getaddresses([value])
        if addr
    ]


def _decode_body(data: str | None) -> str:
    if not data:
        return ""
    padded = data + "=" * (-len(data) % 4)
    try:
        return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError):
        return ""


def _walk_parts(part: dict[str, Any]):
    yield part
    for child in part.get("parts") or []:
        if isinstance(child, dict):
            yield from _walk_parts(child)


def _extract_body(payload: dict[str, Any]) -> tuple[str, str]:
    """Return (html, plain) bodies found anywhere in the MIME tree."""
    html = ""
    plain = ""
    for part in _walk_parts(payload):
        if part.get("filename"):
            continue
        mime_type = (part.get("mimeType") or "").lower()
        data = (part.get("body") or {}).get("data")
        if mime_type == "text/html" and not html:
            html = _decode_body(data)
        elif mime_type == "text/plain" and not plain:
            plain = _decode_body(data)
    return html, plain


def _extract_attachments(payload: dict[str, Any]) -> list[Attachment]:
    attachments: list[Attachment] = []
    for part in _walk_parts(payload):
        filename = part.get("filename")
        if not filename:
            continue
        body = part.get("body") or {}
        size = body.get("size")
        attachments.append(
            Attachment(
                name=filename,
                mime_type=part.get("mimeType"),
                byte_size=int(size) if isinstance(size, (int, str)) and str(size).isdigit() else None,
                locator=body.get("attachmentId"),
            )
        )
    return attachments


def _html_to_text(html: str) -> str:
    return unescape(_TAG.sub("", _BREAK.sub("\n", html)))


def _forwarded_parties(text: str) -> tuple[Participant | None, list[Participant]]:
    """Read From/To/Cc lines from the first forwarded-message block."""
    marker = _FORWARD_MARKER.search(text)
    if marker is None:
        return None, []

    original_sender: Participant | None = None
    recipients: list[Participant] = []
    for line in text[marker.end():].splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        name, sep, value = stripped.partition(":")
        field = name.strip().lower()
        # The header block ends at the first line that is not a header.
        if not sep or field not in _FORWARD_FIELDS:
            break
        if field == "from" and original_sender is None:
            parsed = _parse_participants(value)
            original_sender = parsed[0] if parsed else None
        elif field in ("to", "cc"):
            recipients.extend(_parse_participants(value))
    return original_sender, recipients


def gmail_to_message(message: dict[str, Any], *, linked_account_id: str | None = None) -> Message:
    """Convert a Gmail API message (format=metadata or full) to Message.

    Args:
        message: Gmail API message dict.
        linked_account_id: Set when the mailbox is a linked account rather than
            the user's primary Gmail account.

    Returns:
        Message: Parsed channel-agnostic message.
    """

    hm = _header_map(message)
    payload = message.get("payload") or {}

    label_ids = message.get("labelIds") or []
    if not isinstance(label_ids, list):
        label_ids = []
    labels = [str(x) for x in label_ids if isinstance(x, str)]

    senders = _parse_participants(hm.get("from"))
    sender = senders[0] if senders else Participant(name=hm.get("from") or "")

    timestamp = parse_timestamp(message.get("internalDate")) or parse_timestamp(hm.get("date"))

    html, plain = _extract_body(payload)
    subject = hm.get("subject") or ""

    forwarded = bool(_FORWARD_SUBJECT.match(subject)) or "x-forwarded-for" in hm
    original_sender, all_recipients = (None, [])
    if forwarded:
        original_sender, all_recipients = _forwarded_parties(plain or _html_to_text(html))

    return Message(
        id=str(message.get("id") or ""),
        thread_id=str(message.get("threadId") or "") or None,
        sender=sender,
        recipients=_parse_participants(hm.get("to")) + _parse_participants(hm.get("cc")),
        subject=subject,
        body=html or plain,
        snippet=message.get("snippet"),
        timestamp=timestamp,
        labels=labels,
        channel=Channel.GMAIL,
        linked_account_id=linked_account_id,
        attachments=_extract_attachments(payload),
        read="UNREAD" not in labels,
        forwarded=forwarded,
        original_sender=original_sender,
        all_recipients=all_recipients,
    )

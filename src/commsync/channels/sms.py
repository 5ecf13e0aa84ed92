"""Convert SMS provider payloads (Twilio, JustCall, BulkVS) into messages.

Each provider reports direction in its own vocabulary; it is carried into the
message labels so the direction classifier can trust it first.
"""

from __future__ import annotations

from typing import Any

from commsync.models import Attachment, Channel, Message, Participant

_JUSTCALL_INBOUND = frozenset({"1", "incoming", "inbound"})


def _sms_message(
    *,
    channel: Channel,
    message_id: Any,
    body: Any,
    sender: Any,
    recipient: Any,
    timestamp: Any,
    direction: str | None,
    linked_account_id: str | None,
    attachments: list[Attachment] | None = None,
    thread_id: Any = None,
) -> Message:
    labels = ["SMS"]
    if direction:
        labels.append(direction)
    text = str(body or "")
    return Message(
        id=str(message_id or ""),
        thread_id=str(thread_id) if thread_id else None,
        sender=Participant(name=str(sender or ""), address=str(sender or "")),
        recipients=[Participant(name=str(recipient or ""), address=str(recipient or ""))]
        if recipient
        else [],
        body=text,
        snippet=text[:100],
        timestamp=timestamp,
        labels=labels,
        channel=channel,
        linked_account_id=linked_account_id,
        attachments=attachments or [],
    )


def twilio_to_message(payload: dict[str, Any], *, linked_account_id: str | None = None) -> Message:
    """Twilio Messages API resource -> Message.

    ``direction`` is one of ``inbound``, ``outbound-api``, ``outbound-reply``
    (or ``outbound-call``) and is kept verbatim as a label.
    """
    media = [
        Attachment(
            name=item.get("filename") or item.get("sid") or "",
            mime_type=item.get("content_type"),
            locator=item.get("url"),
        )
        for item in payload.get("media") or []
        if isinstance(item, dict)
    ]
    return _sms_message(
        channel=Channel.TWILIO,
        message_id=payload.get("sid"),
        body=payload.get("body"),
        sender=payload.get("from"),
        recipient=payload.get("to"),
        timestamp=payload.get("date_sent") or payload.get("date_created"),
        direction=payload.get("direction"),
        linked_account_id=linked_account_id or payload.get("accountId"),
        attachments=media,
    )


def justcall_direction(raw: Any) -> str:
    """JustCall uses ``1``/``Incoming`` for inbound and anything else for outbound."""
    return "INBOUND" if str(raw).strip().lower() in _JUSTCALL_INBOUND else "OUTBOUND"


def justcall_to_message(payload: dict[str, Any], *, linked_account_id: str | None = None) -> Message:
    """JustCall SMS record -> Message.

    The contact is always ``contact_number``; the account side is
    ``justcall_number``. Which of them is the sender follows the direction.
    """
    direction = justcall_direction(payload.get("direction"))
    contact_number = payload.get("contact_number") or payload.get("from")
    own_number = payload.get("justcall_number") or payload.get("to")
    if direction == "INBOUND":
        sender, recipient = contact_number, own_number
    else:
        sender, recipient = own_number, contact_number

    timestamp = payload.get("datetime") or payload.get("sms_date") or payload.get("created_at")
    return _sms_message(
        channel=Channel.JUSTCALL,
        message_id=payload.get("id"),
        body=payload.get("body") or (payload.get("sms_info") or {}).get("body"),
        sender=sender,
        recipient=recipient,
        timestamp=timestamp,
        direction=direction,
        linked_account_id=linked_account_id,
        thread_id=contact_number,
    )


def bulkvs_to_message(payload: dict[str, Any], *, linked_account_id: str | None = None) -> Message:
    """BulkVS message record -> Message; missing direction means inbound."""
    direction = str(payload.get("direction") or "inbound").upper()
    to = payload.get("to")
    if isinstance(to, list):
        to = to[0] if to else None
    return _sms_message(
        channel=Channel.BULKVS,
        message_id=payload.get("id"),
        body=payload.get("body") or payload.get("message"),
        sender=payload.get("from"),
        recipient=to,
        timestamp=payload.get("timestamp") or payload.get("created_at"),
        direction=direction,
        linked_account_id=linked_account_id,
        thread_id=payload.get("thread_id"),
    )

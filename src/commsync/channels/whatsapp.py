"""Convert WhatsApp chat payloads into messages."""

from __future__ import annotations

import re
from typing import Any

from commsync.models import Channel, Message, Participant
from commsync.reconcile.keys import DEFAULT_GROUP_SUFFIX, is_group_chat
from commsync.utils.phone import clean_whatsapp_number

SYSTEM_BROADCASTS = (
    "Messages are end-to-end encrypted. No one outside of this chat, not even WhatsApp, "
    "can read or listen to them.",
    "BIZ_PRIVACY_MODE_TO_FB",
    "Messages and calls are end-to-end encrypted",
    "Your security code with",
    "Your chat is end-to-end encrypted",
    "Tap to learn more",
    "This chat is with a business account",
)

_SYSTEM_PATTERN = re.compile(
    r"^\U0001F512|^end-to-end encrypted|^security code|^business account"
    r"|^verified business|^[0-9]+ groups in common",
    re.IGNORECASE,
)


def is_system_message(text: str | None) -> bool:
    """Whether ``text`` is a WhatsApp system notice rather than a user message."""
    if not text:
        return False
    if any(notice in text for notice in SYSTEM_BROADCASTS):
        return True
    return bool(_SYSTEM_PATTERN.search(text))


def payload_is_from_user(payload: dict[str, Any]) -> bool:
    if payload.get("is_sender") in (1, True):
        return True
    if str(payload.get("direction", "")).lower() == "outbound":
        return True
    labels = [str(label).lower() for label in payload.get("labels") or []]
    if "outbound" in labels:
        return True
    return str(payload.get("status", "")).upper() == "SENT"


def whatsapp_to_message(
    payload: dict[str, Any],
    *,
    chat_name: str | None = None,
    linked_account_id: str | None = None,
    group_suffix: str = DEFAULT_GROUP_SUFFIX,
) -> Message | None:
    """WhatsApp chat message -> Message, or None for system notices.

    Outbound messages use ``me`` as the sender address and the chat id as the
    recipient, so the chat rather than a person identifies the conversation.
    """
    text = str(payload.get("text") or payload.get("body") or "")
    if is_system_message(text):
        return None

    chat_id = payload.get("chat_id") or payload.get("chatId") or ""
    is_group = is_group_chat(chat_id, group_suffix)
    from_user = payload_is_from_user(payload)

    sender_id = payload.get("sender_id") or payload.get("from") or "unknown"
    cleaned_sender = clean_whatsapp_number(sender_id)
    chat_label = chat_name or "WhatsApp Chat"

    if from_user:
        sender = Participant(name="You", address="me")
        recipient_name = chat_label
    else:
        if is_group:
            display = payload.get("sender_name") or cleaned_sender
        else:
            display = chat_label if chat_label != "You" else cleaned_sender
        sender = Participant(name=display, address=sender_id)
        recipient_name = "You"

    metadata: dict[str, Any] = {
        "is_group": is_group,
        "chat_id": chat_id or None,
        "sender_id": sender_id,
        "sender_name": payload.get("sender_name"),
        "is_sender": from_user,
    }
    if is_group:
        metadata["group_name"] = chat_label

    labels = ["whatsapp"]
    if from_user:
        labels.append("OUTBOUND")

    return Message(
        id=str(payload.get("id") or ""),
        thread_id=chat_id or None,
        sender=sender,
        recipients=[Participant(name=recipient_name, address=chat_id or "whatsapp")],
        subject=sender.name if not (is_group or from_user) else chat_label,
        body=text,
        snippet=text[:100],
        timestamp=payload.get("timestamp"),
        labels=labels,
        channel=Channel.WHATSAPP,
        linked_account_id=linked_account_id,
        read=payload.get("seen") in (1, True),
        metadata=metadata,
    )

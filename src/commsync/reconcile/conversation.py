"""Conversation assembly.

Selects the messages that belong to one contact or one group out of the whole
in-memory collection and returns them oldest first.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import structlog

from commsync.models import (
    SMS_CHANNELS,
    Channel,
    Contact,
    ConversationTarget,
    Group,
    Message,
    Participant,
)
from commsync.reconcile.direction import is_whatsapp_from_user
from commsync.reconcile.keys import DEFAULT_GROUP_SUFFIX, identity_key, is_group_chat
from commsync.utils.phone import digits_match, digits_only
from commsync.utils.subject import normalize_subject

logger = structlog.get_logger()


def _norm(address: str | None) -> str:
    return (address or "").strip().lower()


def _addresses(participants: Iterable[Participant]) -> set[str]:
    return {_norm(p.address) for p in participants if p.address}


def resolve_contact(
    key: str | None,
    contacts: Iterable[Contact],
    *,
    group_suffix: str = DEFAULT_GROUP_SUFFIX,
) -> Contact | None:
    """Find a contact by identity key, falling back to its address."""
    if not key:
        return None
    candidates = list(contacts)
    for contact in candidates:
        if contact.identity_key and contact.identity_key == key:
            return contact
    for contact in candidates:
        if contact.address == key:
            return contact
    lowered = key.strip().lower()
    for contact in candidates:
        if _norm(contact.address) == lowered:
            return contact
    for contact in candidates:
        derived = identity_key(contact.address, contact.channel, group_suffix=group_suffix)
        if derived and derived == key:
            return contact
    return None


def in_group(message: Message, group: Group) -> bool:
    """Whether any party of ``message`` is a member of ``group``."""
    members = {_norm(a) for a in group.addresses}
    if members:
        if _norm(message.sender.address) in members:
            return True
        if any(_norm(r.address) in members for r in message.recipients):
            return True

    group_numbers = [d for d in (digits_only(p) for p in group.phone_numbers) if d]
    if not group_numbers:
        return False

    party_numbers = [digits_only(message.sender.address)]
    party_numbers.extend(digits_only(r.address) for r in message.recipients)
    return any(
        digits_match(party, number) for party in party_numbers for number in group_numbers
    )


def _gmail_member(message: Message, contact: Contact, session_email: str | None) -> bool:
    me = _norm(session_email)
    them = _norm(contact.address)
    if not them:
        return False

    sender = _norm(message.sender.address)
    recipients = _addresses(message.recipients)

    if me:
        if sender == them and me in recipients:
            return True
        if sender == me and them in recipients:
            return True

    if message.forwarded:
        if message.original_sender is not None and _norm(message.original_sender.address) == them:
            return True
        if them in _addresses(message.all_recipients):
            return True

    # Subject threading: same normalized subject as the contact's latest
    # message, with both the contact and the user among the parties.
    wanted = normalize_subject(contact.last_message_subject)
    if me and wanted and normalize_subject(message.subject) == wanted:
        parties = {sender} | recipients | _addresses(message.all_recipients)
        if them in parties and me in parties:
            return True

    return False


def _imap_member(message: Message, contact: Contact) -> bool:
    if contact.linked_account_id is None or message.linked_account_id != contact.linked_account_id:
        return False
    them = _norm(contact.address)
    if not them:
        return False
    return _norm(message.sender.address) == them or them in _addresses(message.recipients)


def _sms_member(message: Message, contact: Contact) -> bool:
    if contact.linked_account_id and message.linked_account_id != contact.linked_account_id:
        return False
    them = digits_only(contact.address)
    if not them:
        return False
    if digits_match(them, digits_only(message.sender.address)):
        return True
    return any(digits_match(them, digits_only(r.address)) for r in message.recipients)


def _whatsapp_member(message: Message, contact: Contact, group_suffix: str) -> bool:
    if is_group_chat(contact.address, group_suffix):
        return contact.address in (message.thread_id, message.metadata.get("chat_id"))

    # Keyed like the deduplicator: every format of one number is one contact.
    them = identity_key(contact.address, Channel.WHATSAPP, group_suffix=group_suffix)
    if not them:
        return False
    if is_whatsapp_from_user(message):
        return any(
            identity_key(r.address, Channel.WHATSAPP, group_suffix=group_suffix) == them
            for r in message.recipients
        )
    return identity_key(message.sender.address, Channel.WHATSAPP, group_suffix=group_suffix) == them


def belongs_to_contact(
    message: Message,
    contact: Contact,
    *,
    session_email: str | None = None,
    group_suffix: str = DEFAULT_GROUP_SUFFIX,
) -> bool:
    """Whether ``message`` is part of the one-to-one conversation with ``contact``."""
    match message.channel:
        case Channel.GMAIL:
            return _gmail_member(message, contact, session_email)
        case Channel.IMAP:
            return _imap_member(message, contact)
        case Channel.WHATSAPP:
            return _whatsapp_member(message, contact, group_suffix)
        case channel if channel in SMS_CHANNELS:
            return _sms_member(message, contact)
        case _:
            return False


def assemble_conversation(
    target: ConversationTarget,
    messages: Iterable[Message],
    *,
    contacts: Iterable[Contact] = (),
    groups: Sequence[Group] = (),
    session_email: str | None = None,
    group_suffix: str = DEFAULT_GROUP_SUFFIX,
) -> list[Message]:
    """Assemble the chronologically ascending thread for a contact or group.

    Args:
        target: The selected contact key or group id.
        messages: The full message collection.
        contacts: Known contacts used to resolve ``target.contact_key``.
        groups: Known groups used to resolve ``target.group_id``.
        session_email: The session user's primary Gmail address.
        group_suffix: Address suffix marking WhatsApp group chats.

    Returns:
        Matching messages, oldest first; equal timestamps keep input order.
        An unresolvable target yields an empty list.
    """
    if target.is_group:
        group = next((g for g in groups if g.id == target.group_id), None)
        if group is None:
            logger.info("conversation_group_not_found", group_id=target.group_id)
            return []
        selected = [m for m in messages if in_group(m, group)]
    else:
        contact = resolve_contact(target.contact_key, contacts, group_suffix=group_suffix)
        if contact is None:
            logger.info("conversation_contact_not_found", contact_key=target.contact_key)
            return []
        selected = [
            m
            for m in messages
            if belongs_to_contact(
                m, contact, session_email=session_email, group_suffix=group_suffix
            )
        ]

    return sorted(selected, key=lambda m: m.timestamp)

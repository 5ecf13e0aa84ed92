"""Contact extraction and deduplication.

Raw candidates are produced per sender/recipient of every stored message and
then collapsed to one :class:`Contact` per identity key, keeping the candidate
with the most recent message.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from commsync.models import Channel, Contact, Message, Participant
from commsync.reconcile.direction import is_whatsapp_from_user
from commsync.reconcile.keys import DEFAULT_GROUP_SUFFIX, identity_key, is_group_chat
from commsync.utils.dates import EPOCH
from commsync.utils.phone import clean_whatsapp_number

logger = structlog.get_logger()

# Provider placeholders for "the signed-in user" that are never contacts.
USER_PLACEHOLDERS = frozenset({"me", "you"})


@dataclass(frozen=True)
class DeduplicationResult:
    """Survivors keyed by identity key plus the recency-ordered list.

    Contacts with an empty key are never merged; they only appear in
    ``contacts``.
    """

    by_key: dict[str, Contact] = field(default_factory=dict)
    contacts: list[Contact] = field(default_factory=list)


def _is_placeholder(address: str) -> bool:
    return address.strip().lower() in USER_PLACEHOLDERS


def _candidate(message: Message, participant: Participant, *, name: str | None = None) -> Contact:
    return Contact(
        name=name if name is not None else (participant.name or participant.address),
        address=participant.address,
        channel=message.channel,
        linked_account_id=message.linked_account_id,
        last_message_date=message.timestamp,
        last_message_subject=message.subject,
        labels=list(message.labels),
    )


def _whatsapp_candidate(message: Message, group_suffix: str) -> Contact | None:
    chat_id = message.metadata.get("chat_id") or message.thread_id or ""
    is_group = bool(message.metadata.get("is_group")) or is_group_chat(chat_id, group_suffix)

    if is_group:
        if not chat_id:
            return None
        name = message.metadata.get("group_name") or message.subject or "WhatsApp Group"
        return Contact(
            name=name,
            address=chat_id,
            channel=Channel.WHATSAPP,
            linked_account_id=message.linked_account_id,
            last_message_date=message.timestamp,
            last_message_subject=message.snippet or message.subject,
            labels=list(message.labels),
        )

    if is_whatsapp_from_user(message):
        if not message.recipients:
            return None
        counterpart = message.recipients[0]
    else:
        counterpart = message.sender

    if not counterpart.address or _is_placeholder(counterpart.address):
        return None

    name = counterpart.name
    if not name or _is_placeholder(name):
        name = clean_whatsapp_number(counterpart.address)

    candidate = _candidate(message, counterpart, name=name)
    return candidate.model_copy(update={"last_message_subject": message.snippet or message.subject})


def extract_candidates(
    messages: Iterable[Message],
    *,
    group_suffix: str = DEFAULT_GROUP_SUFFIX,
) -> list[Contact]:
    """Produce one raw contact candidate per distinct party of each message.

    WhatsApp messages yield a single candidate for the chat (the group, or the
    other person in a direct chat). Other channels yield the sender and every
    recipient. Placeholder addresses for the user (``me``/``You``) are skipped.
    """
    candidates: list[Contact] = []
    for message in messages:
        if message.channel == Channel.WHATSAPP:
            candidate = _whatsapp_candidate(message, group_suffix)
            if candidate is not None:
                candidates.append(candidate)
            continue

        for participant in (message.sender, *message.recipients):
            if not participant.address and not participant.name:
                continue
            if _is_placeholder(participant.address):
                continue
            candidates.append(_candidate(message, participant))

    return candidates


def _recency(contact: Contact):
    return contact.last_message_date or EPOCH


def deduplicate_contacts(
    candidates: Iterable[Contact],
    *,
    session_email: str | None = None,
    group_suffix: str = DEFAULT_GROUP_SUFFIX,
) -> DeduplicationResult:
    """Collapse candidates to one contact per identity key.

    Args:
        candidates: Raw candidates in observation order.
        session_email: The signed-in user's primary address. Candidates with
            this address are dropped unless they come from a linked account.
        group_suffix: Address suffix marking WhatsApp group chats.

    Returns:
        DeduplicationResult with the survivors, newest first. Ties keep the
        order in which keys were first seen.
    """
    own_address = session_email.strip().lower() if session_email else None

    slots: list[Contact] = []
    positions: dict[str, int] = {}
    skipped_self = 0

    for candidate in candidates:
        if (
            own_address
            and candidate.linked_account_id is None
            and candidate.address.strip().lower() == own_address
        ):
            skipped_self += 1
            continue

        key = identity_key(candidate.address, candidate.channel, group_suffix=group_suffix)
        keyed = candidate.model_copy(update={"identity_key": key})

        if not key:
            slots.append(keyed)
            continue

        position = positions.get(key)
        if position is None:
            positions[key] = len(slots)
            slots.append(keyed)
        elif _recency(keyed) > _recency(slots[position]):
            slots[position] = keyed

    ordered = sorted(slots, key=_recency, reverse=True)
    by_key = {contact.identity_key: contact for contact in ordered if contact.identity_key}

    logger.debug(
        "contacts_deduplicated",
        survivors=len(ordered),
        keyed=len(by_key),
        skipped_self=skipped_self,
    )
    return DeduplicationResult(by_key=by_key, contacts=ordered)

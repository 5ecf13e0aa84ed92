"""Direction classification: was a message sent by the user or by the contact?

No provider reports direction consistently, so each channel walks a fixed list
of progressively weaker signals. The order of the checks is part of the
behavior; reordering them flips the result for ambiguous payloads.

Priority, per channel:

1. gmail: sender equals the session user's primary email.
2. imap: message belongs to the selected contact's linked account and the
   sender is not the contact.
3. twilio / justcall / bulkvs:
   a. an explicit OUTBOUND/INBOUND label (``outbound-api``, ``outbound-reply``...)
   b. sender digits match a phone-channel linked account -> outbound;
      otherwise a recipient's digits match -> inbound
   c. the message's own linked account number matches the sender
   d. the selected contact's digits appear among the recipients
4. whatsapp: explicit sender flags on the payload.
5. anything else: inbound.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from commsync.models import PHONE_CHANNELS, Channel, Contact, LinkedAccount, Message
from commsync.utils.phone import digits_match, digits_only

_USER_NAMES = frozenset({"you", "me"})


def _same_address(left: str | None, right: str | None) -> bool:
    if not left or not right:
        return False
    return left.strip().lower() == right.strip().lower()


def explicit_direction(labels: Iterable[str]) -> bool | None:
    """Read an explicit direction label.

    Returns:
        True for outbound labels, False for inbound labels, None when the
        labels carry no direction. The first directional label wins.
    """
    for label in labels:
        value = label.strip().lower()
        if value.startswith("outbound"):
            return True
        if value.startswith("inbound"):
            return False
    return None


def _account_numbers(accounts: Iterable[LinkedAccount]) -> list[str]:
    numbers = []
    for account in accounts:
        if account.channel not in PHONE_CHANNELS:
            continue
        digits = digits_only(account.address)
        if digits:
            numbers.append(digits)
    return numbers


def _classify_gmail(message: Message, session_email: str | None) -> bool:
    return _same_address(message.sender.address, session_email)


def _classify_imap(message: Message, contact: Contact | None) -> bool:
    if contact is None or message.linked_account_id is None:
        return False
    if message.linked_account_id != contact.linked_account_id:
        return False
    return not _same_address(message.sender.address, contact.address)


def _classify_sms(
    message: Message,
    accounts: Sequence[LinkedAccount],
    contact: Contact | None,
) -> bool:
    labelled = explicit_direction(message.labels)
    if labelled is not None:
        return labelled

    sender_digits = digits_only(message.sender.address)
    recipient_digits = [digits_only(r.address) for r in message.recipients]
    account_numbers = _account_numbers(accounts)

    if any(digits_match(sender_digits, number) for number in account_numbers):
        return True
    if any(
        digits_match(recipient, number)
        for recipient in recipient_digits
        for number in account_numbers
    ):
        return False

    if message.linked_account_id:
        own = next((a for a in accounts if a.id == message.linked_account_id), None)
        if own is not None and digits_match(digits_only(own.address), sender_digits):
            return True

    if contact is not None:
        contact_digits = digits_only(contact.address)
        if any(digits_match(contact_digits, recipient) for recipient in recipient_digits):
            return True

    return False


def is_whatsapp_from_user(message: Message) -> bool:
    """WhatsApp payload flags for messages the user sent."""
    is_sender = message.metadata.get("is_sender")
    if is_sender is True or is_sender == 1:
        return True

    if explicit_direction(message.labels) is True:
        return True
    if str(message.metadata.get("direction", "")).lower() == "outbound":
        return True

    if message.sender.address.strip().lower() in _USER_NAMES:
        return True
    if message.sender.name.strip().lower() in _USER_NAMES:
        return True

    return str(message.metadata.get("status", "")).upper() == "SENT"


def classify_direction(
    message: Message,
    accounts: Sequence[LinkedAccount] = (),
    *,
    session_email: str | None = None,
    contact: Contact | None = None,
) -> bool:
    """Decide whether ``message`` was sent by the signed-in user.

    Args:
        message: The message to classify.
        accounts: Every linked account the user has configured.
        session_email: The session user's primary Gmail address.
        contact: The currently selected contact, if any.

    Returns:
        True for outbound (from the user), False for inbound. Never raises on
        incomplete data; unknown channels are inbound.
    """
    match message.channel:
        case Channel.GMAIL:
            return _classify_gmail(message, session_email)
        case Channel.IMAP:
            return _classify_imap(message, contact)
        case Channel.TWILIO | Channel.JUSTCALL | Channel.BULKVS:
            return _classify_sms(message, accounts, contact)
        case Channel.WHATSAPP:
            return is_whatsapp_from_user(message)
        case _:
            return False

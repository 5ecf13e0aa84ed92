"""Contact list search and category filters."""

from __future__ import annotations

from collections.abc import Sequence

from commsync.models import PHONE_CHANNELS, Contact
from commsync.utils.dates import EPOCH

_SMS_LABELS = frozenset({"sms", "twilio", "justcall", "bulkvs", "whatsapp"})

# Relative weight of a term hit per field.
_FIELD_WEIGHTS = (("name", 3.0), ("address", 2.0), ("last_message_subject", 1.0))


def _score(contact: Contact, terms: list[str]) -> float:
    score = 0.0
    for field_name, weight in _FIELD_WEIGHTS:
        text = str(getattr(contact, field_name) or "").lower()
        if any(term in text for term in terms):
            score += weight
    return score


def search_contacts(contacts: Sequence[Contact], query: str) -> list[Contact]:
    """Rank contacts whose name, address and last subject contain every term.

    Matching contacts are returned with ``score`` set, best first, then most
    recent. A blank query returns the input unchanged.
    """
    terms = [t for t in query.lower().split() if t]
    if not terms:
        return list(contacts)

    matches: list[Contact] = []
    for contact in contacts:
        haystack = " ".join(
            [contact.name, contact.address, contact.last_message_subject]
        ).lower()
        if all(term in haystack for term in terms):
            matches.append(contact.model_copy(update={"score": _score(contact, terms)}))

    return sorted(
        matches,
        key=lambda c: (c.score, c.last_message_date or EPOCH),
        reverse=True,
    )


def _is_sms_contact(contact: Contact) -> bool:
    if contact.channel in PHONE_CHANNELS:
        return True
    return any(label.lower() in _SMS_LABELS for label in contact.labels)


def filter_contacts(contacts: Sequence[Contact], category: str | None) -> list[Contact]:
    """Apply a sidebar category: ``sms``, ``inbox`` or anything else (no-op)."""
    if not category:
        return list(contacts)
    category = category.lower()
    if category == "sms":
        return [c for c in contacts if _is_sms_contact(c)]
    if category == "inbox":
        return [
            c
            for c in contacts
            if not any(label.upper() in ("SENT", "TRASH") for label in c.labels)
        ]
    return list(contacts)

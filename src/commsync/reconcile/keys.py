"""Identity keys for contacts across channels."""

from __future__ import annotations

from commsync.models import Channel
from commsync.utils.phone import digits_only

DEFAULT_GROUP_SUFFIX = "@g.us"
GROUP_KEY_PREFIX = "whatsapp:group:"
CONTACT_KEY_PREFIX = "whatsapp:contact:"


def is_group_chat(address: str | None, group_suffix: str = DEFAULT_GROUP_SUFFIX) -> bool:
    """Return True when ``address`` is a WhatsApp group-chat id."""
    return bool(address) and address.endswith(group_suffix)


def identity_key(
    address: str | None,
    channel: Channel | str | None,
    *,
    group_suffix: str = DEFAULT_GROUP_SUFFIX,
) -> str:
    """Derive the canonical identity key for an address on a channel.

    - group chats (``...@g.us``): ``whatsapp:group:<address>``, case preserved
    - WhatsApp individuals: ``whatsapp:contact:<digits>``
    - email-like addresses: lower-cased
    - anything else (SMS numbers): the raw address

    Keys already in canonical form are returned unchanged. An empty address
    yields an empty key, which the deduplicator never merges.
    """
    if not address:
        return ""

    if address.startswith(GROUP_KEY_PREFIX) or address.startswith(CONTACT_KEY_PREFIX):
        return address

    if is_group_chat(address, group_suffix):
        return GROUP_KEY_PREFIX + address

    if channel == Channel.WHATSAPP:
        digits = digits_only(address)
        return CONTACT_KEY_PREFIX + digits if digits else ""

    if "@" in address:
        return address.lower()

    return address

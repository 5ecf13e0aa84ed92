"""Channel tags."""

from __future__ import annotations

from enum import Enum
from typing import Any


class Channel(str, Enum):
    """Communication channel enumeration."""

    GMAIL = "gmail"
    IMAP = "imap"
    TWILIO = "twilio"
    JUSTCALL = "justcall"
    WHATSAPP = "whatsapp"
    BULKVS = "bulkvs"

    def __str__(self) -> str:
        return self.value


SMS_CHANNELS = frozenset({Channel.TWILIO, Channel.JUSTCALL, Channel.BULKVS})
PHONE_CHANNELS = SMS_CHANNELS | {Channel.WHATSAPP}


def coerce_channel(value: Any) -> Channel | str:
    """Map a raw tag onto :class:`Channel`, keeping unknown tags as lower-case strings."""
    if isinstance(value, Channel):
        return value
    text = str(value).strip().lower()
    try:
        return Channel(text)
    except ValueError:
        return text

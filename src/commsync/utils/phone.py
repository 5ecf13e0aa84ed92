"""Phone number helpers shared by the key normalizer, classifier and assembler."""

from __future__ import annotations

import re

_NON_DIGIT = re.compile(r"\D")
_WHATSAPP_JID = re.compile(r"^([0-9+]+)@(s\.whatsapp\.net|c\.us)$")


def digits_only(value: str | None) -> str:
    """Strip every non-digit character from ``value``."""
    if not value:
        return ""
    return _NON_DIGIT.sub("", value)


def digits_match(left: str, right: str) -> bool:
    """Return True when one digit string contains the other.

    Providers disagree about country-code prefixes (``15551234567`` vs
    ``5551234567``), so containment is used rather than equality. Short numbers
    that happen to be substrings of longer ones will match too.
    """
    if not left or not right:
        return False
    return left in right or right in left


def clean_whatsapp_number(value: str | None) -> str:
    """Reduce ``1555...@s.whatsapp.net`` / ``1555...@c.us`` to the number part.

    Anything that is not an individual WhatsApp JID is returned unchanged.
    """
    if not value:
        return ""
    match = _WHATSAPP_JID.match(value)
    if match:
        return match.group(1)
    return value

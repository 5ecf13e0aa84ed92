"""Timestamp parsing for untrusted provider payloads."""

from __future__ import annotations

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Numeric timestamps above this are treated as milliseconds.
_MS_THRESHOLD = 100_000_000_000


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; aware values are returned unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a provider timestamp.

    Accepts datetimes, epoch seconds or milliseconds (numbers or digit
    strings), ISO-8601 strings (including a trailing ``Z``) and RFC 2822
    dates as found in mail headers.

    Returns:
        An aware datetime, or None when the value cannot be interpreted.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return ensure_aware(value)

    if isinstance(value, (int, float)):
        return _from_epoch(float(value))

    if not isinstance(value, str):
        return None

    raw = value.strip()
    if not raw:
        return None

    if raw.isdigit():
        return _from_epoch(float(raw))

    iso = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
    try:
        return ensure_aware(datetime.fromisoformat(iso))
    except ValueError:
        pass

    try:
        return ensure_aware(parsedate_to_datetime(raw))
    except (TypeError, ValueError, OverflowError, IndexError):
        return None


def _from_epoch(number: float) -> datetime | None:
    if number >= _MS_THRESHOLD:
        number = number / 1000.0
    try:
        return datetime.fromtimestamp(number, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None

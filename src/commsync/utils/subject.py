"""Subject normalization for subject-based email threading."""

from __future__ import annotations

import re

# One leading reply/forward marker or bracketed tag such as ``[ext]``.
RE_PREFIX = re.compile(r"^\s*(re|fwd|fw)\s*:\s*|^\s*\[[^\]]*\]\s*", re.IGNORECASE)


def normalize_subject(subject: str | None) -> str:
    """Strip reply/forward prefixes and tags, then trim and lower-case.

    ``"RE: [ext] Fwd: Project kickoff "`` and ``"project kickoff"`` normalize
    to the same value. A missing subject normalizes to ``""``.
    """
    if not subject:
        return ""
    s = subject.strip()
    previous = None
    while s != previous:
        previous = s
        s = RE_PREFIX.sub("", s)
    return s.strip().lower()

"""Multi-channel reconciliation.

Identity keys, contact deduplication, direction classification and
conversation assembly over an already-fetched message collection. Everything
here is pure and total over malformed provider data.
"""

from .contacts import DeduplicationResult, deduplicate_contacts, extract_candidates
from .conversation import assemble_conversation, belongs_to_contact, in_group, resolve_contact
from .direction import classify_direction, explicit_direction, is_whatsapp_from_user
from .keys import identity_key, is_group_chat
from .search import filter_contacts, search_contacts

__all__ = [
    "DeduplicationResult",
    "assemble_conversation",
    "belongs_to_contact",
    "classify_direction",
    "deduplicate_contacts",
    "explicit_direction",
    "extract_candidates",
    "filter_contacts",
    "identity_key",
    "in_group",
    "is_group_chat",
    "is_whatsapp_from_user",
    "resolve_contact",
    "search_contacts",
]

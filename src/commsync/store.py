"""In-memory message store.

The store is the single shared collection that the contact list, the
conversation view and the incremental loader all read from. It is an explicit
object so each caller (and each test) can own a fresh one.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from commsync.models import Contact, Message
from commsync.reconcile.contacts import deduplicate_contacts, extract_candidates
from commsync.reconcile.keys import DEFAULT_GROUP_SUFFIX
from commsync.storage import StateRepository

logger = structlog.get_logger()

StoreKey = tuple[str, str, str]


def merge_message(existing: Message, incoming: Message) -> Message:
    """Last write wins for every field, with three exceptions.

    An empty incoming body or attachment list keeps the stored one, and the
    timestamp is the later of the two.
    """
    update: dict[str, object] = {}
    if not incoming.body and existing.body:
        update["body"] = existing.body
    if not incoming.attachments and existing.attachments:
        update["attachments"] = existing.attachments
    if existing.timestamp > incoming.timestamp:
        update["timestamp"] = existing.timestamp
    return incoming.model_copy(update=update) if update else incoming


class MessageStore:
    """Keyed message collection with optional SQLite persistence."""

    def __init__(
        self,
        repository: StateRepository | None = None,
        *,
        group_suffix: str = DEFAULT_GROUP_SUFFIX,
    ) -> None:
        """Create a store.

        Args:
            repository: When given, merged messages are written through to it
                and :meth:`load` restores them.
            group_suffix: Address suffix marking WhatsApp group chats.
        """
        self._messages: dict[StoreKey, Message] = {}
        self._repository = repository
        self._group_suffix = group_suffix

    def __len__(self) -> int:
        return len(self._messages)

    def __contains__(self, key: object) -> bool:
        return key in self._messages

    def load(self) -> int:
        """Restore cached messages from the repository, if any."""
        if self._repository is None:
            return 0
        restored = self._repository.load_messages()
        for message in restored:
            self._messages[message.store_key] = message
        logger.info("message_store_loaded", count=len(restored))
        return len(restored)

    def merge(self, messages: Iterable[Message]) -> int:
        """Merge a batch by store key.

        Returns:
            Number of keys that were not present before.
        """
        added = 0
        changed: list[Message] = []
        for message in messages:
            key = message.store_key
            existing = self._messages.get(key)
            if existing is None:
                added += 1
                merged = message
            else:
                merged = merge_message(existing, message)
            self._messages[key] = merged
            changed.append(merged)

        if self._repository is not None and changed:
            self._repository.upsert_messages(changed)

        logger.debug("message_store_merged", received=len(changed), added=added, total=len(self))
        return added

    def messages(self) -> list[Message]:
        """All messages in first-seen order."""
        return list(self._messages.values())

    def get(self, key: StoreKey) -> Message | None:
        return self._messages.get(key)

    def oldest(self, channel: str, linked_account_id: str | None = None) -> Message | None:
        """Oldest stored message for a channel (and account), or None."""
        matching = [
            m
            for m in self._messages.values()
            if str(m.channel) == str(channel)
            and (linked_account_id is None or m.linked_account_id == linked_account_id)
        ]
        if not matching:
            return None
        return min(matching, key=lambda m: m.timestamp)

    def contacts(self, session_email: str | None = None) -> list[Contact]:
        """Deduplicated contacts over every stored message, newest first."""
        candidates = extract_candidates(self._messages.values(), group_suffix=self._group_suffix)
        result = deduplicate_contacts(
            candidates, session_email=session_email, group_suffix=self._group_suffix
        )
        return result.contacts

"""Unified inbox facade.

This module wires the message store, the reconciliation functions and the
incremental loader behind the surface the UI layer consumes.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol

import structlog

from commsync.config import Settings
from commsync.loader import ChannelFetcher, IncrementalLoader, LoadResult
from commsync.models import (
    Contact,
    ConversationTarget,
    Group,
    LinkedAccount,
    Message,
    SessionUser,
)
from commsync.reconcile import (
    assemble_conversation,
    classify_direction,
    filter_contacts,
    resolve_contact,
    search_contacts,
)
from commsync.storage import KeyValueState
from commsync.store import MessageStore

logger = structlog.get_logger()


class InboxSources(Protocol):
    """External collaborators that own sessions, accounts and groups."""

    async def get_session_user(self) -> SessionUser: ...

    async def list_linked_accounts(self) -> list[LinkedAccount]: ...

    async def list_groups(self) -> list[Group]: ...


class Inbox:
    """Unified inbox over every linked channel.

    The inbox owns no global state: the store and loader are passed in (or
    created fresh), so separate inboxes never share messages.
    """

    def __init__(
        self,
        store: MessageStore | None = None,
        fetchers: Iterable[ChannelFetcher] = (),
        *,
        session_user: SessionUser | None = None,
        accounts: Sequence[LinkedAccount] = (),
        groups: Sequence[Group] = (),
        state: KeyValueState | None = None,
        settings: Settings | None = None,
        loader: IncrementalLoader | None = None,
    ) -> None:
        """Initialize the inbox.

        Args:
            store: Shared message store. If None, creates an empty one.
            fetchers: Per-channel fetchers used by load_more.
            session_user: The signed-in user.
            accounts: Linked accounts.
            groups: User-defined groups.
            state: Persistence for the loader's empty-load counter.
            settings: Application settings. If None, uses default settings.
            loader: A preconfigured loader; overrides fetchers and state.
        """
        from commsync.config import get_settings

        self.settings = settings or get_settings()
        self.store = store or MessageStore(group_suffix=self.settings.group_chat_suffix)
        self.session_user = session_user or SessionUser(email=self.settings.session_email)
        self.accounts: list[LinkedAccount] = list(accounts)
        self.groups: list[Group] = list(groups)
        self.loader = loader or IncrementalLoader(
            self.store,
            fetchers,
            self.accounts,
            state=state,
            settings=self.settings,
        )
        logger.info(
            "inbox_initialized",
            accounts=len(self.accounts),
            groups=len(self.groups),
            messages=len(self.store),
        )

    @property
    def session_email(self) -> str | None:
        return self.session_user.email or self.settings.session_email

    async def refresh(self, sources: InboxSources) -> None:
        """Reload the session user, linked accounts and groups from collaborators."""
        self.session_user = await sources.get_session_user()
        self.accounts = list(await sources.list_linked_accounts())
        self.groups = list(await sources.list_groups())
        self.loader.set_accounts(self.accounts)
        logger.info("inbox_refreshed", accounts=len(self.accounts), groups=len(self.groups))

    def add_messages(self, messages: Iterable[Message]) -> int:
        return self.store.merge(messages)

    def get_deduplicated_contacts(
        self,
        *,
        category: str | None = None,
        query: str | None = None,
    ) -> list[Contact]:
        """Contacts newest first, optionally filtered by category and search query."""
        contacts = self.store.contacts(self.session_email)
        contacts = filter_contacts(contacts, category)
        if query and query.strip():
            contacts = search_contacts(contacts, query)
        return contacts

    def find_contact(self, key: str) -> Contact | None:
        return resolve_contact(
            key, self.store.contacts(self.session_email), group_suffix=self.settings.group_chat_suffix
        )

    def classify_direction(self, message: Message, contact: Contact | None = None) -> bool:
        return classify_direction(
            message, self.accounts, session_email=self.session_email, contact=contact
        )

    def assemble_conversation(self, target: ConversationTarget) -> list[Message]:
        return assemble_conversation(
            target,
            self.store.messages(),
            contacts=self.store.contacts(self.session_email),
            groups=self.groups,
            session_email=self.session_email,
            group_suffix=self.settings.group_chat_suffix,
        )

    def conversation_view(self, target: ConversationTarget) -> list[tuple[Message, bool]]:
        """Assembled conversation with each message paired with ``is_from_user``."""
        contact = None if target.is_group else self.find_contact(target.contact_key or "")
        return [
            (message, self.classify_direction(message, contact))
            for message in self.assemble_conversation(target)
        ]

    async def load_more(self) -> LoadResult:
        return await self.loader.load_more()

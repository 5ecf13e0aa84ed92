"""Unit tests for the inbox facade."""

import pytest

from commsync.inbox import Inbox
from commsync.loader import FetchPage
from commsync.models import Channel, ConversationTarget, Group, LinkedAccount, SessionUser


class FakeSources:
    async def get_session_user(self) -> SessionUser:
        return SessionUser(email="me@example.com", id="u1")

    async def list_linked_accounts(self) -> list[LinkedAccount]:
        return [LinkedAccount(id="tw-1", channel="twilio", address="+15550001111")]

    async def list_groups(self) -> list[Group]:
        return [Group(id="g1", name="Team", addresses=["alice@example.com"])]


class TwilioFetcher:
    channel = Channel.TWILIO

    def __init__(self, messages) -> None:
        self.messages = messages
        self.accounts: list[str] = []

    async def fetch_more(self, account, cursor) -> FetchPage:
        self.accounts.append(account.id)
        return FetchPage(messages=self.messages)


class TestInbox:
    """Test suite for Inbox class."""

    def test_inbox_initialization(self, mock_settings) -> None:
        inbox = Inbox(settings=mock_settings)

        assert inbox.settings is mock_settings
        assert len(inbox.store) == 0
        assert inbox.session_email == "me@example.com"

    def test_separate_inboxes_do_not_share_messages(self, mock_settings, make_message) -> None:
        first = Inbox(settings=mock_settings)
        second = Inbox(settings=mock_settings)

        first.add_messages([make_message()])

        assert len(first.store) == 1
        assert len(second.store) == 0

    def test_contacts_exclude_session_user(self, mock_settings, make_message) -> None:
        inbox = Inbox(settings=mock_settings)
        inbox.add_messages(
            [
                make_message("1", minutes=0),
                make_message("2", sender="bob@example.com", minutes=5, subject="Budget"),
            ]
        )

        assert [c.address for c in inbox.get_deduplicated_contacts()] == [
            "bob@example.com",
            "alice@example.com",
        ]
        assert [c.address for c in inbox.get_deduplicated_contacts(query="budget")] == ["bob@example.com"]

    def test_conversation_view_pairs_direction(self, mock_settings, make_message) -> None:
        inbox = Inbox(settings=mock_settings)
        inbox.add_messages(
            [
                make_message("in", minutes=0),
                make_message("out", sender="me@example.com", recipients=("alice@example.com",), minutes=1),
            ]
        )

        view = inbox.conversation_view(ConversationTarget(contact_key="alice@example.com"))

        assert [(m.id, from_user) for m, from_user in view] == [("in", False), ("out", True)]

    @pytest.mark.asyncio
    async def test_refresh_and_load_more(self, mock_settings, make_message) -> None:
        fetcher = TwilioFetcher([make_message("s1", channel="twilio", sender="+15559998888", labels=["SMS"])])
        inbox = Inbox(fetchers=[fetcher], session_user=SessionUser(), settings=mock_settings)

        await inbox.refresh(FakeSources())
        result = await inbox.load_more()

        assert inbox.session_user.id == "u1"
        assert fetcher.accounts == ["tw-1"]
        assert result.loaded == 1
        assert result.exhausted is False
        assert [g.id for g in inbox.groups] == ["g1"]
        assert inbox.assemble_conversation(ConversationTarget(group_id="g1")) == []

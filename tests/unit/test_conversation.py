"""Unit tests for conversation assembly."""

from commsync.models import Contact, ConversationTarget, Group, Message, Participant
from commsync.reconcile.contacts import deduplicate_contacts, extract_candidates
from commsync.reconcile.conversation import (
    assemble_conversation,
    belongs_to_contact,
    in_group,
    resolve_contact,
)

ME = "me@example.com"
ALICE = Contact(address="alice@example.com", channel="gmail", last_message_subject="Project kickoff")


def _ids(messages: list[Message]) -> list[str]:
    return [m.id for m in messages]


class TestGmailMembership:
    def test_exchange_with_session_user(self, make_message) -> None:
        inbound = make_message("in", sender="alice@example.com", recipients=(ME,))
        outbound = make_message("out", sender=ME, recipients=("Alice@Example.com",))

        assert belongs_to_contact(inbound, ALICE, session_email=ME)
        assert belongs_to_contact(outbound, ALICE, session_email=ME)

    def test_message_not_involving_session_user_is_excluded(self, make_message) -> None:
        # Same subject and the contact is a party, but the user is not.
        message = make_message(
            sender="alice@example.com",
            recipients=("bob@example.com",),
            subject="Re: Project kickoff",
        )

        assert not belongs_to_contact(message, ALICE, session_email=ME)

    def test_forwarded_original_sender(self, make_message) -> None:
        message = make_message(
            sender="bob@example.com",
            recipients=("carol@example.com",),
            subject="Fwd: numbers",
            forwarded=True,
            original_sender=Participant(address="alice@example.com"),
        )

        assert belongs_to_contact(message, ALICE, session_email=ME)

    def test_forwarded_original_recipient(self, make_message) -> None:
        message = make_message(
            sender="bob@example.com",
            recipients=("carol@example.com",),
            forwarded=True,
            all_recipients=[Participant(address="ALICE@example.com")],
        )

        assert belongs_to_contact(message, ALICE, session_email=ME)

    def test_subject_threading(self, make_message) -> None:
        # Bob replies to both the user and Alice on the same thread.
        message = make_message(
            sender="bob@example.com",
            recipients=(ME, "alice@example.com"),
            subject="RE: [ext] Project kickoff",
        )
        unrelated = make_message(
            sender="bob@example.com",
            recipients=(ME, "alice@example.com"),
            subject="Lunch?",
        )

        assert belongs_to_contact(message, ALICE, session_email=ME)
        assert not belongs_to_contact(unrelated, ALICE, session_email=ME)


class TestOtherChannels:
    def test_imap_requires_same_linked_account(self, make_message) -> None:
        contact = Contact(address="alice@example.com", channel="imap", linked_account_id="box-1")
        same = make_message(channel="imap", linked_account_id="box-1")
        other = make_message(channel="imap", linked_account_id="box-2")

        assert belongs_to_contact(same, contact)
        assert not belongs_to_contact(other, contact)

    def test_sms_digits(self, make_message) -> None:
        contact = Contact(address="+1 555 123 4567", channel="twilio")
        inbound = make_message(channel="twilio", sender="5551234567", recipients=("+15550001111",))
        outbound = make_message(channel="justcall", sender="+15550001111", recipients=("15551234567",))
        other = make_message(channel="bulkvs", sender="+15559990000", recipients=("+15550001111",))

        assert belongs_to_contact(inbound, contact)
        assert belongs_to_contact(outbound, contact)
        assert not belongs_to_contact(other, contact)

    def test_whatsapp_formats_of_one_number_share_a_thread(self, make_message) -> None:
        jid = make_message("w1", channel="whatsapp", sender="15551234567@s.whatsapp.net", minutes=0)
        formatted = make_message("w2", channel="whatsapp", sender="+1 (555) 123-4567", minutes=5)
        messages = [jid, formatted]

        contacts = deduplicate_contacts(extract_candidates(messages)).contacts
        thread = assemble_conversation(
            ConversationTarget(contact_key="whatsapp:contact:15551234567"),
            messages,
            contacts=contacts,
        )

        assert [c.identity_key for c in contacts] == ["whatsapp:contact:15551234567"]
        assert _ids(thread) == ["w1", "w2"]

    def test_whatsapp_outbound_to_formatted_number(self, make_message) -> None:
        contact = Contact(address="15551234567@c.us", channel="whatsapp")
        outbound = make_message(
            channel="whatsapp", sender="me", sender_name="You", recipients=("+1 555-123-4567",)
        )

        assert belongs_to_contact(outbound, contact)

    def test_whatsapp_group_contact(self, make_message) -> None:
        contact = Contact(address="120363041@g.us", channel="whatsapp")
        message = make_message(
            channel="whatsapp",
            sender="15559990000@s.whatsapp.net",
            recipients=("120363041@g.us",),
            thread_id="120363041@g.us",
        )

        assert belongs_to_contact(message, contact)

    def test_whatsapp_direct_contact(self, make_message) -> None:
        contact = Contact(address="15551234567@s.whatsapp.net", channel="whatsapp")
        inbound = make_message(channel="whatsapp", sender="15551234567@s.whatsapp.net", sender_name="Dana")
        outbound = make_message(
            channel="whatsapp",
            sender="me",
            sender_name="You",
            recipients=("15551234567@s.whatsapp.net",),
        )

        assert belongs_to_contact(inbound, contact)
        assert belongs_to_contact(outbound, contact)

    def test_unknown_channel_never_belongs(self, make_message) -> None:
        message = make_message(channel="telegram", sender="alice@example.com")

        assert not belongs_to_contact(message, ALICE, session_email=ME)


class TestGroups:
    def test_address_and_phone_membership(self, make_message) -> None:
        group = Group(id="g1", name="Sales Team", addresses=["alice@example.com"], phone_numbers=["555-123-4567"])

        by_address = make_message(sender="bob@example.com", recipients=("alice@example.com",))
        by_phone = make_message(channel="twilio", sender="+15551234567", recipients=())
        outsider = make_message(sender="bob@example.com", recipients=("carol@example.com",))

        assert in_group(by_address, group)
        assert in_group(by_phone, group)
        assert not in_group(outsider, group)


class TestAssembleConversation:
    def test_sorted_ascending_with_stable_ties(self, make_message) -> None:
        messages = [
            make_message("late", minutes=10),
            make_message("tie-a", minutes=5),
            make_message("early", minutes=0),
            make_message("tie-b", minutes=5),
        ]

        result = assemble_conversation(
            ConversationTarget(contact_key="alice@example.com"),
            messages,
            contacts=[ALICE],
            session_email=ME,
        )

        assert _ids(result) == ["early", "tie-a", "tie-b", "late"]

    def test_group_target(self, make_message) -> None:
        group = Group(id="g1", name="Team", addresses=["alice@example.com"])
        messages = [make_message("a"), make_message("b", sender="zed@example.com")]

        result = assemble_conversation(ConversationTarget(group_id="g1"), messages, groups=[group])

        assert _ids(result) == ["a"]

    def test_unresolved_targets_return_empty(self, make_message) -> None:
        messages = [make_message()]

        assert assemble_conversation(ConversationTarget(contact_key="nobody@example.com"), messages, contacts=[ALICE]) == []
        assert assemble_conversation(ConversationTarget(group_id="missing"), messages) == []
        assert assemble_conversation(ConversationTarget(), messages, contacts=[ALICE]) == []


class TestResolveContact:
    def test_by_identity_key_and_address(self) -> None:
        whatsapp = Contact(
            identity_key="whatsapp:contact:15551234567",
            address="+1 555 123 4567",
            channel="whatsapp",
        )
        contacts = [ALICE, whatsapp]

        assert resolve_contact("whatsapp:contact:15551234567", contacts) is whatsapp
        assert resolve_contact("+1 555 123 4567", contacts) is whatsapp
        assert resolve_contact("ALICE@example.com", contacts) is ALICE
        assert resolve_contact(None, contacts) is None

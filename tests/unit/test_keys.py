"""Unit tests for identity keys."""

import pytest

from commsync.models import Channel
from commsync.reconcile.keys import identity_key, is_group_chat


class TestIdentityKey:
    def test_whatsapp_individual_uses_digits(self) -> None:
        assert identity_key("+1 (555) 123-4567", Channel.WHATSAPP) == "whatsapp:contact:15551234567"
        assert (
            identity_key("15551234567@s.whatsapp.net", Channel.WHATSAPP)
            == "whatsapp:contact:15551234567"
        )

    def test_group_chat_keeps_case(self) -> None:
        assert identity_key("1203ABC@g.us", Channel.WHATSAPP) == "whatsapp:group:1203ABC@g.us"

    def test_group_suffix_applies_to_any_channel(self) -> None:
        assert identity_key("1203@g.us", Channel.TWILIO) == "whatsapp:group:1203@g.us"

    def test_email_is_lowercased(self) -> None:
        assert identity_key("Alice@Example.COM", Channel.GMAIL) == "alice@example.com"
        assert identity_key("Bob@Example.com", Channel.IMAP) == "bob@example.com"

    def test_sms_number_is_raw(self) -> None:
        assert identity_key("+1 555 123 4567", Channel.TWILIO) == "+1 555 123 4567"

    def test_empty_address_yields_empty_key(self) -> None:
        assert identity_key("", Channel.GMAIL) == ""
        assert identity_key(None, Channel.WHATSAPP) == ""

    def test_whatsapp_without_digits_yields_empty_key(self) -> None:
        assert identity_key("unknown", Channel.WHATSAPP) == ""

    @pytest.mark.parametrize(
        ("address", "channel"),
        [
            ("+1 555 123 4567", Channel.WHATSAPP),
            ("1203ABC@g.us", Channel.WHATSAPP),
            ("Alice@Example.com", Channel.GMAIL),
            ("+15551234567", Channel.JUSTCALL),
            ("someone", "telegram"),
        ],
    )
    def test_idempotent(self, address: str, channel) -> None:
        key = identity_key(address, channel)

        assert identity_key(key, channel) == key

    def test_custom_group_suffix(self) -> None:
        assert is_group_chat("room@groups.example", "@groups.example")
        assert identity_key("room@groups.example", Channel.WHATSAPP, group_suffix="@groups.example") == (
            "whatsapp:group:room@groups.example"
        )

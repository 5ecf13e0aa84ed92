"""Contact, group and account models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from commsync.models.channel import Channel, coerce_channel
from commsync.utils.dates import parse_timestamp


class Contact(BaseModel):
    """One conversation partner in the deduplicated contact list."""

    identity_key: str = Field(default="", description="Canonical key; set by the deduplicator")
    name: str = Field(default="", description="Display name")
    address: str = Field(default="", description="Representative address or number")
    channel: Channel | str | None = Field(default=None, description="Channel tag")
    linked_account_id: str | None = Field(default=None, description="Linked account id")
    last_message_date: datetime | None = Field(
        default=None, description="Timestamp of the most recent associated message"
    )
    last_message_subject: str = Field(default="", description="Subject of that message")
    labels: list[str] = Field(default_factory=list, description="Labels of that message")
    score: float = Field(default=0.0, description="Search ranking score")

    @field_validator("channel", mode="before")
    @classmethod
    def _coerce_channel(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return coerce_channel(value)

    @field_validator("last_message_date", mode="before")
    @classmethod
    def _lenient_date(cls, value: Any) -> Any:
        # Unparseable dates sort as the earliest possible value.
        return parse_timestamp(value)

    @field_validator("name", "address", "last_message_subject", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


def _unique(values: list[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


class Group(BaseModel):
    """A user-defined group of email addresses and phone numbers."""

    id: str = Field(description="Group id")
    name: str = Field(description="Group name")
    addresses: list[str] = Field(default_factory=list, description="Member email addresses")
    phone_numbers: list[str] = Field(default_factory=list, description="Member phone numbers")

    @field_validator("addresses", "phone_numbers")
    @classmethod
    def _drop_duplicates(cls, value: list[str]) -> list[str]:
        return _unique([item.strip() for item in value if item and item.strip()])

    def with_address(self, address: str) -> "Group":
        address = address.strip()
        if "@" not in address or address in self.addresses:
            return self
        return self.model_copy(update={"addresses": [*self.addresses, address]})

    def without_address(self, address: str) -> "Group":
        return self.model_copy(update={"addresses": [a for a in self.addresses if a != address]})

    def with_phone_number(self, number: str) -> "Group":
        number = number.strip()
        if not number or number in self.phone_numbers:
            return self
        return self.model_copy(update={"phone_numbers": [*self.phone_numbers, number]})

    def without_phone_number(self, number: str) -> "Group":
        return self.model_copy(
            update={"phone_numbers": [p for p in self.phone_numbers if p != number]}
        )


class LinkedAccount(BaseModel):
    """A user-configured binding to one channel instance (a mailbox, a number)."""

    id: str = Field(description="Account id")
    channel: Channel | str = Field(description="Channel tag")
    label: str = Field(default="", description="User-facing label")
    address: str = Field(
        default="", description="Identifying address: mailbox username or phone number"
    )
    credentials: dict[str, Any] = Field(
        default_factory=dict, description="Provider credentials, opaque to reconciliation"
    )
    last_sync: datetime | None = Field(default=None, description="Last successful sync")

    @field_validator("channel", mode="before")
    @classmethod
    def _coerce_channel(cls, value: Any) -> Any:
        return coerce_channel(value)

    @field_validator("last_sync", mode="before")
    @classmethod
    def _lenient_date(cls, value: Any) -> Any:
        return parse_timestamp(value)


class SessionUser(BaseModel):
    """The signed-in user."""

    email: str | None = Field(default=None, description="Primary Gmail address")
    id: str | None = Field(default=None, description="User id")


class ConversationTarget(BaseModel):
    """Selects either a single contact or a group for conversation assembly."""

    contact_key: str | None = Field(
        default=None, description="Contact identity key or address"
    )
    group_id: str | None = Field(default=None, description="Group id")

    @property
    def is_group(self) -> bool:
        return self.group_id is not None

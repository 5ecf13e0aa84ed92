"""Channel-agnostic message model.

Every provider payload (Gmail, IMAP, Twilio, JustCall, BulkVS, WhatsApp) is
converted into a :class:`Message` before it reaches the reconciliation code.
Payloads are untrusted, so the validators below default missing or malformed
values instead of rejecting the record.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from commsync.models.channel import Channel, coerce_channel
from commsync.utils.dates import EPOCH, parse_timestamp, utcnow

DEFAULT_LABELS = ("INBOX",)


class Participant(BaseModel):
    """A sender or recipient: display name plus email address or phone number."""

    name: str = Field(default="", description="Display name")
    address: str = Field(default="", description="Email address, phone number or chat id")

    @field_validator("name", "address", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class Attachment(BaseModel):
    """Attachment metadata; content is fetched separately through ``locator``."""

    name: str = Field(default="", description="File name")
    mime_type: str | None = Field(default=None, description="MIME type")
    byte_size: int | None = Field(default=None, description="Size in bytes")
    locator: str | None = Field(default=None, description="Attachment id or URL")


class Message(BaseModel):
    """A message from any channel."""

    id: str = Field(description="Channel-scoped message id")
    thread_id: str | None = Field(default=None, description="Channel-scoped thread id")
    sender: Participant = Field(description="Sender descriptor")
    recipients: list[Participant] = Field(default_factory=list, description="Recipients")
    subject: str = Field(default="", description="Subject; empty for SMS and WhatsApp")
    body: str = Field(default="", description="Plain text or HTML body")
    snippet: str | None = Field(default=None, description="Short preview")
    timestamp: datetime = Field(default_factory=utcnow, description="Sent/received time")
    labels: list[str] = Field(
        default_factory=lambda: list(DEFAULT_LABELS),
        description="Labels/tags such as INBOX, SENT, SMS, OUTBOUND",
    )
    channel: Channel | str = Field(description="Channel tag")
    linked_account_id: str | None = Field(
        default=None,
        description="Linked account id; absent for the primary Gmail account",
    )
    attachments: list[Attachment] = Field(default_factory=list)
    read: bool = Field(default=False)

    # Forwarded-mail metadata
    forwarded: bool = Field(default=False, description="Whether the message was forwarded")
    original_sender: Participant | None = Field(
        default=None, description="Sender of the forwarded original"
    )
    all_recipients: list[Participant] = Field(
        default_factory=list, description="Recipients of the forwarded original"
    )

    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Provider extras (chat_id, is_group, sender_id, group_name, ...)",
    )

    @field_validator("channel", mode="before")
    @classmethod
    def _coerce_channel(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValueError("channel tag is required")
        return coerce_channel(value)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _default_timestamp(cls, value: Any) -> Any:
        if value is None or value == "":
            return utcnow()
        parsed = parse_timestamp(value)
        return parsed if parsed is not None else EPOCH

    @field_validator("labels", mode="before")
    @classmethod
    def _default_labels(cls, value: Any) -> Any:
        if not value:
            return list(DEFAULT_LABELS)
        return [str(label) for label in value if label is not None]

    @field_validator("recipients", "all_recipients", "attachments", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("subject", "body", mode="before")
    @classmethod
    def _none_to_text(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def store_key(self) -> tuple[str, str, str]:
        """Key used by the message store: channel, linked account, id."""
        return (str(self.channel), self.linked_account_id or "", self.id)

    def has_label(self, label: str) -> bool:
        wanted = label.lower()
        return any(existing.lower() == wanted for existing in self.labels)

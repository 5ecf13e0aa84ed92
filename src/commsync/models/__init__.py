"""Data models for CommSync.

This module contains Pydantic models for data validation and serialization.
"""

from commsync.models.channel import PHONE_CHANNELS, SMS_CHANNELS, Channel, coerce_channel
from commsync.models.contact import (
    Contact,
    ConversationTarget,
    Group,
    LinkedAccount,
    SessionUser,
)
from commsync.models.message import Attachment, Message, Participant

__all__ = [
    "Attachment",
    "Channel",
    "Contact",
    "ConversationTarget",
    "Group",
    "LinkedAccount",
    "Message",
    "PHONE_CHANNELS",
    "Participant",
    "SMS_CHANNELS",
    "SessionUser",
    "coerce_channel",
]

"""Provider payload conversion for the SMS and WhatsApp channels."""

from .sms import bulkvs_to_message, justcall_direction, justcall_to_message, twilio_to_message
from .whatsapp import is_system_message, whatsapp_to_message

__all__ = [
    "bulkvs_to_message",
    "is_system_message",
    "justcall_direction",
    "justcall_to_message",
    "twilio_to_message",
    "whatsapp_to_message",
]

"""CommSync - unified inbox reconciliation.

This package merges messages from Gmail, IMAP mailboxes, SMS providers and
WhatsApp into one contact list and one conversation view per contact or group.
"""

__version__ = "0.1.0"
__author__ = "CommSync"

from commsync.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__", "__author__"]

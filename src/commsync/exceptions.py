"""Custom exceptions for CommSync."""


class CommSyncError(Exception):
    """Base exception for all CommSync errors."""


class ChannelFetchError(CommSyncError):
    """Exception raised when a single channel fails to return messages."""


class GmailAPIError(ChannelFetchError):
    """Exception raised for Gmail API related errors."""


class LoaderError(CommSyncError):
    """Exception raised when a load-more orchestration fails as a whole."""


class ConfigurationError(CommSyncError):
    """Exception raised for configuration related errors."""


class AuthenticationError(CommSyncError):
    """Exception raised for authentication failures."""


class ValidationError(CommSyncError):
    """Exception raised for data validation errors."""

"""Configuration management for CommSync.

This module handles application configuration using Pydantic settings.
Configuration can be loaded from environment variables or .env files.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with
    the COMMSYNC_ prefix (e.g., COMMSYNC_SESSION_EMAIL).
    """

    model_config = SettingsConfigDict(
        env_prefix="COMMSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Session
    session_email: str | None = Field(
        default=None,
        description="Primary Gmail address of the signed-in user",
    )

    # Reconciliation
    group_chat_suffix: str = Field(
        default="@g.us",
        description="Address suffix that marks a WhatsApp group chat",
    )

    # Incremental loading
    empty_load_threshold: int = Field(
        default=3,
        ge=1,
        description="Consecutive empty load-more outcomes before reporting exhaustion",
    )
    exhaustion_window_seconds: float = Field(
        default=3.0,
        ge=0.0,
        description="How long 'no more messages' is reported before retry is allowed",
    )

    # Local state
    state_db_path: Path = Field(
        default=Path("commsync_state.sqlite3"),
        description="SQLite file holding the cached messages and loader state",
    )

    # Gmail Configuration
    gmail_credentials_path: Path = Field(
        default=Path("credentials.json"),
        description="Path to Gmail API credentials file",
    )
    gmail_token_path: Path = Field(
        default=Path("token.json"),
        description="Path to Gmail API token file",
    )
    gmail_page_size: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Number of Gmail messages requested per load-more page",
    )
    gmail_scope: str = Field(
        default="https://www.googleapis.com/auth/gmail.readonly",
        description="OAuth scope used for Gmail access",
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    max_retries: int = Field(
        default=3,
        description="Maximum number of retries for failed provider calls",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()

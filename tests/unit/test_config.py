"""Unit tests for configuration module."""

import pytest

from commsync.config import Settings, get_settings


class TestSettings:
    """Test suite for Settings class."""

    def test_default_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that default settings are properly initialized."""
        monkeypatch.delenv("COMMSYNC_SESSION_EMAIL", raising=False)
        settings = Settings(_env_file=None)

        assert settings.session_email is None
        assert settings.group_chat_suffix == "@g.us"
        assert settings.empty_load_threshold == 3
        assert settings.exhaustion_window_seconds == 3.0
        assert settings.gmail_page_size == 50
        assert settings.log_level == "INFO"
        assert settings.debug is False
        assert settings.max_retries == 3

    def test_settings_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test loading settings from environment variables."""
        monkeypatch.setenv("COMMSYNC_SESSION_EMAIL", "owner@example.com")
        monkeypatch.setenv("COMMSYNC_EMPTY_LOAD_THRESHOLD", "5")
        monkeypatch.setenv("COMMSYNC_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("COMMSYNC_DEBUG", "true")

        # Clear the cache to ensure fresh settings
        get_settings.cache_clear()

        settings = get_settings()

        assert settings.session_email == "owner@example.com"
        assert settings.empty_load_threshold == 5
        assert settings.log_level == "DEBUG"
        assert settings.debug is True

        # Clean up
        get_settings.cache_clear()

    def test_threshold_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            Settings(empty_load_threshold=0)

    def test_get_settings_returns_cached_instance(self) -> None:
        """Test that get_settings returns the same cached instance."""
        get_settings.cache_clear()

        settings1 = get_settings()
        settings2 = get_settings()

        assert settings1 is settings2

        # Clean up
        get_settings.cache_clear()

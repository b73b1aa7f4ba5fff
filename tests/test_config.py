"""Tests for nightscout_bot/config.py module."""

import pytest
from pydantic import ValidationError

from nightscout_bot.config import Settings, get_settings


class TestSettings:
    """Tests for Settings class."""

    def test_defaults(self, settings):
        """Test default settings values."""
        assert settings.http_timeout_seconds == 10
        assert settings.entries_count == 2
        assert settings.stale_after_minutes == 15
        assert settings.command_prefix == "nightscout"
        assert settings.directory_file is None

    def test_env_override(self, monkeypatch):
        """Test settings are read from prefixed environment variables."""
        monkeypatch.setenv("NIGHTSCOUT_HTTP_TIMEOUT_SECONDS", "5")
        monkeypatch.setenv("NIGHTSCOUT_COMMAND_PREFIX", "ns")

        settings = Settings()

        assert settings.http_timeout_seconds == 5
        assert settings.command_prefix == "ns"

    def test_invalid_timeout(self):
        """Test non-positive timeouts are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            Settings(http_timeout_seconds=0)
        assert "http_timeout_seconds" in str(exc_info.value)

    def test_entries_count_minimum(self):
        """Test fewer than two entries are rejected."""
        with pytest.raises(ValidationError):
            Settings(entries_count=1)

    def test_fallback_template_needs_name(self):
        """Test the fallback template must contain a name slot."""
        with pytest.raises(ValidationError):
            Settings(fallback_host_template="https://example.herokuapp.com")

    def test_fallback_template_needs_scheme(self):
        """Test the fallback template must be an absolute URL."""
        with pytest.raises(ValidationError):
            Settings(fallback_host_template="{name}.herokuapp.com")

    def test_fallback_url(self, settings):
        """Test the fallback URL is built from the template."""
        assert settings.fallback_url("casscout") == "https://casscout.herokuapp.com"

    def test_log_level_normalized(self):
        """Test log level is uppercased."""
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        """Test unknown log levels are rejected."""
        with pytest.raises(ValidationError):
            Settings(log_level="LOUD")

    def test_stale_window_positive(self):
        """Test the staleness window must be positive."""
        with pytest.raises(ValidationError):
            Settings(stale_after_minutes=0)


class TestGetSettings:
    """Tests for get_settings function."""

    def test_cached(self):
        """Test settings are cached."""
        get_settings.cache_clear()
        assert get_settings() is get_settings()

"""
Application configuration with Pydantic validation.

All settings are loaded from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_COMMAND_PREFIX,
    DEFAULT_FALLBACK_HOST_TEMPLATE,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_LOG_LEVEL,
    ENTRIES_COUNT,
    STALE_AFTER_MINUTES,
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Every variable is prefixed with ``NIGHTSCOUT_`` (e.g.
    ``NIGHTSCOUT_HTTP_TIMEOUT_SECONDS=5``).
    """

    model_config = SettingsConfigDict(
        env_prefix="NIGHTSCOUT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Remote Fetching
    # =========================================================================
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT
    entries_count: int = ENTRIES_COUNT

    # =========================================================================
    # Resolution
    # =========================================================================
    fallback_host_template: str = DEFAULT_FALLBACK_HOST_TEMPLATE
    directory_file: Optional[str] = None

    # =========================================================================
    # Presentation
    # =========================================================================
    stale_after_minutes: int = STALE_AFTER_MINUTES
    command_prefix: str = DEFAULT_COMMAND_PREFIX

    # =========================================================================
    # Logging
    # =========================================================================
    log_level: str = DEFAULT_LOG_LEVEL

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator('http_timeout_seconds')
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate the per-fetch timeout is bounded and positive."""
        if not 0 < v <= 120:
            raise ValueError(f"http_timeout_seconds must be in (0, 120], got {v}")
        return v

    @field_validator('entries_count')
    @classmethod
    def validate_entries_count(cls, v: int) -> int:
        """At least two entries are needed to compute a delta."""
        if v < 2:
            raise ValueError(f"entries_count must be at least 2, got {v}")
        return v

    @field_validator('fallback_host_template')
    @classmethod
    def validate_fallback_template(cls, v: str) -> str:
        """Validate the fallback template is an absolute URL with a name slot."""
        if "{name}" not in v:
            raise ValueError(f"fallback_host_template must contain '{{name}}', got '{v}'")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"fallback_host_template must start with http:// or https://, got '{v}'")
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level '{v}'. Must be one of: {', '.join(valid_levels)}")
        return v_upper

    @model_validator(mode='after')
    def validate_staleness(self) -> 'Settings':
        """Validate the staleness window is positive."""
        if self.stale_after_minutes <= 0:
            raise ValueError(
                f"stale_after_minutes ({self.stale_after_minutes}) must be positive"
            )
        return self

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def fallback_url(self, name: str) -> str:
        """Build the anonymous fallback URL for a bare site name."""
        return self.fallback_host_template.format(name=name)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

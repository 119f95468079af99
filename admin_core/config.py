"""
Configuration management for the identity admin SDK.

Settings are read from the environment (and an optional ``.env`` file) when
``get_settings()`` is called. Components never consult the environment on
their own; callers resolve settings once and pass the values down.
"""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .retry import RetryPolicy


class AdminSettings(BaseSettings):
    """Environment-backed SDK settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Project
    project_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("FIREBASE_PROJECT_ID", "GOOGLE_CLOUD_PROJECT", "GCLOUD_PROJECT"),
    )
    service_account_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("FIREBASE_SERVICE_ACCOUNT_ID")
    )

    # Emulator
    auth_emulator_host: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("FIREBASE_AUTH_EMULATOR_HOST")
    )

    # Logging
    log_level: str = Field(default="info", validation_alias=AliasChoices("FIREBASE_LOG_LEVEL"))

    # HTTP
    http_timeout: float = Field(default=10.0, validation_alias=AliasChoices("FIREBASE_HTTP_TIMEOUT"))
    max_retries: int = Field(default=4, validation_alias=AliasChoices("FIREBASE_MAX_RETRIES"))
    backoff_factor: float = Field(default=2.0, validation_alias=AliasChoices("FIREBASE_BACKOFF_FACTOR"))
    max_retry_delay: float = Field(default=120.0, validation_alias=AliasChoices("FIREBASE_MAX_RETRY_DELAY"))

    @property
    def emulator_enabled(self) -> bool:
        return bool(self.auth_emulator_host and self.auth_emulator_host.strip())

    def retry_policy(self) -> RetryPolicy:
        """Build the retry policy described by these settings."""
        return RetryPolicy(
            max_retries=self.max_retries,
            backoff_factor=self.backoff_factor,
            max_delay=self.max_retry_delay,
        )


def get_settings(**overrides) -> AdminSettings:
    """Read settings from the current environment."""
    return AdminSettings(**overrides)

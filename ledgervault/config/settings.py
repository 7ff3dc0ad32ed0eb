"""
Configuration Management for ledgervault

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: Configuration is read here and nowhere else.
The cipher never looks up its key; callers load it once with ``load_key``
and pass the bytes explicitly.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ledgervault.crypto.cipher import derive_key


class LedgerSettings(BaseSettings):
    """
    Runtime settings for the ledger core and its collaborators.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Key material
    data_encryption_key: SecretStr = Field(
        ...,
        description="Secret the 32-byte field encryption key is derived from"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured log output"
    )

    # Notification delivery
    notification_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts made to persist a notification before giving up"
    )
    notification_retry_max_wait: float = Field(
        default=10.0,
        ge=0.0,
        le=60.0,
        description="Upper bound in seconds for the backoff between attempts"
    )

    @field_validator('data_encryption_key')
    @classmethod
    def validate_key_not_blank(cls, v: SecretStr) -> SecretStr:
        """Reject a blank secret early, at startup."""
        if not v.get_secret_value().strip():
            raise ValueError("DATA_ENCRYPTION_KEY must not be blank")
        return v

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {v}")
        return level


@lru_cache()
def get_settings() -> LedgerSettings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return LedgerSettings()


def load_key(settings: Optional[LedgerSettings] = None) -> bytes:
    """Derive the field encryption key from configured settings."""
    settings = settings or get_settings()
    return derive_key(settings.data_encryption_key.get_secret_value())

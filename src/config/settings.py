"""Application settings from environment variables and .env file."""

import logging
from typing import Optional

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Settings loaded from environment variables.

    Pydantic automatically loads values from:
    1. OS environment variables (at instantiation time)
    2. .env file (if present)

    Instantiate AFTER environment variables are loaded; use get_settings().
    """

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./ipl.db",
        description="SQLAlchemy database URL",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/server.log", description="Server log file path")

    # Locale for month labels and amounts
    locale: str = Field(default="id_ID", description="Babel locale identifier")

    # Ledger policy
    max_amount_months: int = Field(default=12, description="Upper bound for months per payment")
    config_cache_ttl_seconds: float = Field(
        default=300.0,
        description="TTL of in-process caches for upload window and excluded periods",
    )
    backfill_timeout_seconds: float = Field(
        default=30.0,
        description="Upper bound on the income backfill transaction",
    )


_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the settings instance (lazy, so .env is loaded first)."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
        logger.debug("Settings loaded: database_url=%s locale=%s", _settings_instance.database_url, _settings_instance.locale)
    return _settings_instance


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() re-reads the environment."""
    global _settings_instance
    _settings_instance = None


__all__ = ["Settings", "get_settings", "reset_settings"]

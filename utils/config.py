"""
Configuration Utility - Environment Variables Management

Centralized configuration loading from the environment (and an optional .env
file) using pydantic-settings.

Values are kept raw here: an empty or malformed variable must reach the
exporter's validator, which reports the offending key together with the usage
text instead of failing inside pydantic.

Usage:
    from utils.config import get_settings

    settings = get_settings()
    site = settings.DD_SITE
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Datadog API
    DD_SITE: Optional[str] = Field(default=None)
    DD_API_KEY: Optional[str] = Field(default=None)
    DD_APP_KEY: Optional[str] = Field(default=None)
    DD_TIMEOUT: Optional[str] = Field(default=None)

    # Query
    DD_INDEX: Optional[str] = Field(default=None)
    DD_QUERY: Optional[str] = Field(default=None)
    DD_FROM: Optional[str] = Field(default=None)
    DD_TO: Optional[str] = Field(default=None)
    DD_PAGE_SIZE: Optional[str] = Field(default=None)

    # Export
    DD_OUTPUT: Optional[str] = Field(default=None)
    DD_SLEEP: Optional[str] = Field(default=None)
    DD_COLUMNS: Optional[str] = Field(default=None)

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="text")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Singleton Settings instance
    """
    return Settings()

"""Application configuration using Pydantic Settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="FARE_CHECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server settings
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=2091, description="Server port", gt=0, le=65535)
    reload: bool = Field(default=False, description="Enable auto-reload in development")
    public_base_url: str = Field(
        default="http://localhost:2091",
        description="Origin the widget script is loaded from",
    )

    # Pricing API settings
    api_base_url: str = Field(
        default="https://api.navifare.com/api/v1/price-discovery/flights",
        description="Base URL of the price discovery API",
    )
    upstream_timeout: float = Field(
        default=30.0,
        description="Timeout for a single pricing API call (seconds)",
        gt=0,
        le=300,
    )
    require_round_trip: bool = Field(
        default=False,
        description="Reject searches with fewer than two legs",
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )

    # Result store settings
    result_store_ttl: int = Field(
        default=3600,
        description="How long a formatted search payload stays readable (seconds)",
        gt=0,
        le=86400,
    )
    result_store_size: int = Field(
        default=1000,
        description="Maximum number of stored search payloads",
        gt=0,
        le=100000,
    )

    # Natural language parser settings
    anthropic_api_key: str = Field(
        default="",
        description="Anthropic API key; the parsing tool is disabled when empty",
    )
    anthropic_model: str = Field(
        default="claude-3-5-sonnet-20241022",
        description="Model used to structure free-text flight requests",
    )
    parser_timeout: float = Field(
        default=45.0,
        description="Upper bound for one natural language parse (seconds)",
        gt=0,
        le=300,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get application settings (singleton).

    Returns:
        Settings instance
    """
    return Settings()

"""Configuration settings for the streaming gateway using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GATEWAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    host: str = Field(default="0.0.0.0", description="Host to bind to")
    port: int = Field(default=3001, description="Port to bind to")

    # CORS
    cors_origin: str = Field(
        default="http://localhost:3000",
        description="Frontend origin allowed to call the gateway",
    )
    cors_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        description="Allowed cross-origin methods",
    )
    cors_headers: list[str] = Field(
        default=["Content-Type", "Authorization"],
        description="Allowed cross-origin request headers",
    )

    # Upstream completion API (OpenAI-compatible)
    upstream_base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        description="Base URL of the OpenAI-compatible completion API",
    )
    upstream_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "GATEWAY_UPSTREAM_API_KEY",
            "OPEN_ROUTER_API_KEY",
        ),
        description="Bearer token for the upstream API",
    )
    upstream_model: str = Field(
        default="gpt-3.5-turbo",
        description="Model requested from the upstream API",
    )
    upstream_connect_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Connect timeout for upstream requests",
    )

    # Streaming
    poll_interval_seconds: float = Field(
        default=0.1,
        gt=0,
        le=5.0,
        description="Max time a publisher waits before re-checking a session",
    )

    # Session retention
    session_ttl_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Evict finished sessions this long after they end (unset = keep forever)",
    )
    cleanup_interval_seconds: float = Field(
        default=60.0,
        gt=0,
        description="How often the eviction pass runs",
    )

    # Observability
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Export a default instance for convenience
settings = get_settings()

"""
Application configuration using Pydantic Settings.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RateLimitSettings(BaseSettings):
    """Call budget for the upstream AI provider."""

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_per_minute: int = Field(
        default=10,
        ge=1,
        description="Calls allowed inside one 60s window",
    )
    max_per_day: int = Field(
        default=1000,
        ge=1,
        description="Calls allowed inside one 24h window",
    )
    min_interval_seconds: float = Field(
        default=6.0,
        ge=0.0,
        description="Minimum spacing between two consecutive calls",
    )


class RetrySettings(BaseSettings):
    """Backoff parameters for upstream AI calls."""

    model_config = SettingsConfigDict(
        env_prefix="RETRY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_attempts: int = Field(default=3, ge=1)
    initial_delay_seconds: float = Field(default=2.0, ge=0.0)


class EnrichmentSettings(BaseSettings):
    """Summary + embedding generation."""

    model_config = SettingsConfigDict(
        env_prefix="ENRICHMENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    summary_model: str = Field(default="gemini-1.5-flash-latest")
    embedding_model: str = Field(default="text-embedding-004")
    embedding_dimension: int = Field(default=768, ge=1)

    # Inputs are cut before submission to save tokens
    summary_max_chars: int = Field(default=3000, ge=1)
    embedding_max_chars: int = Field(default=2000, ge=1)

    mode: Literal["sequential", "concurrent"] = Field(
        default="sequential",
        description="Run summary and embedding one after another or together",
    )
    inter_call_delay_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="Pause between the summary and embedding calls (sequential mode)",
    )


class IngestionSettings(BaseSettings):
    """Batch ingestion limits."""

    model_config = SettingsConfigDict(
        env_prefix="INGESTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_articles_ceiling: int = Field(
        default=3,
        ge=1,
        description="Hard cap on candidates per batch, regardless of the request",
    )
    default_category: str = Field(default="general")
    batch_timeout_seconds: Optional[float] = Field(default=None, gt=0.0)


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Newswire"
    app_version: str = "0.1.0"
    debug: bool = Field(default=False)
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True)

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./newswire.db",
        description="Async database URL (SQLAlchemy format)",
    )

    # API Keys (optional for local development)
    gemini_api_key: str | None = Field(default=None)
    gnews_api_key: str | None = Field(default=None)

    # GNews
    gnews_base_url: str = Field(default="https://gnews.io/api/v4")
    gnews_language: str = Field(default="en")
    gnews_timeout_seconds: float = Field(default=30.0, gt=0.0)

    # Nested groups
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    enrichment: EnrichmentSettings = Field(default_factory=EnrichmentSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

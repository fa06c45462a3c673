"""Configuration management using pydantic-settings."""

from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Sources and niches live in the database. Use
    `opportunity-radar sources-seed` and `opportunity-radar niches-seed`
    to load the curated defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="OPPORTUNITY_RADAR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Storage
    db_path: str = Field(
        default="opportunity_radar.sqlite3",
        description="Path to SQLite database file",
    )

    # Runtime / auth for the scheduler-triggered endpoints
    environment: str = Field(
        default="production",
        description="Runtime environment: development disables trigger auth",
    )
    cron_secret: str | None = Field(
        default=None,
        validation_alias=AliasChoices("CRON_SECRET", "OPPORTUNITY_RADAR_CRON_SECRET"),
        description="Shared secret accepted as a bearer token or ?secret= query parameter",
    )
    trusted_scheduler_header: str = Field(
        default="X-Cron-Trigger",
        description="Header set by the trusted scheduler; value '1' bypasses the secret check",
    )

    # LLM providers
    anthropic_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("ANTHROPIC_API_KEY", "OPPORTUNITY_RADAR_ANTHROPIC_API_KEY"),
        description="Anthropic API key (accepts ANTHROPIC_API_KEY or OPPORTUNITY_RADAR_ANTHROPIC_API_KEY)",
    )
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Anthropic model used for opportunity analysis",
    )
    openai_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("OPENAI_API_KEY", "OPPORTUNITY_RADAR_OPENAI_API_KEY"),
        description="OpenAI API key (accepts OPENAI_API_KEY or OPPORTUNITY_RADAR_OPENAI_API_KEY)",
    )
    openai_model: str = Field(
        default="gpt-4o",
        description="OpenAI model used for opportunity analysis",
    )
    llm_max_tokens: int = Field(
        default=2000,
        ge=256,
        description="Maximum completion tokens per LLM call",
    )
    default_provider: str = Field(
        default="claude",
        description="Provider used first in an analysis batch: claude or openai",
    )

    # Analysis scheduling
    analysis_batch_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Default number of posts analyzed per run",
    )
    analysis_overfetch: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Multiple of the batch size fetched before niche reranking",
    )
    analysis_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Delay after every LLM call to respect provider rate limits",
    )

    # Ingestion
    source_delay_seconds: float = Field(
        default=0.5,
        ge=0.0,
        description="Delay between scraped sources",
    )
    hn_item_limit: int = Field(
        default=30,
        ge=1,
        le=500,
        description="Maximum Hacker News stories fetched per source",
    )
    hn_batch_size: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Concurrent Hacker News item requests per batch",
    )
    user_agent: str = Field(
        default="OpportunityRadar/0.1 (RSS Reader)",
        description="User agent string for HTTP requests",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR",
    )
    log_json: bool = Field(
        default=False,
        description="Output logs as JSON (for production)",
    )

    @property
    def is_development(self) -> bool:
        """Check if running in local development mode."""
        return self.environment.lower() == "development"


def get_settings() -> Settings:
    """Load and return application settings."""
    return Settings()

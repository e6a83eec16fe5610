"""Configuration settings for the voicebatch orchestration core.

This module provides centralized configuration management using Pydantic Settings,
with logical grouping of related settings. Nested groups are overridden from the
environment with a double underscore, e.g. ``VOICEBATCH_RETRY__BASE_DELAY_MS=500``.
"""

from typing import Optional, Literal
from functools import lru_cache

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_STAGE_QUEUES = [
    "validation",
    "text-generation",
    "text-chunking",
    "audio-generation",
    "audio-merge",
    "upload",
]


class AppConfig(BaseModel):
    """Core application configuration."""

    name: str = Field(default="voicebatch", description="Application name")
    version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Application log level")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"


class DatabaseConfig(BaseModel):
    """Database configuration."""

    url: str = Field(
        default="sqlite+aiosqlite:///./voicebatch.db",
        description="Async SQLAlchemy connection URL",
    )
    echo: bool = Field(default=False, description="Echo SQL statements")


class QueueConfig(BaseModel):
    """Stage queue configuration."""

    stage_queues: list[str] = Field(
        default_factory=lambda: list(DEFAULT_STAGE_QUEUES),
        description="Pipeline stage queues, in processing order",
    )
    first_stage: str = Field(
        default="validation", description="Queue that receives items of a started job"
    )
    retry_queue: str = Field(
        default="retry", description="Queue carrying scheduled error retries"
    )
    default_max_attempts: int = Field(
        default=3, ge=1, description="Delivery attempts before an envelope is retired"
    )
    visibility_timeout_seconds: Optional[float] = Field(
        default=300.0,
        description="Seconds an envelope may stay in flight before it is reclaimed (None disables)",
    )
    worker_poll_interval_seconds: float = Field(
        default=0.5, gt=0, description="Idle poll interval of queue workers"
    )


class RetryConfig(BaseModel):
    """Error recovery configuration."""

    base_delay_ms: float = Field(default=1000.0, gt=0, description="First retry delay")
    max_delay_ms: float = Field(default=300_000.0, gt=0, description="Backoff cap")
    jitter_ratio: float = Field(
        default=0.2, ge=0, le=1, description="Maximum jitter as a fraction of the delay"
    )
    rate_limit_cooldown_seconds: float = Field(
        default=5.0, ge=0, description="Wait before retrying a rate-limited operation"
    )
    error_retention_days: int = Field(
        default=30, ge=0, description="Age after which resolved error logs are removed"
    )


class OrchestratorConfig(BaseModel):
    """Job orchestrator configuration."""

    failure_threshold_ratio: float = Field(
        default=0.3,
        gt=0,
        le=1,
        description="Fraction of failed items that fails the whole job",
    )
    item_job_type: str = Field(
        default="validate_item", description="Envelope type for newly started items"
    )


class LogfireConfig(BaseModel):
    """Logfire observability configuration."""

    enabled: bool = Field(default=False, description="Enable Logfire observability")
    project_name: str = Field(default="voicebatch", description="Logfire project name")
    api_key: Optional[SecretStr] = Field(
        default=None, description="Logfire API key (optional for local development)"
    )
    environment: Optional[str] = Field(
        default=None, description="Logfire environment (defaults to app environment)"
    )
    service_name: str = Field(
        default="voicebatch-core", description="Service name for Logfire"
    )
    service_version: Optional[str] = Field(
        default=None, description="Service version (defaults to app version)"
    )
    console_enabled: bool = Field(
        default=False, description="Enable Logfire console output"
    )
    sql_enabled: bool = Field(
        default=True, description="Enable SQL query logging in Logfire"
    )


class Settings(BaseSettings):
    """Application settings with logical grouping."""

    model_config = SettingsConfigDict(
        env_prefix="VOICEBATCH_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Grouped configuration
    app: AppConfig = Field(default_factory=AppConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    logfire: LogfireConfig = Field(default_factory=LogfireConfig)

    @property
    def database_url(self) -> str:
        return self.database.url

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app.is_production

    @property
    def all_queue_names(self) -> list[str]:
        """Stage queues plus the retry queue."""
        names = list(self.queue.stage_queues)
        if self.queue.retry_queue not in names:
            names.append(self.queue.retry_queue)
        return names

    @property
    def logfire_env(self) -> str:
        """Get Logfire environment, defaulting to app environment."""
        return self.logfire.environment or self.app.environment

    @property
    def logfire_version(self) -> str:
        """Get Logfire service version, defaulting to app version."""
        return self.logfire.service_version or self.app.version


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings
    """
    return Settings()

"""Configuration models."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class PostgresConfig(BaseModel):
    """Postgres configuration."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("pulsereader", description="Database name")
    user: str = Field("pulsereader", description="Database user")
    password: Optional[str] = Field(None, description="Database password")
    password_env: Optional[str] = Field(None, description="Environment variable for password")


class PipelineConfig(BaseModel):
    """Ingestion run parameters."""

    operation_budget: int = Field(
        45,
        description="Ceiling on external calls per run",
        ge=1,
    )
    max_sources_per_run: int = Field(1, description="Sources processed per run", ge=1)
    batch_size: int = Field(20, description="Articles per batch insert", ge=1, le=500)
    enrichment_batch_size: int = Field(10, description="Articles per AI batch call", ge=1, le=50)
    fetch_timeout: float = Field(30.0, description="Per-feed timeout in seconds", gt=0)
    source_delay: float = Field(0.5, description="Pause between sources in seconds", ge=0)
    fallback_delay: float = Field(1.0, description="Pause between individual fallback calls", ge=0)
    lease_ttl_minutes: int = Field(15, description="Age after which a run lease is stale", ge=1)
    user_agent: str = Field(
        "Mozilla/5.0 (compatible; PulseReader/1.0)",
        description="User-Agent sent with feed requests",
    )

    class Config:
        frozen = True


class LLMConfig(BaseModel):
    """Enrichment provider configuration."""

    model: str = Field("tngtech/deepseek-r1t2-chimera:free", description="Model name")
    base_url: Optional[str] = Field(
        "https://openrouter.ai/api/v1",
        description="OpenAI-compatible API base URL",
    )
    api_key_env: Optional[str] = Field(
        "OPENROUTER_API_KEY",
        description="Environment variable for API key",
    )
    api_key: Optional[str] = Field(None, description="API key (prefer api_key_env)")
    timeout: float = Field(10.0, description="Request timeout in seconds", gt=0)
    max_topics: int = Field(5, description="Topics kept per article", ge=1, le=10)


class AuthConfig(BaseModel):
    """Trigger credentials."""

    service_token_env: str = Field(
        "PULSEREADER_SERVICE_TOKEN",
        description="Environment variable holding the privileged trigger token",
    )
    client_token_env: Optional[str] = Field(
        "PULSEREADER_CLIENT_TOKEN",
        description="Environment variable holding the non-privileged client token",
    )


class LoggingConfig(BaseModel):
    """Log output configuration."""

    log_dir: Optional[str] = Field(None, description="Directory for daily log files")
    retention_days: int = Field(30, description="Days of log files to keep", ge=1)


class ConfigModel(BaseModel):
    """Main configuration model."""

    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class SourceConfig(BaseModel):
    """Source configuration from sources.yaml."""

    name: str = Field(..., description="Source name")
    url: str = Field(..., description="RSS feed URL")
    enabled: bool = Field(True, description="Whether source is active")


class DatabaseSettings(BaseModel):
    """Resolved database connection parameters."""

    host: str
    port: int
    database: str
    user: str
    password: str = ""

    class Config:
        frozen = True

    @property
    def conninfo(self) -> str:
        """Get psycopg connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


class LLMSettings(BaseModel):
    """Resolved enrichment provider parameters."""

    model: str
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    timeout: float = 10.0
    max_topics: int = 5

    class Config:
        frozen = True


class Settings(BaseModel):
    """Immutable configuration resolved once at process start."""

    database: DatabaseSettings
    pipeline: PipelineConfig
    llm: LLMSettings
    service_token: Optional[str] = None
    client_token: Optional[str] = None
    log_dir: Optional[Path] = None
    log_retention_days: int = 30

    class Config:
        frozen = True

    @property
    def enrichment_enabled(self) -> bool:
        """Whether an AI provider credential is configured."""
        return bool(self.llm.api_key)

"""Application settings configuration."""

from typing import List, Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database configuration settings."""

    model_config = SettingsConfigDict(env_prefix="DB_", env_file=".env", extra="ignore", populate_by_name=True)

    dsn: Optional[str] = Field(default=None, alias="DB_URL")
    host: str = "localhost"
    port: int = 5432
    name: str = "mailstore"
    user: str = "postgres"
    password: str = ""
    pool_size: int = 5
    max_overflow: int = 10
    statement_timeout: float = 10.0  # seconds

    @property
    def url(self) -> str:
        """Get database connection URL."""
        if self.dsn:
            # Managed Postgres providers hand out plain postgres:// URLs
            for prefix in ("postgresql://", "postgres://"):
                if self.dsn.startswith(prefix):
                    return "postgresql+asyncpg://" + self.dsn[len(prefix):]
            return self.dsn
        return f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"


class EmbeddingSettings(BaseSettings):
    """Embedding service configuration settings."""

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_", env_file=".env", extra="ignore", populate_by_name=True)

    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_base_url: Optional[str] = Field(default=None, alias="OPENAI_BASE_URL")
    model: str = "text-embedding-3-small"
    dimensions: int = 1536
    timeout_seconds: float = 30.0

    @field_validator("dimensions")
    @classmethod
    def validate_dimensions(cls, v: int) -> int:
        """Validate vector dimensions."""
        if v < 1:
            raise ValueError("Embedding dimensions must be positive")
        return v

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate embedding timeout."""
        if v <= 0:
            raise ValueError("Embedding timeout must be greater than zero")
        return v


class IngestionSettings(BaseSettings):
    """Ingestion pipeline configuration settings."""

    model_config = SettingsConfigDict(env_prefix="INGESTION_", env_file=".env", extra="ignore")

    chunk_size: int = 2000  # characters
    embedding_concurrency: int = 1
    store_timeout_seconds: float = 10.0

    @field_validator("chunk_size")
    @classmethod
    def validate_chunk_size(cls, v: int) -> int:
        """Validate chunk size."""
        if v < 1 or v > 100000:
            raise ValueError("Chunk size must be between 1 and 100000 characters")
        return v

    @field_validator("embedding_concurrency")
    @classmethod
    def validate_embedding_concurrency(cls, v: int) -> int:
        """Validate embedding concurrency."""
        if v < 1 or v > 64:
            raise ValueError("Embedding concurrency must be between 1 and 64")
        return v

    @field_validator("store_timeout_seconds")
    @classmethod
    def validate_store_timeout(cls, v: float) -> float:
        """Validate store timeout."""
        if v <= 0:
            raise ValueError("Store timeout must be greater than zero")
        return v


class MonitoringSettings(BaseSettings):
    """Monitoring and observability settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_", env_file=".env", extra="ignore")

    level: str = "INFO"
    format: str = "json"

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        level = v.upper()
        if level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError("Log level must be DEBUG, INFO, WARNING, ERROR or CRITICAL")
        return level

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        if v not in ["json", "console"]:
            raise ValueError("Log format must be json or console")
        return v


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore")

    # Application
    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: List[str] = ["*"]

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


def get_database_url() -> str:
    """Get database URL from environment."""
    return get_settings().database.url

"""Configuration management for the query engine."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageConfig(BaseModel):
    """Storage configuration."""

    backend: Literal["sqlite", "memory"] = Field(
        default="sqlite", description="Key-value store backend"
    )
    data_dir: Path = Field(default=Path("./data"), description="Data directory path")
    store_name: str = Field(
        default="SQLStudioDB", min_length=1, description="Name of the backing store"
    )

    @property
    def store_path(self) -> Path:
        """Location of the SQLite store file."""
        return self.data_dir / f"{self.store_name}.db"


class EngineConfig(BaseModel):
    """Statement execution configuration."""

    where_semantics: Literal["column", "primary_key"] = Field(
        default="column",
        description=(
            "'column' filters on the named column (key lookup when it is the primary key); "
            "'primary_key' always treats the literal as a primary-key value"
        ),
    )
    seed_demo_data: bool = Field(
        default=True, description="Seed the demo tables when the store is first created"
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, ge=1, le=65535, description="HTTP API port")
    metrics_port: int = Field(default=8001, ge=1, le=65535, description="Prometheus metrics port")


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(default="json", description="Log format")
    otel_endpoint: str | None = Field(
        default=None, description="OpenTelemetry collector endpoint"
    )
    otel_service_name: str = Field(default="kvsql", description="Service name for tracing")


class Config(BaseSettings):
    """Main configuration for the query engine."""

    model_config = SettingsConfigDict(
        env_prefix="KVSQL_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    storage: StorageConfig = Field(default_factory=StorageConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    def ensure_directories(self) -> None:
        """Ensure the data directory exists."""
        if self.storage.backend == "sqlite":
            self.storage.data_dir.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_config() -> Config:
    """Get the global configuration instance."""
    config = Config()
    config.ensure_directories()
    return config

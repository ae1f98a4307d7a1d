"""Configuration models and loader for vectorproxy deployments."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class EmbeddingConfig(BaseModel):
    """Configuration for the embedding client."""

    provider: Literal["openai-proxy", "null"] = "openai-proxy"
    model: Optional[str] = Field(
        default=None, description="Fallback model name when a request does not name one"
    )
    base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the embedding service (e.g. https://proxy/v1)",
    )
    api_key_env: Optional[str] = Field(
        default=None, description="Name of the environment variable that stores the API key"
    )
    api_key: Optional[str] = Field(default=None, description="Inline API key value")
    dimension: int = Field(default=1536, ge=1, description="Vector size used by the null client")
    batch_size: int = Field(default=32, ge=1, description="Number of texts per embed batch")
    timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")


class StorageConfig(BaseModel):
    """Configuration for the pgvector point store."""

    model_config = ConfigDict(populate_by_name=True)

    kind: Literal["pgvector"] = "pgvector"
    connection_url: str = Field(..., description="SQLAlchemy connection string for PostgreSQL")
    db_schema: str = Field(
        default="vectorproxy", alias="schema", description="Database schema used for tables"
    )
    table: str = Field(default="points", description="Table holding vector points")
    embedding_dimension: int = Field(default=1536, ge=1, description="Vector column dimension")
    echo_sql: bool = Field(default=False, description="Enable SQL echo for debugging")

    @property
    def schema(self) -> str:
        return self.db_schema


class QueueConfig(BaseModel):
    """Message queue backend selection and its connection options."""

    provider: str = Field(default="rabbitmq", description="Registered queue provider name")
    url: Optional[str] = Field(default=None, description="AMQP URL for RabbitMQ")
    queue_name: Optional[str] = Field(default=None, description="RabbitMQ queue to consume")
    prefetch_count: int = Field(default=32, ge=1)
    project_id: Optional[str] = Field(default=None, description="Google Cloud project id")
    subscription: Optional[str] = Field(default=None, description="Pub/Sub subscription id")
    path: Optional[Path] = Field(default=None, description="JSON-lines file for replay")
    source_id_attribute: str = Field(
        default="datasource_id", description="Header/attribute holding the datasource id"
    )
    stream_key_attribute: str = Field(
        default="stream", description="Header/attribute holding the stream key"
    )

    @field_validator("path")
    @classmethod
    def _expand_path(cls, value: Path | None) -> Path | None:
        return value.expanduser().resolve() if value else None


class DispatcherConfig(BaseModel):
    """Settings for the consumption loop and its worker pool."""

    max_in_flight: int = Field(
        default=16, ge=1, description="Maximum number of concurrent embedding units"
    )
    channel_size: int = Field(
        default=64,
        ge=1,
        description="Messages buffered between the queue consumer and the dispatcher",
    )
    embed_timeout: Optional[float] = Field(
        default=60.0, gt=0, description="Seconds allowed for one embedding call"
    )
    insert_timeout: Optional[float] = Field(
        default=30.0, gt=0, description="Seconds allowed for one vector store insert"
    )
    envelope_key: Optional[str] = Field(
        default="_airbyte_data",
        description="Top-level key whose nested object replaces the payload when present",
    )
    hashing_salt: Optional[str] = Field(default=None, description="Inline dedup salt")
    hashing_salt_env: str = Field(
        default="HASHING_SALT", description="Environment variable holding the dedup salt"
    )

    def resolve_salt(self) -> str:
        """Return the inline salt, or the value of ``hashing_salt_env``."""

        if self.hashing_salt is not None:
            return self.hashing_salt
        salt = os.getenv(self.hashing_salt_env)
        if salt is None:
            raise ConfigError(
                f"No hashing salt configured; set dispatcher.hashing_salt or ${self.hashing_salt_env}"
            )
        return salt


class ResolverConfig(BaseModel):
    """Where per-source configuration and counters live."""

    model_config = ConfigDict(populate_by_name=True)

    kind: Literal["static", "sql"] = "static"
    connection_url: Optional[str] = Field(
        default=None, description="SQLAlchemy connection string for the metadata store"
    )
    db_schema: Optional[str] = Field(default=None, alias="schema")


class ChunkingConfig(BaseModel):
    """Chunking strategy attached to a datasource."""

    strategy: str = Field(default="basic", description="Name of the chunking strategy")
    max_characters: int = Field(default=500, ge=1)
    overlap: int = Field(default=0, ge=0)
    parameters: Dict[str, Any] = Field(default_factory=dict)


class DatasourceConfig(BaseModel):
    """Static embedding configuration for a single datasource (or one of its streams)."""

    id: str
    stream_key: Optional[str] = Field(
        default=None, description="Restrict this entry to a single stream of the datasource"
    )
    embedding_model: Optional[str] = None
    primary_key: Optional[List[str]] = None
    embedding_field: Optional[str] = None
    chunking_strategy: Optional[ChunkingConfig] = None


class ProjectConfig(BaseModel):
    """Top-level configuration wrapper."""

    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    storage: StorageConfig
    queue: QueueConfig = Field(default_factory=QueueConfig)
    dispatcher: DispatcherConfig = Field(default_factory=DispatcherConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    datasources: List[DatasourceConfig] = Field(default_factory=list)


class ConfigError(RuntimeError):
    """Raised when configuration parsing fails."""


def load_config(path: str | Path) -> ProjectConfig:
    """Parse a YAML config file into a :class:`ProjectConfig` instance."""

    config_path = Path(path).expanduser().resolve()
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    try:
        return ProjectConfig.model_validate(raw)
    except ValidationError as exc:  # pragma: no cover - informative error path
        raise ConfigError(str(exc)) from exc


def default_config_path() -> Path:
    """Return the default config file path (`vectorproxy.yaml`)."""

    return Path("vectorproxy.yaml").resolve()


def resolve_config_path(path: Optional[str | Path]) -> Path:
    """Resolve the config path, falling back to :func:`default_config_path`."""

    if path:
        return Path(path).expanduser().resolve()
    return default_config_path()

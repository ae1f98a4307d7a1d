"""Resolver backed by a SQL metadata store."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import ValidationError
from sqlalchemy import (
    JSON,
    Column,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    create_engine,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import select

from ..config import ChunkingConfig, ResolverConfig
from ..errors import ConfigResolverError, CounterIncrementError
from .base import (
    RECORD_COUNT_SUCCESS,
    ConfigResolver,
    SourceConfig,
    SourceCounters,
    check_counter_field,
)


class SqlConfigResolver(ConfigResolver):
    """Read datasource configuration and update counters through SQLAlchemy.

    ``datasource_streams`` rows override the datasource-wide settings for a
    single stream key. Counter increments are single ``UPDATE`` statements, so
    concurrent units never lose an increment.
    """

    def __init__(self, config: ResolverConfig, engine: Engine | None = None) -> None:
        if engine is None:
            if not config.connection_url:
                raise ValueError("SQL resolver requires resolver.connection_url")
            engine = create_engine(config.connection_url, future=True)
        self.engine = engine
        self.metadata = MetaData(schema=config.db_schema)
        self.datasources = Table(
            "datasources",
            self.metadata,
            Column("id", String, primary_key=True),
            Column("embedding_model", String, nullable=True),
            Column("primary_key", JSON, nullable=True),
            Column("embedding_field", String, nullable=True),
            Column("chunking_strategy", JSON, nullable=True),
            Column("record_count_success", Integer, nullable=False, default=0),
            Column("record_count_failure", Integer, nullable=False, default=0),
        )
        self.streams = Table(
            "datasource_streams",
            self.metadata,
            Column("datasource_id", String, nullable=False),
            Column("stream_key", String, nullable=False),
            Column("embedding_model", String, nullable=True),
            Column("primary_key", JSON, nullable=True),
            Column("embedding_field", String, nullable=True),
            Column("chunking_strategy", JSON, nullable=True),
            PrimaryKeyConstraint("datasource_id", "stream_key"),
        )

    # ------------------------------------------------------------------
    def initialize(self) -> None:
        self.metadata.create_all(self.engine, checkfirst=True)

    def get(self, source_id: str, stream_key: Optional[str] = None) -> SourceConfig:
        try:
            with self.engine.connect() as conn:
                row = None
                if stream_key is not None:
                    stmt = select(self.streams).where(
                        self.streams.c.datasource_id == source_id,
                        self.streams.c.stream_key == stream_key,
                    )
                    row = conn.execute(stmt).mappings().first()
                if row is None:
                    stmt = select(self.datasources).where(self.datasources.c.id == source_id)
                    row = conn.execute(stmt).mappings().first()
        except SQLAlchemyError as exc:
            raise ConfigResolverError(f"Metadata store lookup failed: {exc}") from exc
        if row is None:
            raise ConfigResolverError(f"No configuration found for datasource '{source_id}'")
        try:
            return _row_to_source_config(row)
        except (ValidationError, TypeError) as exc:
            raise ConfigResolverError(
                f"Invalid configuration stored for datasource '{source_id}': {exc}"
            ) from exc

    def increment_counter(self, source_id: str, field_path: str) -> None:
        column = self._counter_column(field_path)
        stmt = (
            update(self.datasources)
            .where(self.datasources.c.id == source_id)
            .values({column.name: column + 1})
        )
        try:
            with self.engine.begin() as conn:
                result = conn.execute(stmt)
        except SQLAlchemyError as exc:
            raise CounterIncrementError(f"Could not increment {field_path}: {exc}") from exc
        if result.rowcount == 0:
            raise CounterIncrementError(f"Unknown datasource '{source_id}'")

    def counters(self, source_id: str) -> SourceCounters:
        stmt = select(
            self.datasources.c.record_count_success,
            self.datasources.c.record_count_failure,
        ).where(self.datasources.c.id == source_id)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).first()
        if row is None:
            return SourceCounters()
        return SourceCounters(success_count=row[0], failure_count=row[1])

    # ------------------------------------------------------------------
    def _counter_column(self, field_path: str):
        check_counter_field(field_path)
        if field_path == RECORD_COUNT_SUCCESS:
            return self.datasources.c.record_count_success
        return self.datasources.c.record_count_failure


def _row_to_source_config(row: Mapping[str, Any]) -> SourceConfig:
    primary_key = row["primary_key"]
    if primary_key is not None and (
        not isinstance(primary_key, list) or not all(isinstance(key, str) for key in primary_key)
    ):
        raise TypeError(f"primary_key must be a list of field names, got {primary_key!r}")
    chunking = row["chunking_strategy"]
    return SourceConfig(
        embedding_model=row["embedding_model"],
        primary_key_fields=tuple(primary_key) if primary_key else None,
        embedding_field_name=row["embedding_field"],
        chunking_strategy=ChunkingConfig.model_validate(chunking) if chunking else None,
    )

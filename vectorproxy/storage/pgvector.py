"""pgvector-backed storage implementation."""

from __future__ import annotations

import uuid
from importlib import import_module

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    create_engine,
    func,
)
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.engine import Engine

from ..config import StorageConfig
from .base import SearchTarget, SearchType, StoragePoint, VectorStore, VectorStoreStatus


def _load_vector_type():
    try:
        module = import_module("pgvector.sqlalchemy")
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dependency guard
        raise RuntimeError(
            "pgvector is required for PgVectorStore. Install vectorproxy with the pgvector backend enabled."
        ) from exc
    return getattr(module, "Vector")


class PgVectorStore(VectorStore):
    """Persist points inside PostgreSQL using pgvector, one collection per datasource."""

    def __init__(self, config: StorageConfig, engine: Engine | None = None) -> None:
        self.config = config
        self.metadata = MetaData(schema=config.schema)
        self.engine: Engine = engine or create_engine(
            config.connection_url,
            echo=config.echo_sql,
            future=True,
        )
        Vector = _load_vector_type()
        self.points = Table(
            config.table,
            self.metadata,
            Column("collection", String, nullable=False),
            Column("point_id", String, nullable=False),
            Column("payload", JSON, nullable=False, default=dict),
            Column("embedding", Vector(config.embedding_dimension), nullable=False),
            Column("created_at", DateTime(timezone=True), server_default=func.now()),
            Column(
                "updated_at",
                DateTime(timezone=True),
                server_default=func.now(),
                onupdate=func.now(),
            ),
            PrimaryKeyConstraint("collection", "point_id"),
        )

    # ------------------------------------------------------------------
    def initialize(self) -> None:
        with self.engine.begin() as conn:
            conn.exec_driver_sql("CREATE EXTENSION IF NOT EXISTS vector")
            conn.exec_driver_sql(f"CREATE SCHEMA IF NOT EXISTS {self.config.schema}")
        self.metadata.create_all(self.engine, checkfirst=True)

    def insert_point(self, target: SearchTarget, point: StoragePoint) -> VectorStoreStatus:
        if target.kind is not SearchType.COLLECTION:
            return VectorStoreStatus.OTHER
        if len(point.vector) != self.config.embedding_dimension:
            raise ValueError(
                f"Vector has {len(point.vector)} dimensions; "
                f"column expects {self.config.embedding_dimension}"
            )

        row = {
            "collection": target.name,
            "point_id": point.id or str(uuid.uuid4()),
            "payload": dict(point.payload),
            "embedding": list(point.vector),
        }
        stmt = insert(self.points).values(row)
        stmt = stmt.on_conflict_do_update(
            index_elements=[self.points.c.collection, self.points.c.point_id],
            set_={
                "payload": stmt.excluded.payload,
                "embedding": stmt.excluded.embedding,
                "updated_at": func.now(),
            },
        )
        with self.engine.begin() as conn:
            result = conn.execute(stmt)
        return VectorStoreStatus.OK if result.rowcount == 1 else VectorStoreStatus.OTHER

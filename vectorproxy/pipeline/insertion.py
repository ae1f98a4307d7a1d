"""Embed, insert and account for a single record."""

from __future__ import annotations

import enum
import logging
from typing import Mapping, Optional

from ..config import ChunkingConfig
from ..embeddings.base import EmbeddingClient
from ..errors import CounterIncrementError, EmbeddingPipelineError
from ..resolver.base import RECORD_COUNT_FAILURE, RECORD_COUNT_SUCCESS, ConfigResolver
from ..storage.base import SearchTarget, VectorStore, VectorStoreStatus
from .embedding import embed_text_construct_point
from .timeouts import TimeoutRunner, call_with_timeout

logger = logging.getLogger(__name__)


class EmbeddingOutcome(str, enum.Enum):
    SUCCESS = "success"
    FAILURE = "failure"


def handle_embedding(
    resolver: ConfigResolver,
    vector_store: VectorStore,
    embeddings: EmbeddingClient,
    record: Mapping[str, str],
    embedding_field_name: str,
    source_id: str,
    embedding_model: str,
    chunking_strategy: Optional[ChunkingConfig] = None,
    *,
    embed_timeout: Optional[float] = None,
    insert_timeout: Optional[float] = None,
    runner: Optional[TimeoutRunner] = None,
) -> EmbeddingOutcome:
    """Run the embedding pipeline and insert the resulting point.

    Every call increments exactly one of the datasource's success or failure
    counters. Errors are logged, never raised.
    """

    try:
        point = embed_text_construct_point(
            embeddings,
            record,
            embedding_field_name,
            source_id,
            embedding_model,
            chunking_strategy,
            timeout=embed_timeout,
            runner=runner,
        )
    except EmbeddingPipelineError as exc:
        logger.error("An error occurred while embedding a record for %s: %s", source_id, exc)
        return _record_outcome(resolver, source_id, RECORD_COUNT_FAILURE)

    target = SearchTarget.collection(source_id)
    field_path = RECORD_COUNT_FAILURE
    try:
        status = call_with_timeout(
            lambda: vector_store.insert_point(target, point),
            insert_timeout,
            "vector store insert",
            runner,
        )
    except Exception as exc:
        logger.warning(
            "An error occurred while inserting into vector database. Error: %s", exc
        )
    else:
        if status is VectorStoreStatus.OK:
            field_path = RECORD_COUNT_SUCCESS
        else:
            logger.warning(
                "Vector database returned status '%s' while inserting into %s",
                status.value,
                target.name,
            )
    return _record_outcome(resolver, source_id, field_path)


def _record_outcome(resolver: ConfigResolver, source_id: str, field_path: str) -> EmbeddingOutcome:
    try:
        resolver.increment_counter(source_id, field_path)
    except CounterIncrementError:
        logger.exception("Could not increment %s for %s", field_path, source_id)
    if field_path == RECORD_COUNT_SUCCESS:
        return EmbeddingOutcome.SUCCESS
    return EmbeddingOutcome.FAILURE

"""Turn a metadata record into a storage point."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from ..config import ChunkingConfig
from ..embeddings.base import EmbeddingClient
from ..errors import EmbeddingError, EmptyRecord, MissingSourceId
from ..records import INDEX_FIELD, PAGE_CONTENT_FIELD
from ..storage.base import StoragePoint
from .timeouts import TimeoutRunner, call_with_timeout

logger = logging.getLogger(__name__)


def embed_text_construct_point(
    embeddings: EmbeddingClient,
    record: Mapping[str, str],
    embedding_field_name: str,
    source_id: Optional[str],
    embedding_model: str,
    chunking_strategy: Optional[ChunkingConfig] = None,
    *,
    timeout: Optional[float] = None,
    runner: Optional[TimeoutRunner] = None,
) -> StoragePoint:
    """Embed ``record[embedding_field_name]`` and build the point to store.

    The embedded value is moved from its original field to ``page_content`` in
    the payload. The dedup id, when the dispatcher computed one, is read from
    the ``index`` field.

    Raises:
        MissingSourceId: no datasource id was supplied.
        EmptyRecord: the record is empty or lacks the embedding field.
        EmbeddingError: the model call failed, timed out or returned nothing.
    """

    if not source_id:
        raise MissingSourceId()
    if not record:
        raise EmptyRecord("Row is empty")

    payload = dict(record)
    try:
        text = payload.pop(embedding_field_name)
    except KeyError:
        raise EmptyRecord(f"Row has no '{embedding_field_name}' field to embed") from None

    if chunking_strategy is not None:
        # chunking is delegated to an external service; embed the full text here
        logger.debug(
            "Chunking strategy '%s' configured for %s; embedding text verbatim",
            chunking_strategy.strategy,
            source_id,
        )
    payload[PAGE_CONTENT_FIELD] = text

    try:
        result = call_with_timeout(
            lambda: embeddings.embed_documents([text], embedding_model, source_id=source_id),
            timeout,
            "embedding",
            runner,
        )
    except Exception as exc:
        raise EmbeddingError(f"Embedding model '{embedding_model}' failed: {exc}") from exc

    if not result.vectors:
        raise EmbeddingError(f"Embedding model '{embedding_model}' returned no vectors")

    return StoragePoint(
        id=payload.get(INDEX_FIELD),
        vector=list(result.vectors[0]),
        payload=payload,
    )

import threading
from typing import Dict, List, Optional, Tuple

import pytest

from vectorproxy.config import DispatcherConfig
from vectorproxy.embeddings.base import EmbeddingClient, EmbeddingResult
from vectorproxy.errors import ConfigResolverError, CounterIncrementError
from vectorproxy.resolver.base import (
    RECORD_COUNT_FAILURE,
    RECORD_COUNT_SUCCESS,
    ConfigResolver,
    SourceConfig,
    SourceCounters,
)
from vectorproxy.storage.base import SearchTarget, StoragePoint, VectorStore, VectorStoreStatus


class RecordingResolver(ConfigResolver):
    def __init__(self, configs: Dict[str, SourceConfig], fail_increments: bool = False) -> None:
        self.configs = configs
        self.fail_increments = fail_increments
        self.lookups: List[Tuple[str, Optional[str]]] = []
        self.increments: List[Tuple[str, str]] = []
        self._lock = threading.Lock()

    def get(self, source_id, stream_key=None):
        self.lookups.append((source_id, stream_key))
        try:
            return self.configs[source_id]
        except KeyError:
            raise ConfigResolverError(f"unknown datasource {source_id}") from None

    def increment_counter(self, source_id, field_path):
        with self._lock:
            self.increments.append((source_id, field_path))
        if self.fail_increments:
            raise CounterIncrementError("metadata store unavailable")

    def counters(self, source_id):
        return SourceCounters(self.successes(source_id), self.failures(source_id))

    def count(self, source_id, field_path):
        return self.increments.count((source_id, field_path))

    def successes(self, source_id):
        return self.count(source_id, RECORD_COUNT_SUCCESS)

    def failures(self, source_id):
        return self.count(source_id, RECORD_COUNT_FAILURE)


class RecordingStore(VectorStore):
    def __init__(self, status=VectorStoreStatus.OK, error: Exception | None = None) -> None:
        self.status = status
        self.error = error
        self.calls: List[Tuple[SearchTarget, StoragePoint]] = []
        self.points: Dict[Tuple[str, str], StoragePoint] = {}
        self._lock = threading.Lock()

    def initialize(self):
        pass

    def insert_point(self, target, point):
        with self._lock:
            self.calls.append((target, point))
            if self.error is not None:
                raise self.error
            if self.status is VectorStoreStatus.OK:
                key = point.id or f"auto-{len(self.calls)}"
                self.points[(target.name, key)] = point
        return self.status


class FakeEmbeddings(EmbeddingClient):
    def __init__(self, vectors=None, error: Exception | None = None) -> None:
        self.vectors = vectors
        self.error = error
        self.calls = []

    def embed_documents(self, texts, model=None, *, source_id=None):
        self.calls.append((list(texts), model, source_id))
        if self.error is not None:
            raise self.error
        if self.vectors is not None:
            return EmbeddingResult(vectors=self.vectors, model=model or "fake")
        return EmbeddingResult(
            vectors=[[float(len(text)), 1.0, 0.0] for text in texts],
            model=model or "fake",
        )


@pytest.fixture
def scenario_config() -> SourceConfig:
    return SourceConfig(
        embedding_model="text-embedding-3-small",
        primary_key_fields=("id",),
        embedding_field_name="body",
    )


@pytest.fixture
def dispatcher_config() -> DispatcherConfig:
    return DispatcherConfig(
        max_in_flight=4,
        embed_timeout=None,
        insert_timeout=None,
        hashing_salt="test-salt",
    )

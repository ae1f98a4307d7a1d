"""Resolver backed by the ``datasources`` section of the project config."""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Dict, Iterable, Optional, Tuple

from ..config import DatasourceConfig
from ..errors import ConfigResolverError, CounterIncrementError
from .base import (
    RECORD_COUNT_SUCCESS,
    ConfigResolver,
    SourceConfig,
    SourceCounters,
    check_counter_field,
)


def _to_source_config(entry: DatasourceConfig) -> SourceConfig:
    return SourceConfig(
        embedding_model=entry.embedding_model,
        primary_key_fields=tuple(entry.primary_key) if entry.primary_key else None,
        embedding_field_name=entry.embedding_field,
        chunking_strategy=entry.chunking_strategy,
    )


class StaticConfigResolver(ConfigResolver):
    """Serve configuration from memory and keep counters in-process.

    An entry with a ``stream_key`` takes precedence over the datasource-wide
    entry for messages from that stream.
    """

    def __init__(self, datasources: Iterable[DatasourceConfig]) -> None:
        self._entries: Dict[Tuple[str, Optional[str]], SourceConfig] = {}
        for entry in datasources:
            self._entries[(entry.id, entry.stream_key)] = _to_source_config(entry)
        self._counters: Dict[str, SourceCounters] = defaultdict(SourceCounters)
        self._lock = threading.Lock()

    def get(self, source_id: str, stream_key: Optional[str] = None) -> SourceConfig:
        if stream_key is not None and (source_id, stream_key) in self._entries:
            return self._entries[(source_id, stream_key)]
        try:
            return self._entries[(source_id, None)]
        except KeyError:
            raise ConfigResolverError(f"No configuration found for datasource '{source_id}'") from None

    def increment_counter(self, source_id: str, field_path: str) -> None:
        check_counter_field(field_path)
        if not any(key[0] == source_id for key in self._entries):
            raise CounterIncrementError(f"Unknown datasource '{source_id}'")
        with self._lock:
            counters = self._counters[source_id]
            if field_path == RECORD_COUNT_SUCCESS:
                counters.success_count += 1
            else:
                counters.failure_count += 1

    def counters(self, source_id: str) -> SourceCounters:
        with self._lock:
            current = self._counters.get(source_id, SourceCounters())
            return SourceCounters(current.success_count, current.failure_count)

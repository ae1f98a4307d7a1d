"""Per-datasource configuration lookup and record counters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

from ..config import ChunkingConfig

RECORD_COUNT_SUCCESS = "recordCount.success"
RECORD_COUNT_FAILURE = "recordCount.failure"
COUNTER_FIELDS = (RECORD_COUNT_SUCCESS, RECORD_COUNT_FAILURE)


@dataclass(frozen=True)
class SourceConfig:
    """Embedding settings resolved for one message."""

    embedding_model: Optional[str] = None
    primary_key_fields: Optional[Tuple[str, ...]] = None
    embedding_field_name: Optional[str] = None
    chunking_strategy: Optional[ChunkingConfig] = None


@dataclass
class SourceCounters:
    success_count: int = 0
    failure_count: int = 0


def check_counter_field(field_path: str) -> str:
    if field_path not in COUNTER_FIELDS:
        raise ValueError(f"Unknown counter field '{field_path}'")
    return field_path


class ConfigResolver(ABC):
    """Interface to the store that owns datasource configuration and counters.

    Implementations are queried for every message and must not cache, so that
    configuration changes apply to the next message.
    """

    @abstractmethod
    def get(self, source_id: str, stream_key: Optional[str] = None) -> SourceConfig:
        """Return the configuration for a datasource, raising ``ConfigResolverError``."""

    @abstractmethod
    def increment_counter(self, source_id: str, field_path: str) -> None:
        """Atomically add one to a datasource counter, raising ``CounterIncrementError``."""

    @abstractmethod
    def counters(self, source_id: str) -> SourceCounters:
        """Return the current success/failure counts for a datasource."""

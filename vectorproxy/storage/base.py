"""Vector storage abstractions."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence


class SearchType(str, enum.Enum):
    COLLECTION = "collection"


@dataclass(frozen=True)
class SearchTarget:
    """Where a point is written; for now always a collection named after the datasource."""

    kind: SearchType
    name: str

    @classmethod
    def collection(cls, name: str) -> "SearchTarget":
        return cls(kind=SearchType.COLLECTION, name=name)


class VectorStoreStatus(str, enum.Enum):
    OK = "ok"
    OTHER = "other"


@dataclass(frozen=True)
class StoragePoint:
    """Embedding plus metadata payload, ready to be inserted.

    ``id`` is the deterministic dedup identifier when one was computed;
    otherwise the store assigns a fresh one.
    """

    id: Optional[str]
    vector: Sequence[float]
    payload: Mapping[str, str] = field(default_factory=dict)


class VectorStore(ABC):
    """Interface for inserting points into a vector database."""

    @abstractmethod
    def initialize(self) -> None:
        """Create required tables/indexes."""

    @abstractmethod
    def insert_point(self, target: SearchTarget, point: StoragePoint) -> VectorStoreStatus:
        """Insert ``point`` into ``target``, overwriting any point with the same id."""

"""Storage implementations."""

from .base import SearchTarget, SearchType, StoragePoint, VectorStore, VectorStoreStatus
from .pgvector import PgVectorStore

__all__ = [
    "SearchTarget",
    "SearchType",
    "StoragePoint",
    "VectorStore",
    "VectorStoreStatus",
    "PgVectorStore",
]

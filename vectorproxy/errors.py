"""Exception types raised while turning queue messages into stored vectors."""

from __future__ import annotations


class VectorProxyError(Exception):
    """Base class for all message processing errors."""


class DecodeError(VectorProxyError):
    """Raised when a message payload is not valid JSON."""


class ConfigResolverError(VectorProxyError):
    """Raised when the metadata store cannot resolve a datasource configuration."""


class CounterIncrementError(ConfigResolverError):
    """Raised when a success/failure counter could not be incremented."""


class MissingPrimaryKeyError(VectorProxyError):
    """Raised when a configured primary key field is absent from a record."""

    def __init__(self, field: str) -> None:
        super().__init__(f"Primary key field '{field}' not found in record")
        self.field = field


class EmbeddingPipelineError(VectorProxyError):
    """Base class for failures while building a storage point."""


class MissingSourceId(EmbeddingPipelineError):
    """No datasource id accompanied the record."""

    def __init__(self) -> None:
        super().__init__("Could not find a datasource id for this payload. Aborting embedding!")


class EmptyRecord(EmbeddingPipelineError):
    """The record is empty or holds no text under the embedding field."""


class EmbeddingError(EmbeddingPipelineError):
    """The embedding model failed or returned no vectors."""


class OperationTimeout(VectorProxyError):
    """A remote call did not finish within its time budget."""

    def __init__(self, operation: str, timeout: float) -> None:
        super().__init__(f"{operation} timed out after {timeout:g}s")
        self.operation = operation
        self.timeout = timeout


__all__ = [
    "VectorProxyError",
    "DecodeError",
    "ConfigResolverError",
    "CounterIncrementError",
    "MissingPrimaryKeyError",
    "EmbeddingPipelineError",
    "MissingSourceId",
    "EmptyRecord",
    "EmbeddingError",
    "OperationTimeout",
]

"""Message-to-vector pipeline."""

from .dispatcher import DispatchStats, Dispatcher
from .embedding import embed_text_construct_point
from .insertion import EmbeddingOutcome, handle_embedding
from .timeouts import call_with_timeout

__all__ = [
    "DispatchStats",
    "Dispatcher",
    "EmbeddingOutcome",
    "call_with_timeout",
    "embed_text_construct_point",
    "handle_embedding",
]

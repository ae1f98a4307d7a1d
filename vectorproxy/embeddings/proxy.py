"""Embedding client that targets an OpenAI compatible proxy."""

from __future__ import annotations

import logging
import os
import threading
import time
from typing import Iterable, List, Optional, Sequence

import requests

from ..config import EmbeddingConfig
from .base import EmbeddingClient, EmbeddingResult

logger = logging.getLogger(__name__)


class OpenAIProxyEmbeddingClient(EmbeddingClient):
    """Call an OpenAI-compatible embeddings endpoint exposed via a proxy.

    Embedding units run on worker threads, so every thread gets its own
    ``requests.Session``.
    """

    def __init__(self, config: EmbeddingConfig) -> None:
        if not config.base_url:
            raise ValueError("Embedding config requires base_url for proxy usage")
        self.config = config
        api_key = config.api_key
        if not api_key and config.api_key_env:
            api_key = os.getenv(config.api_key_env)
        self.headers = {"Content-Type": "application/json"}
        if api_key:
            self.headers["Authorization"] = f"Bearer {api_key}"
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update(self.headers)
            self._local.session = session
        return session

    # ------------------------------------------------------------------
    def embed_documents(
        self,
        texts: Sequence[str],
        model: str | None = None,
        *,
        source_id: Optional[str] = None,
    ) -> EmbeddingResult:
        model_name = model or self.config.model
        if not model_name:
            raise ValueError("No embedding model given and no default model configured")
        vectors: List[List[float]] = []
        for batch in _chunk_iterable(texts, self.config.batch_size):
            payload = {"input": list(batch), "model": model_name}
            if source_id:
                payload["user"] = source_id
            vectors.extend(self._post_embeddings(payload))
        return EmbeddingResult(vectors=vectors, model=model_name)

    # ------------------------------------------------------------------
    def _post_embeddings(self, payload: dict) -> List[List[float]]:
        url = f"{self.config.base_url.rstrip('/')}/embeddings"
        backoff = 1.0
        for attempt in range(5):
            response = self.session.post(url, json=payload, timeout=self.config.timeout)
            if response.status_code == 429:
                logger.warning("Embedding proxy rate limited (attempt %d); retrying", attempt + 1)
                time.sleep(backoff)
                backoff = min(backoff * 2, 30)
                continue
            response.raise_for_status()
            data = response.json()
            items = sorted(data.get("data", []), key=lambda item: item.get("index", 0))
            return [item["embedding"] for item in items]
        raise RuntimeError("Embedding request failed after retries")


def _chunk_iterable(items: Sequence[str], size: int) -> Iterable[Sequence[str]]:
    if size <= 0:
        yield items
        return
    for start in range(0, len(items), size):
        yield items[start : start + size]

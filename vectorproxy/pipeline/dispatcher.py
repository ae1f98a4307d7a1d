"""The consumption loop that turns queue messages into embedding units."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from ..config import DispatcherConfig
from ..embeddings.base import EmbeddingClient
from ..errors import ConfigResolverError, DecodeError, MissingPrimaryKeyError
from ..messages.base import MessageChannel, RawMessage
from ..records import (
    INDEX_FIELD,
    build_dedup_id,
    decode_payload,
    to_metadata,
    unwrap_envelope,
)
from ..resolver.base import ConfigResolver
from ..storage.base import VectorStore
from .insertion import EmbeddingOutcome, handle_embedding
from .timeouts import TimeoutRunner

logger = logging.getLogger(__name__)


@dataclass
class DispatchStats:
    received: int = 0
    dropped: int = 0
    dispatched: int = 0
    succeeded: int = 0
    failed: int = 0


class Dispatcher:
    """Drain a :class:`MessageChannel` and run embedding work on a bounded pool.

    The loop itself is single-threaded and keeps delivery order. Each
    embeddable message becomes a unit on the worker pool; once
    ``max_in_flight`` units are running the loop waits for a free slot before
    taking the next message, which leaves the backlog queued in the channel.
    """

    def __init__(
        self,
        resolver: ConfigResolver,
        embeddings: EmbeddingClient,
        vector_store: VectorStore,
        config: DispatcherConfig,
        *,
        hashing_salt: Optional[str] = None,
    ) -> None:
        self.resolver = resolver
        self.embeddings = embeddings
        self.vector_store = vector_store
        self.config = config
        self.hashing_salt = hashing_salt if hashing_salt is not None else config.resolve_salt()
        self.stats = DispatchStats()
        self._executor = ThreadPoolExecutor(
            max_workers=config.max_in_flight, thread_name_prefix="vectorproxy-embed"
        )
        # each unit makes at most one timed call at a time
        self._calls = TimeoutRunner(max_workers=config.max_in_flight)
        self._slots = threading.BoundedSemaphore(config.max_in_flight)
        self._lock = threading.Lock()
        self._in_flight = 0
        self._peak_in_flight = 0

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        with self._lock:
            return self._peak_in_flight

    # ------------------------------------------------------------------
    def process_incoming_messages(self, channel: MessageChannel) -> DispatchStats:
        """Dispatch every message until the channel is closed."""

        for message in channel:
            self.dispatch(message)
        logger.info(
            "Channel closed after %d messages (%d dispatched, %d dropped)",
            self.stats.received,
            self.stats.dispatched,
            self.stats.dropped,
        )
        return self.stats

    def dispatch(self, message: RawMessage) -> Optional[Future]:
        """Prepare one message and submit its embedding unit.

        Returns the unit's future, or ``None`` when the message was dropped.
        """

        self.stats.received += 1
        try:
            data = decode_payload(message.payload)
        except DecodeError as exc:
            logger.error(
                "An error occurred while attempting to convert message to JSON: %s", exc
            )
            return self._drop()

        try:
            source_config = self.resolver.get(message.source_id, message.stream_key)
        except ConfigResolverError as exc:
            logger.error("An error occurred: %s", exc)
            return self._drop()

        if not source_config.embedding_model:
            logger.debug("No embedding model configured for %s", message.source_id)
            return self._drop()
        if not isinstance(data, dict):
            logger.debug("Skipping non-object payload from %s", message.source_id)
            return self._drop()

        record = to_metadata(unwrap_envelope(data, self.config.envelope_key))

        if source_config.primary_key_fields:
            try:
                record[INDEX_FIELD] = build_dedup_id(
                    record, source_config.primary_key_fields, self.hashing_salt
                )
            except MissingPrimaryKeyError as exc:
                logger.warning("Dropping message from %s: %s", message.source_id, exc)
                return self._drop()

        if not source_config.embedding_field_name:
            logger.debug("No embedding field configured for %s", message.source_id)
            return self._drop()

        self._slots.acquire()
        try:
            future = self._executor.submit(
                handle_embedding,
                self.resolver,
                self.vector_store,
                self.embeddings,
                record,
                source_config.embedding_field_name,
                message.source_id,
                source_config.embedding_model,
                source_config.chunking_strategy,
                embed_timeout=self.config.embed_timeout,
                insert_timeout=self.config.insert_timeout,
                runner=self._calls,
            )
        except RuntimeError:
            self._slots.release()
            raise
        with self._lock:
            self._in_flight += 1
            self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
        self.stats.dispatched += 1
        future.add_done_callback(self._on_unit_done)
        return future

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting units; with ``wait`` block until in-flight units finish."""

        self._executor.shutdown(wait=wait)
        self._calls.shutdown(wait=wait)

    # ------------------------------------------------------------------
    def _drop(self) -> None:
        self.stats.dropped += 1
        return None

    def _on_unit_done(self, future: Future) -> None:
        with self._lock:
            self._in_flight -= 1
            try:
                outcome = future.result()
            except Exception:
                logger.exception("Embedding task terminated unexpectedly")
                outcome = EmbeddingOutcome.FAILURE
            if outcome is EmbeddingOutcome.SUCCESS:
                self.stats.succeeded += 1
            else:
                self.stats.failed += 1
        self._slots.release()
        logger.info("Finished embedding task (%s)", outcome.value)

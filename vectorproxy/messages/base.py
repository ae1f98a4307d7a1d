"""Queue message contract shared by every backend."""

from __future__ import annotations

import logging
import queue
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, Iterator, Mapping, Optional, TypeVar

from ..config import QueueConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawMessage:
    """A record as delivered by a queue backend, before decoding."""

    source_id: str
    stream_key: Optional[str]
    payload: str


_CLOSED = object()


class MessageChannel:
    """Ordered hand-off between queue backends and the dispatcher.

    Backends :meth:`send` messages from their own threads; the dispatcher
    iterates the channel until :meth:`close` is called and every message sent
    before the close has been drained. With a positive ``maxsize``, ``send``
    blocks while the channel is full, so a backend stops taking (and
    acknowledging) deliveries until the dispatcher catches up.
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=maxsize)
        self._closed = False
        # serializes senders with close so nothing lands behind the close marker
        self._send_lock = threading.Lock()

    def send(self, message: RawMessage) -> None:
        with self._send_lock:
            if self._closed:
                raise RuntimeError("Cannot send on a closed channel")
            self._queue.put(message)

    def close(self) -> None:
        with self._send_lock:
            if not self._closed:
                self._closed = True
                self._queue.put(_CLOSED)

    @property
    def closed(self) -> bool:
        return self._closed

    def recv(self, timeout: float | None = None) -> Optional[RawMessage]:
        """Block until a message arrives; return ``None`` once the channel is closed."""

        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            # keep the marker for any other receiver
            self._queue.put(_CLOSED)
            return None
        return item

    def __iter__(self) -> Iterator[RawMessage]:
        while True:
            message = self.recv()
            if message is None:
                return
            yield message


ConnectionT = TypeVar("ConnectionT")


class QueueSource(ABC, Generic[ConnectionT]):
    """Interface that every message queue backend implements.

    ``connect`` returns a live connection handle or ``None`` when the backend is
    unreachable; retrying is left to the caller. ``consume`` runs until the
    connection is closed, pushing normalized :class:`RawMessage` values into the
    channel.
    """

    name: str = "base"

    def __init__(self, config: QueueConfig) -> None:
        self.config = config

    @abstractmethod
    def connect(self) -> Optional[ConnectionT]:
        """Open a connection to the backend."""

    @abstractmethod
    def consume(self, connection: ConnectionT, channel: MessageChannel) -> None:
        """Forward every delivered record into ``channel``.

        Backends get only the connection and the channel, not the vector store
        or resolver handles: none of them acts on a record beyond forwarding it.
        """

    def close(self, connection: ConnectionT) -> None:
        """Release the connection. Optional for backends."""

    # ------------------------------------------------------------------
    def to_raw_message(
        self,
        attributes: Optional[Mapping[str, Any]],
        body: bytes | str,
        *,
        fallback_source_id: Optional[str] = None,
    ) -> Optional[RawMessage]:
        """Normalize a delivery into a :class:`RawMessage`.

        Returns ``None`` when no datasource id can be found, since such a
        record cannot be routed to any configuration.
        """

        attributes = attributes or {}
        source_id = attributes.get(self.config.source_id_attribute) or fallback_source_id
        if not source_id:
            logger.warning("Dropping %s message without a datasource id", self.name)
            return None
        stream_key = attributes.get(self.config.stream_key_attribute)
        payload = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
        return RawMessage(
            source_id=_as_text(source_id),
            stream_key=_as_text(stream_key) if stream_key else None,
            payload=payload,
        )


def _as_text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)

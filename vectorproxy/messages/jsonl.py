"""File backend that replays captured messages from a JSON-lines file."""

from __future__ import annotations

import json
import logging
from typing import IO, Optional

from .base import MessageChannel, QueueSource

logger = logging.getLogger(__name__)


class JsonLinesSource(QueueSource[IO[str]]):
    """Each line holds ``{"datasource_id": ..., "stream_key": ..., "payload": ...}``.

    ``payload`` may be the raw string as it travelled on the queue or any JSON
    value, which is re-serialized before it is forwarded.
    """

    name = "jsonl"

    def connect(self) -> Optional[IO[str]]:
        path = self.config.path
        if path is None or not path.is_file():
            logger.error("JSON-lines provider requires an existing queue.path (got %s)", path)
            return None
        return path.open("r", encoding="utf-8")

    def consume(self, connection: IO[str], channel: MessageChannel) -> None:
        forwarded = 0
        for line_number, line in enumerate(connection, start=1):
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError as exc:
                logger.error("Skipping line %d: %s", line_number, exc)
                continue
            if not isinstance(entry, dict):
                logger.error("Skipping line %d: expected an object", line_number)
                continue
            payload = entry.get("payload", "")
            if not isinstance(payload, str):
                payload = json.dumps(payload)
            attributes = {
                self.config.source_id_attribute: entry.get("datasource_id"),
                self.config.stream_key_attribute: entry.get("stream_key"),
            }
            message = self.to_raw_message(attributes, payload)
            if message is not None:
                channel.send(message)
                forwarded += 1
        logger.info("Replayed %d messages from %s", forwarded, self.config.path)

    def close(self, connection: IO[str]) -> None:
        connection.close()

"""Google Cloud Pub/Sub queue backend."""

from __future__ import annotations

import logging
from concurrent.futures import CancelledError
from dataclasses import dataclass
from importlib import import_module
from typing import Any, Optional

from .base import MessageChannel, QueueSource

logger = logging.getLogger(__name__)


def _load_pubsub():
    try:
        return import_module("google.cloud.pubsub_v1")
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dependency guard
        raise RuntimeError(
            "google-cloud-pubsub is required for the google provider. Install vectorproxy[pubsub]."
        ) from exc


@dataclass
class PubSubConnection:
    subscriber: Any
    subscription_path: str
    future: Any = None


class PubSubSource(QueueSource[PubSubConnection]):
    """Streaming pull from a Pub/Sub subscription; ids come from message attributes."""

    name = "google"

    def connect(self) -> Optional[PubSubConnection]:
        if not self.config.project_id or not self.config.subscription:
            logger.error("Pub/Sub provider requires queue.project_id and queue.subscription")
            return None
        pubsub_v1 = _load_pubsub()
        google_exceptions = import_module("google.api_core.exceptions")
        auth_exceptions = import_module("google.auth.exceptions")
        try:
            subscriber = pubsub_v1.SubscriberClient()
        except (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as exc:
            logger.error("Could not create Pub/Sub subscriber: %s", exc)
            return None
        path = subscriber.subscription_path(self.config.project_id, self.config.subscription)
        logger.info("Connected to Pub/Sub subscription %s", path)
        return PubSubConnection(subscriber=subscriber, subscription_path=path)

    def consume(self, connection: PubSubConnection, channel: MessageChannel) -> None:
        def on_message(message) -> None:
            raw = self.to_raw_message(message.attributes, message.data)
            if raw is not None:
                channel.send(raw)
            message.ack()

        logger.info("Starting to consume from Pub/Sub")
        connection.future = connection.subscriber.subscribe(
            connection.subscription_path, callback=on_message
        )
        with connection.subscriber:
            try:
                connection.future.result()
            except CancelledError:
                logger.info("Pub/Sub subscription %s cancelled", connection.subscription_path)

    def close(self, connection: PubSubConnection) -> None:
        if connection.future is not None:
            connection.future.cancel()

"""RabbitMQ queue backend built on pika."""

from __future__ import annotations

import logging
from importlib import import_module
from typing import Any, Optional

from .base import MessageChannel, QueueSource

logger = logging.getLogger(__name__)


def _load_pika():
    try:
        return import_module("pika")
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dependency guard
        raise RuntimeError(
            "pika is required for the rabbitmq provider. Install vectorproxy[rabbitmq]."
        ) from exc


class RabbitMQSource(QueueSource[Any]):
    """Consume a RabbitMQ queue through a blocking channel.

    The datasource id is read from the message headers and falls back to the
    routing key; messages are acknowledged once they are in the channel.
    """

    name = "rabbitmq"

    def connect(self) -> Optional[Any]:
        if not self.config.url or not self.config.queue_name:
            logger.error("RabbitMQ provider requires queue.url and queue.queue_name")
            return None
        pika = _load_pika()
        try:
            connection = pika.BlockingConnection(pika.URLParameters(self.config.url))
            amqp_channel = connection.channel()
            amqp_channel.basic_qos(prefetch_count=self.config.prefetch_count)
        except pika.exceptions.AMQPError as exc:
            logger.error("Could not connect to RabbitMQ at %s: %s", self.config.url, exc)
            return None
        logger.info("Connected to RabbitMQ queue '%s'", self.config.queue_name)
        return amqp_channel

    def consume(self, connection: Any, channel: MessageChannel) -> None:
        def on_message(amqp_channel, method, properties, body) -> None:
            message = self.to_raw_message(
                properties.headers,
                body,
                fallback_source_id=method.routing_key,
            )
            if message is not None:
                channel.send(message)
            amqp_channel.basic_ack(delivery_tag=method.delivery_tag)

        connection.basic_consume(queue=self.config.queue_name, on_message_callback=on_message)
        logger.info("Starting to consume from RabbitMQ")
        try:
            connection.start_consuming()
        finally:
            if connection.connection.is_open:
                connection.connection.close()

    def close(self, connection: Any) -> None:
        # pika connections are not thread-safe; ask the consumer thread to stop
        if connection.connection.is_open:
            connection.connection.add_callback_threadsafe(connection.stop_consuming)

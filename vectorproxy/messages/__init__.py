"""Message queue backends and the channel they feed."""

from .base import MessageChannel, QueueSource, RawMessage
from .jsonl import JsonLinesSource
from .pubsub import PubSubSource
from .rabbitmq import RabbitMQSource
from .registry import QueueRegistry, get_registry


def _safe_register(registry, name, backend, aliases=None):
    try:
        registry.register(name, backend, aliases=aliases)
    except ValueError:  # provider already registered
        pass


def register_default_backends() -> None:
    registry = get_registry()
    _safe_register(registry, "rabbitmq", RabbitMQSource, aliases=["amqp"])
    _safe_register(registry, "google", PubSubSource, aliases=["pubsub"])
    _safe_register(registry, "jsonl", JsonLinesSource)


register_default_backends()

__all__ = [
    "MessageChannel",
    "QueueSource",
    "RawMessage",
    "JsonLinesSource",
    "PubSubSource",
    "RabbitMQSource",
    "QueueRegistry",
    "get_registry",
    "register_default_backends",
]

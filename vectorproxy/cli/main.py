"""Command-line interface for vectorproxy."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

import typer

from ..config import ConfigError, ProjectConfig, load_config, resolve_config_path
from ..embeddings.base import EmbeddingClient, NullEmbeddingClient
from ..embeddings.proxy import OpenAIProxyEmbeddingClient
from ..messages import JsonLinesSource, get_registry
from ..messages.base import MessageChannel, QueueSource
from ..pipeline.dispatcher import DispatchStats, Dispatcher
from ..resolver.base import ConfigResolver
from ..resolver.sql import SqlConfigResolver
from ..resolver.static import StaticConfigResolver
from ..storage.pgvector import PgVectorStore

app = typer.Typer(help="vectorproxy CLI")

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


@app.command()
def init_db(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config file"),
) -> None:
    """Create pgvector tables, and metadata tables for the SQL resolver."""

    cfg = _load_config(config)
    PgVectorStore(cfg.storage).initialize()
    if cfg.resolver.kind == "sql":
        SqlConfigResolver(cfg.resolver).initialize()
    typer.echo("Database schema initialized.")


@app.command()
def run(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config file"),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level"),
) -> None:
    """Consume the configured queue and store embeddings until interrupted."""

    _configure_logging(log_level)
    cfg = _load_config(config)
    try:
        source = get_registry().create(cfg.queue)
    except KeyError as exc:
        raise typer.BadParameter(str(exc), param_hint="queue.provider") from exc

    stats = _pump(cfg, source)
    _echo_stats(stats)


@app.command()
def replay(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON-lines file to replay"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config file"),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level"),
) -> None:
    """Feed captured messages from a JSON-lines file through the pipeline."""

    _configure_logging(log_level)
    cfg = _load_config(config)
    queue_cfg = cfg.queue.model_copy(update={"provider": "jsonl", "path": path.expanduser().resolve()})
    stats = _pump(cfg, JsonLinesSource(queue_cfg))
    _echo_stats(stats)


# ---------------------------------------------------------------------------

def _pump(cfg: ProjectConfig, source: QueueSource) -> DispatchStats:
    connection = source.connect()
    if connection is None:
        typer.echo(f"Could not connect to the '{source.name}' queue.", err=True)
        raise typer.Exit(code=1)

    channel = MessageChannel(maxsize=cfg.dispatcher.channel_size)
    dispatcher = _build_dispatcher(cfg)
    consumer = threading.Thread(
        target=_consume,
        args=(source, connection, channel),
        name=f"{source.name}-consumer",
        daemon=True,
    )
    consumer.start()
    try:
        return dispatcher.process_incoming_messages(channel)
    except KeyboardInterrupt:
        typer.echo("Interrupted; waiting for in-flight embedding tasks.", err=True)
        source.close(connection)
        return dispatcher.stats
    finally:
        dispatcher.shutdown(wait=True)


def _consume(source: QueueSource, connection, channel: MessageChannel) -> None:
    try:
        source.consume(connection, channel)
    except Exception:
        logger.exception("Queue consumer for '%s' stopped", source.name)
    finally:
        channel.close()
        source.close(connection)


def _echo_stats(stats: DispatchStats) -> None:
    typer.echo(
        "Processed {received} messages: {dispatched} dispatched "
        "({succeeded} stored, {failed} failed), {dropped} dropped.".format(
            received=stats.received,
            dispatched=stats.dispatched,
            succeeded=stats.succeeded,
            failed=stats.failed,
            dropped=stats.dropped,
        )
    )


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def _load_config(path: Optional[Path]) -> ProjectConfig:
    resolved = resolve_config_path(path)
    try:
        return load_config(resolved)
    except ConfigError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc


def _build_dispatcher(config: ProjectConfig) -> Dispatcher:
    try:
        salt = config.dispatcher.resolve_salt()
    except ConfigError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc
    return Dispatcher(
        resolver=_build_resolver(config),
        embeddings=_build_embedding(config),
        vector_store=PgVectorStore(config.storage),
        config=config.dispatcher,
        hashing_salt=salt,
    )


def _build_resolver(config: ProjectConfig) -> ConfigResolver:
    if config.resolver.kind == "sql":
        return SqlConfigResolver(config.resolver)
    return StaticConfigResolver(config.datasources)


def _build_embedding(config: ProjectConfig) -> EmbeddingClient:
    if config.embedding.provider == "openai-proxy":
        return OpenAIProxyEmbeddingClient(config.embedding)
    if config.embedding.provider == "null":
        return NullEmbeddingClient(dimension=config.embedding.dimension)
    raise ValueError(f"Unsupported embedding provider: {config.embedding.provider}")


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from conftest import FakeEmbeddings, RecordingStore
from sqlalchemy import create_engine, insert

from vectorproxy.config import ChunkingConfig, DatasourceConfig, DispatcherConfig, ResolverConfig
from vectorproxy.errors import ConfigResolverError, CounterIncrementError
from vectorproxy.messages.base import MessageChannel, RawMessage
from vectorproxy.pipeline.dispatcher import Dispatcher
from vectorproxy.resolver import (
    RECORD_COUNT_FAILURE,
    RECORD_COUNT_SUCCESS,
    ConfigResolver,
    SourceConfig,
    SqlConfigResolver,
    StaticConfigResolver,
)


def _static_resolver() -> StaticConfigResolver:
    return StaticConfigResolver(
        [
            DatasourceConfig(
                id="S1", embedding_model="model-a", primary_key=["id"], embedding_field="body"
            ),
            DatasourceConfig(
                id="S1", stream_key="comments", embedding_model="model-b", embedding_field="text"
            ),
        ]
    )


def test_static_resolver_prefers_stream_entry() -> None:
    resolver = _static_resolver()
    assert resolver.get("S1").embedding_model == "model-a"
    assert resolver.get("S1").primary_key_fields == ("id",)
    assert resolver.get("S1", "comments").embedding_field_name == "text"
    assert resolver.get("S1", "other").embedding_model == "model-a"


def test_static_resolver_unknown_source() -> None:
    with pytest.raises(ConfigResolverError):
        _static_resolver().get("missing")


def test_static_resolver_counts_concurrently() -> None:
    resolver = _static_resolver()
    with ThreadPoolExecutor(max_workers=8) as pool:
        for _ in range(100):
            pool.submit(resolver.increment_counter, "S1", RECORD_COUNT_SUCCESS)
        pool.submit(resolver.increment_counter, "S1", RECORD_COUNT_FAILURE)
    counters = resolver.counters("S1")
    assert counters.success_count == 100
    assert counters.failure_count == 1


def test_static_resolver_rejects_unknown_counter() -> None:
    resolver = _static_resolver()
    with pytest.raises(ValueError):
        resolver.increment_counter("S1", "recordCount.total")
    with pytest.raises(CounterIncrementError):
        resolver.increment_counter("missing", RECORD_COUNT_SUCCESS)


@pytest.fixture
def sql_resolver(tmp_path: Path) -> SqlConfigResolver:
    engine = create_engine(f"sqlite:///{tmp_path / 'metadata.db'}", future=True)
    resolver = SqlConfigResolver(ResolverConfig(kind="sql"), engine=engine)
    resolver.initialize()
    with engine.begin() as conn:
        conn.execute(
            insert(resolver.datasources).values(
                id="S1",
                embedding_model="model-a",
                primary_key=["id"],
                embedding_field="body",
                chunking_strategy={"strategy": "by_title", "max_characters": 800},
                record_count_success=0,
                record_count_failure=0,
            )
        )
        conn.execute(
            insert(resolver.streams).values(
                datasource_id="S1",
                stream_key="comments",
                embedding_model="model-b",
                embedding_field="text",
            )
        )
    return resolver


def test_sql_resolver_reads_configuration(sql_resolver) -> None:
    config = sql_resolver.get("S1")
    assert config.embedding_model == "model-a"
    assert config.primary_key_fields == ("id",)
    assert config.embedding_field_name == "body"
    assert config.chunking_strategy == ChunkingConfig(strategy="by_title", max_characters=800)


def test_sql_resolver_stream_override(sql_resolver) -> None:
    config = sql_resolver.get("S1", "comments")
    assert config.embedding_model == "model-b"
    assert config.primary_key_fields is None
    assert sql_resolver.get("S1", "unknown").embedding_model == "model-a"


def test_sql_resolver_unknown_source(sql_resolver) -> None:
    with pytest.raises(ConfigResolverError):
        sql_resolver.get("missing")


def test_sql_resolver_increments_counters(sql_resolver) -> None:
    sql_resolver.increment_counter("S1", RECORD_COUNT_SUCCESS)
    sql_resolver.increment_counter("S1", RECORD_COUNT_SUCCESS)
    sql_resolver.increment_counter("S1", RECORD_COUNT_FAILURE)
    counters = sql_resolver.counters("S1")
    assert counters.success_count == 2
    assert counters.failure_count == 1


def test_sql_resolver_increment_unknown_source(sql_resolver) -> None:
    with pytest.raises(CounterIncrementError):
        sql_resolver.increment_counter("missing", RECORD_COUNT_FAILURE)


def _insert_datasource(resolver: SqlConfigResolver, **values) -> None:
    row = {
        "embedding_model": "model-a",
        "embedding_field": "body",
        "record_count_success": 0,
        "record_count_failure": 0,
        **values,
    }
    with resolver.engine.begin() as conn:
        conn.execute(insert(resolver.datasources).values(row))


def test_sql_resolver_rejects_invalid_chunking_row(sql_resolver) -> None:
    _insert_datasource(sql_resolver, id="BAD", chunking_strategy={"max_characters": 0})
    with pytest.raises(ConfigResolverError, match="BAD"):
        sql_resolver.get("BAD")


def test_sql_resolver_rejects_non_list_primary_key(sql_resolver) -> None:
    _insert_datasource(sql_resolver, id="BAD", primary_key="id")
    with pytest.raises(ConfigResolverError, match="primary_key"):
        sql_resolver.get("BAD")


def test_bad_datasource_row_does_not_stop_dispatching(sql_resolver) -> None:
    _insert_datasource(sql_resolver, id="BAD", chunking_strategy={"max_characters": 0})
    store = RecordingStore()
    dispatcher = Dispatcher(
        sql_resolver,
        FakeEmbeddings(),
        store,
        DispatcherConfig(embed_timeout=None, insert_timeout=None, hashing_salt="s"),
    )
    channel = MessageChannel()
    channel.send(RawMessage("BAD", None, '{"id": 1, "body": "x"}'))
    channel.send(RawMessage("S1", None, '{"id": 2, "body": "y"}'))
    channel.close()

    stats = dispatcher.process_incoming_messages(channel)
    dispatcher.shutdown(wait=True)

    assert stats.dropped == 1
    assert len(store.calls) == 1
    assert sql_resolver.counters("S1").success_count == 1
    assert sql_resolver.counters("BAD").success_count == 0


def test_resolver_must_report_counters() -> None:
    class NoCounters(ConfigResolver):
        def get(self, source_id, stream_key=None):
            return SourceConfig()

        def increment_counter(self, source_id, field_path):
            pass

    with pytest.raises(TypeError):
        NoCounters()

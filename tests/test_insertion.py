import pytest
from conftest import FakeEmbeddings, RecordingResolver, RecordingStore

from vectorproxy.pipeline.insertion import EmbeddingOutcome, handle_embedding
from vectorproxy.resolver.base import RECORD_COUNT_FAILURE, RECORD_COUNT_SUCCESS
from vectorproxy.storage.base import SearchType, VectorStoreStatus


def _run(resolver, store, embeddings, record, **kwargs):
    return handle_embedding(
        resolver,
        store,
        embeddings,
        record,
        "body",
        "S1",
        "model-a",
        **kwargs,
    )


def test_successful_insert_increments_success_once(scenario_config) -> None:
    resolver = RecordingResolver({"S1": scenario_config})
    store = RecordingStore()

    outcome = _run(resolver, store, FakeEmbeddings(), {"id": "42", "body": "hello", "index": "k"})

    assert outcome is EmbeddingOutcome.SUCCESS
    assert resolver.increments == [("S1", RECORD_COUNT_SUCCESS)]
    target, point = store.calls[0]
    assert target.kind is SearchType.COLLECTION
    assert target.name == "S1"
    assert point.id == "k"


def test_missing_field_fails_without_insert(scenario_config) -> None:
    resolver = RecordingResolver({"S1": scenario_config})
    store = RecordingStore()

    outcome = _run(resolver, store, FakeEmbeddings(), {"id": "42"})

    assert outcome is EmbeddingOutcome.FAILURE
    assert resolver.increments == [("S1", RECORD_COUNT_FAILURE)]
    assert store.calls == []


@pytest.mark.parametrize(
    "store",
    [
        RecordingStore(status=VectorStoreStatus.OTHER),
        RecordingStore(error=RuntimeError("connection reset")),
    ],
    ids=["non-ok-status", "store-error"],
)
def test_insert_problems_increment_failure_once(scenario_config, store) -> None:
    resolver = RecordingResolver({"S1": scenario_config})

    outcome = _run(resolver, store, FakeEmbeddings(), {"body": "hello"})

    assert outcome is EmbeddingOutcome.FAILURE
    assert resolver.increments == [("S1", RECORD_COUNT_FAILURE)]
    assert len(store.calls) == 1


def test_embedding_error_increments_failure_once(scenario_config) -> None:
    resolver = RecordingResolver({"S1": scenario_config})
    store = RecordingStore()

    outcome = _run(resolver, store, FakeEmbeddings(error=ValueError("bad model")), {"body": "x"})

    assert outcome is EmbeddingOutcome.FAILURE
    assert resolver.increments == [("S1", RECORD_COUNT_FAILURE)]
    assert store.calls == []


def test_insert_timeout_counts_as_failure(scenario_config) -> None:
    import time

    class SlowStore(RecordingStore):
        def insert_point(self, target, point):
            time.sleep(0.5)
            return super().insert_point(target, point)

    resolver = RecordingResolver({"S1": scenario_config})
    outcome = _run(resolver, SlowStore(), FakeEmbeddings(), {"body": "x"}, insert_timeout=0.05)

    assert outcome is EmbeddingOutcome.FAILURE
    assert resolver.increments == [("S1", RECORD_COUNT_FAILURE)]


def test_counter_failure_is_logged_not_raised(scenario_config, caplog) -> None:
    resolver = RecordingResolver({"S1": scenario_config}, fail_increments=True)

    outcome = _run(resolver, RecordingStore(), FakeEmbeddings(), {"body": "hello"})

    assert outcome is EmbeddingOutcome.SUCCESS
    assert resolver.increments == [("S1", RECORD_COUNT_SUCCESS)]
    assert "Could not increment recordCount.success for S1" in caplog.text

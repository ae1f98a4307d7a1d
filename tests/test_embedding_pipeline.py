import time

import pytest
from conftest import FakeEmbeddings

from vectorproxy.config import ChunkingConfig
from vectorproxy.errors import EmbeddingError, EmptyRecord, MissingSourceId
from vectorproxy.pipeline.embedding import embed_text_construct_point


def test_point_promotes_embedding_field_to_page_content() -> None:
    embeddings = FakeEmbeddings()
    record = {"id": "42", "body": "hello", "index": "abc"}

    point = embed_text_construct_point(embeddings, record, "body", "S1", "model-a")

    assert point.id == "abc"
    assert point.vector == [5.0, 1.0, 0.0]
    assert point.payload == {"id": "42", "index": "abc", "page_content": "hello"}
    assert "body" not in point.payload
    assert embeddings.calls == [(["hello"], "model-a", "S1")]
    # caller's record is untouched
    assert record["body"] == "hello"


def test_point_without_index_has_no_id() -> None:
    point = embed_text_construct_point(FakeEmbeddings(), {"body": "x"}, "body", "S1", "m")
    assert point.id is None


def test_missing_source_id() -> None:
    with pytest.raises(MissingSourceId):
        embed_text_construct_point(FakeEmbeddings(), {"body": "x"}, "body", None, "m")


def test_empty_record() -> None:
    with pytest.raises(EmptyRecord):
        embed_text_construct_point(FakeEmbeddings(), {}, "body", "S1", "m")


def test_missing_embedding_field_is_empty_record() -> None:
    embeddings = FakeEmbeddings()
    with pytest.raises(EmptyRecord):
        embed_text_construct_point(embeddings, {"id": "42"}, "body", "S1", "m")
    assert embeddings.calls == []


def test_model_failure_becomes_embedding_error() -> None:
    embeddings = FakeEmbeddings(error=RuntimeError("proxy down"))
    with pytest.raises(EmbeddingError, match="proxy down"):
        embed_text_construct_point(embeddings, {"body": "x"}, "body", "S1", "m")


def test_no_vectors_is_embedding_error() -> None:
    with pytest.raises(EmbeddingError, match="no vectors"):
        embed_text_construct_point(FakeEmbeddings(vectors=[]), {"body": "x"}, "body", "S1", "m")


def test_embedding_timeout_is_embedding_error() -> None:
    class SlowEmbeddings(FakeEmbeddings):
        def embed_documents(self, texts, model=None, *, source_id=None):
            time.sleep(0.5)
            return super().embed_documents(texts, model, source_id=source_id)

    with pytest.raises(EmbeddingError, match="timed out"):
        embed_text_construct_point(
            SlowEmbeddings(), {"body": "x"}, "body", "S1", "m", timeout=0.05
        )


def test_chunking_strategy_embeds_text_verbatim() -> None:
    embeddings = FakeEmbeddings()
    point = embed_text_construct_point(
        embeddings,
        {"body": "long text"},
        "body",
        "S1",
        "m",
        ChunkingConfig(strategy="by_title"),
    )
    assert embeddings.calls[0][0] == ["long text"]
    assert point.payload["page_content"] == "long text"

import json
from datetime import datetime, timezone

import pytest

from ragcode.domain import (
    ChunkType,
    CodeChunk,
    IndexingJob,
    JobStatus,
    SearchQuery,
    SearchResult,
)


def test_code_chunk_json_round_trip():
    chunk = CodeChunk(
        id="123",
        file_path="main.go",
        language="go",
        content="func main() {}",
        chunk_type=ChunkType.FUNCTION,
        start_line=1,
        end_line=10,
        metadata={"author": "me"},
        created_at=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
    )
    parsed = CodeChunk.from_dict(json.loads(json.dumps(chunk.to_dict())))
    assert parsed.id == "123"
    assert parsed.chunk_type is ChunkType.FUNCTION
    assert parsed.metadata == {"author": "me"}
    assert parsed.created_at == chunk.created_at
    assert parsed == chunk


def test_code_chunk_embedding_omitted_when_empty():
    assert "embedding" not in CodeChunk(id="1").to_dict()
    assert CodeChunk(id="1", embedding=[0.5]).to_dict()["embedding"] == [0.5]


def test_code_chunk_parses_utc_suffix():
    parsed = CodeChunk.from_dict({"id": "x", "created_at": "2024-01-02T03:04:05Z"})
    assert parsed.created_at == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_search_result_score():
    res = SearchResult(chunk=CodeChunk(id="1"), relevance_score=0.9)
    assert res.relevance_score == 0.9


def test_search_result_to_dict_hides_score_and_zero_scores():
    data = SearchResult(chunk=CodeChunk(id="1"), score=3.0, source="vector", relevance_score=0.4).to_dict()
    assert "score" not in data
    assert "vector_score" not in data
    assert "keyword_score" not in data
    assert data["relevance_score"] == 0.4
    assert data["chunk"]["id"] == "1"


def test_search_query_from_dict():
    query = SearchQuery.from_dict({"query": "how", "max_results": 3, "filters": {"a": "b"}, "extra": 1})
    assert query == SearchQuery(query="how", max_results=3, filters={"a": "b"})


@pytest.mark.parametrize(
    "data",
    ["invalid json", {"query": 5}, {"max_results": "many"}, {"max_results": True}, {"filters": {"a": 1}}],
)
def test_search_query_from_dict_rejects_bad_input(data):
    with pytest.raises(ValueError):
        SearchQuery.from_dict(data)


def test_indexing_job_defaults_to_pending():
    assert IndexingJob(id="j").status is JobStatus.PENDING
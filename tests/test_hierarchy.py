from ragcode.domain import CodeChunk, SearchResult
from ragcode.hierarchy import HierarchicalFilter


def _result(chunk_id, path, score):
    return SearchResult(chunk=CodeChunk(id=chunk_id, file_path=path), relevance_score=score)


def test_process():
    f = HierarchicalFilter(2)
    results = [
        _result("1", "file1.go", 0.9),
        _result("2", "file1.go", 0.8),
        _result("3", "file1.go", 0.7),
        _result("4", "file2.go", 0.85),
    ]
    filtered = f.process(results)
    assert len(filtered) == 3
    assert "3" not in [r.chunk.id for r in filtered]
    assert [r.chunk.id for r in filtered] == ["1", "4", "2"]


def test_empty():
    f = HierarchicalFilter(2)
    assert f.process(None) == []
    assert f.process([]) == []


def test_non_positive_limit_defaults_to_three():
    f = HierarchicalFilter(0)
    assert f.max_results_per_file == 3
    results = [_result(str(i), "a.go", i / 10) for i in range(5)]
    assert [r.chunk.id for r in f.process(results)] == ["4", "3", "2"]
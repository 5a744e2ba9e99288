"""Per-file filtering of search results to keep retrieved context diverse."""

from __future__ import annotations

from collections import defaultdict

from ragcode.domain import SearchResult


def _relevance(result: SearchResult) -> float:
    return result.relevance_score


class HierarchicalFilter:
    """Keeps at most a fixed number of the best results from each file."""

    def __init__(self, max_results_per_file: int = 3) -> None:
        self.max_results_per_file = max_results_per_file if max_results_per_file > 0 else 3

    def process(self, results: list[SearchResult] | None) -> list[SearchResult]:
        """Return the top results of each file, ordered by relevance."""
        if not results:
            return list(results or [])

        by_file: dict[str, list[SearchResult]] = defaultdict(list)
        for result in results:
            by_file[result.chunk.file_path].append(result)

        filtered = [
            result
            for file_results in by_file.values()
            for result in sorted(file_results, key=_relevance, reverse=True)[: self.max_results_per_file]
        ]
        filtered.sort(key=_relevance, reverse=True)
        return filtered
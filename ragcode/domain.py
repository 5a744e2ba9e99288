"""Core data types shared across indexing and retrieval."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping


class ChunkType(str, Enum):
    """Kind of code a chunk holds."""

    FUNCTION = "function"
    CLASS = "class"
    METHOD = "method"
    IMPORT = "import"
    COMMENT = "comment"
    OTHER = "other"


class JobStatus(str, Enum):
    """State of an indexing job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


def _format_time(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_time(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@dataclass
class CodeChunk:
    """A semantically meaningful piece of code."""

    id: str = ""
    file_path: str = ""
    language: str = ""
    content: str = ""
    chunk_type: ChunkType = ChunkType.OTHER
    start_line: int = 0
    end_line: int = 0
    metadata: dict[str, str] = field(default_factory=dict)
    dependencies: list[str] = field(default_factory=list)
    embedding: list[float] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form of the chunk."""
        data: dict[str, Any] = {
            "id": self.id,
            "file_path": self.file_path,
            "language": self.language,
            "content": self.content,
            "chunk_type": ChunkType(self.chunk_type).value,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "metadata": dict(self.metadata),
            "dependencies": list(self.dependencies),
            "created_at": _format_time(self.created_at),
            "updated_at": _format_time(self.updated_at),
        }
        if self.embedding:
            data["embedding"] = list(self.embedding)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CodeChunk:
        """Build a chunk from its JSON form."""
        embedding = data.get("embedding") or []
        return cls(
            id=str(data.get("id") or ""),
            file_path=str(data.get("file_path") or ""),
            language=str(data.get("language") or ""),
            content=str(data.get("content") or ""),
            chunk_type=ChunkType(data.get("chunk_type") or ChunkType.OTHER),
            start_line=int(data.get("start_line") or 0),
            end_line=int(data.get("end_line") or 0),
            metadata={str(k): str(v) for k, v in (data.get("metadata") or {}).items()},
            dependencies=[str(d) for d in data.get("dependencies") or []],
            embedding=[float(x) for x in embedding],
            created_at=_parse_time(data.get("created_at")),
            updated_at=_parse_time(data.get("updated_at")),
        )


_QUERY_FIELDS: dict[str, type] = {
    "query": str,
    "language": str,
    "file_path": str,
    "max_results": int,
    "filters": dict,
}


@dataclass
class SearchQuery:
    """A user's query against the indexed code."""

    query: str = ""
    language: str = ""
    file_path: str = ""
    max_results: int = 0
    filters: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> SearchQuery:
        """Build a query from decoded JSON, rejecting values of the wrong type."""
        if not isinstance(data, Mapping):
            raise ValueError("search query must be a JSON object")
        values: dict[str, Any] = {}
        for name, expected in _QUERY_FIELDS.items():
            value = data.get(name)
            if value is None:
                continue
            if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
                raise ValueError(f"field {name!r} must be of type {expected.__name__}")
            values[name] = value
        filters = values.get("filters", {})
        if not all(isinstance(v, str) for v in filters.values()):
            raise ValueError("field 'filters' must map strings to strings")
        values["filters"] = dict(filters)
        return cls(**values)


@dataclass
class SearchResult:
    """A single retrieved chunk with its scores."""

    chunk: CodeChunk | None = None
    score: float = 0.0
    source: str = ""
    vector_score: float = 0.0
    keyword_score: float = 0.0
    relevance_score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form; the internal score is left out."""
        data: dict[str, Any] = {
            "chunk": self.chunk.to_dict() if self.chunk is not None else None,
            "source": self.source,
        }
        if self.vector_score:
            data["vector_score"] = self.vector_score
        if self.keyword_score:
            data["keyword_score"] = self.keyword_score
        data["relevance_score"] = self.relevance_score
        return data


@dataclass
class RetrievalContext:
    """Search results and metadata assembled for answer generation."""

    query: str = ""
    results: list[SearchResult] = field(default_factory=list)
    total_tokens: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class IndexingJob:
    """A code indexing task and its progress."""

    id: str = ""
    path: str = ""
    status: JobStatus = JobStatus.PENDING
    progress: float = 0.0
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error: str = ""
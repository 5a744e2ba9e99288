"""Splitting and merging of parsed code chunks along semantic boundaries."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from ragcode.domain import ChunkType, CodeChunk

logger = logging.getLogger(__name__)

OVERLAP_MARKER = "// ...context...\n"
"""Prefix placed before the overlap carried into the next sub-chunk."""

_DECLARATIONS = frozenset({ChunkType.FUNCTION, ChunkType.CLASS, ChunkType.METHOD})
_OPENERS = frozenset("{([")
_CLOSERS = frozenset("})]")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SemanticChunker:
    """Merges doc comments into their declarations and splits oversized chunks."""

    def __init__(self, max_size: int, overlap: int) -> None:
        self.max_size = max_size
        self.overlap = overlap

    def chunk(self, chunks: Iterable[CodeChunk], max_size: int = 0) -> list[CodeChunk]:
        """Merge related chunks, then split any larger than ``max_size`` characters.

        A ``max_size`` of zero uses the chunker's own limit.
        """
        if max_size == 0:
            max_size = self.max_size

        now = _now()
        result: list[CodeChunk] = []
        for chunk in self.merge_related_chunks(list(chunks)):
            if chunk.created_at is None:
                chunk.created_at = now
            chunk.updated_at = now
            if chunk.metadata is None:
                chunk.metadata = {}
            self._preserve_metadata(chunk)
            chunk.id = self.generate_chunk_id(chunk)

            if len(chunk.content) <= max_size:
                result.append(chunk)
                continue

            parts = self._split_large_chunk(chunk, max_size)
            logger.debug(
                "Split large chunk: file=%s original_size=%d sub_chunks=%d",
                chunk.file_path,
                len(chunk.content),
                len(parts),
            )
            result.extend(parts)
        return result

    def merge_related_chunks(self, chunks: list[CodeChunk]) -> list[CodeChunk]:
        """Join each comment with the function, class or method right after it."""
        result: list[CodeChunk] = []
        pending: CodeChunk | None = None
        for chunk in chunks:
            if pending is not None:
                if chunk.chunk_type in _DECLARATIONS:
                    result.append(self._merge_two(pending, chunk))
                    pending = None
                    continue
                result.append(pending)
                pending = None
            if chunk.chunk_type == ChunkType.COMMENT:
                pending = chunk
            else:
                result.append(chunk)
        if pending is not None:
            result.append(pending)
        return result

    def generate_chunk_id(self, chunk: CodeChunk) -> str:
        """Return a deterministic identifier from the chunk's location and content."""
        data = f"{chunk.file_path}:{chunk.start_line}:{chunk.end_line}:{chunk.content}"
        return hashlib.sha256(data.encode("utf-8")).digest()[:16].hex()

    def _merge_two(self, comment: CodeChunk, code: CodeChunk) -> CodeChunk:
        metadata = {**(comment.metadata or {}), **(code.metadata or {})}
        metadata["merged_from_comment"] = "true"
        now = _now()
        merged = CodeChunk(
            file_path=code.file_path,
            language=code.language,
            content=comment.content + "\n" + code.content,
            chunk_type=code.chunk_type,
            start_line=comment.start_line,
            end_line=code.end_line,
            metadata=metadata,
            dependencies=list(comment.dependencies) + list(code.dependencies),
            created_at=now,
            updated_at=now,
        )
        merged.id = self.generate_chunk_id(merged)
        return merged

    @staticmethod
    def _preserve_metadata(chunk: CodeChunk) -> None:
        metadata = chunk.metadata
        metadata.setdefault("chunk_type", ChunkType(chunk.chunk_type).value)
        metadata.setdefault("language", chunk.language)
        metadata.setdefault("file_path", chunk.file_path)
        name = metadata.get("name")
        if name:
            metadata["symbol_name"] = name

    def _split_large_chunk(self, chunk: CodeChunk, max_size: int) -> list[CodeChunk]:
        content = chunk.content
        step = self._step(max_size)
        parts: list[CodeChunk] = []
        carried = ""
        start = 0
        while start < len(content):
            end = min(start + max_size, len(content))
            break_point = self._break_point(content, start, end, max_size)
            piece = content[start:break_point]
            parts.append(self._sub_chunk(chunk, carried + piece, start))

            if break_point >= len(content):
                break
            if self.overlap > 0 and piece:
                carried = OVERLAP_MARKER + piece[max(len(piece) - self.overlap, 0):]
            start = max(start + step, start + 1)
        return parts

    def _step(self, max_size: int) -> int:
        step = max_size - self.overlap
        if step < 1:
            step = max_size // 2
        return max(step, 1)

    @staticmethod
    def _break_point(content: str, start: int, end: int, max_size: int) -> int:
        """Prefer a block end, then a blank line, then a late newline, then the hard end."""
        if end >= len(content):
            return end
        window = content[start:end]

        block_end = SemanticChunker._block_boundary(window)
        if block_end is not None:
            return start + block_end

        blank = window.rfind("\n\n")
        if blank > 0:
            return start + blank + 2

        search_range = max_size // 5
        if search_range > 0:
            newline = window.rfind("\n")
            if newline != -1 and newline > max_size - search_range:
                return start + newline + 1
        return end

    @staticmethod
    def _block_boundary(window: str) -> int | None:
        """Return the offset just after the last bracket closing back to depth zero."""
        depth = 0
        last_zero = -1
        for offset, char in enumerate(window):
            if char in _OPENERS:
                depth += 1
            elif char in _CLOSERS:
                depth -= 1
                if depth <= 0:
                    depth = 0
                    last_zero = offset + 1
        if 0 < last_zero < len(window):
            return last_zero
        return None

    def _sub_chunk(self, original: CodeChunk, content: str, offset: int) -> CodeChunk:
        start_line = original.start_line + original.content[:offset].count("\n")
        end_line = start_line + content.count("\n")
        metadata = dict(original.metadata)
        metadata["start_line"] = str(start_line)
        metadata["end_line"] = str(end_line)
        now = _now()
        sub = CodeChunk(
            file_path=original.file_path,
            language=original.language,
            content=content,
            chunk_type=original.chunk_type,
            start_line=start_line,
            end_line=end_line,
            metadata=metadata,
            dependencies=list(original.dependencies),
            created_at=now,
            updated_at=now,
        )
        sub.id = self.generate_chunk_id(sub)
        return sub
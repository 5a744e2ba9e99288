"""Pattern-based and line-window parsing of source files in many languages."""

from __future__ import annotations

import hashlib
import logging
import re
from pathlib import Path

from ragcode.domain import ChunkType, CodeChunk
from ragcode.errors import ErrorType, wrap
from ragcode.go_parser import detect_language

logger = logging.getLogger(__name__)

GENERIC_CHUNK_SIZE = 50
"""Lines per generic chunk."""
GENERIC_CHUNK_OVERLAP = 5
"""Lines shared by consecutive generic chunks."""

_FLAGS = re.MULTILINE | re.ASCII


def _compile(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(pattern, _FLAGS) for pattern in patterns)


# Each pattern matches the start of a top-level declaration.
LANGUAGE_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    "python": _compile(r"^(async\s+def\s+\w+|def\s+\w+|class\s+\w+)"),
    "javascript": _compile(
        r"^(export\s+)?(async\s+)?function\s+\w+",
        r"^(export\s+)?(default\s+)?class\s+\w+",
        r"^(export\s+)?(const|let|var)\s+\w+\s*=\s*(async\s+)?\(",
        r"^(export\s+)?(const|let|var)\s+\w+\s*=\s*(async\s+)?function",
    ),
    "typescript": _compile(
        r"^(export\s+)?(async\s+)?function\s+\w+",
        r"^(export\s+)?(abstract\s+)?class\s+\w+",
        r"^(export\s+)?interface\s+\w+",
        r"^(export\s+)?type\s+\w+\s*=",
        r"^(export\s+)?(const|let|var)\s+\w+\s*=\s*(async\s+)?\(",
    ),
    "java": _compile(
        r"^\s*(public|private|protected|static|final|abstract|synchronized)[\w\s<>\[\]]*\s+\w+\s*\(",
        r"^\s*(public|private|protected)?\s*(abstract\s+)?class\s+\w+",
        r"^\s*(public\s+)?interface\s+\w+",
        r"^\s*(public\s+)?enum\s+\w+",
    ),
    "kotlin": _compile(
        r"^\s*(suspend\s+)?fun\s+\w+",
        r"^\s*(data\s+|sealed\s+|abstract\s+|open\s+)?class\s+\w+",
        r"^\s*object\s+\w+",
        r"^\s*interface\s+\w+",
    ),
    "swift": _compile(
        r"^\s*(public|private|internal|open|fileprivate)?\s*(static\s+|class\s+)?(func)\s+\w+",
        r"^\s*(public|private|internal|open)?\s*(final\s+)?class\s+\w+",
        r"^\s*struct\s+\w+",
        r"^\s*protocol\s+\w+",
        r"^\s*enum\s+\w+",
    ),
    "rust": _compile(
        r"^\s*(pub(\([\w:]+\))?\s+)?(async\s+)?fn\s+\w+",
        r"^\s*(pub(\([\w:]+\))?\s+)?struct\s+\w+",
        r"^\s*(pub(\([\w:]+\))?\s+)?enum\s+\w+",
        r"^\s*(pub(\([\w:]+\))?\s+)?trait\s+\w+",
        r"^\s*impl(\s*<[^>]*>)?\s+\w+",
    ),
    "cpp": _compile(
        r"^[\w:*&<>\s]+\s+\w+\s*\([^;]*\)\s*(\{|$)",
        r"^\s*(class|struct)\s+\w+",
        r"^\s*namespace\s+\w+",
    ),
    "c": _compile(
        r"^[\w*\s]+\s+\w+\s*\([^;]*\)\s*\{",
        r"^\s*(struct|enum|union)\s+\w+",
    ),
    "csharp": _compile(
        r"^\s*(public|private|protected|internal|static|virtual|override|abstract|async)[\w\s<>\[\]]*\s+\w+\s*\(",
        r"^\s*(public|private|protected|internal)?\s*(abstract\s+|sealed\s+)?class\s+\w+",
        r"^\s*(public\s+)?interface\s+\w+",
        r"^\s*(public\s+)?enum\s+\w+",
        r"^\s*namespace\s+[\w.]+",
    ),
    "scala": _compile(
        r"^\s*(def)\s+\w+",
        r"^\s*(case\s+|abstract\s+|sealed\s+)?class\s+\w+",
        r"^\s*object\s+\w+",
        r"^\s*trait\s+\w+",
    ),
    "ruby": _compile(
        r"^\s*def\s+\w+",
        r"^\s*class\s+\w+",
        r"^\s*module\s+\w+",
    ),
    "php": _compile(
        r"^\s*(public|private|protected|static)?\s*function\s+\w+",
        r"^\s*(abstract\s+|final\s+)?class\s+\w+",
        r"^\s*interface\s+\w+",
        r"^\s*trait\s+\w+",
    ),
    "shell": _compile(
        r"^\s*\w[\w-]*\s*\(\s*\)\s*\{",
        r"^\s*function\s+\w+",
    ),
    "lua": _compile(
        r"^\s*(local\s+)?function\s+\w+",
        r"^\s*(local\s+)?\w+\s*=\s*function",
        r"^\s*function\s+\w+\.\w+",
    ),
    "dart": _compile(
        r"^\s*(async\s+)?[\w<>]*\s+\w+\s*\([^)]*\)\s*(\{|=>)",
        r"^\s*(abstract\s+|final\s+)?class\s+\w+",
        r"^\s*enum\s+\w+",
        r"^\s*mixin\s+\w+",
        r"^\s*extension\s+\w+",
    ),
    "haskell": _compile(
        r"^\s*\w[\w']*\s*::",
        r"^\s*(data|newtype|type)\s+\w+",
        r"^\s*class\s+\w+",
        r"^\s*instance\s+[\w.]+",
    ),
    "elixir": _compile(
        r"^\s*def\s+\w+",
        r"^\s*defp\s+\w+",
        r"^\s*defmodule\s+\w+",
        r"^\s*defprotocol\s+\w+",
        r"^\s*defimpl\s+\w+",
    ),
    "clojure": _compile(
        r"^\s*\(defn\s+\w+",
        r"^\s*\(defn-\s+\w+",
        r"^\s*\(def\s+\w+",
        r"^\s*\(defmacro\s+\w+",
        r"^\s*\(defprotocol\s+\w+",
        r"^\s*\(defrecord\s+\w+",
        r"^\s*\(defmulti\s+\w+",
    ),
}

_CLASS_MARKERS = (
    "class ", "interface ", "trait ", "protocol ", "struct ", "enum ", "impl ",
)

_NAME_PREFIXES = (
    "export default ", "export ", "public ", "private ", "protected ",
    "static ", "async ", "abstract ", "final ", "sealed ", "open ",
    "suspend ", "override ", "virtual ", "pub ", "async fn ", "fn ",
    "def ", "class ", "function ", "func ", "fun ", "struct ",
    "interface ", "trait ", "enum ", "impl ", "object ", "module ",
    "namespace ", "type ",
)

_NAME_END = re.compile(r"[ \t(<{:\[=]")


def chunk_type_for_line(line: str) -> ChunkType:
    """Return the chunk type suggested by a declaration's first line."""
    lower = line.strip().lower()
    if any(marker in lower for marker in _CLASS_MARKERS):
        return ChunkType.CLASS
    return ChunkType.FUNCTION


def chunk_id(file_path: str, start_line: int) -> str:
    """Return a stable identifier for the chunk starting at a line of a file."""
    digest = hashlib.sha256(f"{file_path}:{start_line}".encode()).digest()
    return digest[:8].hex()


def extract_name(line: str) -> str:
    """Pull the declared identifier out of a declaration's first line."""
    line = line.strip()
    for prefix in _NAME_PREFIXES:
        if line.lower().startswith(prefix):
            line = line[len(prefix):]
    match = _NAME_END.search(line)
    if match is not None and match.start() > 0:
        return line[: match.start()]
    return line[:64]


def _read_source(file_path: str) -> str:
    try:
        raw = Path(file_path).read_bytes()
    except OSError as exc:
        raise wrap(exc, ErrorType.EXTERNAL, "failed to read file") from exc
    return raw.decode("utf-8", errors="replace")


def _window_chunks(
    file_path: str, language: str, content: str, size: int, overlap: int
) -> list[CodeChunk]:
    lines = content.split("\n")
    total = len(lines)
    size = max(size, 1)
    step = max(size - overlap, 1)

    chunks: list[CodeChunk] = []
    for start in range(0, total, step):
        end = min(start + size, total)
        text = "\n".join(lines[start:end])
        if text.strip():
            chunks.append(
                CodeChunk(
                    id=chunk_id(file_path, start + 1),
                    file_path=file_path,
                    language=language,
                    content=text,
                    chunk_type=ChunkType.OTHER,
                    start_line=start + 1,
                    end_line=end,
                    metadata={},
                )
            )
        if end >= total:
            break
    return chunks


def generic_chunk(file_path: str, language: str, content: str) -> list[CodeChunk]:
    """Split text into overlapping fixed-size line windows, skipping blank ones."""
    return _window_chunks(
        file_path, language, content, GENERIC_CHUNK_SIZE, GENERIC_CHUNK_OVERLAP
    )


def _match_lines(lines: list[str], patterns: tuple[re.Pattern[str], ...]) -> list[int]:
    return sorted(
        index
        for index, line in enumerate(lines)
        if any(pattern.search(line) for pattern in patterns)
    )


class RegexParser:
    """Splits source files at declarations found by per-language patterns."""

    def parse(self, file_path: str) -> list[CodeChunk]:
        """Return one chunk per matched declaration, or line windows as a fallback."""
        content = _read_source(file_path)
        language = detect_language(file_path)
        patterns = LANGUAGE_PATTERNS.get(language)
        if patterns is None:
            return generic_chunk(file_path, language, content)

        lines = content.split("\n")
        starts = _match_lines(lines, patterns)
        if not starts:
            logger.debug(
                "No semantic patterns matched, using generic chunking: path=%s lang=%s",
                file_path,
                language,
            )
            return generic_chunk(file_path, language, content)

        ends = starts[1:] + [len(lines)]
        chunks: list[CodeChunk] = []
        for start, end in zip(starts, ends):
            while end > start + 1 and not lines[end - 1].strip():
                end -= 1
            text = "\n".join(lines[start:end])
            if not text.strip():
                continue
            first = lines[start]
            chunks.append(
                CodeChunk(
                    id=chunk_id(file_path, start + 1),
                    file_path=file_path,
                    language=language,
                    content=text,
                    chunk_type=chunk_type_for_line(first),
                    start_line=start + 1,
                    end_line=end,
                    metadata={"name": extract_name(first)},
                )
            )

        logger.debug(
            "Parsed file with regex parser: path=%s lang=%s chunks=%d",
            file_path,
            language,
            len(chunks),
        )
        return chunks


class GenericParser:
    """Splits any text file into fixed-size overlapping line windows."""

    def __init__(
        self, chunk_size: int = GENERIC_CHUNK_SIZE, overlap: int = GENERIC_CHUNK_OVERLAP
    ) -> None:
        self.chunk_size = chunk_size
        self.overlap = overlap

    def parse(self, file_path: str) -> list[CodeChunk]:
        """Return the line-window chunks of the file."""
        content = _read_source(file_path)
        language = detect_language(file_path)
        chunks = _window_chunks(file_path, language, content, self.chunk_size, self.overlap)
        logger.debug(
            "Parsed file with generic parser: path=%s lang=%s chunks=%d",
            file_path,
            language,
            len(chunks),
        )
        return chunks
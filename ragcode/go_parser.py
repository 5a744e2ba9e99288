"""Extraction of top-level declarations from Go source files."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from ragcode.domain import ChunkType, CodeChunk
from ragcode.errors import ErrorType, wrap

logger = logging.getLogger(__name__)

_KEYWORDS = frozenset(
    {
        "break", "case", "chan", "const", "continue", "default", "defer", "else",
        "fallthrough", "for", "func", "go", "goto", "if", "import", "interface",
        "map", "package", "range", "return", "select", "struct", "switch", "type", "var",
    }
)
_DECLARATION_KEYWORDS = frozenset({"func", "type", "import", "var", "const"})
_SEMICOLON_KEYWORDS = frozenset({"break", "continue", "fallthrough", "return"})
_SEMICOLON_OPERATORS = frozenset({"++", "--", ")", "]", "}"})
_OPERATORS = sorted(
    [
        "<<=", ">>=", "&^=", "...", "&&", "||", "<-", "++", "--", "==", "!=", "<=",
        ">=", ":=", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<", ">>", "&^",
        "+", "-", "*", "/", "%", "&", "|", "^", "<", ">", "=", "!", "~",
        "(", ")", "[", "]", "{", "}", ",", ";", ".", ":",
    ],
    key=len,
    reverse=True,
)
_OPEN = {"(": ")", "[": "]", "{": "}"}
_CLOSE = frozenset(_OPEN.values())

_IDENT = re.compile(r"[^\W\d]\w*")
_NUMBER = re.compile(r"\.?[0-9](?:[eEpP][+-]|[0-9A-Za-z_.])*")

_LANGUAGES: dict[str, str] = {
    ".go": "go",
    ".py": "python", ".pyw": "python", ".pyi": "python",
    ".js": "javascript", ".mjs": "javascript", ".cjs": "javascript", ".jsx": "javascript",
    ".ts": "typescript", ".tsx": "typescript",
    ".java": "java",
    ".kt": "kotlin", ".kts": "kotlin",
    ".swift": "swift",
    ".rs": "rust",
    ".c": "c", ".h": "c",
    ".cpp": "cpp", ".cc": "cpp", ".cxx": "cpp", ".hpp": "cpp", ".hxx": "cpp",
    ".cs": "csharp",
    ".scala": "scala", ".sc": "scala",
    ".rb": "ruby", ".rake": "ruby",
    ".php": "php",
    ".sh": "shell", ".bash": "shell", ".zsh": "shell", ".fish": "shell",
    ".md": "markdown", ".mdx": "markdown", ".rst": "markdown", ".txt": "markdown",
    ".json": "config", ".yaml": "config", ".yml": "config", ".toml": "config",
    ".ini": "config", ".env": "config",
    ".sql": "sql",
    ".lua": "lua",
    ".dart": "dart",
    ".hs": "haskell", ".lhs": "haskell",
    ".ex": "elixir", ".exs": "elixir",
    ".clj": "clojure", ".cljs": "clojure", ".cljc": "clojure",
    ".html": "web", ".htm": "web", ".css": "web", ".scss": "web", ".sass": "web",
    ".less": "web", ".svelte": "web", ".vue": "web",
}


def detect_language(file_path: str) -> str:
    """Return the language name for a file's extension, or "unknown"."""
    base = os.path.basename(file_path)
    dot = base.rfind(".")
    extension = base[dot:].lower() if dot >= 0 else ""
    return _LANGUAGES.get(extension, "unknown")


class _GoSyntaxError(ValueError):
    """Raised when the source is not well-formed Go."""


@dataclass(frozen=True)
class _Token:
    kind: str  # ident, keyword, number, string, char, op, semi
    text: str
    line: int
    end_line: int

    def is_op(self, text: str) -> bool:
        return self.kind == "op" and self.text == text


def _needs_semicolon(token: _Token) -> bool:
    if token.kind in ("ident", "number", "string", "char"):
        return True
    if token.kind == "keyword":
        return token.text in _SEMICOLON_KEYWORDS
    return token.kind == "op" and token.text in _SEMICOLON_OPERATORS


def _scan_quoted(source: str, start: int, quote: str, line: int) -> int:
    """Return the index just past the closing quote of a literal."""
    position = start + 1
    while position < len(source):
        char = source[position]
        if char == "\\":
            if position + 1 < len(source) and source[position + 1] == "\n":
                break
            position += 2
            continue
        if char == quote:
            return position + 1
        if char == "\n":
            break
        position += 1
    raise _GoSyntaxError(f"line {line}: literal not terminated")


def _tokenize(source: str) -> list[_Token]:
    """Split Go source into tokens, inserting semicolons the way Go does."""
    tokens: list[_Token] = []
    position = 0
    line = 1
    length = len(source)

    def insert_semicolon() -> None:
        if tokens and _needs_semicolon(tokens[-1]):
            last = tokens[-1]
            tokens.append(_Token("semi", "\n", last.end_line, last.end_line))

    while position < length:
        char = source[position]
        if char == "\n":
            insert_semicolon()
            line += 1
            position += 1
            continue
        if char in " \t\r":
            position += 1
            continue
        if source.startswith("//", position):
            end = source.find("\n", position)
            position = length if end == -1 else end
            continue
        if source.startswith("/*", position):
            end = source.find("*/", position + 2)
            if end == -1:
                raise _GoSyntaxError(f"line {line}: comment not terminated")
            newlines = source.count("\n", position, end)
            if newlines:
                insert_semicolon()
                line += newlines
            position = end + 2
            continue

        if char in "\"'":
            end = _scan_quoted(source, position, char, line)
            kind = "string" if char == '"' else "char"
            tokens.append(_Token(kind, source[position:end], line, line))
            position = end
            continue
        if char == "`":
            end = source.find("`", position + 1)
            if end == -1:
                raise _GoSyntaxError(f"line {line}: raw string literal not terminated")
            text = source[position : end + 1]
            start_line = line
            line += text.count("\n")
            tokens.append(_Token("string", text, start_line, line))
            position = end + 1
            continue
        if char.isalpha() or char == "_":
            match = _IDENT.match(source, position)
            text = match.group(0) if match else char
            kind = "keyword" if text in _KEYWORDS else "ident"
            tokens.append(_Token(kind, text, line, line))
            position += len(text)
            continue
        if char in "0123456789" or (
            char == "." and position + 1 < length and source[position + 1] in "0123456789"
        ):
            match = _NUMBER.match(source, position)
            text = match.group(0) if match else char
            tokens.append(_Token("number", text, line, line))
            position += len(text)
            continue

        operator = next((op for op in _OPERATORS if source.startswith(op, position)), None)
        if operator is None:
            raise _GoSyntaxError(f"line {line}: illegal character {char!r}")
        kind = "semi" if operator == ";" else "op"
        tokens.append(_Token(kind, operator, line, line))
        position += len(operator)

    insert_semicolon()
    return tokens


def _split_statements(tokens: list[_Token]) -> Iterator[list[_Token]]:
    """Yield the non-empty runs of tokens separated by semicolons at bracket depth zero."""
    stack: list[str] = []
    current: list[_Token] = []
    for token in tokens:
        if token.kind == "op" and token.text in _OPEN:
            stack.append(_OPEN[token.text])
        elif token.kind == "op" and token.text in _CLOSE:
            if not stack or stack.pop() != token.text:
                raise _GoSyntaxError(f"line {token.line}: unexpected {token.text!r}")
        if token.kind == "semi" and not stack:
            if current:
                yield current
                current = []
            continue
        current.append(token)
    if stack:
        raise _GoSyntaxError(f"unexpected end of file, expected {stack[-1]!r}")
    if current:
        yield current


def _matching(tokens: list[_Token], index: int) -> int:
    """Return the index of the bracket closing the one at ``index``."""
    depth = 0
    for position, token in enumerate(tokens[index:], start=index):
        if token.kind != "op":
            continue
        if token.text in _OPEN:
            depth += 1
        elif token.text in _CLOSE:
            depth -= 1
            if depth == 0:
                return position
    raise _GoSyntaxError(f"line {tokens[index].line}: unbalanced {tokens[index].text!r}")


def _receiver_type(tokens: list[_Token]) -> str | None:
    """Return the base type name of a receiver such as ``m *T`` or ``T``."""
    if tokens and tokens[-1].is_op(","):
        tokens = tokens[:-1]
    if len(tokens) >= 2 and tokens[0].kind == "ident" and not (
        tokens[1].is_op(".") or tokens[1].is_op("[")
    ):
        tokens = tokens[1:]
    if len(tokens) == 1 and tokens[0].kind == "ident":
        return tokens[0].text
    if len(tokens) == 2 and tokens[0].is_op("*") and tokens[1].kind == "ident":
        return tokens[1].text
    return None


def _function_body(decl: list[_Token], start: int) -> list[_Token] | None:
    """Return the tokens inside the function body braces, or None without a body."""
    if not decl[-1].is_op("}"):
        return None
    depth = 0
    for position, token in reversed(list(enumerate(decl))):
        if token.kind != "op":
            continue
        if token.text in _CLOSE:
            depth += 1
        elif token.text in _OPEN:
            depth -= 1
            if depth == 0:
                if position < start or (
                    position > 0 and decl[position - 1].text in ("struct", "interface")
                ):
                    return None
                return decl[position + 1 : -1]
    return None


def _extract_calls(body: list[_Token]) -> list[str]:
    """Return the distinct ``f`` and ``x.f`` call targets in a function body."""
    calls: dict[str, None] = {}
    for position, token in enumerate(body):
        if not token.is_op("(") or position == 0:
            continue
        name = body[position - 1]
        if name.kind != "ident":
            continue
        before = body[position - 2] if position >= 2 else None
        if before is not None and before.is_op("."):
            receiver = body[position - 3] if position >= 3 else None
            if receiver is None or receiver.kind != "ident":
                continue
            prior = body[position - 4] if position >= 4 else None
            if prior is not None and prior.is_op("."):
                continue
            calls[f"{receiver.text}.{name.text}"] = None
        elif before is not None and before.is_op("]"):
            continue
        else:
            calls[name.text] = None
    return list(calls)


def _specs(decl: list[_Token]) -> list[list[_Token]]:
    """Return the specs of a general declaration, grouped or single."""
    if len(decl) >= 2 and decl[1].is_op("("):
        close = _matching(decl, 1)
        return list(_split_statements(decl[2:close]))
    return [decl[1:]]


class GoParser:
    """Parses Go files into function, method, type, import and other chunks."""

    def parse(self, file_path: str) -> list[CodeChunk]:
        """Return one chunk per top-level declaration in the file."""
        try:
            raw = Path(file_path).read_bytes()
        except OSError as exc:
            raise wrap(exc, ErrorType.EXTERNAL, "failed to read file") from exc

        content = raw.decode("utf-8", errors="replace")
        source = content[1:] if content.startswith("\ufeff") else content
        try:
            chunks = self._parse_source(file_path, content, source)
        except _GoSyntaxError as exc:
            raise wrap(exc, ErrorType.EXTERNAL, "failed to parse Go file") from exc

        logger.debug("Parsed file %s: %d chunks", file_path, len(chunks))
        return chunks

    def _parse_source(self, file_path: str, content: str, source: str) -> list[CodeChunk]:
        statements = list(_split_statements(_tokenize(source)))
        if not statements:
            raise _GoSyntaxError("expected 'package', found end of file")
        package, *declarations = statements
        if (
            len(package) != 2
            or not (package[0].kind == "keyword" and package[0].text == "package")
            or package[1].kind != "ident"
        ):
            raise _GoSyntaxError(f"line {package[0].line}: expected package clause")

        lines = content.split("\n")
        chunks: list[CodeChunk] = []
        for decl in declarations:
            head = decl[0]
            if head.kind != "keyword" or head.text not in _DECLARATION_KEYWORDS:
                raise _GoSyntaxError(f"line {head.line}: expected declaration, found {head.text!r}")
            start_line, end_line = head.line, decl[-1].end_line
            text = "\n".join(lines[start_line - 1 : end_line])
            if head.text == "func":
                chunk_type, metadata = self._function(decl)
            else:
                chunk_type, metadata = self._general(decl)
            chunks.append(
                CodeChunk(
                    file_path=file_path,
                    language="go",
                    content=text,
                    chunk_type=chunk_type,
                    start_line=start_line,
                    end_line=end_line,
                    metadata=metadata,
                )
            )
        return chunks

    def _function(self, decl: list[_Token]) -> tuple[ChunkType, dict[str, str]]:
        position = 1
        chunk_type = ChunkType.FUNCTION
        receiver = None
        if position < len(decl) and decl[position].is_op("("):
            close = _matching(decl, position)
            receiver_tokens = decl[position + 1 : close]
            if receiver_tokens:
                chunk_type = ChunkType.METHOD
                receiver = _receiver_type(receiver_tokens)
            position = close + 1
        if position >= len(decl) or decl[position].kind != "ident":
            raise _GoSyntaxError(f"line {decl[0].line}: expected function name")

        metadata = {"name": decl[position].text}
        if receiver:
            metadata["receiver"] = receiver
        body = _function_body(decl, position + 1)
        calls = _extract_calls(body) if body else []
        if calls:
            metadata["calls"] = ",".join(calls)
        return chunk_type, metadata

    def _general(self, decl: list[_Token]) -> tuple[ChunkType, dict[str, str]]:
        keyword = decl[0].text
        metadata: dict[str, str] = {}
        if keyword == "type":
            names = []
            for spec in _specs(decl):
                if spec[0].kind != "ident":
                    raise _GoSyntaxError(f"line {spec[0].line}: expected type name")
                names.append(spec[0].text)
            if names:
                metadata["types"] = ",".join(names)
                metadata["name"] = names[0]
            return ChunkType.CLASS, metadata
        if keyword == "import":
            imports = []
            for spec in _specs(decl):
                path = next((t for t in spec if t.kind == "string"), None)
                if path is None:
                    raise _GoSyntaxError(f"line {spec[0].line}: expected import path")
                imports.append(path.text.strip('"'))
            if imports:
                metadata["imports"] = ",".join(imports)
            return ChunkType.IMPORT, metadata
        return ChunkType.OTHER, metadata
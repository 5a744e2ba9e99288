"""Dispatch of files to the parser suited to their language."""

from __future__ import annotations

import logging

from ragcode.domain import CodeChunk
from ragcode.go_parser import GoParser, detect_language
from ragcode.regex_parser import GenericParser, RegexParser

logger = logging.getLogger(__name__)

GENERIC_LANGUAGES = frozenset({"markdown", "config", "sql", "web"})
"""Languages without declaration patterns, split into line windows."""


class MultiParser:
    """Routes Go files to the Go parser, prose and data to line windows, the rest to patterns."""

    def __init__(
        self,
        go_parser: GoParser | None = None,
        regex_parser: RegexParser | None = None,
        generic_parser: GenericParser | None = None,
    ) -> None:
        self.go_parser = go_parser or GoParser()
        self.regex_parser = regex_parser or RegexParser()
        self.generic_parser = generic_parser or GenericParser()

    def parse(self, file_path: str) -> list[CodeChunk]:
        """Parse the file with the parser for its language; unknown files give no chunks."""
        language = detect_language(file_path)
        if language == "go":
            logger.debug("Routing to GoParser: path=%s", file_path)
            return self.go_parser.parse(file_path)
        if language in GENERIC_LANGUAGES:
            logger.debug("Routing to GenericParser: path=%s lang=%s", file_path, language)
            return self.generic_parser.parse(file_path)
        if language != "unknown":
            logger.debug("Routing to RegexParser: path=%s lang=%s", file_path, language)
            return self.regex_parser.parse(file_path)
        return []
"""Construction of a dependency graph from parsed code chunks."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ragcode.domain import ChunkType, CodeChunk
from ragcode.graph import Graph, Node, RelationType

logger = logging.getLogger(__name__)


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Builder:
    """Fills a graph with nodes and import, call and define edges."""

    def __init__(self, graph: Graph | None = None) -> None:
        self.graph = graph if graph is not None else Graph()

    def build(self, chunks: Iterable[CodeChunk]) -> Graph:
        """Add the chunks and their relationships to the graph and return it."""
        chunks = list(chunks)
        for chunk in chunks:
            if chunk.metadata is None:
                chunk.metadata = {}
            self.graph.add_node(
                Node(
                    id=chunk.id,
                    type=ChunkType(chunk.chunk_type).value,
                    name=chunk.metadata.get("name", ""),
                    file_path=chunk.file_path,
                    metadata=chunk.metadata,
                )
            )

        for chunk in chunks:
            self._add_edges_for_chunk(chunk)

        self._add_define_edges(chunks)

        stats = self.graph.stats()
        logger.info("Built dependency graph: nodes=%d edges=%d", stats["nodes"], stats["edges"])
        return self.graph

    def rebuild(self, chunks: Iterable[CodeChunk]) -> Graph:
        """Clear the graph and build it again from the chunks."""
        self.graph.clear()
        return self.build(chunks)

    def _add_edges_for_chunk(self, chunk: CodeChunk) -> None:
        edges_added = 0

        imports = chunk.metadata.get("imports")
        if imports is not None:
            for imp in _split_list(imports):
                for target in self.graph.get_nodes_by_name(imp):
                    self.graph.add_edge(chunk.id, target.id, RelationType.IMPORT)
                    edges_added += 1

        calls = chunk.metadata.get("calls")
        if calls is not None:
            logger.debug("Processing calls for chunk %s: %s", chunk.id, calls)
            for call in _split_list(calls):
                func_name = call.rsplit(".", 1)[-1]
                targets = self.graph.get_nodes_by_name(func_name)
                if not targets and "." in call:
                    targets = self._find_methods_by_receiver(func_name)
                if not targets:
                    logger.debug("No target found for call %s (%s)", call, func_name)
                for target in targets:
                    self.graph.add_edge(chunk.id, target.id, RelationType.CALL)
                    edges_added += 1

        if edges_added == 0 and chunk.metadata.get("calls"):
            logger.debug(
                "No edges created for chunk %s with calls %s",
                chunk.metadata.get("name", ""),
                chunk.metadata["calls"],
            )

    def _add_define_edges(self, chunks: list[CodeChunk]) -> None:
        for chunk in chunks:
            if chunk.chunk_type != ChunkType.METHOD:
                continue
            receiver = chunk.metadata.get("receiver", "")
            if not receiver:
                continue
            for parent in self._find_type_by_name(receiver, chunks):
                self.graph.add_edge(parent.id, chunk.id, RelationType.DEFINE)

    def _find_type_by_name(self, type_name: str, chunks: list[CodeChunk]) -> list[Node]:
        seen: set[str] = set()
        result: list[Node] = []

        for node in self.graph.get_nodes_by_name(type_name):
            if node.type in (ChunkType.CLASS.value, "struct") and node.id not in seen:
                seen.add(node.id)
                result.append(node)

        for chunk in chunks:
            if chunk.chunk_type != ChunkType.CLASS:
                continue
            types = chunk.metadata.get("types")
            if types is None:
                continue
            if any(t.strip() == type_name for t in types.split(",")):
                node = self.graph.get_node(chunk.id)
                if node is not None and node.id not in seen:
                    seen.add(node.id)
                    result.append(node)
        return result

    def _find_methods_by_receiver(self, method_name: str) -> list[Node]:
        return [
            node
            for node in self.graph.get_nodes_by_name(method_name)
            if node.metadata.get("receiver")
        ]
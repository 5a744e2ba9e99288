"""In-memory dependency graph of code entities."""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum


class RelationType(str, Enum):
    """Kind of relationship between two nodes."""

    IMPORT = "import"
    CALL = "call"
    DEFINE = "define"


@dataclass
class Node:
    """A code entity in the graph."""

    id: str
    type: str = ""
    name: str = ""
    file_path: str = ""
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Edge:
    """A directed relationship between two nodes."""

    from_id: str
    to_id: str
    relation: RelationType


class Graph:
    """Thread-safe directed graph with a name index and reverse edge index."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._nodes: dict[str, Node] = {}
        self._edges: defaultdict[str, list[Edge]] = defaultdict(list)
        self._incoming: defaultdict[str, list[Edge]] = defaultdict(list)
        self._index: defaultdict[str, list[str]] = defaultdict(list)

    def add_node(self, node: Node) -> None:
        """Add a node, indexing it by name when it has one."""
        with self._lock:
            self._nodes[node.id] = node
            if node.name:
                self._index[node.name].append(node.id)

    def add_edge(self, from_id: str, to_id: str, relation: RelationType) -> None:
        """Add a directed edge and record it in the reverse index."""
        edge = Edge(from_id, to_id, RelationType(relation))
        with self._lock:
            self._edges[from_id].append(edge)
            self._incoming[to_id].append(edge)

    def get_node(self, node_id: str) -> Node | None:
        """Return the node with this ID, or None."""
        with self._lock:
            return self._nodes.get(node_id)

    def get_nodes_by_name(self, name: str) -> list[Node]:
        """Return every node registered under this name."""
        with self._lock:
            ids = self._index.get(name, [])
            return [self._nodes[i] for i in ids if i in self._nodes]

    def get_related(self, node_id: str, relation: RelationType) -> list[Node]:
        """Return the targets of outgoing edges of the given relation."""
        wanted = RelationType(relation)
        with self._lock:
            return [
                self._nodes[edge.to_id]
                for edge in self._edges.get(node_id, [])
                if edge.relation == wanted and edge.to_id in self._nodes
            ]

    def get_all_related(self, node_id: str) -> list[Node]:
        """Return the distinct targets of all outgoing edges."""
        with self._lock:
            seen: set[str] = set()
            related: list[Node] = []
            for edge in self._edges.get(node_id, []):
                if edge.to_id not in seen and edge.to_id in self._nodes:
                    seen.add(edge.to_id)
                    related.append(self._nodes[edge.to_id])
            return related

    def get_incoming(self, node_id: str, relation: RelationType | str | None = None) -> list[Node]:
        """Return the distinct sources of edges pointing at the node.

        With no relation (None or empty string) every incoming edge counts.
        """
        wanted = RelationType(relation) if relation else None
        with self._lock:
            seen: set[str] = set()
            result: list[Node] = []
            for edge in self._incoming.get(node_id, []):
                if wanted is not None and edge.relation != wanted:
                    continue
                if edge.from_id not in seen and edge.from_id in self._nodes:
                    seen.add(edge.from_id)
                    result.append(self._nodes[edge.from_id])
            return result

    def get_parent_files(self, node_id: str) -> list[str]:
        """Return file paths of nodes that call or import the node."""
        with self._lock:
            users = self.get_incoming(node_id, RelationType.CALL) + self.get_incoming(
                node_id, RelationType.IMPORT
            )
        files: list[str] = []
        for node in users:
            if node.file_path and node.file_path not in files:
                files.append(node.file_path)
        return files

    def clear(self) -> None:
        """Remove all nodes and edges."""
        with self._lock:
            self._nodes.clear()
            self._edges.clear()
            self._incoming.clear()
            self._index.clear()

    def stats(self) -> dict[str, int]:
        """Return node and edge counts."""
        with self._lock:
            return {
                "nodes": len(self._nodes),
                "edges": sum(len(edges) for edges in self._edges.values()),
            }
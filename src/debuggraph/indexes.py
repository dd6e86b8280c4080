"""Derived indexes over the debugging graph.

Four lookups kept in step with every mutation and rebuildable from scratch:
- error_type_index: error-type token -> problem node IDs ("other" when untyped)
- nodes_by_type: node type -> node IDs
- edges_by_node: node ID -> incoming / outgoing edges
- parent_index: child node ID -> parent node ID (structural edges only)

The incremental path (index_node / index_edge) and the full rebuild share the
same helpers, so both produce identical contents.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from .constants import OTHER_ERROR_BUCKET
from .error_types import extract_error_type
from .models import Edge, Node, is_structural

logger = logging.getLogger(__name__)


@dataclass
class NodeEdges:
    """Edges touching one node, in insertion order."""

    incoming: list[Edge] = field(default_factory=list)
    outgoing: list[Edge] = field(default_factory=list)


@dataclass
class GraphIndexes:
    """Index Maintainer for nodes and edges."""

    error_type_index: dict[str, set[str]] = field(default_factory=dict)
    nodes_by_type: dict[str, set[str]] = field(default_factory=dict)
    edges_by_node: dict[str, NodeEdges] = field(default_factory=dict)
    parent_index: dict[str, str] = field(default_factory=dict)

    # --- Incremental updates ---

    def index_node(self, node: Node) -> None:
        """Register a newly created node."""
        self.nodes_by_type.setdefault(node.type, set()).add(node.id)
        self.edges_by_node.setdefault(node.id, NodeEdges())

        if node.type == "problem":
            bucket = error_bucket(node.content)
            self.error_type_index.setdefault(bucket, set()).add(node.id)
            logger.debug(f"Added node {node.id} to error type index: {bucket}")

    def index_edge(self, edge: Edge) -> None:
        """Register a newly created edge."""
        self.edges_by_node.setdefault(edge.from_id, NodeEdges()).outgoing.append(edge)
        self.edges_by_node.setdefault(edge.to_id, NodeEdges()).incoming.append(edge)

        if is_structural(edge.type):
            self.parent_index[edge.to_id] = edge.from_id

    # --- Full rebuild ---

    def rebuild(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
        """Discard all index contents and rebuild from the given nodes and edges.

        Linear in node + edge count. Nodes must be indexed before edges so
        every node has an edges_by_node entry first.
        """
        self.clear()
        for node in nodes:
            self.index_node(node)
        for edge in edges:
            self.index_edge(edge)

        logger.info(
            f"Indexes built: {len(self.error_type_index)} error types, "
            f"{len(self.nodes_by_type)} node types, {len(self.edges_by_node)} nodes indexed"
        )

    def clear(self) -> None:
        self.error_type_index.clear()
        self.nodes_by_type.clear()
        self.edges_by_node.clear()
        self.parent_index.clear()

    # --- Lookups ---

    @property
    def is_built(self) -> bool:
        """False until at least one problem has been classified."""
        return bool(self.error_type_index)

    def node_ids_of_type(self, node_type: str) -> set[str]:
        return self.nodes_by_type.get(node_type, set())

    def edges_of(self, node_id: str) -> NodeEdges:
        return self.edges_by_node.get(node_id) or NodeEdges()

    def parent_of(self, node_id: str) -> str | None:
        return self.parent_index.get(node_id)

    def problems_with_error_type(self, error_type: str | None) -> set[str]:
        """Problem IDs in the bucket for ``error_type`` (None means "other")."""
        return self.error_type_index.get(error_type or OTHER_ERROR_BUCKET, set())

    # --- Comparison ---

    def snapshot(self) -> dict:
        """Plain, order-insensitive view of the index contents (edges by ID)."""
        return {
            "error_type_index": {k: set(v) for k, v in self.error_type_index.items()},
            "nodes_by_type": {k: set(v) for k, v in self.nodes_by_type.items()},
            "edges_by_node": {
                node_id: (
                    [e.id for e in entry.incoming],
                    [e.id for e in entry.outgoing],
                )
                for node_id, entry in self.edges_by_node.items()
            },
            "parent_index": dict(self.parent_index),
        }


def error_bucket(content: str) -> str:
    """Error-type index key for a problem's content."""
    return extract_error_type(content) or OTHER_ERROR_BUCKET

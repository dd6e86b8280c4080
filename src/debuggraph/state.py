"""Graph Store: the materialized debugging graph.

Holds nodes, edges, roots and graph-level counters, and keeps the derived
indexes (see ``indexes``) in step with every mutation. Structural checks
(endpoint existence, auto-edge inference) are enforced by the engine before
anything reaches ``add_node`` / ``add_edge``. Replay from disk goes through
``materialize`` and trusts the log.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, TypeVar

from .indexes import GraphIndexes
from .models import CONFLICTING_EDGE_TYPES, Edge, GraphMetadata, Node, utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class GraphState:
    """Materialized state of the debugging graph."""

    nodes: dict[str, Node] = field(default_factory=dict)  # id -> Node
    edges: dict[str, Edge] = field(default_factory=dict)  # id -> Edge
    roots: list[str] = field(default_factory=list)
    metadata: GraphMetadata = field(default_factory=GraphMetadata)
    indexes: GraphIndexes = field(default_factory=GraphIndexes)

    # --- Mutations ---

    def add_node(self, node: Node, is_root: bool = False) -> None:
        """Insert a node and index it. Roots are recorded in creation order."""
        self.nodes[node.id] = node
        if is_root and node.id not in self.roots:
            self.roots.append(node.id)
        self.indexes.index_node(node)
        self.touch()

    def add_edge(self, edge: Edge) -> None:
        """Insert an edge and index it."""
        self.edges[edge.id] = edge
        self.indexes.index_edge(edge)
        self.touch()

    def touch(self) -> None:
        self.metadata.last_modified = utc_now()

    # --- Lookups ---

    def get_node(self, node_id: str | None) -> Node | None:
        if node_id is None:
            return None
        return self.nodes.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self.nodes

    def get_incoming_edges(self, node_id: str) -> list[Edge]:
        return self.indexes.edges_of(node_id).incoming

    def get_outgoing_edges(self, node_id: str) -> list[Edge]:
        return self.indexes.edges_of(node_id).outgoing

    def get_parent_id(self, node_id: str) -> str | None:
        return self.indexes.parent_of(node_id)

    def get_nodes_of_type(self, node_type: str) -> list[Node]:
        return [self.nodes[nid] for nid in self.indexes.node_ids_of_type(node_type) if nid in self.nodes]

    def find_conflicts(self, from_id: str, to_id: str, edge_type: str) -> list[Edge]:
        """Existing edges on the same (from, to) pair that contradict ``edge_type``.

        A ``contradicts`` edge conflicts with ``supports`` and vice versa. Other
        edge types never conflict.
        """
        opposite = CONFLICTING_EDGE_TYPES.get(edge_type)
        if opposite is None:
            return []
        return [
            e
            for e in self.get_outgoing_edges(from_id)
            if e.type == opposite and e.to_id == to_id
        ]

    # --- Index maintenance ---

    def rebuild_indexes(self) -> None:
        """Rebuild all indexes from nodes and edges."""
        self.indexes.rebuild(self.nodes.values(), self.edges.values())

    def check_index_consistency(self) -> list[str]:
        """Compare the live indexes against a fresh rebuild. Returns list of errors.

        This is a debug/test utility to detect index drift after incremental
        updates. An empty list means the indexes are consistent.
        """
        expected = GraphIndexes()
        expected.rebuild(self.nodes.values(), self.edges.values())
        want = expected.snapshot()
        have = self.indexes.snapshot()

        errors: list[str] = []
        for name in ("error_type_index", "nodes_by_type", "parent_index"):
            missing = set(want[name]) - set(have[name])
            extra = set(have[name]) - set(want[name])
            if missing:
                errors.append(f"{name} missing keys: {missing}")
            if extra:
                errors.append(f"{name} has stale keys: {extra}")
            for key in set(want[name]) & set(have[name]):
                if want[name][key] != have[name][key]:
                    errors.append(f"{name}[{key}] mismatch: expected {want[name][key]}, got {have[name][key]}")

        want_adj = want["edges_by_node"]
        have_adj = have["edges_by_node"]
        for node_id in set(want_adj) | set(have_adj):
            if node_id not in have_adj:
                errors.append(f"edges_by_node missing node: {node_id}")
            elif node_id not in want_adj:
                errors.append(f"edges_by_node has stale node: {node_id}")
            elif want_adj[node_id] != have_adj[node_id]:
                exp_in, exp_out = want_adj[node_id]
                got_in, got_out = have_adj[node_id]
                errors.append(
                    f"edges_by_node[{node_id}] mismatch: expected {len(exp_in)} in / {len(exp_out)} out, "
                    f"got {len(got_in)} in / {len(got_out)} out"
                )

        return errors

    def stats(self) -> dict:
        """Counts by node type plus totals."""
        return {
            "total_nodes": len(self.nodes),
            "total_edges": len(self.edges),
            "roots": len(self.roots),
            "session_count": self.metadata.session_count,
            "nodes_by_type": {t: len(ids) for t, ids in sorted(self.indexes.nodes_by_type.items())},
            "error_types": {t: len(ids) for t, ids in sorted(self.indexes.error_type_index.items())},
        }


def replay_latest(records: Iterable[dict], parse: Callable[[dict], T]) -> dict[str, T]:
    """Replay log records into an id -> value map; the last record per id wins.

    Records that have no ``id`` or fail ``parse`` are skipped with a warning.
    Insertion order of the result follows the first appearance of each id.
    """
    latest: dict[str, T] = {}
    for record in records:
        record_id = record.get("id") if isinstance(record, dict) else None
        if not record_id:
            logger.warning(f"Skipping record without id: {record!r}")
            continue
        try:
            latest[record_id] = parse(record)
        except ValueError as e:  # pydantic.ValidationError subclasses ValueError
            logger.warning(f"Skipping malformed record {record_id}: {e}")
    return latest


def materialize(
    node_records: Iterable[dict],
    edge_records: Iterable[dict],
    snapshot: dict | None = None,
) -> GraphState:
    """Rebuild a graph from persisted records and an optional snapshot.

    Roots come from the snapshot when it has them, otherwise from nodes whose
    metadata carries ``isRoot: true``.
    """
    state = GraphState(
        nodes=replay_latest(node_records, Node.model_validate),
        edges=replay_latest(edge_records, Edge.model_validate),
    )

    roots = None
    if snapshot:
        try:
            state.metadata = GraphMetadata.model_validate(snapshot)
        except ValueError as e:
            logger.warning(f"Ignoring unreadable graph metadata: {e}")
        if isinstance(snapshot.get("roots"), list):
            roots = [r for r in snapshot["roots"] if r in state.nodes]

    if roots is None:
        roots = [n.id for n in state.nodes.values() if n.type == "problem" and n.metadata.is_root]
    state.roots = roots

    state.rebuild_indexes()
    return state

"""Read-only query operations on the debugging graph.

Extracted from engine.py to keep queries separate from mutations.
DebugGraphEngine delegates similar-problems, recent-activity and debug-path
reconstruction here.
"""

import logging
from datetime import datetime
from typing import Callable

from .constants import (
    DEFAULT_MIN_SIMILARITY,
    DEFAULT_QUERY_LIMIT,
    DEFAULT_RECENT_LIMIT,
    SIMILARITY_DECIMALS,
)
from .error_types import extract_error_type
from .models import Node
from .similarity import TextSimilarity
from .state import GraphState
from .timeutil import as_utc

logger = logging.getLogger(__name__)


class QueryService:
    """Read-only query operations on the debugging graph.

    Uses a callable accessor to always read current state (not a stale copy).
    """

    def __init__(
        self,
        get_state: Callable[[], GraphState],
        similarity: TextSimilarity | None = None,
    ):
        self._get_state = get_state
        self._similarity = similarity or TextSimilarity()

    # --- Similar problems ---

    def candidate_problems(self, pattern: str) -> list[Node]:
        """Problem nodes worth scoring against ``pattern``.

        Uses the error-type bucket for the pattern ("other" when it has no
        recognizable type). Only when the index holds nothing at all does this
        fall back to scanning every problem node.
        """
        state = self._get_state()
        if not state.indexes.is_built:
            return [n for n in state.nodes.values() if n.type == "problem"]

        error_type = extract_error_type(pattern)
        ids = state.indexes.problems_with_error_type(error_type)
        return [state.nodes[nid] for nid in sorted(ids) if nid in state.nodes]

    def similar_problems(
        self,
        pattern: str = "",
        limit: int = DEFAULT_QUERY_LIMIT,
        min_similarity: float = DEFAULT_MIN_SIMILARITY,
        exclude: set[str] | None = None,
    ) -> list[dict]:
        """Rank past problems against ``pattern``.

        Solved problems come first, then by similarity descending. Each result
        lists the solutions that resolve it, with a debug path for each.
        """
        if limit <= 0:
            return []

        exclude = exclude or set()
        scored: list[tuple[Node, float]] = []
        for node in self.candidate_problems(pattern):
            if node.id in exclude:
                continue
            score = self._similarity.score(pattern, node.content)
            logger.debug(f"Similarity {score:.3f} for problem {node.id}")
            if score >= min_similarity:
                scored.append((node, score))

        scored.sort(key=lambda item: (item[0].metadata.status != "solved", -item[1]))

        return [
            {
                "node_id": node.id,
                "content": node.content,
                "similarity": round(score, SIMILARITY_DECIMALS),
                "error_type": extract_error_type(node.content),
                "status": node.metadata.status,
                "solutions": self.find_solutions(node.id),
            }
            for node, score in scored[:limit]
        ]

    def find_solutions(self, problem_id: str) -> list[dict]:
        """Solutions connected to a problem by ``solves`` edges."""
        state = self._get_state()
        solutions = []
        for edge in state.get_incoming_edges(problem_id):
            if edge.type != "solves":
                continue
            solution = state.get_node(edge.from_id)
            if solution is None or solution.type != "solution":
                continue
            solutions.append({
                "node_id": solution.id,
                "content": solution.content,
                "verified": bool(solution.metadata.verified),
                "debug_path": self.build_debug_path(problem_id, solution.id),
            })
        return solutions

    # --- Debug paths ---

    def build_debug_path(self, problem_id: str, solution_id: str) -> list[str]:
        """Reconstruct the chain of node IDs from a problem to its solution.

        Walks backwards from the solution through parent pointers, falling back
        to the first incoming edge where a node has no parent. Stops at the
        problem, at a dead end, or on revisiting a node. The problem is always
        the first element. Returns [] if the solution does not exist.
        """
        state = self._get_state()
        if not state.has_node(solution_id):
            return []

        path: list[str] = []
        visited: set[str] = set()
        current: str | None = solution_id

        while current is not None and current not in visited:
            visited.add(current)
            path.insert(0, current)
            if current == problem_id:
                break
            parent = state.get_parent_id(current)
            if parent is None:
                incoming = state.get_incoming_edges(current)
                parent = incoming[0].from_id if incoming else None
            current = parent

        if path[0] != problem_id:
            path.insert(0, problem_id)
        return path

    # --- Recent activity ---

    def recent_activity(
        self,
        limit: int = DEFAULT_RECENT_LIMIT,
        since: datetime | None = None,
    ) -> dict:
        """Most recently created nodes with their parent and adjacent edges.

        Nodes created at the same instant are ordered newest-insertion first.
        """
        state = self._get_state()
        if limit <= 0:
            return {"nodes": [], "total_nodes": len(state.nodes)}

        ordered = sorted(
            enumerate(state.nodes.values()),
            key=lambda item: (as_utc(item[1].created_at), item[0]),
            reverse=True,
        )
        if since is not None:
            since = as_utc(since)
            ordered = [(i, n) for i, n in ordered if as_utc(n.created_at) >= since]

        return {
            "nodes": [self._activity_entry(state, node) for _, node in ordered[:limit]],
            "total_nodes": len(state.nodes),
        }

    def _activity_entry(self, state: GraphState, node: Node) -> dict:
        parent = state.get_node(state.get_parent_id(node.id))
        edges = [
            {"type": e.type, "target_node_id": e.other_end(node.id), "direction": "from"}
            for e in state.get_outgoing_edges(node.id)
        ] + [
            {"type": e.type, "target_node_id": e.other_end(node.id), "direction": "to"}
            for e in state.get_incoming_edges(node.id)
        ]
        return {
            "node_id": node.id,
            "type": node.type,
            "content": node.content,
            "created_at": node.created_at.isoformat(),
            "parent": parent.to_summary() if parent else None,
            "edges": edges,
        }

"""Debug graph engine - orchestrates storage, state, and queries."""

import logging
import time
from pathlib import Path

from .constants import (
    CREATE_SIMILAR_LIMIT,
    DEFAULT_HYPOTHESIS_CONFIDENCE,
    DEFAULT_LEARNING_CONFIDENCE,
    DEFAULT_MIN_SIMILARITY,
    DEFAULT_QUERY_LIMIT,
    DEFAULT_RECENT_LIMIT,
    RECOMMENDED_EXPERIMENTS,
    RELATED_PROBLEMS_LIMIT,
)
from .models import (
    CONFLICTING_EDGE_TYPES,
    EDGE_TYPES,
    NODE_TYPES,
    Edge,
    EdgeMetadata,
    Node,
    NodeMetadata,
    auto_edge_type,
    utc_now,
)
from .query import QueryService
from .similarity import TextSimilarity
from .state import GraphState
from .storage import GraphStorage
from .timeutil import parse_time_reference

logger = logging.getLogger(__name__)

QUERY_TYPES = ("similar-problems", "recent-activity")


def _failure(message: str, **extra) -> dict:
    return {"success": False, "message": message, **extra}


class DebugGraphEngine:
    """Main entry point for debug graph operations.

    Single-writer: every create/connect applies its in-memory mutation, then
    appends to the logs before returning. Running two engines against the same
    data directory is not supported.

    A failed append is reported to the caller but the in-memory change is
    kept, so memory and disk can diverge until the next restart.
    """

    def __init__(self, data_dir: Path, similarity: TextSimilarity | None = None):
        self.data_dir = Path(data_dir)
        self.storage = GraphStorage(self.data_dir)
        self.state: GraphState = self.storage.load()
        self.state.metadata.session_count += 1
        logger.info(f"Debug graph session {self.state.metadata.session_count} started in {self.data_dir}")

        # Query service - all read-only operations delegated here
        self._query = QueryService(
            get_state=lambda: self.state,
            similarity=similarity,
        )

    # --- Mutations ---

    def create(
        self,
        node_type: str,
        content: str,
        parent_id: str | None = None,
        metadata: dict | None = None,
    ) -> dict:
        """Create a node, plus an automatic edge from its parent when the
        (parent type, node type) pair has one.

        A missing parent fails the whole call; nothing is created.
        """
        if node_type not in NODE_TYPES:
            return _failure(f"Unknown node type: {node_type}")
        if not isinstance(content, str):
            return _failure("Node content must be a string")
        if parent_id is not None and not isinstance(parent_id, str):
            return _failure("Parent node id must be a string")
        if metadata is not None and not isinstance(metadata, dict):
            return _failure("Invalid metadata: expected an object")

        parent = None
        if parent_id is not None:
            parent = self.state.get_node(parent_id)
            if parent is None:
                return _failure(f"Parent node {parent_id} not found")

        try:
            node_metadata = self._node_metadata(node_type, metadata, has_parent=parent is not None)
        except (ValueError, TypeError) as e:  # pydantic.ValidationError subclasses ValueError
            return _failure(f"Invalid metadata: {e}")

        node = Node(type=node_type, content=content, metadata=node_metadata)
        edge = None
        if parent is not None:
            edge_type = auto_edge_type(parent.type, node_type)
            if edge_type is not None:
                edge = Edge(type=edge_type, from_id=parent.id, to_id=node.id)
            else:
                logger.debug(f"No automatic edge for {parent.type} -> {node_type}")

        self.state.add_node(node, is_root=parent is None and node_type == "problem")
        if edge is not None:
            self.state.add_edge(edge)

        result = {
            "success": True,
            "node_id": node.id,
            "message": self._create_message(node, parent, edge),
        }
        if edge is not None:
            result["edge_id"] = edge.id

        if node_type == "problem":
            similar = self._query.similar_problems(
                content,
                limit=CREATE_SIMILAR_LIMIT,
                min_similarity=DEFAULT_MIN_SIMILARITY,
                exclude={node.id},
            )
            result["similar_problems"] = similar
            result["suggestions"] = {
                "related_problems": [p["node_id"] for p in similar[:RELATED_PROBLEMS_LIMIT]],
            }
        elif node_type == "hypothesis":
            result["suggestions"] = {"recommended_experiments": list(RECOMMENDED_EXPERIMENTS)}
        else:
            result["suggestions"] = {}

        try:
            self.storage.append_node(node)
            if edge is not None:
                self.storage.append_edge(edge)
            self.storage.save_metadata(self.state)
        except OSError as e:
            logger.error(f"Failed to persist node {node.id}: {e}")
            result["success"] = False
            result["message"] = f"Node {node.id} created in memory but not persisted: {e}"

        return result

    def connect(
        self,
        from_id: str,
        to_id: str,
        edge_type: str,
        strength: float | None = None,
        metadata: dict | None = None,
    ) -> dict:
        """Create an explicit edge between two existing nodes.

        Strength is clamped into [0, 1]. A ``supports``/``contradicts`` pair on
        the same endpoints is reported as a conflict but still recorded.
        """
        if edge_type not in EDGE_TYPES:
            return _failure(f"Unknown edge type: {edge_type}")
        if not isinstance(from_id, str) or not isinstance(to_id, str):
            return _failure("Node ids must be strings")
        if metadata is not None and not isinstance(metadata, dict):
            return _failure("Invalid edge metadata: expected an object")

        missing = [nid for nid in (from_id, to_id) if not self.state.has_node(nid)]
        if missing:
            return _failure(f"Node(s) not found: {', '.join(str(m) for m in missing)}")

        try:
            edge = Edge(
                type=edge_type,
                from_id=from_id,
                to_id=to_id,
                strength=strength,
                metadata=EdgeMetadata.model_validate(metadata or {}),
            )
        except (ValueError, TypeError) as e:
            return _failure(f"Invalid edge: {e}")

        conflicts = self.state.find_conflicts(from_id, to_id, edge_type)
        self.state.add_edge(edge)

        source = self.state.nodes[from_id]
        target = self.state.nodes[to_id]
        result = {
            "success": True,
            "edge_id": edge.id,
            "message": f"Connected {source.type} to {target.type} with {edge_type} edge",
        }
        if conflicts:
            opposite = CONFLICTING_EDGE_TYPES[edge_type]
            result["conflicts"] = {
                "conflicting_edges": [
                    {"edge_id": c.id, "type": c.type, "from": c.from_id, "to": c.to_id, "strength": c.strength}
                    for c in conflicts
                ],
                "explanation": (
                    f"This {edge_type} edge conflicts with {len(conflicts)} existing "
                    f"{opposite} edge(s) between the same nodes"
                ),
            }
            logger.info(f"Edge {edge.id} conflicts with {len(conflicts)} existing edge(s)")

        try:
            self.storage.append_edge(edge)
            self.storage.save_metadata(self.state)
        except OSError as e:
            logger.error(f"Failed to persist edge {edge.id}: {e}")
            result["success"] = False
            result["message"] = f"Edge {edge.id} created in memory but not persisted: {e}"

        return result

    # --- Queries ---

    def query(self, query_type: str, parameters: dict | None = None) -> dict:
        """Run a read-only query. Never mutates state."""
        started = time.perf_counter()
        if parameters is not None and not isinstance(parameters, dict):
            return _failure("Invalid query parameters: expected an object")
        params = parameters or {}

        try:
            if query_type == "similar-problems":
                results = self.similar_problems(
                    pattern=str(params.get("pattern") or ""),
                    limit=int(params.get("limit", DEFAULT_QUERY_LIMIT)),
                    min_similarity=float(
                        params.get("min_similarity", params.get("minSimilarity", DEFAULT_MIN_SIMILARITY))
                    ),
                )
            elif query_type == "recent-activity":
                since = params.get("since")
                if since is not None and not isinstance(since, str):
                    return _failure("Invalid query parameters: since must be a string")
                results = self.recent_activity(
                    limit=int(params.get("limit", DEFAULT_RECENT_LIMIT)),
                    since=parse_time_reference(since) if since else None,
                )
            else:
                return _failure(
                    f"Unknown query type: {query_type}. Expected one of: {', '.join(QUERY_TYPES)}"
                )
        except (TypeError, ValueError) as e:
            return _failure(f"Invalid query parameters: {e}")

        return {
            "success": True,
            "query_type": query_type,
            "results": results,
            "query_time_ms": round((time.perf_counter() - started) * 1000, 2),
        }

    def similar_problems(
        self,
        pattern: str = "",
        limit: int = DEFAULT_QUERY_LIMIT,
        min_similarity: float = DEFAULT_MIN_SIMILARITY,
    ) -> list[dict]:
        return self._query.similar_problems(pattern, limit, min_similarity)

    def recent_activity(self, limit: int = DEFAULT_RECENT_LIMIT, since=None) -> dict:
        return self._query.recent_activity(limit, since)

    def build_debug_path(self, problem_id: str, solution_id: str) -> list[str]:
        return self._query.build_debug_path(problem_id, solution_id)

    def get_node(self, node_id: str) -> Node | None:
        return self.state.get_node(node_id)

    def get_stats(self) -> dict:
        return self.state.stats()

    def check_index_consistency(self) -> list[str]:
        return self.state.check_index_consistency()

    # --- Helpers ---

    def _node_metadata(self, node_type: str, metadata: dict | None, has_parent: bool) -> NodeMetadata:
        """Validate caller metadata and apply per-type defaults where unset."""
        meta = NodeMetadata.model_validate(dict(metadata or {}))
        now = utc_now()
        meta.created_at = now
        meta.updated_at = now

        if node_type == "problem":
            if meta.status is None:
                meta.status = "open"
            meta.is_root = not has_parent
        elif node_type == "hypothesis":
            if meta.confidence is None:
                meta.confidence = DEFAULT_HYPOTHESIS_CONFIDENCE
            if meta.testable is None:
                meta.testable = True
        elif node_type == "learning":
            if meta.confidence is None:
                meta.confidence = DEFAULT_LEARNING_CONFIDENCE
        return meta

    def _create_message(self, node: Node, parent: Node | None, edge: Edge | None) -> str:
        message = f"Created {node.type} node"
        if parent is not None:
            if edge is not None:
                message += f" with {edge.type} edge from {parent.type} {parent.id}"
            else:
                message += f" under {parent.type} {parent.id} (no automatic edge for this pair)"
        return message

"""Append-only persistence backed by JSONL files.

The logs are the source of truth; the graph is derived by replaying them.

Layout under the storage root:
    nodes.jsonl          one JSON object per node creation
    edges.jsonl          one JSON object per edge creation
    graph-metadata.json  overwritten snapshot: roots, counts, timestamps, sessions
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from .constants import EDGES_FILE, METADATA_FILE, NODES_FILE
from .state import GraphState, materialize

if TYPE_CHECKING:
    from .models import Edge, Node

logger = logging.getLogger(__name__)


class GraphStorage:
    """Append-only node and edge logs plus a graph snapshot file."""

    def __init__(self, data_dir: Path):
        """Initialize storage.

        Args:
            data_dir: Storage root. Created lazily on the first write.
        """
        self.data_dir = Path(data_dir)
        self.nodes_path = self.data_dir / NODES_FILE
        self.edges_path = self.data_dir / EDGES_FILE
        self.metadata_path = self.data_dir / METADATA_FILE

    # --- Writes ---

    def append_node(self, node: Node) -> None:
        self._append(self.nodes_path, node.to_record())

    def append_edge(self, edge: Edge) -> None:
        self._append(self.edges_path, edge.to_record())

    def _append(self, path: Path, record: dict) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record) + "\n")

    def save_metadata(self, state: GraphState) -> None:
        """Overwrite the snapshot file atomically (temp file + rename)."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        snapshot = {
            "roots": list(state.roots),
            "nodeCount": len(state.nodes),
            "edgeCount": len(state.edges),
            **state.metadata.to_record(),
        }
        fd, tmp = tempfile.mkstemp(dir=self.data_dir, prefix=".graph-metadata-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, indent=2)
            os.replace(tmp, self.metadata_path)
        except OSError:
            Path(tmp).unlink(missing_ok=True)
            raise

    # --- Reads ---

    def exists(self) -> bool:
        """True if any of the three files is present."""
        return any(p.exists() for p in (self.nodes_path, self.edges_path, self.metadata_path))

    def read_records(self, path: Path, tolerant: bool = True) -> list[dict]:
        """Read every JSON object from a log, in file order.

        Malformed lines are skipped with a warning. With ``tolerant=False`` the
        first malformed line raises ValueError instead.
        """
        if not path.exists():
            return []
        records = []
        with open(path, "r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, 1):
                if not line.strip():
                    continue
                try:
                    record = json.loads(line)
                    if not isinstance(record, dict):
                        raise ValueError("record is not a JSON object")
                except ValueError as e:
                    if not tolerant:
                        raise ValueError(f"{path.name}:{line_no}: {e}") from e
                    logger.warning(f"Skipping malformed line {line_no} in {path.name}: {e}")
                    continue
                records.append(record)
        return records

    def read_metadata(self) -> dict | None:
        """Load the snapshot, or None if it is missing or unreadable."""
        if not self.metadata_path.exists():
            return None
        try:
            with open(self.metadata_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read {self.metadata_path.name}: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Ignoring {self.metadata_path.name}: not a JSON object")
            return None
        return data

    def load(self, tolerant: bool = True) -> GraphState:
        """Replay both logs into a GraphState. No files means an empty graph."""
        if not self.exists():
            logger.info(f"No graph data in {self.data_dir}, starting empty")
            return GraphState()

        state = materialize(
            self.read_records(self.nodes_path, tolerant=tolerant),
            self.read_records(self.edges_path, tolerant=tolerant),
            self.read_metadata(),
        )
        logger.info(
            f"Loaded {len(state.nodes)} nodes and {len(state.edges)} edges from {self.data_dir}"
        )
        return state

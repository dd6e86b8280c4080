"""Core data models for the debugging knowledge graph.

Uses Pydantic v2 for validation, ULID for sortable unique IDs.
Persisted JSON uses camelCase keys; Python attributes are snake_case.
"""

from datetime import datetime, timezone
from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from ulid import ULID

from .constants import DEFAULT_EDGE_STRENGTH


def generate_id() -> str:
    """Generate a ULID (sortable, unique identifier)."""
    return str(ULID())


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


NodeType = Literal[
    "problem",      # something that is broken
    "hypothesis",   # a guess about the cause
    "experiment",   # a way to test a hypothesis
    "observation",  # what an experiment showed
    "learning",     # a generalised insight
    "solution",     # what fixed it
]

EdgeType = Literal[
    "decomposes",    # problem -> sub-problem
    "hypothesizes",  # problem -> hypothesis
    "tests",         # hypothesis -> experiment
    "produces",      # experiment -> observation
    "learns",        # observation -> learning
    "contradicts",   # evidence -> hypothesis (negative)
    "supports",      # evidence -> hypothesis (positive)
    "solves",        # solution -> problem
]

ProblemStatus = Literal["open", "investigating", "solved", "abandoned"]

NODE_TYPES: tuple[str, ...] = get_args(NodeType)
EDGE_TYPES: tuple[str, ...] = get_args(EdgeType)

# Structural edges describe parent -> child descent and drive the parent index.
STRUCTURAL_EDGE_TYPES: frozenset[str] = frozenset(
    {"decomposes", "hypothesizes", "tests", "produces", "learns"}
)
# Evidentiary edges carry support, contradiction or resolution.
EVIDENTIARY_EDGE_TYPES: frozenset[str] = frozenset({"supports", "contradicts", "solves"})

AUTO_EDGE_TYPES: dict[tuple[str, str], str] = {
    ("problem", "problem"): "decomposes",
    ("problem", "hypothesis"): "hypothesizes",
    ("hypothesis", "experiment"): "tests",
    ("experiment", "observation"): "produces",
    ("observation", "learning"): "learns",
    ("solution", "problem"): "solves",
}

# Edge types whose coexistence on the same (from, to) pair is a conflict.
CONFLICTING_EDGE_TYPES: dict[str, str] = {
    "contradicts": "supports",
    "supports": "contradicts",
}


def is_structural(edge_type: str) -> bool:
    """True for edge types produced by parent -> child inference."""
    return edge_type in STRUCTURAL_EDGE_TYPES


def auto_edge_type(parent_type: str, child_type: str) -> str | None:
    """Edge type implied by creating ``child_type`` under ``parent_type``.

    Returns None for pairs with no automatic relationship.
    """
    return AUTO_EDGE_TYPES.get((parent_type, child_type))


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> dict:
        """Serialize to the persisted JSON layout."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class NodeMetadata(_CamelModel):
    """Metadata attached to a node.

    Known fields are typed. Anything else the caller supplies is kept as an
    unvalidated extra attribute (see ``extras``).
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    tags: list[str] = Field(default_factory=list)
    confidence: float | None = None  # 0-100
    status: ProblemStatus | None = None  # meaningful for problems
    is_root: bool | None = None  # problem
    testable: bool | None = None  # hypothesis
    verified: bool | None = None  # solution

    @field_validator("tags", mode="before")
    @classmethod
    def _none_tags(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float | None:
        if value is None:
            return None
        return clamp(float(value), 0.0, 100.0)

    @property
    def extras(self) -> dict[str, Any]:
        """Type-specific fields that have no typed attribute."""
        return dict(self.model_extra or {})


class EdgeMetadata(_CamelModel):
    """Metadata attached to an edge."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    created_at: datetime = Field(default_factory=utc_now)
    reasoning: str | None = None
    evidence: str | None = None

    @property
    def extras(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class Node(_CamelModel):
    """One step of a debugging process. Immutable after creation."""

    id: str = Field(default_factory=generate_id)
    type: NodeType
    content: str
    metadata: NodeMetadata = Field(default_factory=NodeMetadata)

    @property
    def created_at(self) -> datetime:
        return self.metadata.created_at

    def to_summary(self) -> dict:
        """Return a compact summary of this node."""
        return {
            "node_id": self.id,
            "type": self.type,
            "content": self.content,
        }


class Edge(_CamelModel):
    """A directed, typed, weighted relationship between two nodes.

    ``from`` is a Python keyword, so the source endpoint is ``from_id`` in
    Python and ``from`` on disk.
    """

    id: str = Field(default_factory=generate_id)
    type: EdgeType
    from_id: str = Field(alias="from")
    to_id: str = Field(alias="to")
    strength: float = DEFAULT_EDGE_STRENGTH
    metadata: EdgeMetadata = Field(default_factory=EdgeMetadata)

    @field_validator("strength", mode="before")
    @classmethod
    def _clamp_strength(cls, value: Any) -> float:
        if value is None:
            return DEFAULT_EDGE_STRENGTH
        return clamp(float(value), 0.0, 1.0)

    def other_end(self, node_id: str) -> str:
        """Return the node on the other end of this edge."""
        return self.to_id if self.from_id == node_id else self.from_id


class GraphMetadata(_CamelModel):
    """Graph-level counters, persisted in the snapshot file."""

    created_at: datetime = Field(default_factory=utc_now)
    last_modified: datetime = Field(default_factory=utc_now)
    session_count: int = 0


def clamp(value: float, low: float, high: float) -> float:
    """Clamp ``value`` into ``[low, high]``."""
    return max(low, min(high, value))

"""Tests for graph state materialization and replay."""

from debuggraph.models import Edge, Node
from debuggraph.state import GraphState, materialize, replay_latest


def _node_record(id, node_type="problem", content="x", **metadata):
    return {
        "id": id,
        "type": node_type,
        "content": content,
        "metadata": {"createdAt": "2025-01-15T10:00:00Z", "updatedAt": "2025-01-15T10:00:00Z", **metadata},
    }


def _edge_record(id, from_id, to_id, edge_type="hypothesizes"):
    return {"id": id, "type": edge_type, "from": from_id, "to": to_id, "strength": 1.0}


def test_materialize_empty():
    """Test materializing no records."""
    state = materialize([], [])
    assert state.nodes == {}
    assert state.edges == {}
    assert state.roots == []
    assert state.check_index_consistency() == []


def test_materialize_nodes_and_edges():
    state = materialize(
        [_node_record("p1", content="TypeError: a"), _node_record("h1", "hypothesis")],
        [_edge_record("e1", "p1", "h1")],
    )
    assert set(state.nodes) == {"p1", "h1"}
    assert state.edges["e1"].from_id == "p1"
    assert state.get_parent_id("h1") == "p1"
    assert state.indexes.problems_with_error_type("type error") == {"p1"}


def test_last_record_per_id_wins():
    state = materialize(
        [
            _node_record("p1", content="first"),
            _node_record("p2", content="other"),
            _node_record("p1", content="corrected"),
        ],
        [],
    )
    assert state.nodes["p1"].content == "corrected"
    assert list(state.nodes) == ["p1", "p2"]


def test_replay_skips_records_without_id_or_invalid():
    records = [
        {"type": "problem", "content": "no id"},
        {"id": "bad", "type": "question", "content": "unknown type"},
        _node_record("ok"),
    ]
    latest = replay_latest(records, Node.model_validate)
    assert list(latest) == ["ok"]


def test_replay_trusts_log_for_dangling_edges():
    """Replay does not enforce endpoint existence; that is checked at append time."""
    state = materialize([_node_record("p1")], [_edge_record("e1", "p1", "ghost")])
    assert "e1" in state.edges
    assert state.get_incoming_edges("ghost")[0].id == "e1"


def test_roots_from_snapshot():
    state = materialize(
        [_node_record("p1", isRoot=True), _node_record("p2", isRoot=True)],
        [],
        {"roots": ["p2", "missing"], "sessionCount": 4},
    )
    assert state.roots == ["p2"]
    assert state.metadata.session_count == 4


def test_roots_recovered_without_snapshot():
    state = materialize(
        [
            _node_record("p1", isRoot=True),
            _node_record("p2", isRoot=False),
            _node_record("h1", "hypothesis"),
        ],
        [],
    )
    assert state.roots == ["p1"]


def test_add_node_and_edge_keep_indexes_consistent():
    state = GraphState()
    p = Node(type="problem", content="RangeError: too deep")
    h = Node(type="hypothesis", content="recursion")
    state.add_node(p, is_root=True)
    state.add_node(h)
    state.add_edge(Edge(type="hypothesizes", from_id=p.id, to_id=h.id))

    assert state.roots == [p.id]
    assert state.check_index_consistency() == []


def test_check_index_consistency_detects_drift():
    state = GraphState()
    p = Node(type="problem", content="x")
    h = Node(type="hypothesis", content="y")
    state.add_node(p)
    state.add_node(h)
    # Bypass add_edge so the indexes go stale
    state.edges["e1"] = Edge(id="e1", type="hypothesizes", from_id=p.id, to_id=h.id)

    errors = state.check_index_consistency()
    assert any("parent_index" in e for e in errors)
    assert any("edges_by_node" in e for e in errors)

    state.rebuild_indexes()
    assert state.check_index_consistency() == []


def test_find_conflicts():
    state = GraphState()
    a, b = Node(type="observation", content="a"), Node(type="hypothesis", content="b")
    state.add_node(a)
    state.add_node(b)
    support = Edge(type="supports", from_id=a.id, to_id=b.id)
    state.add_edge(support)

    assert state.find_conflicts(a.id, b.id, "contradicts") == [support]
    assert state.find_conflicts(b.id, a.id, "contradicts") == []
    assert state.find_conflicts(a.id, b.id, "supports") == []
    assert state.find_conflicts(a.id, b.id, "tests") == []


def test_stats():
    state = materialize(
        [_node_record("p1", content="TypeError"), _node_record("h1", "hypothesis")],
        [_edge_record("e1", "p1", "h1")],
    )
    stats = state.stats()
    assert stats["total_nodes"] == 2
    assert stats["total_edges"] == 1
    assert stats["nodes_by_type"] == {"hypothesis": 1, "problem": 1}
    assert stats["error_types"] == {"type error": 1}

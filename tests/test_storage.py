"""Tests for the JSONL persistence log."""

import json

import pytest

from debuggraph.models import Edge, Node
from debuggraph.state import GraphState
from debuggraph.storage import GraphStorage


def test_missing_files_mean_empty_graph(temp_data_dir):
    storage = GraphStorage(temp_data_dir / "never-created")
    assert not storage.exists()
    state = storage.load()
    assert state.nodes == {} and state.edges == {}


def test_append_and_load(temp_data_dir):
    storage = GraphStorage(temp_data_dir)
    p = Node(type="problem", content="TypeError: x", metadata={"isRoot": True, "status": "open"})
    h = Node(type="hypothesis", content="y", metadata={"confidence": 50})
    e = Edge(type="hypothesizes", from_id=p.id, to_id=h.id)

    state = GraphState()
    state.add_node(p, is_root=True)
    state.add_node(h)
    state.add_edge(e)
    storage.append_node(p)
    storage.append_node(h)
    storage.append_edge(e)
    storage.save_metadata(state)

    loaded = storage.load()
    assert loaded.nodes == {p.id: p, h.id: h}
    assert loaded.edges == {e.id: e}
    assert loaded.roots == [p.id]
    assert len(storage.nodes_path.read_text().splitlines()) == 2
    assert len(storage.edges_path.read_text().splitlines()) == 1


def test_records_use_camel_case(temp_data_dir):
    storage = GraphStorage(temp_data_dir)
    storage.append_node(Node(type="problem", content="x", metadata={"is_root": True}))
    record = json.loads(storage.nodes_path.read_text().strip())
    assert record["metadata"]["isRoot"] is True
    assert "createdAt" in record["metadata"]


def test_malformed_lines_skipped(temp_data_dir, caplog):
    storage = GraphStorage(temp_data_dir)
    good = Node(type="problem", content="ok")
    storage.append_node(good)
    with open(storage.nodes_path, "a") as f:
        f.write("{not json\n")
        f.write("[1, 2, 3]\n")
        f.write("\n")
        f.write(json.dumps({"type": "problem", "content": "no id"}) + "\n")

    state = storage.load()
    assert list(state.nodes) == [good.id]
    assert "Skipping malformed line" in caplog.text


def test_strict_read_raises(temp_data_dir):
    storage = GraphStorage(temp_data_dir)
    storage.nodes_path.write_text("{broken\n")
    with pytest.raises(ValueError, match="nodes.jsonl:1"):
        storage.read_records(storage.nodes_path, tolerant=False)


def test_snapshot_contents(temp_data_dir):
    storage = GraphStorage(temp_data_dir)
    state = GraphState()
    p = Node(type="problem", content="x")
    state.add_node(p, is_root=True)
    state.metadata.session_count = 3
    storage.save_metadata(state)

    snapshot = json.loads(storage.metadata_path.read_text())
    assert snapshot["roots"] == [p.id]
    assert snapshot["nodeCount"] == 1
    assert snapshot["edgeCount"] == 0
    assert snapshot["sessionCount"] == 3
    assert "createdAt" in snapshot and "lastModified" in snapshot
    # No temp files left behind
    assert [f.name for f in temp_data_dir.iterdir()] == ["graph-metadata.json"]


def test_unreadable_snapshot_recovers_roots(temp_data_dir):
    storage = GraphStorage(temp_data_dir)
    root = Node(type="problem", content="root", metadata={"isRoot": True})
    child = Node(type="problem", content="child", metadata={"isRoot": False})
    storage.append_node(root)
    storage.append_node(child)
    storage.metadata_path.write_text("not json at all")

    state = storage.load()
    assert state.roots == [root.id]

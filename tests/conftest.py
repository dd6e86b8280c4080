"""Shared test fixtures and helpers for debuggraph tests."""

import tempfile
from pathlib import Path

import pytest

from debuggraph.engine import DebugGraphEngine


# --- Fixtures ---


@pytest.fixture
def temp_data_dir():
    """Provide a temporary directory for graph storage.

    Yields a Path to a temporary directory that's cleaned up after the test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def engine(temp_data_dir):
    """Provide a fresh DebugGraphEngine with an empty store."""
    return DebugGraphEngine(temp_data_dir)


@pytest.fixture
def debug_chain(engine):
    """Provide an engine holding a full problem -> solution chain.

    problem -> hypothesis -> experiment -> observation are linked by automatic
    edges. The solution has no automatic edge from the observation, so it is
    connected explicitly, and it solves the problem.

    Returns (engine, ids) where ids maps role name to node ID.
    """
    ids = {}
    ids["problem"] = engine.create("problem", "TypeError: Cannot read property 'id' of undefined")["node_id"]
    ids["hypothesis"] = engine.create("hypothesis", "User object not loaded yet", parent_id=ids["problem"])["node_id"]
    ids["experiment"] = engine.create("experiment", "Log user before access", parent_id=ids["hypothesis"])["node_id"]
    ids["observation"] = engine.create("observation", "user is undefined on first render", parent_id=ids["experiment"])["node_id"]
    ids["solution"] = engine.create("solution", "Guard render until user is fetched", metadata={"verified": True})["node_id"]
    engine.connect(ids["observation"], ids["solution"], "supports")
    engine.connect(ids["solution"], ids["problem"], "solves")
    return engine, ids

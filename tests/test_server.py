"""Tests for the MCP tool front end."""

import asyncio
import json

import pytest

from debuggraph import server
from debuggraph.server import TOOL_NAME, dispatch


def test_dispatch_create_connect_query(engine):
    problem = dispatch(engine, {"action": "create", "nodeType": "problem", "content": "TypeError: boom"})
    assert problem["success"]

    hypothesis = dispatch(engine, {
        "action": "create",
        "nodeType": "hypothesis",
        "content": "bad input",
        "parentId": problem["node_id"],
        "metadata": {"confidence": 30},
    })
    assert hypothesis["edge_id"]

    observation = dispatch(engine, {"action": "create", "nodeType": "observation", "content": "input was null"})
    connected = dispatch(engine, {
        "action": "connect",
        "from": observation["node_id"],
        "to": hypothesis["node_id"],
        "type": "supports",
        "strength": 0.8,
    })
    assert connected["success"]
    assert engine.state.edges[connected["edge_id"]].strength == 0.8

    result = dispatch(engine, {
        "action": "query",
        "queryType": "similar-problems",
        "parameters": {"pattern": "TypeError: boom", "limit": 5},
    })
    assert result["results"][0]["node_id"] == problem["node_id"]


def test_dispatch_unknown_action(engine):
    result = dispatch(engine, {"action": "delete"})
    assert not result["success"]
    assert "Unknown action" in result["message"]


def test_dispatch_missing_node_type(engine):
    result = dispatch(engine, {"action": "create", "content": "x"})
    assert not result["success"]


def test_list_tools_declares_single_tool():
    tools = asyncio.run(server.list_tools())
    assert [t.name for t in tools] == [TOOL_NAME]
    schema = tools[0].inputSchema
    assert schema["properties"]["action"]["enum"] == ["create", "connect", "query"]


@pytest.fixture
def server_engine(engine, monkeypatch):
    monkeypatch.setattr(server, "_engine", engine)
    return engine


def test_call_tool_returns_json(server_engine):
    contents = asyncio.run(server.call_tool(TOOL_NAME, {"action": "query", "queryType": "recent-activity"}))
    payload = json.loads(contents[0].text)
    assert payload["success"]
    assert payload["results"]["total_nodes"] == 0


def test_call_tool_unknown_tool(server_engine):
    contents = asyncio.run(server.call_tool("other_tool", {}))
    assert "Unknown tool" in contents[0].text


def test_call_tool_errors_become_text(server_engine, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("kaboom")

    monkeypatch.setattr(server_engine, "query", boom)
    contents = asyncio.run(server.call_tool(TOOL_NAME, {"action": "query", "queryType": "recent-activity"}))
    assert contents[0].text == "Error: kaboom"

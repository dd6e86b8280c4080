"""MCP server exposing the debug graph as one tool with three actions."""

import asyncio
import json
import logging
import sys
import traceback

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .config import get_data_dir
from .constants import LOG_FILE
from .engine import QUERY_TYPES, DebugGraphEngine
from .models import EDGE_TYPES, NODE_TYPES

logger = logging.getLogger("debuggraph")

TOOL_NAME = "debug_thinking"
ACTIONS = ("create", "connect", "query")

server = Server("debuggraph")
_engine: DebugGraphEngine | None = None


def get_engine() -> DebugGraphEngine:
    """Lazy-load the engine on first tool call."""
    global _engine
    if _engine is None:
        _engine = DebugGraphEngine(get_data_dir())
    return _engine


def dispatch(engine: DebugGraphEngine, arguments: dict) -> dict:
    """Route one tool call to the engine. Returns the engine's result dict."""
    action = arguments.get("action")

    if action == "create":
        return engine.create(
            node_type=arguments.get("nodeType"),
            content=arguments.get("content", ""),
            parent_id=arguments.get("parentId"),
            metadata=arguments.get("metadata"),
        )
    elif action == "connect":
        return engine.connect(
            from_id=arguments.get("from"),
            to_id=arguments.get("to"),
            edge_type=arguments.get("type"),
            strength=arguments.get("strength"),
            metadata=arguments.get("metadata"),
        )
    elif action == "query":
        return engine.query(arguments.get("queryType"), arguments.get("parameters"))
    return {"success": False, "message": f"Unknown action: {action}. Expected one of: {', '.join(ACTIONS)}"}


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List available MCP tools."""
    return [
        Tool(
            name=TOOL_NAME,
            description=(
                "Record and search a graph of debugging knowledge. "
                "action=create adds a problem, hypothesis, experiment, observation, learning or solution "
                "(with parentId, an edge is inferred from the parent). "
                "action=connect links two nodes explicitly (supports/contradicts conflicts are reported). "
                "action=query runs similar-problems (find past problems and their solutions) "
                "or recent-activity."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "action": {"type": "string", "enum": list(ACTIONS)},
                    "nodeType": {
                        "type": "string",
                        "enum": list(NODE_TYPES),
                        "description": "For create: type of the new node",
                    },
                    "content": {
                        "type": "string",
                        "description": "For create: what was observed, guessed, tried or learned",
                    },
                    "parentId": {
                        "type": "string",
                        "description": "For create: parent node (problem without parent becomes a root)",
                    },
                    "from": {"type": "string", "description": "For connect: source node ID"},
                    "to": {"type": "string", "description": "For connect: target node ID"},
                    "type": {
                        "type": "string",
                        "enum": list(EDGE_TYPES),
                        "description": "For connect: edge type",
                    },
                    "strength": {
                        "type": "number",
                        "description": "For connect: 0-1, clamped (default 1)",
                    },
                    "metadata": {
                        "type": "object",
                        "description": "Optional: tags, confidence (0-100), status, reasoning, evidence, ...",
                    },
                    "queryType": {"type": "string", "enum": list(QUERY_TYPES)},
                    "parameters": {
                        "type": "object",
                        "description": (
                            "For query: similar-problems takes pattern, limit, min_similarity; "
                            "recent-activity takes limit, since ('2 days ago', 'yesterday', ISO date)"
                        ),
                    },
                },
                "required": ["action"],
            },
        )
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls."""
    logger.info(f"Tool call: {name} {arguments.get('action') if arguments else ''}")
    logger.debug(f"Arguments: {arguments}")
    try:
        if name != TOOL_NAME:
            return [TextContent(type="text", text=f"Unknown tool: {name}")]
        result = dispatch(get_engine(), arguments or {})
        return [TextContent(type="text", text=json.dumps(result, indent=2, default=str))]

    except Exception as e:
        logger.error(f"Tool {name} failed: {e}")
        logger.error(traceback.format_exc())
        return [TextContent(type="text", text=f"Error: {e}")]


def configure_logging() -> None:
    """Log to a file in the storage root and to stderr (stdout carries the protocol)."""
    data_dir = get_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(data_dir / LOG_FILE),
            logging.StreamHandler(sys.stderr),
        ],
    )


def main():
    """Entry point for the MCP server."""
    configure_logging()
    engine = get_engine()
    logger.info(f"Debug graph MCP server starting (data_dir={engine.data_dir})")
    logger.info(f"Loaded {len(engine.state.nodes)} nodes, {len(engine.state.edges)} edges")
    try:
        asyncio.run(_run_server())
    except Exception as e:
        logger.error(f"Server crashed: {e}")
        logger.error(traceback.format_exc())
        raise


async def _run_server():
    """Run the MCP server."""
    async with stdio_server() as (read, write):
        await server.run(read, write, server.create_initialization_options())


if __name__ == "__main__":
    main()

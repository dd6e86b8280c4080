"""Command line interface for the debug graph."""

import json
import logging
from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import get_data_dir
from .constants import DEFAULT_MIN_SIMILARITY, DEFAULT_QUERY_LIMIT, DEFAULT_RECENT_LIMIT
from .engine import DebugGraphEngine
from .models import EDGE_TYPES, NODE_TYPES
from .timeutil import format_relative_time

console = Console()

STATUS_STYLES = {"solved": "green", "open": "yellow", "investigating": "cyan", "abandoned": "dim"}


def _engine(ctx: click.Context) -> DebugGraphEngine:
    if "engine" not in ctx.obj:
        ctx.obj["engine"] = DebugGraphEngine(ctx.obj["data_dir"])
    return ctx.obj["engine"]


def _fail(ctx: click.Context, message: str) -> None:
    console.print(f"[red]Error:[/red] {escape(message)}")
    ctx.exit(1)


def _short(text: str, width: int = 60) -> str:
    """Truncate and escape user text for rich output."""
    return escape(text if len(text) <= width else text[: width - 3] + "...")


@click.group()
@click.option(
    "--data-dir",
    envvar="DEBUG_DATA_DIR",
    type=click.Path(path_type=Path),
    help="Storage directory (default: ~/.debug-thinking-mcp)",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx, data_dir, verbose):
    """debuggraph - a knowledge graph of debugging sessions."""
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = get_data_dir(data_dir)
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@click.argument("node_type", type=click.Choice(NODE_TYPES))
@click.argument("content")
@click.option("--parent", "parent_id", help="Parent node ID")
@click.option("--tag", "tags", multiple=True, help="Tag (repeatable)")
@click.option("--confidence", type=float, help="Confidence 0-100")
@click.option("--status", type=click.Choice(["open", "investigating", "solved", "abandoned"]))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def create(ctx, node_type, content, parent_id, tags, confidence, status, as_json):
    """Create a node.

    Examples:
        debuggraph create problem "TypeError: x is undefined"
        debuggraph create hypothesis "Config not loaded" --parent 01J...
    """
    metadata: dict = {"tags": list(tags)}
    if confidence is not None:
        metadata["confidence"] = confidence
    if status:
        metadata["status"] = status

    result = _engine(ctx).create(node_type, content, parent_id=parent_id, metadata=metadata)
    if as_json:
        click.echo(json.dumps(result, indent=2, default=str))
    elif result["success"]:
        console.print(f"[green]✓[/green] {escape(result['message'])}")
        console.print(f"  node: [cyan]{result['node_id']}[/cyan]")
        if result.get("edge_id"):
            console.print(f"  edge: [cyan]{result['edge_id']}[/cyan]")
        for similar in result.get("similar_problems", []):
            console.print(
                f"  [dim]similar ({similar['similarity']:.0%}):[/dim] "
                f"{similar['node_id']} {_short(similar['content'])}"
            )
    if not result["success"]:
        _fail(ctx, result["message"])


@cli.command()
@click.argument("from_id")
@click.argument("to_id")
@click.argument("edge_type", type=click.Choice(EDGE_TYPES))
@click.option("--strength", type=float, help="Edge strength 0-1 (clamped)")
@click.option("--reasoning", help="Why these nodes are related")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def connect(ctx, from_id, to_id, edge_type, strength, reasoning, as_json):
    """Connect two existing nodes."""
    metadata = {"reasoning": reasoning} if reasoning else None
    result = _engine(ctx).connect(from_id, to_id, edge_type, strength=strength, metadata=metadata)
    if as_json:
        click.echo(json.dumps(result, indent=2, default=str))
    elif result["success"]:
        console.print(f"[green]✓[/green] {escape(result['message'])}")
        console.print(f"  edge: [cyan]{result['edge_id']}[/cyan]")
        if "conflicts" in result:
            console.print(f"[yellow]![/yellow] {result['conflicts']['explanation']}")
    if not result["success"]:
        _fail(ctx, result["message"])


@cli.command()
@click.argument("pattern")
@click.option("-n", "--limit", default=DEFAULT_QUERY_LIMIT, help="Max results")
@click.option("--min-similarity", default=DEFAULT_MIN_SIMILARITY, help="Minimum score 0-1")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def similar(ctx, pattern, limit, min_similarity, as_json):
    """Find past problems similar to PATTERN."""
    result = _engine(ctx).query(
        "similar-problems",
        {"pattern": pattern, "limit": limit, "min_similarity": min_similarity},
    )
    if not result["success"]:
        _fail(ctx, result["message"])
        return

    problems = result["results"]
    if as_json:
        click.echo(json.dumps(problems, indent=2, default=str))
        return
    if not problems:
        console.print("[dim]No similar problems found.[/dim]")
        return

    table = Table(title=f"Similar problems ({result['query_time_ms']} ms)")
    table.add_column("Score", justify="right", style="yellow")
    table.add_column("Status")
    table.add_column("Problem")
    table.add_column("Solutions", justify="right", style="green")
    table.add_column("ID", style="cyan")
    for p in problems:
        status = p["status"] or "-"
        style = STATUS_STYLES.get(status, "")
        table.add_row(
            f"{p['similarity']:.2f}",
            f"[{style}]{status}[/{style}]" if style else status,
            _short(p["content"]),
            str(len(p["solutions"])),
            p["node_id"],
        )
    console.print(table)


@cli.command()
@click.option("-n", "--limit", default=DEFAULT_RECENT_LIMIT, help="Max nodes")
@click.option("--since", help="Only nodes created after this (ISO, '2 days ago', 'yesterday')")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def recent(ctx, limit, since, as_json):
    """Show recently created nodes."""
    params: dict = {"limit": limit}
    if since:
        params["since"] = since
    result = _engine(ctx).query("recent-activity", params)
    if not result["success"]:
        _fail(ctx, result["message"])
        return

    activity = result["results"]
    if as_json:
        click.echo(json.dumps(activity, indent=2, default=str))
        return

    table = Table(title=f"Recent activity ({len(activity['nodes'])} of {activity['total_nodes']} nodes)")
    table.add_column("When", style="dim")
    table.add_column("Type", style="green")
    table.add_column("Content")
    table.add_column("Parent", style="dim")
    table.add_column("ID", style="cyan")
    for n in activity["nodes"]:
        created = datetime.fromisoformat(n["created_at"])
        parent = n["parent"]
        table.add_row(
            format_relative_time(created),
            n["type"],
            _short(n["content"]),
            parent["type"] if parent else "",
            n["node_id"],
        )
    console.print(table)


@cli.command()
@click.argument("problem_id")
@click.argument("solution_id")
@click.pass_context
def path(ctx, problem_id, solution_id):
    """Show the debug path from a problem to a solution."""
    engine = _engine(ctx)
    node_ids = engine.build_debug_path(problem_id, solution_id)
    if not node_ids:
        _fail(ctx, f"Solution node {solution_id} not found")
        return

    for i, node_id in enumerate(node_ids):
        node = engine.get_node(node_id)
        arrow = "  " if i == 0 else "→ "
        if node is None:
            console.print(f"{arrow}[red]{node_id}[/red] (missing)")
        else:
            console.print(f"{arrow}[green]{node.type}[/green] [cyan]{node.id}[/cyan] {_short(node.content)}")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def stats(ctx, as_json):
    """Show graph statistics."""
    s = _engine(ctx).get_stats()
    if as_json:
        click.echo(json.dumps(s, indent=2))
        return

    console.print(
        f"[bold]{s['total_nodes']}[/bold] nodes, [bold]{s['total_edges']}[/bold] edges, "
        f"[bold]{s['roots']}[/bold] root problems (session {s['session_count']})"
    )
    table = Table(title="Nodes by type")
    table.add_column("Type", style="green")
    table.add_column("Count", justify="right")
    for node_type, count in s["nodes_by_type"].items():
        table.add_row(node_type, str(count))
    console.print(table)

    if s["error_types"]:
        table = Table(title="Problems by error type")
        table.add_column("Error type", style="yellow")
        table.add_column("Count", justify="right")
        for error_type, count in s["error_types"].items():
            table.add_row(error_type, str(count))
        console.print(table)


@cli.command()
@click.pass_context
def verify(ctx):
    """Check that the indexes match a full rebuild."""
    errors = _engine(ctx).check_index_consistency()
    if errors:
        for error in errors:
            console.print(f"  [red]✗[/red] {escape(error)}")
        _fail(ctx, f"{len(errors)} index inconsistencies")
        return
    console.print("[green]✓[/green] Indexes consistent")


def main():
    cli(obj={})


if __name__ == "__main__":
    main()

"""Typer-based CLI for symgraph."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from . import __version__
from . import config as cfg
from .cli_serve import read_graph, serve
from .errors import SymgraphError
from .focus import FocusEngine, ViewState
from .graph_export import export_html, format_text, to_json
from .orchestrator import analyze_paths

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="🕸️  symgraph: symbol dependency graphs for Python code.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Register the viewer server as a direct command
app.command("serve")(serve)

USAGE = """Usage: symgraph analyze [--json] <path> [<path>...]
  Use '...' suffix for recursive discovery (e.g., ./src/...)
  Use 'symgraph serve' without paths to read graph data from stdin"""


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"symgraph v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    from rich.console import Console
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Enable debug logging."),
):
    """symgraph: extract and explore whole-program symbol dependency graphs."""
    _configure_logging(verbose)


@app.command("analyze")
def analyze(
    paths: Optional[List[str]] = typer.Argument(None, help="Files, directories or 'dir/...' to analyse."),
    json_output: bool = typer.Option(False, "--json", help="Print the graph as indented JSON."),
    root: Optional[Path] = typer.Option(None, "--root", help="Project root that positions are relative to."),
):
    """Analyse sources and print the dependency listing or JSON graph."""
    if not paths:
        typer.echo(USAGE)
        raise typer.Exit(code=1)

    try:
        graph = analyze_paths(paths, root=root)
    except SymgraphError as exc:
        logger.error("%s", exc)
        raise typer.Exit(code=1)

    if json_output:
        typer.echo(to_json(graph, indent=True))
    else:
        typer.echo(format_text(graph), nl=False)


@app.command("export")
def export(
    paths: Optional[List[str]] = typer.Argument(
        None, help="Files, directories or 'dir/...' to analyse; omit to read graph data from stdin."
    ),
    output: Path = typer.Option(..., "--output", "-o", help="HTML file to write."),
    root: Optional[Path] = typer.Option(None, "--root", help="Project root that positions are relative to."),
):
    """Write the interactive graph page to a standalone HTML file."""
    try:
        graph = read_graph(paths, root)
    except SymgraphError as exc:
        logger.error("%s", exc)
        raise typer.Exit(code=1)

    export_html(graph, output, d3_src=cfg.D3_URL)
    typer.echo(f"Exported {len(graph.nodes)} nodes and {len(graph.links)} links to {output}")


@app.command("focus")
def focus(
    paths: List[str] = typer.Argument(..., help="Files, directories or 'dir/...' to analyse."),
    select: Optional[List[str]] = typer.Option(
        None, "--select", "-s", help="Node id to select; repeat to toggle more nodes in."
    ),
    additive: bool = typer.Option(
        False, "--additive", help="Toggle the first selection into the restored one instead of replacing it."
    ),
    state: Optional[str] = typer.Option(None, "--state", help="View state fragment to start from."),
    search: Optional[str] = typer.Option(None, "--search", help="List nodes whose name contains this text."),
    root: Optional[Path] = typer.Option(None, "--root", help="Project root that positions are relative to."),
):
    """Run the focus engine without a browser and print the sidebar.

    Example:
      symgraph focus ./src/... --select bank.Account
    """
    try:
        graph = analyze_paths(paths, root=root)
    except SymgraphError as exc:
        logger.error("%s", exc)
        raise typer.Exit(code=1)

    engine = FocusEngine(graph, ViewState.from_fragment(state) if state else None)

    for i, node_id in enumerate(select or []):
        if node_id not in graph.nodes:
            typer.echo(f"Unknown node: {node_id}", err=True)
            continue
        engine.select(node_id, additive=additive or i > 0)

    if search is not None:
        matches = engine.search(search)
        typer.echo(f"Search '{search}' ({len(matches)})")
        for node in matches:
            typer.echo(f"  {node.name}  {node.id}")

    result = engine.focus()
    if result is None:
        typer.echo("No selection.")
    else:
        for title, ids in (
            ("Selected", result.selected),
            ("Outgoing", result.outgoing),
            ("Incoming", result.incoming),
        ):
            typer.echo(f"{title} ({len(ids)})")
            for node_id in ids:
                typer.echo(f"  {node_id}")

    typer.echo(f"#{engine.to_fragment()}")


if __name__ == "__main__":
    app()

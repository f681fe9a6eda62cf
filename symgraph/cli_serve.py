"""Graph viewer server: serves the exploration page for one graph.

Routes:
- ``/``           the page with the graph embedded
- ``/graph.json`` the graph document
- ``/d3.js``      the local D3 bundle, when ``viewer.d3_path`` is configured

Uses Starlette + Uvicorn.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer

from . import config as cfg
from .errors import GraphFormatError, SymgraphError
from .graph_export import load_graph_data, render_html, to_json
from .models import Graph
from .orchestrator import analyze_paths

logger = logging.getLogger(__name__)


def read_graph(paths: Optional[List[str]], root: Optional[Path] = None) -> Graph:
    """Analyse ``paths``, or read graph data (JSON or text listing) from stdin."""
    if paths:
        return analyze_paths(paths, root=root)
    typer.echo("Reading graph data from stdin...", err=True)
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise GraphFormatError(f"failed to read graph data from stdin: {exc}") from exc
    return load_graph_data(content)


def _d3_bundle(d3_path: str) -> Optional[str]:
    if not d3_path:
        return None
    path = Path(d3_path).expanduser()
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.warning("Cannot read D3 bundle %s (%s); loading it from %s", path, exc, cfg.D3_URL)
        return None


# ===================================================================
# Starlette app + Uvicorn server
# ===================================================================


def _create_server(graph: Graph, d3_path: str = ""):
    """Create the Starlette ASGI application."""
    from starlette.applications import Starlette
    from starlette.responses import HTMLResponse, Response
    from starlette.routing import Route

    bundle = _d3_bundle(d3_path)
    page = render_html(graph, d3_src="/d3.js" if bundle is not None else cfg.D3_URL)
    document = to_json(graph)

    async def homepage(request):
        return HTMLResponse(
            page,
            headers={
                "Cross-Origin-Opener-Policy": "same-origin",
                "Cross-Origin-Embedder-Policy": "require-corp",
            },
        )

    async def graph_json(request):
        return Response(document, media_type="application/json")

    async def d3_js(request):
        return Response(
            bundle,
            media_type="text/javascript",
            headers={"Cache-Control": "max-age=604800"},
        )

    routes = [
        Route("/", homepage),
        Route("/graph.json", graph_json),
    ]
    if bundle is not None:
        routes.append(Route("/d3.js", d3_js))
    return Starlette(routes=routes)


# ===================================================================
# Typer command
# ===================================================================


def serve(
    paths: Optional[List[str]] = typer.Argument(
        None, help="Files, directories or 'dir/...' to analyse; omit to read graph data from stdin."
    ),
    port: int = typer.Option(cfg.DEFAULT_PORT, "--port", "-p", help="Port for the local web server."),
    open_browser: bool = typer.Option(True, "--open/--no-open", help="Open the page in a browser."),
    root: Optional[Path] = typer.Option(None, "--root", help="Project root that positions are relative to."),
):
    """🌐 Serve the interactive dependency graph.

    Example:
      symgraph serve ./src/...
      symgraph analyze --json ./src/... | symgraph serve
    """
    import threading
    import time
    import webbrowser

    from rich.console import Console

    console = Console(stderr=True)

    try:
        graph = read_graph(paths, root)
    except SymgraphError as exc:
        logger.error("%s", exc)
        raise typer.Exit(code=1)

    server_app = _create_server(graph, d3_path=cfg.D3_PATH)

    url = f"http://localhost:{port}"
    console.print(f"\n[bold green]🌐 symgraph[/bold green]")
    console.print(f"   URL:   [link={url}]{url}[/link]")
    console.print(f"   Nodes: {len(graph.nodes)} | Links: {len(graph.links)}")
    console.print(f"\n   [dim]Press Ctrl+C to stop the server[/dim]\n")

    if open_browser:
        def _open_browser():
            time.sleep(1.0)
            webbrowser.open(url)

        threading.Thread(target=_open_browser, daemon=True).start()

    try:
        import uvicorn
        uvicorn.run(server_app, host="127.0.0.1", port=port, log_level="warning")
    except KeyboardInterrupt:
        pass
    finally:
        console.print("\n[dim]Server stopped.[/dim]")

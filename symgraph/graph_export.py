"""Graph serialisation: JSON, the plain-text listing and the standalone HTML page."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .config import CHARGE, D3_URL, LINK_DISTANCE
from .errors import GraphFormatError
from .models import FUNC_METHOD, KIND_FUNC, Graph, Link, Node

TEMPLATE_PATH = Path(__file__).parent / "templates" / "viz.html"

# Characters escaped so the document can sit inside a <script> element
_HTML_SAFE = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}

_ITEM = re.compile(r"^(.+?)\s+\((func|type|method|var|const)\):$")
_MEMBER = re.compile(r"^\((.+)\)\.([^.()\[\]]+)$")


def to_json(graph: Graph, indent: bool = False) -> str:
    if indent:
        text = json.dumps(graph.to_dict(), indent=2, ensure_ascii=False)
    else:
        text = json.dumps(graph.to_dict(), separators=(",", ":"), ensure_ascii=False)
    for char, escaped in _HTML_SAFE.items():
        text = text.replace(char, escaped)
    return text


def _label(node: Node) -> str:
    if node.kind == KIND_FUNC and node.type == FUNC_METHOD:
        return "method"
    return node.kind


def format_text(graph: Graph) -> str:
    """One ``<id> (<label>):`` block per node, followed by its sorted targets."""
    targets: Dict[str, List[str]] = {}
    for link in graph.links:
        targets.setdefault(link.src, []).append(link.dst)

    lines: List[str] = []
    for node in graph.node_list():
        lines.append(f"{node.id} ({_label(node)}):")
        for dst in sorted(targets.get(node.id, [])):
            lines.append(f"- {dst}")
    return "\n".join(lines) + ("\n" if lines else "")


def _owner_id(owner: str, known: Dict[str, Node]) -> Optional[str]:
    if owner in known:
        return owner
    if owner.startswith("type[") and owner.endswith("]") and owner[5:-1] in known:
        return owner[5:-1]
    return None


def parse_text(content: str) -> Graph:
    """Read a text listing back into a graph.

    Member ids (``(<owner>).<name>``) get their ``parent`` back when the
    owner is listed too. Targets that are not listed nodes are dropped.
    """
    order: List[Tuple[str, str]] = []
    pending: List[Tuple[str, str]] = []
    current: Optional[str] = None
    for raw in content.splitlines():
        line = raw.strip()
        if not line:
            continue
        match = _ITEM.match(line)
        if match:
            current = match.group(1)
            order.append((current, match.group(2)))
            continue
        if line.startswith("- ") and current is not None:
            pending.append((current, line[2:].strip()))

    graph = Graph()
    labels = dict(order)
    for node_id, label in order:
        if _MEMBER.match(node_id):
            pkg, name = "", node_id
        else:
            pkg, _, name = node_id.rpartition(".")
        kind, subtype = label, ""
        if label == "method":
            kind, subtype = KIND_FUNC, FUNC_METHOD
        graph.nodes[node_id] = Node(id=node_id, kind=kind, type=subtype, pkg=pkg, name=name or node_id)

    for node_id in labels:
        member = _MEMBER.match(node_id)
        if member is None:
            continue
        owner = _owner_id(member.group(1), graph.nodes)
        if owner is None:
            continue
        node = graph.nodes[node_id]
        parent = graph.nodes[owner]
        node.parent = owner
        node.pkg = parent.pkg
        node.name = f"{parent.name}.{member.group(2)}"
        if node.kind == "var":
            node.type = "field"

    links = {Link(src, dst) for src, dst in pending if dst in graph.nodes}
    graph.links = sorted(links)
    graph.nodes = {k: graph.nodes[k] for k in sorted(graph.nodes)}
    return graph


def load_graph_data(content: str) -> Graph:
    """Parse graph data given either as JSON or as the text listing."""
    text = content.strip()
    if not text:
        raise GraphFormatError("no graph data on input")
    if text.startswith("{"):
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise GraphFormatError(f"invalid graph JSON: {exc}") from exc
        if not isinstance(data, dict) or not isinstance(data.get("nodes") or [], list):
            raise GraphFormatError("graph JSON must be an object with a 'nodes' list")
        try:
            return Graph.from_dict(data)
        except (KeyError, TypeError) as exc:
            raise GraphFormatError(f"malformed graph JSON: {exc}") from exc

    graph = parse_text(text)
    if not graph.nodes:
        raise GraphFormatError("input is neither graph JSON nor a dependency listing")
    return graph


def render_html(
    graph: Graph,
    d3_src: str = D3_URL,
    link_distance: int = LINK_DISTANCE,
    charge: int = CHARGE,
) -> str:
    template = TEMPLATE_PATH.read_text(encoding="utf-8")
    doc = template.replace("{{ D3_SRC }}", d3_src)
    doc = doc.replace("{{ LINK_DISTANCE }}", str(link_distance))
    doc = doc.replace("{{ CHARGE }}", str(charge))
    # graph data goes in last so ids can never be mistaken for placeholders
    return doc.replace("{{ GRAPH_DATA }}", to_json(graph))


def export_html(graph: Graph, output_file: Path, d3_src: str = D3_URL) -> None:
    """Write the standalone exploration page for ``graph``."""
    output_file.write_text(render_html(graph, d3_src=d3_src), encoding="utf-8")

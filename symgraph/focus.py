"""Focus/selection engine for exploring an assembled graph.

This module holds the view logic of the interactive page:

- group filtering hides nodes and every link touching them
- selecting a type also selects its methods; additive selection toggles
- the focus splits links touching the selection into outbound, inbound and
  internal ones and derives the sidebar lists from them
- the view state is persisted as a URL fragment

``templates/viz.html`` mirrors the same rules in JavaScript; the CLI uses
this module for headless ``symgraph focus`` runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple
from urllib.parse import parse_qs, urlencode

from .config import CHARGE, LINK_DISTANCE
from .models import FUNC_METHOD, KIND_FUNC, KIND_TYPE, Graph, Link, Node

GROUPS = ("test", "type", "method", "func", "const", "var")

HIGHLIGHT_OUT = "highlight-out"
HIGHLIGHT_IN = "highlight-in"
HIGHLIGHT_INTERNAL = "highlight-internal"


def node_group(node: Node) -> str:
    if node.test:
        return "test"
    if node.kind == KIND_FUNC and node.type == FUNC_METHOD:
        return "method"
    return node.kind


@dataclass
class ViewState:
    selection: List[str] = field(default_factory=list)
    groups: Set[str] = field(default_factory=lambda: set(GROUPS))
    labels: bool = True
    link_distance: int = LINK_DISTANCE
    charge: int = CHARGE

    def to_fragment(self) -> str:
        """Encode as ``sel=a,b&groups=...&labels=true&dist=120&charge=-300``."""
        params: List[Tuple[str, str]] = []
        if self.selection:
            params.append(("sel", ",".join(self.selection)))
        ordered = [g for g in GROUPS if g in self.groups] + sorted(self.groups - set(GROUPS))
        params.append(("groups", ",".join(ordered)))
        params.append(("labels", "true" if self.labels else "false"))
        params.append(("dist", str(self.link_distance)))
        params.append(("charge", str(self.charge)))
        return urlencode(params)

    @classmethod
    def from_fragment(cls, fragment: str) -> "ViewState":
        """Decode a fragment; absent or malformed entries keep their defaults."""
        state = cls()
        params = parse_qs(fragment.lstrip("#"), keep_blank_values=True)

        def first(key: str) -> Optional[str]:
            values = params.get(key)
            return values[0] if values else None

        sel = first("sel")
        if sel:
            state.selection = _unique(s for s in sel.split(",") if s)
        groups = first("groups")
        if groups is not None:
            state.groups = {g for g in groups.split(",") if g}
        labels = first("labels")
        if labels is not None:
            state.labels = labels == "true"
        for key, attr in (("dist", "link_distance"), ("charge", "charge")):
            raw = first(key)
            if raw is None:
                continue
            try:
                setattr(state, attr, int(raw))
            except ValueError:
                pass
        return state


@dataclass(frozen=True)
class Focus:
    """Links touching a selection, split by direction."""

    outbound: Tuple[Link, ...]
    inbound: Tuple[Link, ...]
    internal: Tuple[Link, ...]
    neighborhood: FrozenSet[str]
    selected: Tuple[str, ...]
    outgoing: Tuple[str, ...]
    incoming: Tuple[str, ...]
    members: FrozenSet[str] = frozenset()

    def highlight(self, link: Link) -> Optional[str]:
        src_in = link.src in self.members
        dst_in = link.dst in self.members
        if src_in and dst_in:
            return HIGHLIGHT_INTERNAL
        if src_in:
            return HIGHLIGHT_OUT
        if dst_in:
            return HIGHLIGHT_IN
        return None


def compute_focus(links: Iterable[Link], selection: Iterable[str]) -> Focus:
    selected = set(selection)
    outbound: List[Link] = []
    inbound: List[Link] = []
    internal: List[Link] = []
    for link in links:
        src_in = link.src in selected
        dst_in = link.dst in selected
        if src_in and dst_in:
            internal.append(link)
        elif src_in:
            outbound.append(link)
        elif dst_in:
            inbound.append(link)

    outgoing = sorted({l.dst for l in outbound})
    incoming = sorted({l.src for l in inbound})
    return Focus(
        outbound=tuple(outbound),
        inbound=tuple(inbound),
        internal=tuple(internal),
        neighborhood=frozenset(selected.union(outgoing, incoming)),
        selected=tuple(sorted(selected)),
        outgoing=tuple(outgoing),
        incoming=tuple(incoming),
        members=frozenset(selected),
    )


@dataclass
class RenderedView:
    nodes: List[Node]
    links: List[Link]
    focus: Optional[Focus] = None
    muted_nodes: Set[str] = field(default_factory=set)
    muted_links: Set[Link] = field(default_factory=set)
    highlights: Dict[Link, str] = field(default_factory=dict)


def _unique(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(items))


class FocusEngine:
    """Selection, filtering and focus over one static graph."""

    def __init__(self, graph: Graph, state: Optional[ViewState] = None):
        self.graph = graph
        self.nodes = graph.node_list()
        self.state = state or ViewState()

    def select(self, node_id: str, additive: bool = False) -> ViewState:
        """Select ``node_id``; a type drags its methods along."""
        members = [node_id]
        node = self.graph.nodes.get(node_id)
        if node is not None and node.kind == KIND_TYPE:
            members += [
                n.id for n in self.nodes
                if n.parent == node_id and n.kind == KIND_FUNC and n.type == FUNC_METHOD
            ]

        if additive:
            selection = list(self.state.selection)
            for member in members:
                if member in selection:
                    selection.remove(member)
                else:
                    selection.append(member)
        else:
            selection = _unique(members)

        if not selection:
            return self.reset()
        self.state.selection = selection
        return self.state

    def reset(self) -> ViewState:
        self.state.selection = []
        return self.state

    def toggle_group(self, group: str) -> ViewState:
        if group in self.state.groups:
            self.state.groups.discard(group)
        else:
            self.state.groups.add(group)
        return self.state

    def visible(self) -> Tuple[List[Node], List[Link]]:
        """Nodes of active groups and the links between them."""
        nodes = [n for n in self.nodes if node_group(n) in self.state.groups]
        ids = {n.id for n in nodes}
        links = [l for l in self.graph.links if l.src in ids and l.dst in ids]
        return nodes, links

    def focus(self) -> Optional[Focus]:
        if not self.state.selection:
            return None
        return compute_focus(self.graph.links, self.state.selection)

    def render(self) -> RenderedView:
        nodes, links = self.visible()
        view = RenderedView(nodes=nodes, links=links, focus=self.focus())
        if view.focus is None:
            return view
        for node in nodes:
            if node.id not in view.focus.neighborhood:
                view.muted_nodes.add(node.id)
        for link in links:
            cls = view.focus.highlight(link)
            if cls is None:
                view.muted_links.add(link)
            else:
                view.highlights[link] = cls
        return view

    def search(self, term: str) -> List[Node]:
        needle = term.lower()
        if not needle:
            return []
        return [n for n in self.nodes if needle in n.name.lower()]

    def to_fragment(self) -> str:
        return self.state.to_fragment()

    def restore(self, fragment: str) -> ViewState:
        self.state = ViewState.from_fragment(fragment)
        return self.state

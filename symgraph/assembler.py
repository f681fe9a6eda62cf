"""Pass 3: merge candidate links and materialise the final graph."""

from __future__ import annotations

import logging

from .models import Graph, Link, LinkSet
from .registry import SymbolRegistry

logger = logging.getLogger(__name__)


def assemble(registry: SymbolRegistry, *link_sets: LinkSet) -> Graph:
    """Union ``link_sets`` and keep only links between registered nodes.

    Nodes end up sorted by id and links by ``(from, to)`` so the same
    program always serialises to the same document.
    """
    merged = LinkSet()
    for links in link_sets:
        merged.update(links)

    kept = []
    dropped = 0
    for src, dst in merged:
        if src in registry and dst in registry:
            kept.append(Link(src, dst))
        else:
            dropped += 1
    if dropped:
        logger.debug("Dropped %d dangling links", dropped)

    nodes = {node_id: registry[node_id] for node_id in sorted(registry)}
    return Graph(nodes=nodes, links=sorted(kept))

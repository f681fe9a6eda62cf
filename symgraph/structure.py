"""Pass 2: edges implied by type structure alone."""

from __future__ import annotations

from .models import KIND_TYPE, TYPE_INTERFACE, TYPE_STRUCT, LinkSet, Node
from .registry import SymbolRegistry, field_id, symbol_id


def derive_type_links(node: Node, registry: SymbolRegistry) -> LinkSet:
    """Ownership, field-type and embedding links of one type node."""
    links = LinkSet()
    symbol = node.symbol
    if node.kind != KIND_TYPE or symbol is None:
        return links

    for method in symbol.methods:
        links.insert(symbol_id(method), node.id)

    if symbol.shape == TYPE_INTERFACE:
        for method in symbol.explicit_methods:
            links.insert(symbol_id(method), node.id)
        for embedded in symbol.embedded:
            if embedded in registry:
                links.insert(node.id, embedded)

    elif symbol.shape == TYPE_STRUCT:
        for field in symbol.fields:
            fid = field_id(node.id, field.name)
            for used in field.field_types:
                if used in registry:
                    links.insert(fid, used)
            links.insert(fid, node.id)
    return links


def derive_structural_links(registry: SymbolRegistry) -> LinkSet:
    links = LinkSet()
    for node in registry.values():
        links.update(derive_type_links(node, registry))
    return links

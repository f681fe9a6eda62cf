"""Pass 1: turn front-end symbols into graph nodes.

The registry is built once over every package-level symbol of the program
and frozen before any edge pass runs; the edge passes only read it.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional

from .models import (
    FUNC_BASIC,
    FUNC_METHOD,
    KIND_CONST,
    KIND_FIELD,
    KIND_FUNC,
    KIND_TYPE,
    KIND_VAR,
    TYPE_INTERFACE,
    TYPE_NAME,
    TYPE_STRUCT,
    VAR_BASIC,
    VAR_FIELD,
    Node,
    Symbol,
)

logger = logging.getLogger(__name__)


def symbol_id(symbol: Symbol) -> str:
    """Stable identifier of a symbol.

    Methods are keyed by their printed receiver (``(pkg.T).m``), everything
    declared at module level by its qualified name (``pkg.name``).
    """
    if symbol.kind == KIND_FUNC and symbol.receiver:
        return f"({symbol.receiver}).{symbol.name}"
    if symbol.kind == KIND_FIELD and symbol.owner is not None:
        return field_id(symbol_id(symbol.owner), symbol.name)
    return symbol.printed


def field_id(owner_id: str, name: str) -> str:
    return f"({owner_id}).{name}"


def _position(symbol: Symbol) -> str:
    return str(symbol.position) if symbol.position is not None else ""


def _member_node(owner: Symbol, owner_id: str, member: Symbol, kind: str, subtype: str) -> Node:
    return Node(
        id=symbol_id(member),
        kind=kind,
        type=subtype,
        pkg=owner.pkg,
        name=f"{owner.name}.{member.name}",
        parent=owner_id,
        test=owner.test,
        position=_position(member),
        symbol=member,
    )


def nodes_for_symbol(symbol: Symbol) -> List[Node]:
    """Nodes contributed by one package-level symbol; ``[]`` for unknown kinds."""
    if symbol.kind == KIND_FUNC:
        parent = symbol_id(symbol.owner) if symbol.receiver and symbol.owner is not None else ""
        name = f"{symbol.owner.name}.{symbol.name}" if parent else symbol.name
        return [Node(
            id=symbol_id(symbol),
            kind=KIND_FUNC,
            type=FUNC_METHOD if symbol.receiver else FUNC_BASIC,
            pkg=symbol.pkg,
            name=name,
            parent=parent,
            test=symbol.test,
            position=_position(symbol),
            symbol=symbol,
        )]

    if symbol.kind == KIND_TYPE:
        type_id = symbol_id(symbol)
        nodes = [Node(
            id=type_id,
            kind=KIND_TYPE,
            type=symbol.shape or TYPE_NAME,
            pkg=symbol.pkg,
            name=symbol.name,
            test=symbol.test,
            position=_position(symbol),
            symbol=symbol,
        )]
        if symbol.shape == TYPE_STRUCT:
            for field in symbol.fields:
                nodes.append(_member_node(symbol, type_id, field, KIND_VAR, VAR_FIELD))
        elif symbol.shape == TYPE_INTERFACE:
            for method in symbol.explicit_methods:
                nodes.append(_member_node(symbol, type_id, method, KIND_FUNC, FUNC_METHOD))
        for method in symbol.methods:
            nodes.append(_member_node(symbol, type_id, method, KIND_FUNC, FUNC_METHOD))
        return nodes

    if symbol.kind == KIND_CONST:
        return [Node(
            id=symbol_id(symbol),
            kind=KIND_CONST,
            pkg=symbol.pkg,
            name=symbol.name,
            test=symbol.test,
            position=_position(symbol),
            symbol=symbol,
        )]

    if symbol.kind == KIND_VAR:
        return [Node(
            id=symbol_id(symbol),
            kind=KIND_VAR,
            type=VAR_BASIC,
            pkg=symbol.pkg,
            name=symbol.name,
            test=symbol.test,
            position=_position(symbol),
            symbol=symbol,
        )]

    logger.debug("Skipping symbol %s of unknown kind %r", symbol.name, symbol.kind)
    return []


class SymbolRegistry(Mapping[str, Node]):
    """Read-only id -> node table produced by pass 1."""

    def __init__(self, nodes: Mapping[str, Node]) -> None:
        self._nodes = MappingProxyType(dict(nodes))

    @classmethod
    def build(cls, symbols: Iterable[Symbol]) -> "SymbolRegistry":
        nodes: Dict[str, Node] = {}
        for symbol in symbols:
            for node in nodes_for_symbol(symbol):
                # a colliding id replaces the earlier node
                nodes[node.id] = node
        logger.debug("Registered %d nodes", len(nodes))
        return cls(nodes)

    @property
    def nodes(self) -> Mapping[str, Node]:
        return self._nodes

    def node_for(self, symbol: Optional[Symbol]) -> Optional[Node]:
        """Node tracked for ``symbol``, or ``None``."""
        if symbol is None:
            return None
        return self._nodes.get(symbol_id(symbol))

    def __getitem__(self, node_id: str) -> Node:
        return self._nodes[node_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

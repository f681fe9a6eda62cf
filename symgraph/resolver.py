"""Pass 2: reference edges found by walking each compilation unit's syntax."""

from __future__ import annotations

import ast
from typing import Dict, Optional

from .frontend import CompilationUnit
from .models import KIND_TYPE, TYPE_STRUCT, LinkSet, Node
from .registry import SymbolRegistry, field_id


def enclosing_node(
    unit: CompilationUnit,
    node: ast.AST,
    registry: SymbolRegistry,
    memo: Optional[Dict[ast.AST, Optional[Node]]] = None,
) -> Optional[Node]:
    """Innermost declaration around ``node`` (itself included) that has a graph node."""
    memo = {} if memo is None else memo
    visited = []
    current: Optional[ast.AST] = node
    found: Optional[Node] = None
    while current is not None:
        if current in memo:
            found = memo[current]
            break
        visited.append(current)
        found = registry.node_for(unit.definition(current))
        if found is not None:
            break
        current = unit.parent_of(current)
    for seen in visited:
        memo[seen] = found
    return found


def resolve_unit(unit: CompilationUnit, registry: SymbolRegistry) -> LinkSet:
    """Collect ``(enclosing, referenced)`` links for one unit."""
    links = LinkSet()
    memo: Dict[ast.AST, Optional[Node]] = {}
    for node in unit.walk():
        if not isinstance(node, (ast.Name, ast.Attribute)):
            continue
        source = enclosing_node(unit, node, registry, memo)
        if source is None:
            continue
        target = unit.uses(node)
        if target is None:
            continue

        ref = registry.node_for(target)
        if ref is not None:
            links.insert(source.id, ref.id)

        if isinstance(node, ast.Attribute):
            for named in unit.receiver_types(node.value):
                if named.kind != KIND_TYPE or named.shape != TYPE_STRUCT:
                    continue
                owner = registry.node_for(named)
                if owner is not None:
                    links.insert(source.id, field_id(owner.id, target.name))
    return links

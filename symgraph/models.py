"""Core data models shared by the front-end, the graph passes and the viewer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

KIND_TYPE = "type"
KIND_FUNC = "func"
KIND_CONST = "const"
KIND_VAR = "var"
KIND_FIELD = "field"

TYPE_STRUCT = "struct"
TYPE_INTERFACE = "interface"
TYPE_BASIC = "basic"
TYPE_FUNC = "func"
TYPE_NAME = "name"

FUNC_METHOD = "method"
FUNC_BASIC = "func"

VAR_BASIC = "basic"
VAR_FIELD = "field"


@dataclass(frozen=True)
class SourceRange:
    path: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def __str__(self) -> str:
        return (
            f"{self.path}:{self.start_line}:{self.start_col}"
            f"-{self.end_line}:{self.end_col}"
        )


@dataclass(eq=False)
class Symbol:
    """A resolved program entity handed over by a front-end.

    Symbols compare by identity: the front-end owns them and the graph
    passes never mutate them.
    """

    kind: str
    name: str
    pkg: str = ""
    shape: str = ""
    receiver: Optional[str] = None
    owner: Optional["Symbol"] = field(default=None, repr=False)
    methods: List["Symbol"] = field(default_factory=list, repr=False)
    explicit_methods: List["Symbol"] = field(default_factory=list, repr=False)
    fields: List["Symbol"] = field(default_factory=list, repr=False)
    embedded: List[str] = field(default_factory=list)
    field_types: List[str] = field(default_factory=list)
    test: bool = False
    position: Optional[SourceRange] = None
    decl: Any = field(default=None, repr=False)
    unit: Any = field(default=None, repr=False)

    @property
    def printed(self) -> str:
        """Printed form of a package-level symbol, as used in type strings."""
        return f"{self.pkg}.{self.name}" if self.pkg else self.name


@dataclass
class Node:
    id: str
    kind: str
    name: str
    pkg: str = ""
    type: str = ""
    parent: str = ""
    test: bool = False
    position: str = ""
    symbol: Optional[Symbol] = field(default=None, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"kind": self.kind}
        if self.type:
            out["type"] = self.type
        out["pkg"] = self.pkg
        out["id"] = self.id
        out["name"] = self.name
        if self.parent:
            out["parent"] = self.parent
        if self.test:
            out["test"] = True
        if self.position:
            out["position"] = self.position
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        return cls(
            id=str(data["id"]),
            kind=str(data.get("kind", "")),
            name=str(data.get("name") or data["id"]),
            pkg=str(data.get("pkg", "")),
            type=str(data.get("type", "")),
            parent=str(data.get("parent", "")),
            test=bool(data.get("test", False)),
            position=str(data.get("position", "")),
        )


@dataclass(frozen=True, order=True)
class Link:
    src: str
    dst: str

    def to_dict(self) -> Dict[str, str]:
        return {"from": self.src, "to": self.dst}


class LinkSet:
    """Set of ``(from, to)`` pairs; insertion order never matters."""

    def __init__(self, pairs: Iterable[Tuple[str, str]] = ()) -> None:
        self._targets: Dict[str, Set[str]] = {}
        for src, dst in pairs:
            self.insert(src, dst)

    def insert(self, src: str, dst: str) -> None:
        self._targets.setdefault(src, set()).add(dst)

    def update(self, other: "LinkSet") -> "LinkSet":
        for src, targets in other._targets.items():
            self._targets.setdefault(src, set()).update(targets)
        return self

    def __contains__(self, pair: object) -> bool:
        if not isinstance(pair, tuple) or len(pair) != 2:
            return False
        return pair[1] in self._targets.get(pair[0], ())

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        for src, targets in self._targets.items():
            for dst in targets:
                yield src, dst

    def __len__(self) -> int:
        return sum(len(t) for t in self._targets.values())

    def __repr__(self) -> str:
        return f"LinkSet({sorted(self)!r})"


@dataclass
class Graph:
    nodes: Dict[str, Node] = field(default_factory=dict)
    links: List[Link] = field(default_factory=list)

    def node_list(self) -> List[Node]:
        return [self.nodes[k] for k in sorted(self.nodes)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.node_list()],
            "links": [l.to_dict() for l in self.links],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Graph":
        graph = cls()
        for raw in data.get("nodes") or []:
            node = Node.from_dict(raw)
            graph.nodes[node.id] = node
        for raw in data.get("links") or []:
            graph.links.append(Link(str(raw["from"]), str(raw["to"])))
        return graph

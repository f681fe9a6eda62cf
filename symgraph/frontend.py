"""Program front-end: resolved symbols and references for Python sources.

The graph passes only talk to the abstract :class:`Program` and
:class:`CompilationUnit` interfaces. :class:`PythonProgram` implements them on
top of the built-in ``ast`` module with a scope-tracking resolver:

- module, class, function and comprehension scopes follow Python's lookup
  rules (class bodies are invisible to nested functions, ``global`` and
  ``nonlocal`` are honoured)
- imports, relative imports, re-exports and ``*`` imports are followed
  across the loaded modules
- static types come from annotations, ``self``/``cls``, constructor calls,
  return annotations and ``for`` targets, stripping container wrappers
  such as ``Optional``, ``list`` or ``dict``

Everything is indexed eagerly while loading; afterwards lookups are
read-only so units can be traversed from several threads.
"""

from __future__ import annotations

import ast
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Iterator, List, NamedTuple, Optional, Sequence, Set, Union

from .loader import SourceFile, load_sources
from .models import (
    KIND_CONST,
    KIND_FIELD,
    KIND_FUNC,
    KIND_TYPE,
    KIND_VAR,
    TYPE_BASIC,
    TYPE_FUNC,
    TYPE_INTERFACE,
    TYPE_NAME,
    TYPE_STRUCT,
    SourceRange,
    Symbol,
)

logger = logging.getLogger(__name__)

_CONST_NAME = re.compile(r"^_*[A-Z][A-Z0-9_]*$")

_SCALARS = {"int", "float", "complex", "str", "bytes", "bytearray", "bool"}

# Generic wrappers stripped when looking for the named types inside an annotation
_WRAPPERS = {
    "Optional", "Union", "List", "list", "Dict", "dict", "Set", "set",
    "FrozenSet", "frozenset", "Tuple", "tuple", "Sequence", "MutableSequence",
    "Iterable", "Iterator", "Collection", "Mapping", "MutableMapping",
    "AbstractSet", "MutableSet", "Deque", "deque", "DefaultDict", "defaultdict",
    "OrderedDict", "Counter", "ChainMap", "Type", "type", "ClassVar", "Final",
    "Awaitable", "Coroutine", "Generator", "AsyncIterator", "AsyncIterable",
    "AsyncGenerator", "Required", "NotRequired", "ReadOnly", "Annotated",
}

_INTERFACE_BASES = {"Protocol", "ABC"}

_FUNCTIONS = (ast.FunctionDef, ast.AsyncFunctionDef)
_COMPREHENSIONS = (ast.ListComp, ast.SetComp, ast.DictComp, ast.GeneratorExp)
# ``type X = ...`` statements only exist on Python 3.12+
_TYPE_ALIAS = getattr(ast, "TypeAlias", None)
_MATCH_BINDERS = tuple(
    cls for cls in (getattr(ast, "MatchAs", None), getattr(ast, "MatchStar", None)) if cls is not None
)


# ===================================================================
# Front-end interface
# ===================================================================

class CompilationUnit(ABC):
    """One module of the analysed program, as seen by the graph passes."""

    module: str
    test: bool
    tree: ast.AST

    def walk(self) -> Iterator[ast.AST]:
        return ast.walk(self.tree)

    @abstractmethod
    def parent_of(self, node: ast.AST) -> Optional[ast.AST]:
        """Return the syntactic parent of *node* (``None`` for the module)."""
        ...

    @abstractmethod
    def definition(self, node: ast.AST) -> Optional[Symbol]:
        """Return the symbol declared by *node* if it is a declaration construct."""
        ...

    @abstractmethod
    def uses(self, node: ast.AST) -> Optional[Symbol]:
        """Return the symbol a name or member reference resolves to."""
        ...

    @abstractmethod
    def receiver_types(self, expr: ast.AST) -> List[Symbol]:
        """Return the named types of *expr*'s static type, wrappers stripped."""
        ...


class Program(ABC):
    """A fully loaded and resolved program."""

    @abstractmethod
    def symbols(self) -> List[Symbol]:
        """Return every package-level symbol of the program."""
        ...

    @property
    @abstractmethod
    def units(self) -> Sequence[CompilationUnit]:
        ...


# ===================================================================
# Scopes and bindings
# ===================================================================

@dataclass(frozen=True)
class _ModuleRef:
    name: str


@dataclass(frozen=True)
class _Import:
    module: str
    name: Optional[str] = None


class _Site(NamedTuple):
    """Where a name gets its value: used for static type inference."""

    kind: str  # annotation | value | iter | self | import
    expr: Optional[ast.AST]
    unit: "PythonUnit"
    payload: object = None


class _Scope:
    __slots__ = ("kind", "node", "parent", "owner", "bindings", "globals", "nonlocals")

    def __init__(self, kind: str, node: ast.AST, parent: Optional["_Scope"]) -> None:
        self.kind = kind
        self.node = node
        self.parent = parent
        self.owner: Optional[Symbol] = None
        self.bindings: Dict[str, List[_Site]] = {}
        self.globals: Set[str] = set()
        self.nonlocals: Set[str] = set()

    def bind(self, name: str, site: Optional[_Site] = None) -> None:
        sites = self.bindings.setdefault(name, [])
        if site is not None:
            sites.append(site)


class _Local(NamedTuple):
    scope: _Scope
    name: str


_Ref = Union[Symbol, _ModuleRef, _Local, None]


def _dotted(expr: Optional[ast.AST]) -> str:
    if isinstance(expr, ast.Name):
        return expr.id
    if isinstance(expr, ast.Attribute):
        head = _dotted(expr.value)
        return f"{head}.{expr.attr}" if head else ""
    if isinstance(expr, ast.Subscript):
        return _dotted(expr.value)
    return ""


def _last(dotted: str) -> str:
    return dotted.rsplit(".", 1)[-1]


def _has_decorator(func: ast.AST, *names: str) -> bool:
    return any(_last(_dotted(d)) in names for d in getattr(func, "decorator_list", ()))


def _target_names(target: ast.AST) -> List[ast.Name]:
    if isinstance(target, ast.Name):
        return [target]
    if isinstance(target, (ast.Tuple, ast.List)):
        return [n for elt in target.elts for n in _target_names(elt)]
    if isinstance(target, ast.Starred):
        return _target_names(target.value)
    return []


def _self_attrs(target: ast.AST, self_name: str) -> List[ast.Attribute]:
    if isinstance(target, ast.Attribute):
        if isinstance(target.value, ast.Name) and target.value.id == self_name:
            return [target]
        return []
    if isinstance(target, (ast.Tuple, ast.List)):
        return [a for elt in target.elts for a in _self_attrs(elt, self_name)]
    if isinstance(target, ast.Starred):
        return _self_attrs(target.value, self_name)
    return []


def _first_param(func: ast.AST) -> Optional[ast.arg]:
    if not isinstance(func, _FUNCTIONS) or _has_decorator(func, "staticmethod"):
        return None
    positional = func.args.posonlyargs + func.args.args
    return positional[0] if positional else None


def _alias_shape(expr: Optional[ast.AST]) -> str:
    dotted = _dotted(expr)
    if isinstance(expr, (ast.Name, ast.Attribute)) and _last(dotted) in _SCALARS:
        return TYPE_BASIC
    if _last(dotted) == "Callable":
        return TYPE_FUNC
    return TYPE_NAME


def _dedupe(symbols: Iterable[Symbol]) -> List[Symbol]:
    out: List[Symbol] = []
    for sym in symbols:
        if not any(sym is s for s in out):
            out.append(sym)
    return out


# ===================================================================
# Compilation unit
# ===================================================================

class PythonUnit(CompilationUnit):
    """A parsed module with its scopes, declarations and parent links."""

    def __init__(self, program: "PythonProgram", source: SourceFile) -> None:
        self.program = program
        self.source = source
        self.module = source.module
        self.test = source.test
        self.tree = source.tree
        self.scope = _Scope("module", self.tree, None)
        self.symbols: Dict[str, Symbol] = {}
        self.stars: List[str] = []
        self._parents: Dict[ast.AST, ast.AST] = {}
        self._scope_of: Dict[ast.AST, _Scope] = {self.tree: self.scope}
        self._scopes: Dict[ast.AST, _Scope] = {self.tree: self.scope}
        self._defs: Dict[ast.AST, Symbol] = {}
        self._index()

    # ------------------------------------------------------------------
    # CompilationUnit interface
    # ------------------------------------------------------------------

    def parent_of(self, node: ast.AST) -> Optional[ast.AST]:
        return self._parents.get(node)

    def definition(self, node: ast.AST) -> Optional[Symbol]:
        return self._defs.get(node)

    def uses(self, node: ast.AST) -> Optional[Symbol]:
        scope = self.scope_of(node)
        ref: _Ref = None
        if isinstance(node, ast.Name):
            if isinstance(node.ctx, ast.Load):
                ref = self.program._lookup(self, scope, node.id, frozenset())
            elif scope.kind != "module" and node.id in scope.globals:
                ref = self.program._module_binding(self.module, node.id, frozenset())
        elif isinstance(node, ast.Attribute):
            ref = self.program._resolve_attr(self, node, scope, frozenset())
        return ref if isinstance(ref, Symbol) else None

    def receiver_types(self, expr: ast.AST) -> List[Symbol]:
        return self.program._expr_types(self, expr, self.scope_of(expr), frozenset())

    def scope_of(self, node: ast.AST) -> _Scope:
        return self._scope_of.get(node, self.scope)

    # ------------------------------------------------------------------
    # Indexing: parents, scopes and bindings
    # ------------------------------------------------------------------

    def _index(self) -> None:
        stack = [(self.tree, self.scope)]
        while stack:
            node, scope = stack.pop()
            for child, child_scope in self._children(node, scope):
                self._parents[child] = node
                self._scope_of[child] = child_scope
                self._bind(child, child_scope)
                stack.append((child, child_scope))

    def _new_scope(self, kind: str, node: ast.AST, parent: _Scope) -> _Scope:
        scope = _Scope(kind, node, parent)
        self._scopes[node] = scope
        return scope

    def _children(self, node: ast.AST, scope: _Scope):
        if isinstance(node, _FUNCTIONS + (ast.Lambda,)):
            inner = self._new_scope("function", node, scope)
            if isinstance(node, ast.Lambda):
                body_ids = {id(node.body)}
            else:
                body_ids = {id(stmt) for stmt in node.body}
            for child in ast.iter_child_nodes(node):
                inside = child is node.args or id(child) in body_ids
                yield child, inner if inside else scope
        elif isinstance(node, ast.arguments):
            # defaults are evaluated where the function is defined
            for child in ast.iter_child_nodes(node):
                yield child, scope if isinstance(child, ast.arg) else scope.parent
        elif isinstance(node, ast.arg):
            for child in ast.iter_child_nodes(node):
                yield child, scope.parent
        elif isinstance(node, ast.ClassDef):
            inner = self._new_scope("class", node, scope)
            body_ids = {id(stmt) for stmt in node.body}
            for child in ast.iter_child_nodes(node):
                yield child, inner if id(child) in body_ids else scope
        elif isinstance(node, _COMPREHENSIONS):
            inner = self._new_scope("comprehension", node, scope)
            for child in ast.iter_child_nodes(node):
                yield child, inner
        elif isinstance(node, ast.comprehension):
            first = self._parents[node].generators[0] is node
            for child in ast.iter_child_nodes(node):
                yield child, scope.parent if first and child is node.iter else scope
        else:
            for child in ast.iter_child_nodes(node):
                yield child, scope

    def _bind(self, node: ast.AST, scope: _Scope) -> None:
        if isinstance(node, ast.Name):
            if isinstance(node.ctx, ast.Load):
                return
            parent = self._parents[node]
            target = scope
            if isinstance(parent, ast.NamedExpr):
                while target.kind == "comprehension" and target.parent is not None:
                    target = target.parent
            target.bind(node.id, self._target_site(node, parent))
        elif isinstance(node, ast.arg):
            self._bind_arg(node, scope)
        elif isinstance(node, _FUNCTIONS + (ast.ClassDef,)):
            scope.bind(node.name)
        elif isinstance(node, ast.Import):
            for alias in node.names:
                if alias.asname:
                    scope.bind(alias.asname, _Site("import", None, self, _Import(alias.name)))
                else:
                    top = alias.name.split(".")[0]
                    scope.bind(top, _Site("import", None, self, _Import(top)))
        elif isinstance(node, ast.ImportFrom):
            module = self._absolute_module(node)
            for alias in node.names:
                if alias.name == "*":
                    if scope.kind == "module":
                        self.stars.append(module)
                    continue
                site = _Site("import", None, self, _Import(module, alias.name))
                scope.bind(alias.asname or alias.name, site)
        elif isinstance(node, ast.ExceptHandler) and node.name:
            scope.bind(node.name)
        elif isinstance(node, ast.Global):
            scope.globals.update(node.names)
        elif isinstance(node, ast.Nonlocal):
            scope.nonlocals.update(node.names)
        elif _MATCH_BINDERS and isinstance(node, _MATCH_BINDERS) and node.name:
            scope.bind(node.name)

    def _target_site(self, name: ast.Name, parent: ast.AST) -> Optional[_Site]:
        if isinstance(parent, ast.Assign):
            if any(t is name for t in parent.targets):
                return _Site("value", parent.value, self)
        elif isinstance(parent, ast.AnnAssign):
            return _Site("annotation", parent.annotation, self)
        elif isinstance(parent, (ast.For, ast.AsyncFor, ast.comprehension)):
            if parent.target is name:
                return _Site("iter", parent.iter, self)
        elif isinstance(parent, ast.withitem):
            return _Site("value", parent.context_expr, self)
        elif isinstance(parent, ast.NamedExpr):
            return _Site("value", parent.value, self)
        return None

    def _bind_arg(self, arg: ast.arg, scope: _Scope) -> None:
        func = scope.node
        site: Optional[_Site] = None
        if arg.annotation is not None:
            site = _Site("annotation", arg.annotation, self)
        elif scope.parent is not None and scope.parent.kind == "class" and _first_param(func) is arg:
            site = _Site("self", None, self, scope.parent)
        scope.bind(arg.arg, site)

    def _absolute_module(self, node: ast.ImportFrom) -> str:
        if not node.level:
            return node.module or ""
        parts = self.module.split(".")
        if not self.source.is_package:
            parts = parts[:-1]
        drop = node.level - 1
        if drop:
            parts = parts[:-drop] if drop < len(parts) else []
        return ".".join(p for p in (".".join(parts), node.module) if p)

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def _range(self, node: ast.AST) -> SourceRange:
        end_line = getattr(node, "end_lineno", None) or node.lineno
        end_col = getattr(node, "end_col_offset", None)
        return SourceRange(
            self.source.rel_path,
            node.lineno,
            node.col_offset + 1,
            end_line,
            (end_col if end_col is not None else node.col_offset) + 1,
        )

    def _symbol(self, kind: str, name: str, decl: ast.AST, **extra) -> Symbol:
        return Symbol(
            kind=kind,
            name=name,
            pkg=self.module,
            test=self.test,
            position=self._range(decl),
            decl=decl,
            unit=self,
            **extra,
        )

    def _top_level(self, body: List[ast.stmt]) -> Iterator[ast.stmt]:
        for stmt in body:
            yield stmt
            if isinstance(stmt, ast.If):
                yield from self._top_level(stmt.body)
                yield from self._top_level(stmt.orelse)
            elif isinstance(stmt, (ast.With, ast.AsyncWith)):
                yield from self._top_level(stmt.body)
            elif hasattr(stmt, "handlers") and hasattr(stmt, "finalbody"):
                yield from self._top_level(stmt.body)
                for handler in stmt.handlers:
                    yield from self._top_level(handler.body)
                yield from self._top_level(stmt.orelse)
                yield from self._top_level(stmt.finalbody)

    def _declare(self, sym: Symbol, decl: ast.AST) -> Symbol:
        existing = self.symbols.get(sym.name)
        if existing is not None:
            self._defs.setdefault(decl, existing)
            return existing
        self.symbols[sym.name] = sym
        self._defs.setdefault(decl, sym)
        return sym

    def collect_symbols(self) -> None:
        for stmt in self._top_level(self.tree.body):
            if isinstance(stmt, _FUNCTIONS):
                self._declare(self._symbol(KIND_FUNC, stmt.name, stmt), stmt)
            elif isinstance(stmt, ast.ClassDef):
                self._declare_class(stmt)
            elif isinstance(stmt, ast.Assign):
                for target in stmt.targets:
                    for name in _target_names(target):
                        self._declare_value(name.id, stmt, None, stmt.value)
            elif isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
                self._declare_value(stmt.target.id, stmt, stmt.annotation, stmt.value)
            elif _TYPE_ALIAS is not None and isinstance(stmt, _TYPE_ALIAS):
                name = stmt.name.id
                self._declare(self._symbol(KIND_TYPE, name, stmt, shape=_alias_shape(stmt.value)), stmt)

    def _declare_value(
        self,
        name: str,
        stmt: ast.stmt,
        annotation: Optional[ast.AST],
        value: Optional[ast.AST],
    ) -> None:
        hint = _last(_dotted(annotation))
        if hint == "TypeAlias":
            sym = self._symbol(KIND_TYPE, name, stmt, shape=_alias_shape(value))
        elif isinstance(value, ast.Call) and _last(_dotted(value.func)) == "NewType":
            base = value.args[1] if len(value.args) > 1 else None
            sym = self._symbol(KIND_TYPE, name, stmt, shape=_alias_shape(base))
        elif hint == "Final" or _CONST_NAME.match(name):
            sym = self._symbol(KIND_CONST, name, stmt)
        else:
            sym = self._symbol(KIND_VAR, name, stmt)
        self._declare(sym, stmt)

    def _declare_class(self, node: ast.ClassDef) -> None:
        interface = _is_interface(node)
        sym = self._symbol(KIND_TYPE, node.name, node, shape=TYPE_INTERFACE if interface else TYPE_STRUCT)
        if self._declare(sym, node) is not sym:
            return
        self._scopes[node].owner = sym

        members: Dict[str, Symbol] = {}
        methods: List[Symbol] = []
        for stmt in node.body:
            if not isinstance(stmt, _FUNCTIONS):
                continue
            if stmt.name in members:
                self._defs[stmt] = members[stmt.name]
                continue
            receiver = f"type[{sym.printed}]" if _has_decorator(stmt, "classmethod") else sym.printed
            method = self._symbol(KIND_FUNC, stmt.name, stmt, receiver=receiver, owner=sym)
            members[stmt.name] = method
            methods.append(method)
            self._defs[stmt] = method

        self.program._members[sym] = members
        if interface:
            sym.explicit_methods = methods
        else:
            sym.methods = methods
            self._collect_fields(node, sym)

    def _add_field(self, owner: Symbol, name: str, decl: ast.stmt, site: Optional[_Site], declares: bool) -> None:
        members = self.program._members[owner]
        sites = self.program._field_sites
        if name in members and members[name].kind != KIND_FIELD:
            return
        field = members.get(name)
        if field is None:
            field = self._symbol(KIND_FIELD, name, decl, owner=owner)
            members[name] = field
            owner.fields.append(field)
            sites[field] = []
        if declares:
            self._defs.setdefault(decl, field)
        if site is not None:
            sites[field].append(site)

    def _collect_fields(self, node: ast.ClassDef, owner: Symbol) -> None:
        """Fields declared in the class body."""
        for stmt in node.body:
            if isinstance(stmt, ast.Assign):
                single = len(stmt.targets) == 1 and isinstance(stmt.targets[0], ast.Name)
                for target in stmt.targets:
                    for name in _target_names(target):
                        site = _Site("value", stmt.value, self) if single else None
                        self._add_field(owner, name.id, stmt, site, True)
            elif isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
                self._add_field(owner, stmt.target.id, stmt, _Site("annotation", stmt.annotation, self), True)

    def collect_attribute_fields(self, owner: Symbol) -> None:
        """Fields assigned through the first parameter of a method.

        Runs once the bases are resolved: a name some base already declares
        stays that base's member.
        """
        for stmt in owner.decl.body:
            first = _first_param(stmt)
            if first is None:
                continue
            for sub in ast.walk(stmt):
                if isinstance(sub, ast.Assign):
                    for target in sub.targets:
                        direct = isinstance(target, ast.Attribute)
                        for attr in _self_attrs(target, first.arg):
                            site = _Site("value", sub.value, self) if direct else None
                            self._add_attribute_field(owner, attr.attr, sub, site)
                elif isinstance(sub, ast.AnnAssign):
                    for attr in _self_attrs(sub.target, first.arg):
                        self._add_attribute_field(owner, attr.attr, sub, _Site("annotation", sub.annotation, self))
                elif isinstance(sub, ast.AugAssign):
                    for attr in _self_attrs(sub.target, first.arg):
                        self._add_attribute_field(owner, attr.attr, sub, None)
        owner.fields.sort(key=lambda f: (f.decl.lineno, f.decl.col_offset))

    def _add_attribute_field(self, owner: Symbol, name: str, decl: ast.stmt, site: Optional[_Site]) -> None:
        if name not in self.program._members[owner]:
            inherited = self.program._class_member(owner, name)
            if inherited is not None:
                if inherited.kind == KIND_FIELD and site is not None:
                    self.program._field_sites[inherited].append(site)
                return
        self._add_field(owner, name, decl, site, False)


def _is_interface(node: ast.ClassDef) -> bool:
    if any(_last(_dotted(base)) in _INTERFACE_BASES for base in node.bases):
        return True
    return any(
        kw.arg == "metaclass" and _last(_dotted(kw.value)) == "ABCMeta" for kw in node.keywords
    )


# ===================================================================
# Program
# ===================================================================

class PythonProgram(Program):
    """A set of Python modules resolved against each other."""

    def __init__(self, sources: Sequence[SourceFile]) -> None:
        self._members: Dict[Symbol, Dict[str, Symbol]] = {}
        self._bases: Dict[Symbol, List[Symbol]] = {}
        self._field_sites: Dict[Symbol, List[_Site]] = {}
        self._units = [PythonUnit(self, src) for src in sources]
        self._modules: Dict[str, PythonUnit] = {u.module: u for u in self._units}
        self._packages: Set[str] = set()
        for name in self._modules:
            parts = name.split(".")
            for i in range(1, len(parts)):
                self._packages.add(".".join(parts[:i]))

        for unit in self._units:
            unit.collect_symbols()
        self._link_types()

    @classmethod
    def load(cls, paths: Sequence[str], root: Optional[Path] = None) -> "PythonProgram":
        return cls(load_sources(paths, root))

    @property
    def units(self) -> Sequence[PythonUnit]:
        return self._units

    def symbols(self) -> List[Symbol]:
        return [unit.symbols[name] for unit in self._units for name in sorted(unit.symbols)]

    def _link_types(self) -> None:
        """Resolve class bases, interface embeds and field types."""
        classes = [
            sym for unit in self._units for sym in unit.symbols.values()
            if sym.kind == KIND_TYPE and isinstance(sym.decl, ast.ClassDef)
        ]
        for sym in classes:
            bases: List[Symbol] = []
            printed: List[str] = []
            for base in sym.decl.bases:
                expr = base.value if isinstance(base, ast.Subscript) else base
                ref = self._resolve(sym.unit, expr, sym.unit.scope_of(expr), frozenset())
                if isinstance(ref, Symbol) and ref.kind == KIND_TYPE:
                    bases.append(ref)
                    printed.append(ref.printed)
                elif _dotted(expr):
                    printed.append(_dotted(expr))
            self._bases[sym] = bases
            if sym.shape == TYPE_INTERFACE:
                sym.embedded = printed

        done: Set[Symbol] = set()

        def collect(sym: Symbol) -> None:
            if sym in done:
                return
            done.add(sym)
            for base in self._bases.get(sym, []):
                collect(base)
            if sym.shape == TYPE_STRUCT and isinstance(sym.decl, ast.ClassDef):
                sym.unit.collect_attribute_fields(sym)

        # bases before subclasses
        for sym in classes:
            collect(sym)

        for sym in classes:
            for field in sym.fields:
                field.field_types = [t.printed for t in self._symbol_types(field, frozenset())]

    # ------------------------------------------------------------------
    # Name resolution
    # ------------------------------------------------------------------

    def _lookup(self, unit: PythonUnit, scope: _Scope, name: str, seen: FrozenSet) -> _Ref:
        current: Optional[_Scope] = scope
        first = True
        while current is not None:
            if current.kind == "module" or name in current.globals:
                return self._module_binding(unit.module, name, seen)
            if current.kind == "class" and not first:
                current = current.parent
                continue
            if name in current.bindings and name not in current.nonlocals:
                if current.kind == "class" and current.owner is not None:
                    member = self._members.get(current.owner, {}).get(name)
                    if member is not None:
                        return member
                for site in current.bindings[name]:
                    if site.kind == "import":
                        return self._resolve_import(site.payload, seen)
                return _Local(current, name)
            first = False
            current = current.parent
        return None

    def _module_binding(self, module: str, name: str, seen: FrozenSet) -> _Ref:
        key = ("module", module, name)
        if key in seen:
            return None
        seen = seen | {key}
        unit = self._modules.get(module)
        if unit is None:
            return None
        sym = unit.symbols.get(name)
        if sym is not None:
            return sym
        for site in unit.scope.bindings.get(name, ()):
            if site.kind == "import":
                return self._resolve_import(site.payload, seen)
        if name in unit.scope.bindings:
            return None
        if not name.startswith("_"):
            for star in unit.stars:
                ref = self._module_binding(star, name, seen)
                if ref is not None:
                    return ref
        return None

    def _is_module(self, name: str) -> bool:
        return name in self._modules or name in self._packages

    def _resolve_import(self, imp: _Import, seen: FrozenSet) -> _Ref:
        if imp.name is None:
            return _ModuleRef(imp.module)
        qualified = f"{imp.module}.{imp.name}" if imp.module else imp.name
        if self._is_module(qualified):
            return _ModuleRef(qualified)
        return self._module_binding(imp.module, imp.name, seen)

    def _resolve(self, unit: PythonUnit, expr: ast.AST, scope: _Scope, seen: FrozenSet) -> _Ref:
        if isinstance(expr, ast.Name):
            return self._lookup(unit, scope, expr.id, seen)
        if isinstance(expr, ast.Attribute):
            return self._resolve_attr(unit, expr, scope, seen)
        return None

    def _resolve_attr(self, unit: PythonUnit, node: ast.Attribute, scope: _Scope, seen: FrozenSet) -> _Ref:
        base = self._resolve(unit, node.value, scope, seen)
        if isinstance(base, _ModuleRef):
            qualified = f"{base.name}.{node.attr}"
            if self._is_module(qualified):
                return _ModuleRef(qualified)
            return self._module_binding(base.name, node.attr, seen)
        for cls in self._expr_types(unit, node.value, scope, seen):
            member = self._class_member(cls, node.attr)
            if member is not None:
                return member
        return None

    def _mro(self, cls: Symbol) -> List[Symbol]:
        order: List[Symbol] = []
        stack = [cls]
        while stack:
            current = stack.pop(0)
            if any(current is c for c in order):
                continue
            order.append(current)
            stack[0:0] = self._bases.get(current, [])
        return order

    def _class_member(self, cls: Symbol, name: str) -> Optional[Symbol]:
        for klass in self._mro(cls):
            member = self._members.get(klass, {}).get(name)
            if member is not None:
                return member
        return None

    # ------------------------------------------------------------------
    # Static types
    # ------------------------------------------------------------------

    def _expr_types(self, unit: PythonUnit, expr: ast.AST, scope: _Scope, seen: FrozenSet) -> List[Symbol]:
        if isinstance(expr, (ast.Name, ast.Attribute)):
            return self._ref_types(self._resolve(unit, expr, scope, seen), seen)
        if isinstance(expr, ast.Call):
            func = expr.func
            if isinstance(func, ast.Name) and func.id == "super":
                owner = self._method_owner(scope)
                return list(self._bases.get(owner, [])) if owner is not None else []
            ref = self._resolve(unit, func, scope, seen)
            if isinstance(ref, Symbol):
                if ref.kind == KIND_TYPE:
                    return [ref]
                if ref.kind == KIND_FUNC:
                    return self._return_types(ref, seen)
            return []
        if isinstance(expr, (ast.Subscript, ast.Await, ast.Starred, ast.NamedExpr)):
            return self._expr_types(unit, expr.value, scope, seen)
        if isinstance(expr, ast.IfExp):
            return _dedupe(
                self._expr_types(unit, expr.body, scope, seen)
                + self._expr_types(unit, expr.orelse, scope, seen)
            )
        if isinstance(expr, ast.BoolOp):
            return _dedupe(t for v in expr.values for t in self._expr_types(unit, v, scope, seen))
        return []

    def _method_owner(self, scope: _Scope) -> Optional[Symbol]:
        current: Optional[_Scope] = scope
        while current is not None:
            if current.kind == "function" and current.parent is not None and current.parent.kind == "class":
                return current.parent.owner
            current = current.parent
        return None

    def _ref_types(self, ref: _Ref, seen: FrozenSet) -> List[Symbol]:
        if isinstance(ref, Symbol):
            return self._symbol_types(ref, seen)
        if isinstance(ref, _Local):
            key = ("local", id(ref.scope), ref.name)
            if key in seen:
                return []
            seen = seen | {key}
            return _dedupe(
                t for site in ref.scope.bindings.get(ref.name, ()) for t in self._site_types(site, seen)
            )
        return []

    def _symbol_types(self, sym: Symbol, seen: FrozenSet) -> List[Symbol]:
        if sym.kind == KIND_TYPE:
            return [sym]
        if sym in seen:
            return []
        seen = seen | {sym}
        if sym.kind == KIND_FIELD:
            sites: Iterable[_Site] = self._field_sites.get(sym, ())
        elif sym.kind in (KIND_VAR, KIND_CONST) and sym.unit is not None:
            sites = sym.unit.scope.bindings.get(sym.name, ())
        elif sym.kind == KIND_FUNC and _has_decorator(sym.decl, "property", "cached_property"):
            return self._return_types(sym, seen)
        else:
            return []
        return _dedupe(t for site in sites for t in self._site_types(site, seen))

    def _site_types(self, site: _Site, seen: FrozenSet) -> List[Symbol]:
        unit = site.unit
        if site.kind == "annotation":
            return self._annotation_types(unit, site.expr, unit.scope_of(site.expr), seen)
        if site.kind in ("value", "iter"):
            return self._expr_types(unit, site.expr, unit.scope_of(site.expr), seen)
        if site.kind == "self":
            owner = site.payload.owner
            return [owner] if owner is not None else []
        if site.kind == "import":
            return self._ref_types(self._resolve_import(site.payload, seen), seen)
        return []

    def _return_types(self, func: Symbol, seen: FrozenSet) -> List[Symbol]:
        decl = func.decl
        key = ("return", func)
        if key in seen or not isinstance(decl, _FUNCTIONS) or decl.returns is None:
            return []
        unit = func.unit
        return self._annotation_types(unit, decl.returns, unit.scope_of(decl.returns), seen | {key})

    def _annotation_types(self, unit: PythonUnit, expr: ast.AST, scope: _Scope, seen: FrozenSet) -> List[Symbol]:
        if isinstance(expr, ast.Constant) and isinstance(expr.value, str):
            try:
                parsed = ast.parse(expr.value.strip(), mode="eval").body
            except SyntaxError:
                return []
            return self._annotation_types(unit, parsed, scope, seen)
        if isinstance(expr, (ast.Name, ast.Attribute)):
            ref = self._resolve(unit, expr, scope, seen)
            return [ref] if isinstance(ref, Symbol) and ref.kind == KIND_TYPE else []
        if isinstance(expr, ast.Subscript):
            head = _last(_dotted(expr.value))
            if head in ("Literal", "Callable"):
                return []
            if head in _WRAPPERS:
                args = expr.slice.elts if isinstance(expr.slice, ast.Tuple) else [expr.slice]
                if head == "Annotated":
                    args = args[:1]
                return _dedupe(t for a in args for t in self._annotation_types(unit, a, scope, seen))
            return self._annotation_types(unit, expr.value, scope, seen)
        if isinstance(expr, ast.BinOp) and isinstance(expr.op, ast.BitOr):
            return _dedupe(
                self._annotation_types(unit, expr.left, scope, seen)
                + self._annotation_types(unit, expr.right, scope, seen)
            )
        return []

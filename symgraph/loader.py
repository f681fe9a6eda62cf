"""Source discovery and parsing for the Python front-end.

Turns command-line path arguments into parsed :class:`SourceFile` objects:

- a file path loads that module
- a directory loads the ``.py`` files directly inside it
- a directory followed by ``...`` (``./src/...``) loads it recursively,
  skipping :data:`~symgraph.config.SKIP_DIRS`

Any failure (missing path, unreadable file, syntax error) raises
:class:`~symgraph.errors.LoadError`; there is no partial load.
"""

from __future__ import annotations

import ast
import fnmatch
import logging
import os
import tokenize
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .config import RECURSIVE_SUFFIX, ROOT_MARKERS, SKIP_DIRS, SUPPORTED_EXTENSIONS, TEST_FILE_PATTERNS
from .errors import LoadError

logger = logging.getLogger(__name__)


@dataclass
class SourceFile:
    path: Path
    module: str
    rel_path: str
    test: bool
    source: str
    tree: ast.Module

    @property
    def is_package(self) -> bool:
        return self.path.name == "__init__.py"


def expand_paths(paths: Sequence[str]) -> List[Path]:
    """Resolve path arguments to a de-duplicated, ordered list of files."""
    files: List[Path] = []
    for raw in paths:
        recursive = raw.endswith(RECURSIVE_SUFFIX)
        if recursive:
            raw = raw[: -len(RECURSIVE_SUFFIX)].rstrip("/\\") or "."
        path = Path(raw)
        if not path.exists():
            raise LoadError(f"path does not exist: {raw}")

        if path.is_file():
            if path.suffix not in SUPPORTED_EXTENSIONS:
                raise LoadError(f"not a Python source file: {raw}")
            files.append(path)
        elif recursive:
            for fp in sorted(path.rglob("*.py")):
                rel_parts = fp.relative_to(path).parts[:-1]
                if any(part in SKIP_DIRS or part.endswith(".egg-info") for part in rel_parts):
                    continue
                files.append(fp)
        else:
            files.extend(sorted(path.glob("*.py")))

    seen = set()
    unique: List[Path] = []
    for fp in files:
        key = fp.resolve()
        if key not in seen:
            seen.add(key)
            unique.append(fp)

    if not unique:
        raise LoadError(f"no Python files found in: {', '.join(paths)}")
    return unique


def module_name(path: Path) -> str:
    """Dotted module name, following ``__init__.py`` files up to the import root."""
    path = path.resolve()
    parts = [] if path.stem == "__init__" else [path.stem]
    parent = path.parent
    while (parent / "__init__.py").is_file():
        parts.insert(0, parent.name)
        parent = parent.parent
    return ".".join(parts) or path.stem


@lru_cache(maxsize=None)
def find_project_root(directory: Path) -> Optional[Path]:
    """Nearest ancestor of ``directory`` holding one of :data:`ROOT_MARKERS`."""
    for candidate in (directory, *directory.parents):
        if any((candidate / marker).exists() for marker in ROOT_MARKERS):
            return candidate
    return None


def is_test_file(path: Path) -> bool:
    return any(fnmatch.fnmatch(path.name, pattern) for pattern in TEST_FILE_PATTERNS)


def _relative(path: Path, root: Optional[Path]) -> str:
    resolved = path.resolve()
    if root is None:
        root = find_project_root(resolved.parent)
    if root is None:
        return resolved.as_posix()
    return Path(os.path.relpath(resolved, root.resolve())).as_posix()


def parse_source(path: Path, root: Optional[Path] = None) -> SourceFile:
    try:
        # honours a BOM or a coding line
        with tokenize.open(path) as f:
            source = f.read()
    except (OSError, SyntaxError, UnicodeDecodeError) as exc:
        raise LoadError(f"cannot read {path}: {exc}") from exc

    try:
        tree = ast.parse(source, filename=str(path))
    except SyntaxError as exc:
        raise LoadError(f"{path}:{exc.lineno}:{exc.offset}: {exc.msg}") from exc

    return SourceFile(
        path=path,
        module=module_name(path),
        rel_path=_relative(path, root),
        test=is_test_file(path),
        source=source,
        tree=tree,
    )


def load_sources(paths: Sequence[str], root: Optional[Path] = None) -> List[SourceFile]:
    """Discover and parse every module named by ``paths``."""
    sources: List[SourceFile] = []
    by_module: Dict[str, SourceFile] = {}
    for fp in expand_paths(paths):
        src = parse_source(fp, root)
        if src.module in by_module:
            logger.warning(
                "Module %s defined by both %s and %s; keeping the first",
                src.module, by_module[src.module].path, fp,
            )
            continue
        by_module[src.module] = src
        sources.append(src)
    logger.debug("Loaded %d modules", len(sources))
    return sources

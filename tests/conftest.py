"""Pytest configuration and fixtures for symgraph tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from symgraph.frontend import PythonProgram
from symgraph.models import Graph, Link, Node
from symgraph.orchestrator import GraphOrchestrator

# The sample project is analysed, never collected as tests
collect_ignore = ["fixtures"]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_project_path() -> Path:
    """Get path to sample test project."""
    return Path(__file__).parent / "fixtures" / "sample_project"


@pytest.fixture
def sample_paths(sample_project_path: Path) -> list:
    """Recursive path argument for the sample project."""
    return [str(sample_project_path) + "/..."]


@pytest.fixture
def sample_program(sample_paths: list) -> PythonProgram:
    """Loaded front-end program of the sample project."""
    return PythonProgram.load(sample_paths)


@pytest.fixture
def sample_graph(sample_program: PythonProgram) -> Graph:
    """Assembled graph of the sample project."""
    return GraphOrchestrator(sample_program, workers=1).build()


@pytest.fixture
def write_module(temp_dir: Path):
    """Write a module under a temporary project and return its path."""
    (temp_dir / "pyproject.toml").write_text("[project]\nname = \"tmp\"\n", encoding="utf-8")

    def _write(rel_path: str, source: str) -> Path:
        path = temp_dir / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def small_graph() -> Graph:
    """Hand-built graph for focus engine tests.

    ``pkg.T`` owns method ``m`` and field ``f``; ``pkg.run`` calls ``m`` and
    a test calls ``pkg.run``.
    """
    nodes = [
        Node(id="pkg.T", kind="type", type="struct", pkg="pkg", name="T"),
        Node(id="(pkg.T).m", kind="func", type="method", pkg="pkg", name="T.m", parent="pkg.T"),
        Node(id="(pkg.T).f", kind="var", type="field", pkg="pkg", name="T.f", parent="pkg.T"),
        Node(id="pkg.run", kind="func", type="func", pkg="pkg", name="run"),
        Node(id="pkg.LIMIT", kind="const", pkg="pkg", name="LIMIT"),
        Node(id="pkg.test_run", kind="func", type="func", pkg="pkg", name="test_run", test=True),
    ]
    links = [
        Link("(pkg.T).f", "pkg.T"),
        Link("(pkg.T).m", "(pkg.T).f"),
        Link("(pkg.T).m", "pkg.T"),
        Link("pkg.run", "(pkg.T).m"),
        Link("pkg.run", "pkg.LIMIT"),
        Link("pkg.test_run", "pkg.run"),
    ]
    return Graph(nodes={n.id: n for n in nodes}, links=sorted(links))

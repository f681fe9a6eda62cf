"""Orchestrator coordinating the three graph passes."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Sequence

from .assembler import assemble
from .config import WORKERS
from .frontend import Program, PythonProgram
from .models import Graph, LinkSet
from .registry import SymbolRegistry
from .resolver import resolve_unit
from .structure import derive_structural_links

logger = logging.getLogger(__name__)


class GraphOrchestrator:
    """Runs registry, edge passes and assembly over a loaded program."""

    def __init__(self, program: Program, workers: int = WORKERS):
        self.program = program
        self.workers = max(1, workers)

    def build(self) -> Graph:
        registry = SymbolRegistry.build(self.program.symbols())
        links = self.edges(registry)
        graph = assemble(registry, *links)
        logger.info("Graph has %d nodes and %d links", len(graph.nodes), len(graph.links))
        return graph

    def edges(self, registry: SymbolRegistry) -> List[LinkSet]:
        units = list(self.program.units)
        if self.workers == 1 or len(units) < 2:
            per_unit = [resolve_unit(unit, registry) for unit in units]
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                per_unit = list(pool.map(lambda unit: resolve_unit(unit, registry), units))
        return per_unit + [derive_structural_links(registry)]


def analyze_paths(
    paths: Sequence[str],
    root: Optional[Path] = None,
    workers: int = WORKERS,
) -> Graph:
    """Load ``paths`` and build their symbol graph."""
    program = PythonProgram.load(paths, root)
    return GraphOrchestrator(program, workers=workers).build()

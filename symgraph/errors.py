"""Exceptions raised by symgraph."""

from __future__ import annotations


class SymgraphError(Exception):
    """Base class for symgraph errors."""


class LoadError(SymgraphError):
    """The program could not be loaded (missing path, unreadable or invalid source)."""


class GraphFormatError(SymgraphError):
    """Pre-built graph data could not be decoded."""

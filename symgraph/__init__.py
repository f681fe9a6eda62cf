"""symgraph: whole-program symbol dependency graphs for Python code."""

__version__ = "0.3.0"

"""Configuration paths and defaults for symgraph."""

from __future__ import annotations

import os
from pathlib import Path

from .config_manager import load_config

BASE_DIR = Path(os.environ.get("SYMGRAPH_HOME", str(Path.home() / ".symgraph"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"
SUPPORTED_EXTENSIONS = {".py"}

SKIP_DIRS = {
    ".venv", "venv", "__pycache__", "node_modules", ".git",
    "site-packages", ".tox", ".pytest_cache", "build", "dist",
    ".mypy_cache", ".ruff_cache", "htmlcov", ".eggs",
}

# Files whose presence marks the project root that positions are relative to
ROOT_MARKERS = ("pyproject.toml", "setup.py", "setup.cfg", ".git")

TEST_FILE_PATTERNS = ("test_*.py", "*_test.py", "conftest.py")

# Suffix requesting recursive discovery, e.g. ``./src/...``
RECURSIVE_SUFFIX = "..."

# User config, overridden by ``[tool.symgraph]`` in the working directory's pyproject.toml
_toml_config = load_config(CONFIG_FILE, Path.cwd())

DEFAULT_PORT = int(_toml_config["viewer"]["port"])
LINK_DISTANCE = int(_toml_config["viewer"]["link_distance"])
CHARGE = int(_toml_config["viewer"]["charge"])
D3_URL = str(_toml_config["viewer"]["d3_url"])
D3_PATH = str(_toml_config["viewer"]["d3_path"])
WORKERS = int(_toml_config["analysis"]["workers"])

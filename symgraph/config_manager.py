"""Configuration loading for symgraph using TOML files."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import toml

DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    "viewer": {
        "port": 8080,
        "link_distance": 120,
        "charge": -300,
        "d3_url": "https://d3js.org/d3.v7.min.js",
        "d3_path": "",
    },
    "analysis": {
        "workers": 4,
    },
}


def _read_toml(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError):
        return {}


def _merge(base: Dict[str, Dict[str, Any]], overlay: Dict[str, Any]) -> None:
    for section, values in overlay.items():
        if section in base and isinstance(values, dict):
            base[section].update(values)


def load_config(config_file: Path, project_dir: Optional[Path] = None) -> Dict[str, Dict[str, Any]]:
    """Load configuration from the user config file and, optionally, a project.

    The project's ``pyproject.toml`` ``[tool.symgraph]`` table takes
    precedence over ``config_file``. Missing or malformed files fall back to
    :data:`DEFAULT_CONFIG`.
    """
    config = {section: dict(values) for section, values in DEFAULT_CONFIG.items()}
    _merge(config, _read_toml(config_file))
    if project_dir is not None:
        pyproject = _read_toml(project_dir / "pyproject.toml")
        _merge(config, pyproject.get("tool", {}).get("symgraph", {}))
    return config

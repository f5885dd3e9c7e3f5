"""Transform configuration helpers with YAML override support."""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import yaml

logger = logging.getLogger(__name__)


_DEFAULTS: Dict[str, Any] = {
    "general": {
        "show_progress": False,
        # Options: 'chessboard', 'cityblock', 'quasi-euclidean'
        "method": "chessboard",
        "visualize": False,
    },
    "demo": {
        "shape": [96, 128],
        "ridge_height": 40.0,
        "seed_columns": [1, 128],
        "seed_rows": [1, 96],
    },
    "transform": {
        # Frontier pops handled per compiled call; progress and interrupts
        # are serviced between calls.
        "pops_per_chunk": 1 << 20,
        # Progress bars are suppressed for grids smaller than this.
        "progress_min_cells": 250_000,
    },
    "exports": {
        "result_export": True,
        "export_directory": "export_output/distance",
        "include_labels": True,
        "include_predecessors": True,
        "indent": None,
    },
}

_EFFECTIVE_DEFAULTS: Dict[str, Any] = copy.deepcopy(_DEFAULTS)


def _deep_update(destination: Dict[str, Any], source: Dict[str, Any]) -> None:
    """Recursively merge ``source`` into ``destination`` in-place."""
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(destination.get(key), dict):
            _deep_update(destination[key], value)
        else:
            destination[key] = value


def _candidate_paths(path: Optional[str]) -> Iterable[Path]:
    """Yield the YAML file locations that are probed for overrides."""
    if path:
        yield Path(path)
        return

    env_override = os.environ.get("CURVDIST_DEFAULTS_YAML")
    if env_override:
        yield Path(env_override)

    package_dir = Path(__file__).resolve().parent
    project_root = package_dir.parent

    yield project_root / "curvdist_defaults.yaml"
    yield Path.cwd() / "curvdist_defaults.yaml"
    yield package_dir / "curvdist_defaults.yaml"


def reload_curvdist_defaults(path: Optional[str] = None) -> None:
    """Reload transform settings from YAML, falling back to built-ins."""
    defaults = copy.deepcopy(_DEFAULTS)

    for candidate in _candidate_paths(path):
        if not candidate.is_file():
            continue
        try:
            data = yaml.safe_load(candidate.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as err:
            logger.warning("Ignoring unreadable config %s: %s", candidate, err)
            continue
        if isinstance(data, dict):
            _deep_update(defaults, data)
            logger.debug("Loaded config overrides from %s", candidate)
        break

    global _EFFECTIVE_DEFAULTS
    _EFFECTIVE_DEFAULTS = defaults


def get_curvdist_defaults() -> Dict[str, Any]:
    """Return a deep copy of all effective configuration groups."""
    return copy.deepcopy(_EFFECTIVE_DEFAULTS)


def get_curvdist_section(section: str) -> Dict[str, Any]:
    """Return a deep copy of the configuration subset named ``section``."""
    defaults = get_curvdist_defaults()
    section_defaults = defaults.get(section, {})
    if isinstance(section_defaults, dict):
        return copy.deepcopy(section_defaults)
    return {}


reload_curvdist_defaults()

"""Central configuration helpers for visualization modules."""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import yaml

logger = logging.getLogger(__name__)


_DEFAULTS: Dict[str, Any] = {
    "global": {
        "save_html": False,
        "auto_open": True,
        "hide_axes": False,
        "paper_bgcolor": "white",
        "plot_bgcolor": "white",
    },
    "distance_field": {
        "colorscale": "Turbo",
        "label_colorscale": "Rainbow",
        "show_colorbar": True,
        "show_seeds": True,
        "seed_marker_size": 8,
        "seed_color": "white",
        "path_color": "black",
        "path_width": 2.5,
        "title": "Curved-space distance",
        "filepaths": {
            "distance": "distance_field.html",
            "labels": "label_map.html",
            "path": "shortest_path.html",
        },
    },
}

_EFFECTIVE_DEFAULTS: Dict[str, Any] = copy.deepcopy(_DEFAULTS)


def _deep_update(destination: Dict[str, Any], source: Dict[str, Any]) -> None:

    """Recursively merge ``source`` into ``destination`` in-place."""
    for key, value in source.items():
        if (
            isinstance(value, dict)
            and isinstance(destination.get(key), dict)
        ):
            _deep_update(destination[key], value)
        else:
            destination[key] = value


def _candidate_paths(path: Optional[str]) -> Iterable[Path]:
    """Yield YAML paths to probe for overrides."""
    if path:
        yield Path(path)
        return

    env_override = os.environ.get("VIZ_DEFAULTS_YAML")
    if env_override:
        yield Path(env_override)

    package_dir = Path(__file__).resolve().parent
    project_root = package_dir.parent

    yield project_root / "viz_defaults.yaml"
    yield Path.cwd() / "viz_defaults.yaml"
    yield package_dir / "viz_defaults.yaml"


def reload_viz_defaults(path: Optional[str] = None) -> None:
    """Reload visualization settings from YAML, falling back to built-ins."""
    defaults = copy.deepcopy(_DEFAULTS)

    for candidate in _candidate_paths(path):
        if not candidate.is_file():
            continue
        try:
            data = yaml.safe_load(candidate.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as err:
            logger.warning("Ignoring unreadable viz config %s: %s", candidate, err)
            continue
        if isinstance(data, dict):
            _deep_update(defaults, data)
        break

    global _EFFECTIVE_DEFAULTS
    _EFFECTIVE_DEFAULTS = defaults


def get_viz_defaults() -> Dict[str, Any]:
    """Return a deep copy of the effective visualization defaults."""
    return copy.deepcopy(_EFFECTIVE_DEFAULTS)


def get_viz_section(section: str) -> Dict[str, Any]:
    """Return merged defaults for ``section`` including global fallbacks."""
    defaults = get_viz_defaults()
    merged: Dict[str, Any] = {}

    global_defaults = defaults.get("global", {})
    if isinstance(global_defaults, dict):
        merged = copy.deepcopy(global_defaults)

    section_defaults = defaults.get(section, {})
    if isinstance(section_defaults, dict):
        _deep_update(merged, copy.deepcopy(section_defaults))

    return merged


# Initialise configuration once on import.
reload_viz_defaults()

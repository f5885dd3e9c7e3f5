"""JSON exporters for distance transform outputs."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np

from geodesic.curved_distance import CurvdistResult


def export_distance_result_to_json(
    result: CurvdistResult,
    output_dir: str | Path,
    *,
    filename: str = "distance.json",
    indent: int | None = 2,
    include_labels: bool = True,
    include_predecessors: bool = True,
    metadata: Optional[Dict[str, Any]] = None,
) -> Path:
    """Serialise a :class:`~geodesic.curved_distance.CurvdistResult` to JSON.

    Parameters
    ----------
    result
        Output of a transform.
    output_dir
        Target directory where the JSON export should be created.
    filename
        Name of the JSON file inside ``output_dir``.
    indent
        Indentation passed through to :func:`json.dumps`. Set to ``None`` for a compact export.
    include_labels, include_predecessors
        Write the label/predecessor maps when the result carries them.
    metadata
        Extra JSON-serialisable entries merged into the ``meta`` block.

    Returns
    -------
    Path
        Absolute path to the written JSON file.

    Notes
    -----
    Unreached cells (``inf`` distance) are written as ``null`` so the file
    stays valid JSON.
    """
    if not isinstance(result, CurvdistResult):
        raise TypeError("result must be a CurvdistResult instance")

    payload = _result_to_payload(
        result,
        include_labels=include_labels,
        include_predecessors=include_predecessors,
    )
    if metadata:
        payload["meta"].update(metadata)

    dest_dir = Path(output_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)
    target = dest_dir / filename
    target.write_text(json.dumps(payload, indent=indent), encoding="utf-8")
    return target.resolve()


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------


def _result_to_payload(
    result: CurvdistResult,
    *,
    include_labels: bool,
    include_predecessors: bool,
) -> Dict[str, Any]:
    distance = np.asarray(result.distance, dtype=np.float64)

    payload: Dict[str, Any] = {
        "meta": {
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "method": result.method,
            "shape": list(result.shape),
            "dtype": str(result.distance.dtype),
            "seed_count": result.seed_count,
            "settled_count": result.settled_count,
            "distance_statistics": _finite_statistics(distance),
        },
        "distance": _nested_with_nulls(distance),
    }

    if include_labels and result.labels is not None:
        payload["labels"] = np.asarray(result.labels).astype(np.int64).tolist()
        payload["meta"]["label_count"] = int(np.unique(result.labels[result.labels > 0]).size)
    if include_predecessors and result.predecessors is not None:
        payload["predecessors"] = np.asarray(result.predecessors).astype(np.int64).tolist()

    return payload


def _finite_statistics(values: np.ndarray) -> Dict[str, Any]:
    finite = values[np.isfinite(values)]
    stats: Dict[str, Any] = {
        "finite_count": int(finite.size),
        "unreached_count": int(values.size - finite.size),
        "min": float(finite.min()) if finite.size else None,
        "max": float(finite.max()) if finite.size else None,
        "mean": float(finite.mean()) if finite.size else None,
    }
    return stats


def _nested_with_nulls(values: np.ndarray) -> Any:
    """``tolist`` that maps non-finite entries to ``None``."""
    if values.ndim == 0:
        value = float(values)
        return value if np.isfinite(value) else None
    as_objects = values.astype(object)
    as_objects[~np.isfinite(values)] = None
    nested: List[Any] = as_objects.tolist()
    return nested

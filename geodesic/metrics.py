"""Neighbour offset and spatial weight tables for the supported metrics.

``cityblock``
    Axis-aligned neighbours only, spatial weight 1, step cost ``|df| + 1``.
``chessboard``
    Full Moore neighbourhood, spatial weight 1, step cost ``|df| + 1``.
``quasi-euclidean``
    Full Moore neighbourhood, spatial weight equal to the Euclidean length of
    the step, step cost ``sqrt(w**2 + df**2)``.
"""

from __future__ import annotations

import itertools
import math
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from geodesic.boundary import (
    N_BOUNDARY_CLASSES,
    c_strides,
    class_positions,
    padded_shape,
    vector_allowed,
)
from geodesic.errors import InvalidArgument

CHESSBOARD = "chessboard"
CITYBLOCK = "cityblock"
QUASI_EUCLIDEAN = "quasi-euclidean"

METHODS: Tuple[str, ...] = (CHESSBOARD, CITYBLOCK, QUASI_EUCLIDEAN)
DEFAULT_METHOD = CHESSBOARD


@dataclass(frozen=True)
class MetricTable:
    """Neighbour step vectors and spatial weights for one method and rank."""

    method: str
    ndim: int
    vectors: np.ndarray
    weights: np.ndarray
    quadrature: bool

    @property
    def size(self) -> int:
        return int(self.vectors.shape[0])

    def step_cost(self, vector_index: int, df: float) -> float:
        """Edge cost of step ``vector_index`` across an intensity jump ``df``."""
        weight = float(self.weights[vector_index])
        if self.quadrature:
            return math.sqrt(weight * weight + df * df)
        return abs(df) + weight


def resolve_method(method: object) -> str:
    """Return the canonical method name or raise :class:`InvalidArgument`."""
    if not isinstance(method, str):
        raise InvalidArgument(f"invalid type for 'method': {type(method).__name__}")
    key = method.strip().lower()
    if key not in METHODS:
        raise InvalidArgument(
            f"unrecognized distance metric {method!r}; expected one of {', '.join(METHODS)}"
        )
    return key


def neighbor_vectors(ndim: int, direct_only: bool) -> np.ndarray:
    """Enumerate unit steps around a cell.

    With ``direct_only`` the ``2 * ndim`` axis-aligned steps are returned,
    otherwise all ``3**ndim - 1`` steps of the Moore neighbourhood.
    """
    if direct_only:
        vectors = []
        for axis in range(ndim):
            for step in (-1, 1):
                vec = [0] * ndim
                vec[axis] = step
                vectors.append(vec)
    else:
        vectors = [
            list(vec)
            for vec in itertools.product((-1, 0, 1), repeat=ndim)
            if any(vec)
        ]
    return np.asarray(vectors, dtype=np.int64).reshape(len(vectors), ndim)


def build_metric_table(method: object, ndim: int) -> MetricTable:
    """Build the neighbour table of ``method`` for a grid of rank ``ndim``."""
    name = resolve_method(method)
    if ndim < 1:
        raise InvalidArgument(f"grid rank must be positive, got {ndim}")

    vectors = neighbor_vectors(ndim, direct_only=name == CITYBLOCK)
    if name == QUASI_EUCLIDEAN:
        weights = np.sqrt(np.abs(vectors).sum(axis=1).astype(np.float64))
    else:
        weights = np.ones(vectors.shape[0], dtype=np.float64)

    return MetricTable(
        method=name,
        ndim=int(ndim),
        vectors=vectors,
        weights=weights,
        quadrature=name == QUASI_EUCLIDEAN,
    )


def linear_offsets(vectors: np.ndarray, shape: Sequence[int]) -> np.ndarray:
    """Linear index deltas of step ``vectors`` in a C-ordered array of ``shape``."""
    return (vectors @ c_strides(shape)).astype(np.int64)


def build_grid2d_tables(
    table: MetricTable,
    shape: Sequence[int],
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Per-boundary-class neighbour lists for a 2-D grid.

    Returns
    -------
    offsets : np.ndarray
        ``(10, K)`` int64 linear deltas; row ``c`` lists the admissible steps
        of class ``c`` in its first ``counts[c]`` entries. Row 0 (settled) is
        empty.
    weights : np.ndarray
        ``(10, K)`` float64 spatial weights parallel to ``offsets``.
    counts : np.ndarray
        ``(10,)`` int64 neighbour count per class.
    """
    if table.ndim != 2:
        raise InvalidArgument(f"2-D tables need a rank-2 metric, got rank {table.ndim}")

    deltas = linear_offsets(table.vectors, shape)
    offsets = np.zeros((N_BOUNDARY_CLASSES, table.size), dtype=np.int64)
    weights = np.zeros((N_BOUNDARY_CLASSES, table.size), dtype=np.float64)
    counts = np.zeros(N_BOUNDARY_CLASSES, dtype=np.int64)

    for code in range(1, N_BOUNDARY_CLASSES):
        positions = class_positions(code)
        k = 0
        for i in range(table.size):
            if vector_allowed(table.vectors[i], positions):
                offsets[code, k] = deltas[i]
                weights[code, k] = table.weights[i]
                k += 1
        counts[code] = k

    return offsets, weights, counts


def build_nd_tables(
    table: MetricTable,
    shape: Sequence[int],
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Parallel padded/raw neighbour deltas for the N-D engine.

    Returns ``(padded_offsets, raw_offsets, weights)``; entry ``i`` of each
    array describes the same step.
    """
    if table.ndim != len(shape):
        raise InvalidArgument(
            f"metric rank {table.ndim} does not match grid rank {len(shape)}"
        )
    padded_offsets = linear_offsets(table.vectors, padded_shape(shape))
    raw_offsets = linear_offsets(table.vectors, shape)
    return padded_offsets, raw_offsets, table.weights.copy()

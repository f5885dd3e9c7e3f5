"""Seed loading: masks, coordinate lists and linear indices.

All three representations are validated eagerly and reduced to a
:class:`SeedSet` holding 0-based C-order linear indices into the grid. User
facing indices (linear indices and coordinates) are 1-based, and so are the
label and predecessor values written for seeds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from geodesic.boundary import shell_size
from geodesic.errors import DimensionMismatch, InvalidArgument, OutOfRange

logger = logging.getLogger(__name__)


def _as_index_array(values: object, name: str) -> np.ndarray:
    """Flatten ``values`` into an int64 array of integral numbers."""
    arr = np.asarray(values)
    if arr.dtype.kind in "iu":
        return arr.astype(np.int64, copy=False).reshape(-1)
    if arr.dtype.kind == "f" or arr.size == 0:
        flat = arr.astype(np.float64, copy=False).reshape(-1)
        if not np.all(np.isfinite(flat)) or np.any(flat != np.floor(flat)):
            raise InvalidArgument(f"{name} must contain integral index values")
        return flat.astype(np.int64)
    raise InvalidArgument(f"invalid type for {name}: {arr.dtype}")


def _check_range(values: np.ndarray, upper: int, what: str) -> None:
    if values.size and (values.min() < 1 or values.max() > upper):
        bad = values[(values < 1) | (values > upper)][0]
        raise OutOfRange(f"out of range seed values: {what} {int(bad)} not in [1, {upper}]")


@dataclass(frozen=True)
class SeedSet:
    """Validated seed cells of one grid.

    Attributes
    ----------
    indices : np.ndarray
        0-based C-order linear indices, int64, in the order they were given.
    shape : Tuple[int, ...]
        Shape of the grid the seeds were validated against.
    source : str
        Which entry point produced the set (``'mask'``, ``'coordinates'`` or
        ``'indices'``).
    """

    indices: np.ndarray
    shape: Tuple[int, ...]
    source: str

    def __len__(self) -> int:
        return int(self.indices.shape[0])

    @property
    def numel(self) -> int:
        return int(np.prod(self.shape, dtype=np.int64))

    # ------------------------------------------------------------------ #
    # Entry points                                                       #
    # ------------------------------------------------------------------ #
    @classmethod
    def from_mask(cls, mask: object, shape: Sequence[int]) -> "SeedSet":
        """Every true cell of ``mask`` becomes a seed.

        Raises
        ------
        DimensionMismatch
            If ``mask`` does not have the grid's shape.
        """
        shape = tuple(int(n) for n in shape)
        mask_arr = np.asarray(mask)
        if mask_arr.shape != shape:
            raise DimensionMismatch(
                f"mask and image should have equal sizes, got {mask_arr.shape} and {shape}"
            )
        indices = np.flatnonzero(mask_arr.astype(np.bool_, copy=False).reshape(-1))
        return cls(indices=indices.astype(np.int64), shape=shape, source="mask")

    @classmethod
    def from_coordinates(
        cls,
        shape: Sequence[int],
        columns: object,
        rows: object,
        *further: object,
    ) -> "SeedSet":
        """Seeds from 1-based ``columns``, ``rows`` and optional further axes.

        ``columns`` index axis 1 and ``rows`` axis 0 of the grid; each array in
        ``further`` indexes the next axis (2, 3, ...). A 1-D grid is treated as
        a single row, so its ``rows`` must all equal 1.

        Raises
        ------
        DimensionMismatch
            If the arrays differ in length, or their number does not match
            the grid rank.
        OutOfRange
            If any coordinate lies outside the grid.
        """
        shape = tuple(int(n) for n in shape)
        effective = (1,) * max(0, 2 - len(shape)) + shape
        arrays = [_as_index_array(columns, "columns"), _as_index_array(rows, "rows")]
        arrays.extend(_as_index_array(a, f"axis {2 + i} coordinates") for i, a in enumerate(further))

        if len(arrays) != len(effective):
            raise DimensionMismatch(
                f"expected {len(effective)} coordinate arrays for a grid of shape {shape}, "
                f"got {len(arrays)}"
            )
        lengths = {a.shape[0] for a in arrays}
        if len(lengths) > 1:
            raise DimensionMismatch("C and R should have equal sizes")

        # Reorder (columns, rows, ...) into axis order (rows, columns, ...).
        per_axis = [arrays[1], arrays[0]] + arrays[2:]
        for axis, (coords, extent) in enumerate(zip(per_axis, effective)):
            _check_range(coords, extent, f"coordinate on axis {axis}")

        if per_axis[0].size == 0:
            indices = np.empty(0, dtype=np.int64)
        else:
            indices = np.ravel_multi_index(tuple(c - 1 for c in per_axis), effective)
        return cls(indices=np.asarray(indices, dtype=np.int64), shape=shape, source="coordinates")

    @classmethod
    def from_indices(cls, indices: object, shape: Sequence[int]) -> "SeedSet":
        """Seeds from 1-based linear ``indices``.

        Raises
        ------
        OutOfRange
            If any index is outside ``1..numel``.
        """
        shape = tuple(int(n) for n in shape)
        flat = _as_index_array(indices, "indices")
        numel = int(np.prod(shape, dtype=np.int64))
        _check_range(flat, numel, "linear index")
        return cls(indices=flat - 1, shape=shape, source="indices")


def initial_heap_capacity(shape: Sequence[int], n_seeds: int) -> int:
    """Heuristic starting size of the frontier storage.

    Vectors reserve twice the seed count, 2-D grids their perimeter, higher
    ranks the size of the outer shell. The heap grows on demand, so this only
    avoids early reallocations.
    """
    dims = [int(n) for n in shape if int(n) != 1]
    if len(dims) <= 1:
        guess = 2 * n_seeds
    elif len(dims) == 2:
        guess = 2 * (dims[0] + dims[1])
    else:
        guess = shell_size(dims)
    return max(16, guess, n_seeds)


def seed_frontier(
    seeds: SeedSet,
    dist: np.ndarray,
    labels: np.ndarray,
    predecessors: np.ndarray,
    *,
    capacity: int,
    padded_index: Optional[np.ndarray] = None,
) -> Tuple[np.ndarray, np.ndarray, int]:
    """Write seed values into the flat outputs and build the initial heap.

    ``labels`` and ``predecessors`` may be empty arrays when the caller did
    not request them. ``padded_index`` carries the padded-buffer position of
    each seed for the N-D engine.

    Returns
    -------
    heap_cells, heap_dists, heap_size
        Heap storage with one row ``(raw_index, padded_index)`` per seed. All
        keys are zero, so any order satisfies the heap property.
    """
    idx = seeds.indices
    n = idx.shape[0]

    dist[idx] = 0.0
    if labels.size:
        labels[idx] = idx + 1
    if predecessors.size:
        predecessors[idx] = 0

    capacity = max(int(capacity), n, 1)
    heap_cells = np.empty((capacity, 2), dtype=np.int64)
    heap_dists = np.empty(capacity, dtype=np.float64)
    heap_cells[:n, 0] = idx
    heap_cells[:n, 1] = idx if padded_index is None else padded_index
    heap_dists[:n] = 0.0

    logger.debug(
        "Seeded frontier with %d %s seed(s), heap capacity %d", n, seeds.source, capacity
    )
    return heap_cells, heap_dists, n

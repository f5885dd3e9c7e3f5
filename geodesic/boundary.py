"""Boundary bookkeeping that keeps neighbour enumeration free of bounds checks.

Two schemes are provided:

* 2-D grids tag every cell with one of nine boundary classes (four corners,
  four edges, interior). Each class owns a pruned neighbour list, so a list
  never reaches outside the grid.
* N-D grids are embedded in a virtual buffer padded by one cell on every side.
  A boolean flag over the padded buffer is ``False`` on the padding shell and
  ``True`` inside, which lets a candidate neighbour be tested with a single
  lookup. Raw (grid) and padded linear indices are kept side by side.

All linear indices use numpy's C (row-major) order.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

# Class 0 marks a settled cell and is never assigned at initialisation.
SETTLED = 0
INTERIOR_CLASS = 5
N_BOUNDARY_CLASSES = 10

# Position of a coordinate along one axis.
_LOW, _MID, _HIGH = 0, 1, 2


def c_strides(shape: Sequence[int]) -> np.ndarray:
    """Return element strides of a C-ordered array with ``shape``."""
    strides = np.ones(len(shape), dtype=np.int64)
    for axis in range(len(shape) - 2, -1, -1):
        strides[axis] = strides[axis + 1] * int(shape[axis + 1])
    return strides


def padded_shape(shape: Sequence[int]) -> Tuple[int, ...]:
    """Shape of the buffer that surrounds ``shape`` with a one-cell shell."""
    return tuple(int(n) + 2 for n in shape)


def boundary_class_code(pos0: int, pos1: int) -> int:
    """Combine per-axis positions (0 low border, 1 interior, 2 high border)."""
    return 1 + 3 * pos0 + pos1


def class_positions(code: int) -> Tuple[int, int]:
    """Inverse of :func:`boundary_class_code`."""
    return (code - 1) // 3, (code - 1) % 3


def classify_grid2d(shape: Sequence[int]) -> np.ndarray:
    """Tag every cell of a 2-D grid with its boundary class.

    The four border runs and the interior block are written directly, so the
    cost is a single pass over the cells. Both extents must be at least 2;
    thinner grids are handled by the 1-D engine.

    Returns
    -------
    np.ndarray
        ``uint8`` array of length ``shape[0] * shape[1]`` in C order.
    """
    n0, n1 = int(shape[0]), int(shape[1])
    if n0 < 2 or n1 < 2:
        raise ValueError(f"2-D boundary classes need both extents >= 2, got {tuple(shape)}")

    classes = np.full((n0, n1), INTERIOR_CLASS, dtype=np.uint8)

    classes[0, 1:-1] = boundary_class_code(_LOW, _MID)
    classes[-1, 1:-1] = boundary_class_code(_HIGH, _MID)
    classes[1:-1, 0] = boundary_class_code(_MID, _LOW)
    classes[1:-1, -1] = boundary_class_code(_MID, _HIGH)

    classes[0, 0] = boundary_class_code(_LOW, _LOW)
    classes[0, -1] = boundary_class_code(_LOW, _HIGH)
    classes[-1, 0] = boundary_class_code(_HIGH, _LOW)
    classes[-1, -1] = boundary_class_code(_HIGH, _HIGH)

    return classes.reshape(-1)


def vector_allowed(vector: Sequence[int], positions: Sequence[int]) -> bool:
    """Whether a step ``vector`` stays inside the grid from a cell at ``positions``."""
    for step, pos in zip(vector, positions):
        if pos == _LOW and step < 0:
            return False
        if pos == _HIGH and step > 0:
            return False
    return True


def create_padded_inbounds(shape: Sequence[int]) -> np.ndarray:
    """Flat in-bounds flag over the zero-padded buffer around ``shape``.

    The buffer belongs to a single computation; the relaxation engine clears
    a flag once the matching cell is settled.
    """
    flags = np.zeros(padded_shape(shape), dtype=np.bool_)
    flags[(slice(1, -1),) * len(shape)] = True
    return flags.reshape(-1)


def create_cumulative_dims(shape: Sequence[int]) -> Tuple[np.ndarray, np.ndarray]:
    """Return ``(raw_strides, padded_strides)`` used to translate indices."""
    return c_strides(shape), c_strides(padded_shape(shape))


def raw_to_padded_index(
    raw_index: np.ndarray | int,
    raw_strides: np.ndarray,
    padded_strides: np.ndarray,
) -> np.ndarray | int:
    """Translate raw linear indices into padded linear indices.

    Every coordinate moves by one along each axis, which adds the sum of the
    padded strides to the re-strided index.
    """
    remainder = np.asarray(raw_index, dtype=np.int64)
    padded = np.full(remainder.shape, int(padded_strides.sum()), dtype=np.int64)
    for axis in range(raw_strides.shape[0]):
        coord = remainder // raw_strides[axis]
        remainder = remainder - coord * raw_strides[axis]
        padded += coord * padded_strides[axis]
    if np.ndim(raw_index) == 0:
        return int(padded)
    return padded


def shell_size(shape: Sequence[int]) -> int:
    """Number of cells lying on the outer boundary of ``shape``."""
    total = int(np.prod(shape, dtype=np.int64))
    inner = int(np.prod([max(int(n) - 2, 0) for n in shape], dtype=np.int64))
    return total - inner

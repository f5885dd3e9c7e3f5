"""Weighted distance transform on curved space.

The transform assigns to every grid cell the cost of the cheapest path to the
nearest seed, where each step between neighbouring cells ``p`` and ``q`` costs

* ``|I(p) - I(q)| + 1`` for ``chessboard`` and ``cityblock``;
* ``sqrt((I(p) - I(q))**2 + |p - q|**2)`` for ``quasi-euclidean``.

This is the distance on the curved surface defined by the grey levels of the
image (Fouard & Gedda, DGCI 2006). Alongside the distances the transform can
report, per cell, the nearest seed (label map) and the previous cell on the
shortest path (predecessor map).

Singleton axes are squeezed away before the work starts; the squeezed rank
picks one of three engines (vector, 2-D boundary classes, N-D padded buffer)
and the outputs are reshaped back to the caller's shape at the end.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Optional, Tuple, Union

import numpy as np
from tqdm import tqdm

from geodesic.boundary import (
    classify_grid2d,
    create_cumulative_dims,
    create_padded_inbounds,
    raw_to_padded_index,
)
from geodesic.config import get_curvdist_section
from geodesic.errors import DimensionMismatch, InvalidArgument
from geodesic.metrics import (
    DEFAULT_METHOD,
    build_grid2d_tables,
    build_metric_table,
    build_nd_tables,
    resolve_method,
)
from geodesic.numba_accel import relax_grid2d_jit, relax_line_jit, relax_nd_jit
from geodesic.seeds import SeedSet, initial_heap_capacity, seed_frontier
from utilities.config_utils import coerce_bool, coerce_int, coerce_method

logger = logging.getLogger(__name__)

_UINT32_LIMIT = 0xFFFFFFFF


@dataclass
class CurvdistResult:
    """Outputs of one transform, shaped like the input grid."""

    distance: np.ndarray
    labels: Optional[np.ndarray]
    predecessors: Optional[np.ndarray]
    method: str
    seed_count: int
    settled_count: int

    @property
    def shape(self) -> Tuple[int, ...]:
        return tuple(self.distance.shape)

    def as_tuple(self) -> Tuple[np.ndarray, ...]:
        """Return ``distance`` followed by whichever maps were computed."""
        out = [self.distance]
        if self.labels is not None:
            out.append(self.labels)
        if self.predecessors is not None:
            out.append(self.predecessors)
        return tuple(out)


def distance_dtype(image_dtype: np.dtype) -> np.dtype:
    """Double precision for double input, single precision otherwise."""
    return np.dtype(np.float64) if np.dtype(image_dtype) == np.float64 else np.dtype(np.float32)


def index_dtype(numel: int) -> np.dtype:
    """Unsigned type wide enough to hold a 1-based linear index."""
    return np.dtype(np.uint32) if numel <= _UINT32_LIMIT else np.dtype(np.uint64)


def _validate_image(image: Any) -> np.ndarray:
    arr = np.asarray(image)
    if arr.dtype.kind == "c":
        raise InvalidArgument("invalid complex value input")
    if arr.dtype.kind not in "biuf":
        raise InvalidArgument(f"image must be a real numeric or logical array, got {arr.dtype}")
    if arr.dtype.kind == "f" and arr.size and not np.all(np.isfinite(arr)):
        raise InvalidArgument("image contains non-finite values")
    return arr


class CurvedDistanceTransform:
    """One-shot curved-space distance transform of a single grid.

    The grid and the method are validated on construction; :meth:`run` then
    computes the transform for a :class:`~geodesic.seeds.SeedSet`. Every call
    to :meth:`run` allocates its own working arrays, so one instance may be
    reused for several seed sets.
    """

    def __init__(
        self,
        image: Any,
        *,
        method: Optional[str] = None,
        with_labels: bool = False,
        with_predecessors: bool = False,
        show_progress: Optional[bool] = None,
        pops_per_chunk: Optional[int] = None,
    ):
        """Validate ``image`` and the transform options.

        Parameters
        ----------
        image : array_like
            Grid of non-negative intensities of any rank.
        method : str, optional
            ``'chessboard'``, ``'cityblock'`` or ``'quasi-euclidean'``.
            Defaults to the configured method.
        with_labels, with_predecessors : bool
            Whether to compute the label and predecessor maps. Requesting
            predecessors implies labels.
        show_progress : bool, optional
            Show a progress bar for large grids. Defaults to configuration.
        pops_per_chunk : int, optional
            Frontier pops handled per compiled call.

        Raises
        ------
        InvalidArgument
            For an unrecognised method or an unusable image.
        """
        general_cfg = get_curvdist_section("general")
        transform_cfg = get_curvdist_section("transform")

        if method is None:
            method = coerce_method(general_cfg.get("method"), DEFAULT_METHOD)
        self.method = resolve_method(method)
        self.image = _validate_image(image)
        self.shape: Tuple[int, ...] = tuple(int(n) for n in self.image.shape)
        self.numel = int(self.image.size)

        self.with_predecessors = bool(with_predecessors)
        self.with_labels = bool(with_labels) or self.with_predecessors

        if show_progress is None:
            show_progress = coerce_bool(general_cfg.get("show_progress"), False)
        min_cells = coerce_int(transform_cfg.get("progress_min_cells"), 250_000, minimum=0)
        self.show_progress = bool(show_progress) and self.numel >= min_cells
        if pops_per_chunk is None:
            pops_per_chunk = transform_cfg.get("pops_per_chunk")
        self.pops_per_chunk = coerce_int(pops_per_chunk, 1 << 20, minimum=1)

        self.squeezed_shape: Tuple[int, ...] = tuple(n for n in self.shape if n != 1)

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #
    def run(self, seeds: SeedSet) -> CurvdistResult:
        """Compute distances (and optional maps) from ``seeds``.

        Raises
        ------
        DimensionMismatch
            If ``seeds`` were validated against a differently shaped grid.
        """
        if not isinstance(seeds, SeedSet):
            raise TypeError("run() requires a SeedSet instance")
        if seeds.shape != self.shape:
            raise DimensionMismatch(
                f"seeds were built for shape {seeds.shape}, image has shape {self.shape}"
            )

        dist = np.full(self.numel, np.inf, dtype=np.float64)
        labels = np.zeros(self.numel if self.with_labels else 0, dtype=np.int64)
        preds = np.zeros(self.numel if self.with_predecessors else 0, dtype=np.int64)

        settled = 0
        if self.numel:
            f = np.ascontiguousarray(self.image, dtype=np.float64).reshape(-1)
            rank = len(self.squeezed_shape)
            if rank <= 1:
                settled = self._run_line(f, dist, labels, preds, seeds)
            elif rank == 2:
                settled = self._run_grid2d(f, dist, labels, preds, seeds)
            else:
                settled = self._run_nd(f, dist, labels, preds, seeds)

        return self._assemble(dist, labels, preds, len(seeds), settled)

    # ------------------------------------------------------------------ #
    # Engines                                                            #
    # ------------------------------------------------------------------ #
    def _run_line(self, f, dist, labels, preds, seeds: SeedSet) -> int:
        logger.debug("Vector engine on %d cells (%s)", self.numel, self.method)
        table = build_metric_table(self.method, 1)
        heap_cells, heap_dists, heap_size = seed_frontier(
            seeds, dist, labels, preds,
            capacity=initial_heap_capacity(self.squeezed_shape, len(seeds)),
        )
        pending = np.ones(self.numel, dtype=np.uint8)
        step = partial(relax_line_jit, f, dist, labels, preds, pending, table.quadrature)
        return self._drive(step, heap_cells, heap_dists, heap_size)

    def _run_grid2d(self, f, dist, labels, preds, seeds: SeedSet) -> int:
        shape = self.squeezed_shape
        logger.debug("2-D engine on grid %s (%s)", shape, self.method)
        table = build_metric_table(self.method, 2)
        offsets, weights, counts = build_grid2d_tables(table, shape)
        classes = classify_grid2d(shape)
        heap_cells, heap_dists, heap_size = seed_frontier(
            seeds, dist, labels, preds,
            capacity=initial_heap_capacity(shape, len(seeds)),
        )
        step = partial(
            relax_grid2d_jit, f, dist, labels, preds,
            classes, offsets, weights, counts, table.quadrature,
        )
        return self._drive(step, heap_cells, heap_dists, heap_size)

    def _run_nd(self, f, dist, labels, preds, seeds: SeedSet) -> int:
        shape = self.squeezed_shape
        logger.debug("N-D engine on grid %s (%s)", shape, self.method)
        table = build_metric_table(self.method, len(shape))
        padded_offsets, raw_offsets, weights = build_nd_tables(table, shape)
        inbounds = create_padded_inbounds(shape)
        raw_strides, padded_strides = create_cumulative_dims(shape)
        heap_cells, heap_dists, heap_size = seed_frontier(
            seeds, dist, labels, preds,
            capacity=initial_heap_capacity(shape, len(seeds)),
            padded_index=raw_to_padded_index(seeds.indices, raw_strides, padded_strides),
        )
        step = partial(
            relax_nd_jit, f, dist, labels, preds,
            inbounds, padded_offsets, raw_offsets, weights, table.quadrature,
        )
        return self._drive(step, heap_cells, heap_dists, heap_size)

    def _drive(
        self,
        step: Callable[..., Tuple[np.ndarray, np.ndarray, int, int]],
        heap_cells: np.ndarray,
        heap_dists: np.ndarray,
        heap_size: int,
    ) -> int:
        """Call ``step`` until the frontier is empty, reporting progress."""
        settled_total = 0
        with tqdm(
            total=self.numel,
            desc="Propagating distances",
            unit="cell",
            leave=False,
            disable=not self.show_progress,
        ) as pbar:
            while heap_size > 0:
                heap_cells, heap_dists, heap_size, settled = step(
                    heap_cells, heap_dists, heap_size, self.pops_per_chunk
                )
                settled_total += int(settled)
                pbar.update(int(settled))
        return settled_total

    # ------------------------------------------------------------------ #
    # Result assembly                                                    #
    # ------------------------------------------------------------------ #
    def _assemble(
        self,
        dist: np.ndarray,
        labels: np.ndarray,
        preds: np.ndarray,
        seed_count: int,
        settled: int,
    ) -> CurvdistResult:
        idx_type = index_dtype(self.numel)
        distance = dist.astype(distance_dtype(self.image.dtype), copy=False).reshape(self.shape)
        label_map = labels.astype(idx_type).reshape(self.shape) if self.with_labels else None
        pred_map = preds.astype(idx_type).reshape(self.shape) if self.with_predecessors else None
        return CurvdistResult(
            distance=distance,
            labels=label_map,
            predecessors=pred_map,
            method=self.method,
            seed_count=int(seed_count),
            settled_count=int(settled),
        )


def geodesic_distance_transform(
    image: Any,
    seeds: SeedSet,
    *,
    method: Optional[str] = None,
    with_labels: bool = False,
    with_predecessors: bool = False,
    show_progress: Optional[bool] = None,
    pops_per_chunk: Optional[int] = None,
) -> CurvdistResult:
    """Compute the curved-space distance transform of ``image`` from ``seeds``.

    See :class:`CurvedDistanceTransform` for the meaning of the options.
    """
    transform = CurvedDistanceTransform(
        image,
        method=method,
        with_labels=with_labels,
        with_predecessors=with_predecessors,
        show_progress=show_progress,
        pops_per_chunk=pops_per_chunk,
    )
    return transform.run(seeds)


def curvdist(
    image: Any,
    seeds: Any,
    *args: Any,
    method: Optional[str] = None,
    return_labels: bool = False,
    return_predecessors: bool = False,
    show_progress: Optional[bool] = None,
) -> Union[np.ndarray, Tuple[np.ndarray, ...]]:
    """Weighted distance transform on curved space.

    Seeds can be given three ways::

        curvdist(I, mask)            # logical array shaped like I
        curvdist(I, C, R)            # 1-based column and row indices
        curvdist(I, ind)             # 1-based linear (C-order) indices

    A trailing string argument selects the method, as does ``method=``.

    Parameters
    ----------
    image : array_like
        Grid of non-negative intensities.
    seeds, *args
        Seed specification as above. Coordinate lists for grids of rank
        three or more continue with one array per further axis.
    method : str, optional
        ``'chessboard'`` (default), ``'cityblock'`` or ``'quasi-euclidean'``.
    return_labels : bool
        Also return the 1-based index of the nearest seed per cell.
    return_predecessors : bool
        Also return the 1-based index of each cell's predecessor on its
        shortest path (0 for seeds). Implies ``return_labels``.
    show_progress : bool, optional
        Progress bar override.

    Returns
    -------
    np.ndarray or tuple
        The distance map, or ``(distance, labels)`` /
        ``(distance, labels, predecessors)`` when maps are requested.
    """
    extra = list(args)
    if extra and isinstance(extra[-1], str):
        if method is not None:
            raise InvalidArgument("method given both positionally and by keyword")
        method = extra.pop()
    if any(isinstance(a, str) for a in extra):
        raise InvalidArgument("the method name must be the last positional argument")

    transform = CurvedDistanceTransform(
        image,
        method=method,
        with_labels=return_labels,
        with_predecessors=return_predecessors,
        show_progress=show_progress,
    )

    seed_arr = np.asarray(seeds)
    if seed_arr.dtype.kind == "b":
        if extra:
            raise InvalidArgument("a seed mask cannot be combined with coordinate arrays")
        seed_set = SeedSet.from_mask(seed_arr, transform.shape)
    elif extra:
        seed_set = SeedSet.from_coordinates(transform.shape, seed_arr, *extra)
    else:
        seed_set = SeedSet.from_indices(seed_arr, transform.shape)

    result = transform.run(seed_set)
    if transform.with_labels:
        return result.as_tuple()
    return result.distance

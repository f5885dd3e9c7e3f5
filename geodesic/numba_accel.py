"""Numba-compiled relaxation kernels for the curved-space distance transform.

The three kernels share one algorithm, a multi-source Dijkstra with lazy
deletion over an array-backed binary heap:

* pop the entry with the smallest tentative distance;
* skip it when its cell is already settled (a stale duplicate);
* settle the cell and relax every unsettled neighbour, pushing each
  improvement back onto the heap.

They differ only in how a neighbour is found and proven to be inside the
grid: ``+-1`` with an explicit range test (vectors), per-boundary-class lists
(2-D), or a padded in-bounds flag (N-D).

Every kernel handles at most ``max_pops`` heap pops per call and hands the
heap back, so the Python driver can report progress and react to interrupts
between calls. Heap rows hold ``(raw_index, padded_index)``; the padded column
only carries information for the N-D kernel.
"""

from __future__ import annotations

import math
from typing import Tuple

import numpy as np
from numba import njit

__all__ = [
    "relax_line_jit",
    "relax_grid2d_jit",
    "relax_nd_jit",
]


@njit(cache=True)
def _heap_grow(heap_cells, heap_dists, size):
    capacity = max(2 * heap_dists.shape[0], 16)
    cells = np.empty((capacity, 2), dtype=np.int64)
    dists = np.empty(capacity, dtype=np.float64)
    for i in range(size):
        cells[i, 0] = heap_cells[i, 0]
        cells[i, 1] = heap_cells[i, 1]
        dists[i] = heap_dists[i]
    return cells, dists


@njit(cache=True)
def _heap_push(heap_cells, heap_dists, size, node, pad, dist):
    if size >= heap_dists.shape[0]:
        heap_cells, heap_dists = _heap_grow(heap_cells, heap_dists, size)
    i = size
    while i > 0:
        parent = (i - 1) // 2
        if heap_dists[parent] <= dist:
            break
        heap_cells[i, 0] = heap_cells[parent, 0]
        heap_cells[i, 1] = heap_cells[parent, 1]
        heap_dists[i] = heap_dists[parent]
        i = parent
    heap_cells[i, 0] = node
    heap_cells[i, 1] = pad
    heap_dists[i] = dist
    return heap_cells, heap_dists, size + 1


@njit(cache=True)
def _heap_pop(heap_cells, heap_dists, size):
    node = heap_cells[0, 0]
    pad = heap_cells[0, 1]
    dist = heap_dists[0]
    size -= 1
    if size <= 0:
        return node, pad, dist, 0
    last_node = heap_cells[size, 0]
    last_pad = heap_cells[size, 1]
    last_dist = heap_dists[size]
    i = 0
    while True:
        left = 2 * i + 1
        if left >= size:
            break
        right = left + 1
        smallest = left
        if right < size and heap_dists[right] < heap_dists[left]:
            smallest = right
        if heap_dists[smallest] >= last_dist:
            break
        heap_cells[i, 0] = heap_cells[smallest, 0]
        heap_cells[i, 1] = heap_cells[smallest, 1]
        heap_dists[i] = heap_dists[smallest]
        i = smallest
    heap_cells[i, 0] = last_node
    heap_cells[i, 1] = last_pad
    heap_dists[i] = last_dist
    return node, pad, dist, size


@njit(cache=True)
def _edge_cost(df, weight, quadrature):
    if quadrature:
        return math.sqrt(weight * weight + df * df)
    return abs(df) + weight


@njit(cache=True)
def _relax_line_kernel(
    f: np.ndarray,
    dist: np.ndarray,
    labels: np.ndarray,
    preds: np.ndarray,
    pending: np.ndarray,
    quadrature: bool,
    heap_cells: np.ndarray,
    heap_dists: np.ndarray,
    heap_size: int,
    max_pops: int,
):
    n = f.shape[0]
    with_labels = labels.shape[0] > 0
    with_preds = preds.shape[0] > 0
    pops = 0
    settled = 0

    while heap_size > 0 and pops < max_pops:
        u, _pad, _key, heap_size = _heap_pop(heap_cells, heap_dists, heap_size)
        pops += 1
        if pending[u] == 0:
            continue
        pending[u] = 0
        settled += 1

        du = dist[u]
        fu = f[u]
        for step in (-1, 1):
            v = u + step
            if v < 0 or v >= n or pending[v] == 0:
                continue
            alt = du + _edge_cost(fu - f[v], 1.0, quadrature)
            if alt < dist[v]:
                dist[v] = alt
                if with_labels:
                    labels[v] = labels[u]
                if with_preds:
                    preds[v] = u + 1
                heap_cells, heap_dists, heap_size = _heap_push(
                    heap_cells, heap_dists, heap_size, v, v, alt
                )

    return heap_cells, heap_dists, heap_size, settled


@njit(cache=True)
def _relax_grid2d_kernel(
    f: np.ndarray,
    dist: np.ndarray,
    labels: np.ndarray,
    preds: np.ndarray,
    classes: np.ndarray,
    offsets: np.ndarray,
    weights: np.ndarray,
    counts: np.ndarray,
    quadrature: bool,
    heap_cells: np.ndarray,
    heap_dists: np.ndarray,
    heap_size: int,
    max_pops: int,
):
    with_labels = labels.shape[0] > 0
    with_preds = preds.shape[0] > 0
    pops = 0
    settled = 0

    while heap_size > 0 and pops < max_pops:
        u, _pad, _key, heap_size = _heap_pop(heap_cells, heap_dists, heap_size)
        pops += 1
        code = classes[u]
        if code == 0:
            continue
        classes[u] = 0
        settled += 1

        du = dist[u]
        fu = f[u]
        for k in range(counts[code]):
            v = u + offsets[code, k]
            if classes[v] == 0:
                continue
            alt = du + _edge_cost(fu - f[v], weights[code, k], quadrature)
            if alt < dist[v]:
                dist[v] = alt
                if with_labels:
                    labels[v] = labels[u]
                if with_preds:
                    preds[v] = u + 1
                heap_cells, heap_dists, heap_size = _heap_push(
                    heap_cells, heap_dists, heap_size, v, v, alt
                )

    return heap_cells, heap_dists, heap_size, settled


@njit(cache=True)
def _relax_nd_kernel(
    f: np.ndarray,
    dist: np.ndarray,
    labels: np.ndarray,
    preds: np.ndarray,
    inbounds: np.ndarray,
    padded_offsets: np.ndarray,
    raw_offsets: np.ndarray,
    weights: np.ndarray,
    quadrature: bool,
    heap_cells: np.ndarray,
    heap_dists: np.ndarray,
    heap_size: int,
    max_pops: int,
):
    with_labels = labels.shape[0] > 0
    with_preds = preds.shape[0] > 0
    n_neighbors = padded_offsets.shape[0]
    pops = 0
    settled = 0

    while heap_size > 0 and pops < max_pops:
        u, pu, _key, heap_size = _heap_pop(heap_cells, heap_dists, heap_size)
        pops += 1
        if not inbounds[pu]:
            continue
        inbounds[pu] = False
        settled += 1

        du = dist[u]
        fu = f[u]
        for k in range(n_neighbors):
            pv = pu + padded_offsets[k]
            if not inbounds[pv]:
                continue
            v = u + raw_offsets[k]
            alt = du + _edge_cost(fu - f[v], weights[k], quadrature)
            if alt < dist[v]:
                dist[v] = alt
                if with_labels:
                    labels[v] = labels[u]
                if with_preds:
                    preds[v] = u + 1
                heap_cells, heap_dists, heap_size = _heap_push(
                    heap_cells, heap_dists, heap_size, v, pv, alt
                )

    return heap_cells, heap_dists, heap_size, settled


HeapState = Tuple[np.ndarray, np.ndarray, int, int]


def relax_line_jit(
    f: np.ndarray,
    dist: np.ndarray,
    labels: np.ndarray,
    preds: np.ndarray,
    pending: np.ndarray,
    quadrature: bool,
    heap_cells: np.ndarray,
    heap_dists: np.ndarray,
    heap_size: int,
    max_pops: int,
) -> HeapState:

    """Run up to ``max_pops`` frontier pops on a 1-D grid.

    Parameters
    ----------
    f : np.ndarray
        Flat float64 intensities.
    dist, labels, preds : np.ndarray
        Flat outputs updated in place. ``labels``/``preds`` may be empty to
        skip them.
    pending : np.ndarray
        ``uint8`` flags, non-zero while a cell is unsettled.
    quadrature : bool
        ``True`` for the quasi-euclidean cost, ``False`` for ``|df| + 1``.
    heap_cells, heap_dists, heap_size : np.ndarray, np.ndarray, int
        Frontier state.
    max_pops : int
        Pop budget for this call.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray, int, int]
        Updated ``(heap_cells, heap_dists, heap_size)`` and the number of
        cells settled during the call."""
    return _relax_line_kernel(
        f, dist, labels, preds, pending, bool(quadrature),
        heap_cells, heap_dists, int(heap_size), int(max_pops),
    )


def relax_grid2d_jit(
    f: np.ndarray,
    dist: np.ndarray,
    labels: np.ndarray,
    preds: np.ndarray,
    classes: np.ndarray,
    offsets: np.ndarray,
    weights: np.ndarray,
    counts: np.ndarray,
    quadrature: bool,
    heap_cells: np.ndarray,
    heap_dists: np.ndarray,
    heap_size: int,
    max_pops: int,
) -> HeapState:

    """Run up to ``max_pops`` frontier pops on a 2-D grid.

    ``classes`` holds the boundary class of every unsettled cell (0 once
    settled); ``offsets``, ``weights`` and ``counts`` are the per-class tables
    from :func:`geodesic.metrics.build_grid2d_tables`. The remaining arguments
    and the return value follow :func:`relax_line_jit`."""
    return _relax_grid2d_kernel(
        f, dist, labels, preds, classes, offsets, weights, counts, bool(quadrature),
        heap_cells, heap_dists, int(heap_size), int(max_pops),
    )


def relax_nd_jit(
    f: np.ndarray,
    dist: np.ndarray,
    labels: np.ndarray,
    preds: np.ndarray,
    inbounds: np.ndarray,
    padded_offsets: np.ndarray,
    raw_offsets: np.ndarray,
    weights: np.ndarray,
    quadrature: bool,
    heap_cells: np.ndarray,
    heap_dists: np.ndarray,
    heap_size: int,
    max_pops: int,
) -> HeapState:

    """Run up to ``max_pops`` frontier pops on an N-D grid.

    ``inbounds`` is the flat padded flag buffer (cleared once a cell is
    settled); ``padded_offsets``/``raw_offsets``/``weights`` are the parallel
    tables from :func:`geodesic.metrics.build_nd_tables`. The remaining
    arguments and the return value follow :func:`relax_line_jit`."""
    return _relax_nd_kernel(
        f, dist, labels, preds, inbounds, padded_offsets, raw_offsets, weights, bool(quadrature),
        heap_cells, heap_dists, int(heap_size), int(max_pops),
    )

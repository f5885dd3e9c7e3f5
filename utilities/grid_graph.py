"""Explicit graph views of a grid and its shortest-path tree.

The compiled engines never materialise the grid graph. These helpers build it
with networkx for small grids, which is handy to cross-check a transform, to
inspect the shortest-path tree, or to walk a predecessor chain back to its
seed. Node ids are 0-based C-order linear indices.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Tuple

import networkx as nx
import numpy as np

from geodesic.metrics import MetricTable, build_metric_table


def _as_grid(image: object) -> np.ndarray:
    arr = np.asarray(image, dtype=np.float64)
    if arr.ndim == 0:
        arr = arr.reshape(1)
    return arr


def _vector_lookup(table: MetricTable) -> Dict[Tuple[int, ...], int]:
    return {tuple(int(s) for s in vec): k for k, vec in enumerate(table.vectors)}


def build_grid_graph(image: object, method: str = "chessboard") -> nx.Graph:
    """Build the weighted neighbourhood graph of ``image`` under ``method``.

    Parameters
    ----------
    image : array_like
        Grid of intensities of any rank.
    method : str
        Distance method name.

    Returns
    -------
    nx.Graph
        One node per cell (attribute ``value`` holds the intensity) and one
        edge per neighbouring pair with the metric's step cost as ``weight``.
    """
    grid = _as_grid(image)
    table = build_metric_table(method, grid.ndim)
    flat = grid.reshape(-1)
    shape = grid.shape

    G = nx.Graph()
    for idx in range(flat.shape[0]):
        G.add_node(idx, value=float(flat[idx]))

    for coord in np.ndindex(*shape):
        u = int(np.ravel_multi_index(coord, shape))
        for k, vec in enumerate(table.vectors):
            # Each undirected edge is added from its lexicographically lower end.
            if tuple(vec) <= (0,) * grid.ndim:
                continue
            target = tuple(int(c + d) for c, d in zip(coord, vec))
            if any(t < 0 or t >= n for t, n in zip(target, shape)):
                continue
            v = int(np.ravel_multi_index(target, shape))
            G.add_edge(u, v, weight=table.step_cost(k, flat[u] - flat[v]))
    return G


def reference_distances(
    image: object,
    sources: Iterable[int],
    method: str = "chessboard",
) -> np.ndarray:
    """Multi-source Dijkstra distances computed by networkx.

    ``sources`` are 0-based linear indices. Unreached cells hold ``inf``.
    """
    grid = _as_grid(image)
    G = build_grid_graph(grid, method)
    dist = np.full(grid.size, np.inf, dtype=np.float64)
    sources = [int(s) for s in sources]
    if sources:
        dmap = nx.multi_source_dijkstra_path_length(G, sources, weight="weight")
        for node, value in dmap.items():
            dist[node] = value
    return dist.reshape(np.shape(image))


def shortest_path_tree(predecessors: np.ndarray) -> nx.DiGraph:
    """Turn a 1-based predecessor map into a directed shortest-path forest.

    Edges point from a cell's predecessor to the cell; seeds are roots.
    """
    flat = np.asarray(predecessors).reshape(-1).astype(np.int64)
    T = nx.DiGraph()
    T.add_nodes_from(range(flat.shape[0]))
    children = np.flatnonzero(flat)
    T.add_edges_from(zip((flat[children] - 1).tolist(), children.tolist()))
    return T


def trace_path(predecessors: np.ndarray, index: int) -> List[int]:
    """Follow predecessor links from ``index`` back to its seed.

    Parameters
    ----------
    predecessors : np.ndarray
        1-based predecessor map as returned by the transform.
    index : int
        0-based linear index of the start cell.

    Returns
    -------
    List[int]
        0-based indices from the seed to ``index`` inclusive.

    Raises
    ------
    RuntimeError
        If the chain does not reach a seed within ``numel`` steps.
    """
    flat = np.asarray(predecessors).reshape(-1)
    numel = flat.shape[0]
    if not 0 <= int(index) < numel:
        raise IndexError(f"index {index} outside grid of {numel} cells")

    path = [int(index)]
    current = int(index)
    for _ in range(numel):
        parent = int(flat[current])
        if parent == 0:
            path.reverse()
            return path
        current = parent - 1
        path.append(current)
    raise RuntimeError("predecessor chain does not terminate at a seed")


def path_cost(image: object, path: Sequence[int], method: str = "chessboard") -> float:
    """Sum the metric step costs along ``path`` (0-based linear indices).

    Raises
    ------
    ValueError
        If two consecutive cells are not neighbours under ``method``.
    """
    grid = _as_grid(image)
    table = build_metric_table(method, grid.ndim)
    lookup = _vector_lookup(table)
    flat = grid.reshape(-1)

    total = 0.0
    for a, b in zip(path[:-1], path[1:]):
        ca = np.unravel_index(int(a), grid.shape)
        cb = np.unravel_index(int(b), grid.shape)
        vec = tuple(int(y) - int(x) for x, y in zip(ca, cb))
        k = lookup.get(vec)
        if k is None:
            raise ValueError(f"cells {a} and {b} are not {table.method} neighbours")
        total += table.step_cost(k, flat[a] - flat[b])
    return total

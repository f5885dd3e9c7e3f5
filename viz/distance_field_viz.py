# -*- coding: utf-8 -*-
"""Interactive Plotly visualisations for :class:`~geodesic.curved_distance.CurvdistResult` outputs.

Grids are shown as heatmaps. Singleton axes are squeezed, vectors become a
single row, and grids of rank three or more are cut through their middle (or
a caller-chosen) plane.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence, Tuple, Union

import numpy as np
import plotly.graph_objs as go

from geodesic.curved_distance import CurvdistResult
from utilities.grid_graph import trace_path
from viz.config import get_viz_section
from viz.plot_utils import handle_save_or_show

_SECTION_NAME = "distance_field"

ArrayOrResult = Union[CurvdistResult, np.ndarray]


def _defaults() -> Dict[str, Any]:
    """Return the merged visual defaults for this module."""
    return get_viz_section(_SECTION_NAME)


def _plane_view(values: Any, slice_index: Optional[Sequence[int]] = None) -> np.ndarray:
    """Reduce ``values`` to the 2-D plane that is drawn."""
    plane = np.squeeze(np.asarray(values))
    if plane.ndim == 0:
        return plane.reshape(1, 1)
    if plane.ndim == 1:
        return plane.reshape(1, -1)
    if plane.ndim > 2:
        if slice_index is None:
            slice_index = [n // 2 for n in plane.shape[2:]]
        if len(slice_index) != plane.ndim - 2:
            raise ValueError(
                f"slice_index needs {plane.ndim - 2} entries for a grid of rank {plane.ndim}"
            )
        plane = plane[(slice(None), slice(None)) + tuple(int(i) for i in slice_index)]
    return plane


def _heatmap_values(plane: np.ndarray) -> np.ndarray:
    values = plane.astype(float)
    values[~np.isfinite(values)] = np.nan
    return values


def _style(fig: go.Figure, title: str, defaults: Dict[str, Any]) -> None:
    axis_cfg: Dict[str, Any] = dict(showgrid=False, zeroline=False)
    if defaults.get("hide_axes", False):
        axis_cfg.update(visible=False, showticklabels=False)
    fig.update_layout(
        title=dict(text=title, x=0.5, xanchor="center"),
        xaxis=dict(axis_cfg, title="column"),
        yaxis=dict(axis_cfg, title="row", autorange="reversed", scaleanchor="x"),
        paper_bgcolor=defaults.get("paper_bgcolor", "white"),
        plot_bgcolor=defaults.get("plot_bgcolor", "white"),
        margin=dict(l=40, r=20, t=50, b=40),
    )


def _seed_trace(distance_plane: np.ndarray, defaults: Dict[str, Any]) -> Optional[go.Scatter]:
    rows, cols = np.nonzero(distance_plane == 0)
    if rows.size == 0:
        return None
    return go.Scatter(
        x=cols,
        y=rows,
        mode="markers",
        marker=dict(
            size=int(defaults.get("seed_marker_size", 8)),
            color=defaults.get("seed_color", "white"),
            line=dict(width=1, color="black"),
        ),
        name="seeds",
    )


def _split(source: ArrayOrResult) -> Tuple[np.ndarray, Optional[CurvdistResult]]:
    if isinstance(source, CurvdistResult):
        return source.distance, source
    return np.asarray(source), None


# ===================================================================== #
# 1) Distance field                                                     #
# ===================================================================== #
def visualize_distance_field(
    source: ArrayOrResult,
    *,
    title: Optional[str] = None,
    colorscale: Optional[str] = None,
    show_seeds: Optional[bool] = None,
    slice_index: Optional[Sequence[int]] = None,
    save_html: Optional[bool] = None,
    auto_open: Optional[bool] = None,
    filepath: Optional[str] = None,
) -> go.Figure:
    """Render a distance map as a heatmap with the seeds marked.

    Parameters
    ----------
    source : CurvdistResult or np.ndarray
        Transform result or a bare distance array.
    title, colorscale, show_seeds, save_html, auto_open, filepath : optional
        Visual configuration options overriding the defaults from :mod:`viz.config`.
    slice_index : Sequence[int], optional
        Indices along axes 2, 3, ... selecting the plane of an N-D grid.

    Returns
    -------
    go.Figure
        Plotly figure with the heatmap and (optionally) a seed scatter trace.
    """
    distance, result = _split(source)
    defaults = _defaults()
    filepaths = defaults.get("filepaths", {})

    if title is None:
        title = defaults.get("title", "Curved-space distance")
        if result is not None:
            title = f"{title} ({result.method})"
    colorscale = defaults.get("colorscale", "Turbo") if colorscale is None else colorscale
    show_seeds = defaults.get("show_seeds", True) if show_seeds is None else show_seeds
    save_html = defaults.get("save_html", False) if save_html is None else save_html
    auto_open = defaults.get("auto_open", True) if auto_open is None else auto_open
    filepath = filepaths.get("distance", "distance_field.html") if filepath is None else filepath

    plane = _plane_view(distance, slice_index)
    heat = go.Heatmap(
        z=_heatmap_values(plane),
        colorscale=colorscale,
        showscale=bool(defaults.get("show_colorbar", True)),
        colorbar=dict(title="distance"),
        name="distance",
    )
    fig = go.Figure(data=[heat])

    if show_seeds:
        seeds = _seed_trace(plane, defaults)
        if seeds is not None:
            fig.add_trace(seeds)

    _style(fig, title, defaults)
    handle_save_or_show(fig, save_html=save_html, auto_open=auto_open, filepath=filepath)
    return fig


# ===================================================================== #
# 2) Label map                                                          #
# ===================================================================== #
def visualize_label_map(
    result: CurvdistResult,
    *,
    title: str = "Nearest seed",
    colorscale: Optional[str] = None,
    slice_index: Optional[Sequence[int]] = None,
    save_html: Optional[bool] = None,
    auto_open: Optional[bool] = None,
    filepath: Optional[str] = None,
) -> go.Figure:
    """Render the label map (index of the nearest seed) of ``result``.

    Raises
    ------
    ValueError
        If the transform was run without labels.
    """
    if result.labels is None:
        raise ValueError("result carries no label map; run the transform with labels")

    defaults = _defaults()
    filepaths = defaults.get("filepaths", {})
    colorscale = defaults.get("label_colorscale", "Rainbow") if colorscale is None else colorscale
    save_html = defaults.get("save_html", False) if save_html is None else save_html
    auto_open = defaults.get("auto_open", True) if auto_open is None else auto_open
    filepath = filepaths.get("labels", "label_map.html") if filepath is None else filepath

    plane = _plane_view(result.labels, slice_index).astype(float)
    plane[plane == 0] = np.nan

    fig = go.Figure(
        data=[
            go.Heatmap(
                z=plane,
                colorscale=colorscale,
                showscale=bool(defaults.get("show_colorbar", True)),
                colorbar=dict(title="seed index"),
                name="labels",
            )
        ]
    )
    seeds = _seed_trace(_plane_view(result.distance, slice_index), defaults)
    if seeds is not None:
        fig.add_trace(seeds)

    _style(fig, title, defaults)
    handle_save_or_show(fig, save_html=save_html, auto_open=auto_open, filepath=filepath)
    return fig


# ===================================================================== #
# 3) Shortest path back to the nearest seed                             #
# ===================================================================== #
def visualize_shortest_path(
    result: CurvdistResult,
    target: int,
    *,
    title: str = "Shortest path to nearest seed",
    save_html: Optional[bool] = None,
    auto_open: Optional[bool] = None,
    filepath: Optional[str] = None,
) -> go.Figure:
    """Overlay the predecessor chain of cell ``target`` on the distance map.

    ``target`` is a 0-based linear index. Only grids whose squeezed rank is
    at most two can be drawn this way.

    Raises
    ------
    ValueError
        If predecessors were not computed or the grid has rank above two.
    """
    if result.predecessors is None:
        raise ValueError("result carries no predecessor map; run the transform with predecessors")

    plane_shape = _plane_view(result.distance).shape
    if int(np.prod(plane_shape)) != result.distance.size:
        raise ValueError("shortest paths can only be drawn for grids of rank <= 2")

    defaults = _defaults()
    filepaths = defaults.get("filepaths", {})
    save_html = defaults.get("save_html", False) if save_html is None else save_html
    auto_open = defaults.get("auto_open", True) if auto_open is None else auto_open
    filepath = filepaths.get("path", "shortest_path.html") if filepath is None else filepath

    fig = visualize_distance_field(result, title=title, save_html=False, auto_open=False)

    path = trace_path(result.predecessors, target)
    rows, cols = np.unravel_index(np.asarray(path, dtype=np.int64), plane_shape)
    fig.add_trace(
        go.Scatter(
            x=cols,
            y=rows,
            mode="lines+markers",
            line=dict(
                color=defaults.get("path_color", "black"),
                width=float(defaults.get("path_width", 2.5)),
            ),
            marker=dict(size=4),
            name=f"path to {target}",
        )
    )

    handle_save_or_show(fig, save_html=save_html, auto_open=auto_open, filepath=filepath)
    return fig

import errno

import numpy as np
import pytest

from geodesic import SeedSet, geodesic_distance_transform
from viz.distance_field_viz import (
    _plane_view,
    visualize_distance_field,
    visualize_label_map,
    visualize_shortest_path,
)
from viz.plot_utils import guard_connection_reset, handle_save_or_show

QUIET = dict(save_html=False, auto_open=False)


def _result(shape=(4, 5), indices=(1, 20), **kwargs):
    image = np.arange(np.prod(shape), dtype=float).reshape(shape) % 3
    return geodesic_distance_transform(
        image, SeedSet.from_indices(list(indices), shape), with_predecessors=True, **kwargs
    )


def test_plane_view_shapes():
    assert _plane_view(np.zeros(())).shape == (1, 1)
    assert _plane_view(np.zeros(6)).shape == (1, 6)
    assert _plane_view(np.zeros((3, 1, 4))).shape == (3, 4)
    volume = np.arange(2 * 3 * 5).reshape(2, 3, 5)
    np.testing.assert_array_equal(_plane_view(volume), volume[:, :, 2])
    np.testing.assert_array_equal(_plane_view(volume, [4]), volume[:, :, 4])
    with pytest.raises(ValueError):
        _plane_view(volume, [0, 0])


def test_distance_figure_has_heatmap_and_seeds():
    result = _result()
    fig = visualize_distance_field(result, **QUIET)
    assert fig.data[0].type == "heatmap"
    assert fig.data[1].name == "seeds"
    assert len(fig.data[1].x) == 2
    assert "chessboard" in fig.layout.title.text


def test_distance_figure_from_array_without_seeds():
    dist = np.array([[1.0, np.inf]])
    fig = visualize_distance_field(dist, title="plain", show_seeds=True, **QUIET)
    assert len(fig.data) == 1
    assert np.isnan(fig.data[0].z[0][1])


def test_label_map_requires_labels():
    result = _result()
    fig = visualize_label_map(result, **QUIET)
    assert fig.data[0].name == "labels"

    bare = geodesic_distance_transform(np.zeros((2, 2)), SeedSet.from_indices([1], (2, 2)))
    with pytest.raises(ValueError):
        visualize_label_map(bare, **QUIET)


def test_shortest_path_overlay():
    result = _result()
    fig = visualize_shortest_path(result, 9, **QUIET)
    path_trace = fig.data[-1]
    assert path_trace.mode == "lines+markers"
    assert (path_trace.y[-1], path_trace.x[-1]) == (1, 4)

    with pytest.raises(ValueError):
        visualize_shortest_path(_result((2, 3, 4), (1,)), 5, **QUIET)


def test_save_html_writes_file(tmp_path):
    fig = visualize_distance_field(np.zeros((2, 2)), **QUIET)
    target = tmp_path / "field.html"
    handle_save_or_show(fig, save_html=True, auto_open=False, filepath=str(target))
    assert target.is_file()


def test_connection_resets_are_ignored(capsys):
    def reset():
        raise ConnectionResetError(errno.ECONNRESET, "reset by peer")

    guard_connection_reset(reset, context="test")
    assert "Ignore connection reset" in capsys.readouterr().out

    def broken():
        raise OSError(errno.ENOENT, "missing")

    with pytest.raises(OSError):
        guard_connection_reset(broken, context="test")

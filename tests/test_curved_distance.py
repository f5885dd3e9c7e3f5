import math

import numpy as np
import pytest

from geodesic import (
    CurvedDistanceTransform,
    DimensionMismatch,
    InvalidArgument,
    OutOfRange,
    SeedSet,
    curvdist,
    geodesic_distance_transform,
)
from geodesic.curved_distance import distance_dtype, index_dtype
from utilities.grid_graph import build_grid_graph, path_cost, reference_distances, trace_path

METHODS = ["chessboard", "cityblock", "quasi-euclidean"]


def _run(image, indices, method, **kwargs):
    seeds = SeedSet.from_indices(indices, np.shape(image))
    return geodesic_distance_transform(
        image, seeds, method=method, with_labels=True, with_predecessors=True, **kwargs
    )


# --------------------------------------------------------------------- #
# Metric behaviour on flat grids                                        #
# --------------------------------------------------------------------- #
def test_chessboard_on_flat_grid_is_chebyshev():
    dist = curvdist(np.zeros((5, 7)), [1], "chessboard")
    rows, cols = np.indices((5, 7))
    np.testing.assert_array_equal(dist, np.maximum(rows, cols))


def test_cityblock_on_flat_grid_is_manhattan():
    dist = curvdist(np.zeros((5, 7)), [1], method="cityblock")
    rows, cols = np.indices((5, 7))
    np.testing.assert_array_equal(dist, rows + cols)


def test_default_method_is_chessboard():
    image = np.zeros((4, 4))
    np.testing.assert_array_equal(curvdist(image, [1]), curvdist(image, [1], "chessboard"))


def test_quasi_euclidean_on_flat_grid():
    dist = curvdist(np.zeros((6, 6)), [1], "quasi-euclidean")
    rows, cols = np.indices((6, 6))
    lo = np.minimum(rows, cols)
    hi = np.maximum(rows, cols)
    np.testing.assert_allclose(dist, (hi - lo) + math.sqrt(2.0) * lo)

    # Along the axes and the diagonal the chamfer distance is Euclidean.
    euclid = np.hypot(rows, cols)
    straight = (rows == 0) | (cols == 0) | (rows == cols)
    np.testing.assert_allclose(dist[straight], euclid[straight])


def test_quasi_euclidean_flat_3d_diagonal():
    dist = curvdist(np.zeros((4, 4, 4)), [1], "quasi-euclidean")
    for k in range(4):
        assert dist[k, k, k] == pytest.approx(math.sqrt(3.0) * k)
        assert dist[k, 0, 0] == pytest.approx(k)


def test_single_row_cityblock():
    dist = curvdist(np.zeros((1, 5)), [1], "cityblock")
    np.testing.assert_array_equal(dist, [[0, 1, 2, 3, 4]])


def test_single_row_embedded_in_3d():
    dist = curvdist(np.zeros((1, 5, 1)), [1], "cityblock")
    assert dist.shape == (1, 5, 1)
    np.testing.assert_array_equal(dist.reshape(-1), [0, 1, 2, 3, 4])


def test_column_vector_uses_vector_engine():
    dist = curvdist(np.zeros((5, 1)), [5], "chessboard")
    np.testing.assert_array_equal(dist.reshape(-1), [4, 3, 2, 1, 0])


def test_single_cell_grid():
    dist, labels, preds = curvdist(np.array([[7.0]]), [1], return_predecessors=True)
    assert dist.shape == (1, 1)
    assert dist[0, 0] == 0.0
    assert labels[0, 0] == 1
    assert preds[0, 0] == 0


# --------------------------------------------------------------------- #
# Intensity-weighted costs                                              #
# --------------------------------------------------------------------- #
def test_vector_costs_follow_intensity_jumps():
    image = np.array([0.0, 2.0, 2.0, 5.0])
    np.testing.assert_allclose(curvdist(image, [1], "chessboard"), [0, 3, 4, 8])
    np.testing.assert_allclose(curvdist(image, [1], "cityblock"), [0, 3, 4, 8])
    s5, s10 = math.sqrt(5.0), math.sqrt(10.0)
    np.testing.assert_allclose(
        curvdist(image, [1], "quasi-euclidean"), [0, s5, s5 + 1, s5 + 1 + s10]
    )


def test_ridge_forces_a_detour():
    image = np.zeros((5, 5))
    image[:, 2] = 100.0
    image[4, 2] = 0.0  # a gap at the bottom of the wall
    dist = curvdist(image, [1], "cityblock")
    # Going around through the gap is far cheaper than climbing the wall.
    assert dist[0, 4] == pytest.approx(4 + 4 + 4)
    assert dist[0, 4] < 2 * 100.0


def test_integer_grid_input():
    image = np.array([[3, 1], [0, 2]], dtype=np.int16)
    dist = curvdist(image, [1], "chessboard")
    assert dist.dtype == np.float32
    np.testing.assert_allclose(dist, [[0, 3], [4, 2]])


# --------------------------------------------------------------------- #
# Labels and predecessors                                               #
# --------------------------------------------------------------------- #
def test_two_seeds_split_a_row():
    dist, labels, preds = curvdist(np.zeros((1, 7)), [1, 7], "cityblock", return_predecessors=True)
    np.testing.assert_array_equal(dist, [[0, 1, 2, 3, 2, 1, 0]])
    np.testing.assert_array_equal(labels[0, :3], [1, 1, 1])
    np.testing.assert_array_equal(labels[0, 4:], [7, 7, 7])
    assert labels[0, 3] in (1, 7)
    np.testing.assert_array_equal(preds[0, [0, 1, 2]], [0, 1, 2])
    np.testing.assert_array_equal(preds[0, [4, 5, 6]], [6, 7, 0])


def test_labels_only_when_requested():
    out = curvdist(np.zeros((3, 3)), [5], return_labels=True)
    assert isinstance(out, tuple) and len(out) == 2
    dist, labels = out
    assert labels.dtype == np.uint32
    assert np.all(labels == 5)

    result = _run(np.zeros((3, 3)), [5], "chessboard")
    assert result.labels is not None and result.predecessors is not None

    bare = geodesic_distance_transform(np.zeros((3, 3)), SeedSet.from_indices([5], (3, 3)))
    assert bare.labels is None and bare.predecessors is None


@pytest.mark.parametrize("method", METHODS)
@pytest.mark.parametrize("shape", [(9,), (6, 7), (3, 4, 5), (2, 3, 2, 3)])
def test_seeds_are_zero_and_self_labelled(rng, method, shape):
    image = rng.uniform(0, 5, size=shape)
    numel = image.size
    indices = rng.choice(numel, size=min(3, numel), replace=False) + 1
    result = _run(image, indices, method)

    flat_dist = result.distance.reshape(-1)
    flat_labels = result.labels.reshape(-1)
    flat_preds = result.predecessors.reshape(-1)
    for idx in indices:
        assert flat_dist[idx - 1] == 0.0
        assert flat_labels[idx - 1] == idx
        assert flat_preds[idx - 1] == 0
    assert np.all(flat_dist >= 0)
    assert np.all(np.isin(flat_labels, indices))
    assert result.settled_count == numel
    assert result.seed_count == len(indices)


@pytest.mark.parametrize("method", METHODS)
@pytest.mark.parametrize("shape", [(11,), (5, 6), (3, 3, 4)])
def test_predecessor_chains_reach_seeds_with_matching_cost(rng, method, shape):
    image = rng.uniform(0, 3, size=shape)
    result = _run(image, [1, image.size], method)

    flat_dist = result.distance.reshape(-1)
    flat_labels = result.labels.reshape(-1)
    for cell in range(image.size):
        path = trace_path(result.predecessors, cell)
        assert len(path) <= image.size
        assert path[-1] == cell
        assert flat_labels[path[0]] == path[0] + 1
        assert flat_dist[path[0]] == 0.0
        assert path_cost(image, path, method) == pytest.approx(flat_dist[cell], rel=1e-9, abs=1e-9)


# --------------------------------------------------------------------- #
# Agreement with an explicit graph search                               #
# --------------------------------------------------------------------- #
@pytest.mark.parametrize("method", METHODS)
@pytest.mark.parametrize("shape", [(12,), (6, 7), (6, 1, 7), (3, 4, 5), (2, 2, 3, 3)])
def test_matches_networkx_reference(rng, method, shape):
    image = rng.uniform(0, 4, size=shape)
    sources = rng.choice(image.size, size=2, replace=False)
    result = _run(image, sources + 1, method)
    expected = reference_distances(image, sources, method)
    np.testing.assert_allclose(result.distance, expected, rtol=1e-12, atol=1e-12)


@pytest.mark.parametrize("method", METHODS)
def test_no_edge_can_shorten_a_distance(rng, method):
    image = rng.uniform(0, 2, size=(5, 6))
    dist = _run(image, [8], method).distance.reshape(-1)
    G = build_grid_graph(image, method)
    for u, v, data in G.edges(data=True):
        assert dist[v] <= dist[u] + data["weight"] + 1e-12
        assert dist[u] <= dist[v] + data["weight"] + 1e-12


# --------------------------------------------------------------------- #
# Seed entry points and determinism                                     #
# --------------------------------------------------------------------- #
def test_seed_entry_points_agree(rng):
    image = rng.uniform(0, 1, size=(6, 8))
    mask = np.zeros(image.shape, dtype=bool)
    mask[1, 2] = True
    mask[4, 7] = True

    by_mask = curvdist(image, mask, "quasi-euclidean")
    by_coords = curvdist(image, [3, 8], [2, 5], "quasi-euclidean")
    by_index = curvdist(image, [1 * 8 + 2 + 1, 4 * 8 + 7 + 1], "quasi-euclidean")

    np.testing.assert_array_equal(by_mask, by_coords)
    np.testing.assert_array_equal(by_mask, by_index)


def test_repeated_runs_are_bit_identical(rng):
    image = rng.uniform(0, 10, size=(20, 15))
    first = curvdist(image, [1, 77, 300], "quasi-euclidean")
    second = curvdist(image, [1, 77, 300], "quasi-euclidean")
    assert first.tobytes() == second.tobytes()


@pytest.mark.parametrize("shape", [(40,), (9, 11), (4, 5, 6)])
def test_chunked_execution_matches_single_pass(rng, shape):
    image = rng.uniform(0, 3, size=shape)
    seeds = SeedSet.from_indices([1, image.size // 2], shape)
    whole = geodesic_distance_transform(image, seeds, with_predecessors=True)
    chunked = geodesic_distance_transform(image, seeds, with_predecessors=True, pops_per_chunk=1)
    np.testing.assert_array_equal(whole.distance, chunked.distance)
    assert chunked.settled_count == image.size


def test_heap_grows_beyond_initial_capacity(rng):
    # A rough 2-D field keeps many stale entries on the frontier.
    image = rng.uniform(0, 50, size=(80, 80))
    result = _run(image, [1], "chessboard")
    assert np.isfinite(result.distance).all()
    assert result.settled_count == image.size


def test_transform_instance_can_be_reused():
    transform = CurvedDistanceTransform(np.zeros((3, 3)), method="cityblock")
    a = transform.run(SeedSet.from_indices([1], (3, 3)))
    b = transform.run(SeedSet.from_indices([9], (3, 3)))
    np.testing.assert_array_equal(a.distance, b.distance[::-1, ::-1])


# --------------------------------------------------------------------- #
# Output types and shapes                                               #
# --------------------------------------------------------------------- #
@pytest.mark.parametrize(
    "dtype, expected",
    [
        (np.float64, np.float64),
        (np.float32, np.float32),
        (np.uint8, np.float32),
        (np.int64, np.float32),
        (np.bool_, np.float32),
    ],
)
def test_distance_dtype(dtype, expected):
    image = np.ones((3, 3), dtype=dtype)
    assert curvdist(image, [1]).dtype == expected
    assert distance_dtype(np.dtype(dtype)) == expected


def test_index_dtype_width():
    assert index_dtype(10) == np.uint32
    assert index_dtype(0xFFFFFFFF) == np.uint32
    assert index_dtype(0xFFFFFFFF + 1) == np.uint64


def test_empty_grid_is_a_no_op():
    dist, labels, preds = curvdist(np.zeros((0, 3)), [], return_predecessors=True)
    assert dist.shape == labels.shape == preds.shape == (0, 3)
    assert labels.dtype == np.uint32


def test_no_seeds_leaves_everything_unreached():
    result = _run(np.zeros((3, 4)), [], "chessboard")
    assert np.isinf(result.distance).all()
    assert not result.labels.any()
    assert result.settled_count == 0


# --------------------------------------------------------------------- #
# Errors                                                                #
# --------------------------------------------------------------------- #
def test_unknown_method_fails_before_seeds_are_checked():
    with pytest.raises(InvalidArgument):
        curvdist(np.zeros((3, 3)), [100], "euclidean")
    with pytest.raises(InvalidArgument):
        CurvedDistanceTransform(np.zeros((3, 3)), method="octagonal")


def test_method_given_twice():
    with pytest.raises(InvalidArgument):
        curvdist(np.zeros((3, 3)), [1], "cityblock", method="chessboard")


def test_out_of_range_index():
    with pytest.raises(OutOfRange):
        curvdist(np.zeros((3, 3)), [10])
    with pytest.raises(OutOfRange):
        curvdist(np.zeros((3, 3)), [4], [1])


def test_mask_shape_mismatch():
    with pytest.raises(DimensionMismatch):
        curvdist(np.zeros((3, 3)), np.ones((3, 4), dtype=bool))


def test_coordinate_length_mismatch():
    with pytest.raises(DimensionMismatch):
        curvdist(np.zeros((3, 3)), [1, 2], [1])


def test_mask_combined_with_coordinates():
    with pytest.raises(InvalidArgument):
        curvdist(np.zeros((2, 2)), np.ones((2, 2), dtype=bool), [1])


def test_seeds_built_for_another_grid():
    transform = CurvedDistanceTransform(np.zeros((3, 3)))
    with pytest.raises(DimensionMismatch):
        transform.run(SeedSet.from_indices([1], (9,)))


@pytest.mark.parametrize(
    "image",
    [
        np.zeros((2, 2), dtype=complex),
        np.array([[0.0, np.nan], [1.0, 2.0]]),
        np.array([[0.0, np.inf]]),
        np.array([["a", "b"]]),
    ],
)
def test_unusable_images(image):
    with pytest.raises(InvalidArgument):
        curvdist(image, [1])

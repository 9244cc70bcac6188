import numpy as np
import pytest

from pcgeo.core.errors import InvalidArgumentError
from pcgeo.core.normals import (
    estimate_normals,
    neighborhood_covariances,
    normalize_normals,
    orient_normals_to_align_with_direction,
    orient_normals_towards_camera_location,
)
from pcgeo.core.pointcloud import PointCloud
from pcgeo.core.search import KDTreeSearchParamHybrid, KDTreeSearchParamKNN, KDTreeSearchParamRadius
from pcgeo.core.transform import rotation_matrix_from_rpy
from pcgeo.examples.synthetic import generate_cloud


def plane_cloud(n: int = 400) -> PointCloud:
    pc = generate_cloud("plane", n=n, size=10.0)
    pc.normals = None
    return pc


def test_plane_normals_are_vertical() -> None:
    pc = plane_cloud()
    estimate_normals(pc, KDTreeSearchParamKNN(10))
    assert pc.normals.shape == pc.points.shape
    np.testing.assert_allclose(np.abs(pc.normals[:, 2]), 1.0, atol=1e-9)
    np.testing.assert_allclose(np.linalg.norm(pc.normals, axis=1), 1.0, atol=1e-9)


def test_tilted_plane_normals_follow_rotation() -> None:
    pc = plane_cloud()
    R = rotation_matrix_from_rpy((30.0, -20.0, 10.0))
    pc.rotate(R, center=(0.0, 0.0, 0.0))
    pc.estimate_normals(KDTreeSearchParamHybrid(radius=2.0, max_nn=16))
    expected = R @ np.array([0.0, 0.0, 1.0])
    np.testing.assert_allclose(np.abs(pc.normals @ expected), 1.0, atol=1e-9)


def test_sphere_normals_are_radial() -> None:
    pc = generate_cloud("sphere", n=2000, size=10.0)
    pc.normals = None
    pc.estimate_normals(KDTreeSearchParamKNN(20))
    radial = pc.points / np.linalg.norm(pc.points, axis=1, keepdims=True)
    assert np.all(np.abs(np.einsum("ij,ij->i", pc.normals, radial)) > 0.98)


def test_sparse_neighborhoods_get_zero_normals() -> None:
    pc = PointCloud(np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]]))
    estimate_normals(pc)
    np.testing.assert_array_equal(pc.normals, np.zeros((2, 3)))

    pts = np.vstack([plane_cloud(100).points, [[100.0, 100.0, 100.0]]])
    pc = PointCloud(pts)
    estimate_normals(pc, KDTreeSearchParamRadius(3.0))
    np.testing.assert_array_equal(pc.normals[-1], [0.0, 0.0, 0.0])
    np.testing.assert_allclose(np.abs(pc.normals[:-1, 2]), 1.0, atol=1e-9)


def test_estimation_agrees_with_existing_normals() -> None:
    pc = plane_cloud()
    pc.normals = np.tile([0.0, 0.0, -1.0], (len(pc), 1))
    estimate_normals(pc, KDTreeSearchParamKNN(10))
    np.testing.assert_allclose(pc.normals[:, 2], -1.0, atol=1e-9)


def test_estimation_on_empty_cloud_is_noop() -> None:
    pc = PointCloud()
    estimate_normals(pc)
    assert pc.is_empty() and not pc.has_normals()


def test_invalid_search_parameter_leaves_cloud_untouched() -> None:
    pc = plane_cloud(50)
    with pytest.raises(InvalidArgumentError):
        estimate_normals(pc, "knn")
    with pytest.raises(InvalidArgumentError):
        estimate_normals(pc, chunk_size=0)
    assert not pc.has_normals()


def test_chunked_estimation_matches_single_pass() -> None:
    a = generate_cloud("sphere", n=300, size=4.0)
    b = a.copy()
    estimate_normals(a, KDTreeSearchParamKNN(12))
    estimate_normals(b, KDTreeSearchParamKNN(12), chunk_size=7)
    np.testing.assert_allclose(a.normals, b.normals, atol=1e-12)


def test_normalize_normals() -> None:
    pc = PointCloud()
    pc.normals = np.array([[3.0, 0.0, 4.0], [0.0, 0.0, 0.0], [0.0, -2.0, 0.0]])
    normalize_normals(pc)
    np.testing.assert_allclose(pc.normals, [[0.6, 0.0, 0.8], [0.0, 0.0, 0.0], [0.0, -1.0, 0.0]])
    before = pc.normals.copy()
    pc.normalize_normals()
    np.testing.assert_array_equal(pc.normals, before)


def test_orient_to_direction() -> None:
    pc = generate_cloud("sphere", n=200, size=2.0)
    direction = np.array([1.5, 0.5, 3.3])
    orient_normals_to_align_with_direction(pc, direction)
    assert np.all(pc.normals @ direction >= 0.0)
    # Only signs change.
    radial = pc.points / np.linalg.norm(pc.points, axis=1, keepdims=True)
    np.testing.assert_allclose(np.abs(np.einsum("ij,ij->i", pc.normals, radial)), 1.0, atol=1e-12)


def test_orient_defaults_to_positive_z() -> None:
    pc = PointCloud(np.zeros((2, 3)), normals=np.array([[0.0, 0.0, -1.0], [0.0, 1.0, 0.5]]))
    pc.orient_normals_to_align_with_direction()
    np.testing.assert_array_equal(pc.normals, [[0.0, 0.0, 1.0], [0.0, 1.0, 0.5]])


def test_orient_with_zero_direction_flips_nothing() -> None:
    pc = generate_cloud("sphere", n=40, size=2.0)
    before = pc.normals.copy()
    orient_normals_to_align_with_direction(pc, (0.0, 0.0, 0.0))
    np.testing.assert_array_equal(pc.normals, before)
    with pytest.raises(InvalidArgumentError):
        orient_normals_to_align_with_direction(pc, (0.0, 1.0))


def test_orient_without_normals_is_noop() -> None:
    pc = PointCloud(np.ones((4, 3)))
    orient_normals_to_align_with_direction(pc, (0.0, 1.0, 0.0))
    orient_normals_towards_camera_location(pc)
    assert not pc.has_normals()


def test_orient_towards_camera() -> None:
    pc = generate_cloud("sphere", n=200, size=2.0)
    orient_normals_towards_camera_location(pc, (0.0, 0.0, 0.0))
    facing = np.einsum("ij,ij->i", pc.normals, -pc.points)
    assert np.all(facing >= 0.0)

    pc.orient_normals_towards_camera_location((0.0, 0.0, 50.0))
    facing = np.einsum("ij,ij->i", pc.normals, np.array([0.0, 0.0, 50.0]) - pc.points)
    assert np.all(facing >= 0.0)


def test_neighborhood_covariances_match_numpy() -> None:
    rng = np.random.default_rng(11)
    pts = rng.normal(size=(40, 3)) * [3.0, 1.0, 0.2] + 1000.0
    groups = [rng.choice(40, size=s, replace=False) for s in (3, 17, 40, 1)]
    query_ids = np.concatenate([np.full(len(g), q) for q, g in enumerate(groups)])
    indices = np.concatenate(groups)
    cov, counts = neighborhood_covariances(pts, query_ids, indices, 5)
    np.testing.assert_array_equal(counts, [3, 17, 40, 1, 0])
    for q, g in enumerate(groups[:3]):
        np.testing.assert_allclose(cov[q], np.cov(pts[g], rowvar=False, bias=True), atol=1e-9)
    np.testing.assert_array_equal(cov[3], np.zeros((3, 3)))
    np.testing.assert_array_equal(cov[4], np.zeros((3, 3)))


def test_wide_radius_estimation_on_large_plane() -> None:
    pc = generate_cloud("plane", n=20000, size=100.0)
    pc.normals = None
    # Every neighborhood holds a few hundred points.
    pc.estimate_normals(KDTreeSearchParamRadius(8.0))
    np.testing.assert_allclose(np.abs(pc.normals[:, 2]), 1.0, atol=1e-9)

import numpy as np
import pytest

from pcgeo.core.boundingvolume import AxisAlignedBoundingBox
from pcgeo.core.errors import InvalidArgumentError
from pcgeo.core.pointcloud import PointCloud


def random_vectors(n: int, lo: float = 0.0, hi: float = 1000.0, seed: int = 0) -> np.ndarray:
    return np.random.default_rng(seed).uniform(lo, hi, size=(n, 3))


def test_empty_cloud_defaults() -> None:
    pc = PointCloud()
    assert pc.dimension() == 3
    assert pc.points.shape == (0, 3)
    assert pc.normals.shape == (0, 3)
    assert pc.colors.shape == (0, 3)
    assert pc.is_empty()
    np.testing.assert_array_equal(pc.get_min_bound(), np.zeros(3))
    np.testing.assert_array_equal(pc.get_max_bound(), np.zeros(3))
    assert not pc.has_points()
    assert not pc.has_normals()
    assert not pc.has_colors()


def test_clear_resets_every_attribute() -> None:
    pts = random_vectors(100)
    pc = PointCloud()
    pc.set_points(pts).set_normals(random_vectors(100, seed=1)).set_colors(random_vectors(100, seed=2))

    np.testing.assert_allclose(pc.get_min_bound(), pts.min(axis=0))
    np.testing.assert_allclose(pc.get_max_bound(), pts.max(axis=0))
    assert not pc.is_empty()
    assert pc.has_points() and pc.has_normals() and pc.has_colors()

    pc.clear()
    assert pc.is_empty()
    np.testing.assert_array_equal(pc.get_min_bound(), np.zeros(3))
    np.testing.assert_array_equal(pc.get_max_bound(), np.zeros(3))
    assert not pc.has_points()
    assert not pc.has_normals()
    assert not pc.has_colors()
    pc.clear()
    assert pc.is_empty()


def test_bounds_are_idempotent() -> None:
    pc = PointCloud(random_vectors(100))
    first_min, first_max = pc.get_min_bound(), pc.get_max_bound()
    np.testing.assert_array_equal(pc.get_min_bound(), first_min)
    np.testing.assert_array_equal(pc.get_max_bound(), first_max)


def test_bounds_follow_mutation() -> None:
    pc = PointCloud(np.array([[0.0, 0.0, 0.0], [1.0, 2.0, 3.0]]))
    np.testing.assert_array_equal(pc.get_max_bound(), [1.0, 2.0, 3.0])
    pc.points = np.array([[5.0, 5.0, 5.0]])
    np.testing.assert_array_equal(pc.get_max_bound(), [5.0, 5.0, 5.0])
    np.testing.assert_array_equal(pc.get_min_bound(), [5.0, 5.0, 5.0])


def test_has_attributes_true_for_zero_valued_arrays() -> None:
    pc = PointCloud()
    assert not pc.has_normals()
    pc.set_points(np.zeros((100, 3)))
    pc.set_normals(np.zeros((100, 3)))
    pc.set_colors(np.zeros((100, 3)))
    assert pc.has_points() and pc.has_normals() and pc.has_colors()


def test_normals_can_be_assigned_without_points() -> None:
    pc = PointCloud()
    pc.normals = random_vectors(20)
    assert pc.has_normals()
    assert pc.is_empty()
    assert not pc.normals_paired()


def test_setters_copy_input_buffers() -> None:
    pts = random_vectors(10)
    pc = PointCloud(pts)
    pts[0] = -1.0
    assert not np.any(pc.points[0] == -1.0)


def test_setter_rejects_bad_shape() -> None:
    with pytest.raises(InvalidArgumentError):
        PointCloud(np.zeros((4, 2)))
    pc = PointCloud()
    with pytest.raises(ValueError):
        pc.colors = np.zeros(5)


def test_concatenation_keeps_shared_attributes_only() -> None:
    a = PointCloud(random_vectors(3), normals=random_vectors(3, seed=1), colors=random_vectors(3, seed=2))
    b = PointCloud(random_vectors(2, seed=3), colors=random_vectors(2, seed=4))
    c = a + b
    assert len(c) == 5
    assert c.has_colors() and not c.has_normals()
    np.testing.assert_array_equal(c.points[:3], a.points)
    np.testing.assert_array_equal(c.colors[3:], b.colors)
    assert len(a) == 3


def test_concatenation_onto_empty_cloud() -> None:
    a = PointCloud()
    b = PointCloud(random_vectors(4), normals=random_vectors(4, seed=1))
    a += b
    assert len(a) == 4 and a.has_normals()
    assert not np.shares_memory(a.points, b.points)


def test_center_and_uniform_color() -> None:
    pc = PointCloud(np.array([[0.0, 0.0, 0.0], [2.0, 4.0, 6.0]]))
    np.testing.assert_allclose(pc.get_center(), [1.0, 2.0, 3.0])
    pc.paint_uniform_color((0.1, 0.2, 0.3))
    np.testing.assert_allclose(pc.colors, [[0.1, 0.2, 0.3], [0.1, 0.2, 0.3]])
    np.testing.assert_array_equal(PointCloud().get_center(), np.zeros(3))


def test_axis_aligned_bounding_box() -> None:
    box = AxisAlignedBoundingBox((0.0, 0.0, 0.0), (2.0, 4.0, 6.0))
    np.testing.assert_allclose(box.get_center(), [1.0, 2.0, 3.0])
    np.testing.assert_allclose(box.get_extent(), [2.0, 4.0, 6.0])
    assert box.volume() == pytest.approx(48.0)
    mask = box.contains(np.array([[0.0, 0.0, 0.0], [2.0, 4.0, 6.0], [2.0001, 1.0, 1.0]]))
    np.testing.assert_array_equal(mask, [True, True, False])
    with pytest.raises(InvalidArgumentError):
        AxisAlignedBoundingBox((1.0, 0.0, 0.0), (0.0, 1.0, 1.0))


def test_bounding_box_from_cloud() -> None:
    pts = random_vectors(50)
    box = PointCloud(pts).get_axis_aligned_bounding_box()
    np.testing.assert_allclose(box.min_bound, pts.min(axis=0))
    np.testing.assert_allclose(box.max_bound, pts.max(axis=0))
    assert np.all(box.contains(pts))

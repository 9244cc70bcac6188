from __future__ import annotations
from typing import Iterable, Optional, Sequence, Tuple, TYPE_CHECKING
import numpy as np

from .boundingvolume import AxisAlignedBoundingBox
from .utils import as_vector3, as_vector3_array, get_logger

if TYPE_CHECKING:  # pragma: no cover
    from .kdtree import KDTree
    from .search import SearchParam

_log = get_logger()


class PointCloud:
    """Points with optional per-point normals and colors.

    The three attributes are stored as independent float64 ``(N, 3)`` arrays.
    Setting one attribute never touches the others, so lengths may disagree
    for a while (e.g. normals assigned to an empty cloud); operations that pair
    attributes only carry those whose length matches the point count.

    Downsampling, selection and cropping return new clouds; transform and the
    normal passes mutate the receiver in place.
    """

    def __init__(
        self,
        points: Optional[np.ndarray] = None,
        normals: Optional[np.ndarray] = None,
        colors: Optional[np.ndarray] = None,
    ) -> None:
        self._points = as_vector3_array(points, "points")
        self._normals = as_vector3_array(normals, "normals")
        self._colors = as_vector3_array(colors, "colors")

    # -- attribute access --
    @property
    def points(self) -> np.ndarray:
        return self._points

    @points.setter
    def points(self, value: np.ndarray) -> None:
        self._points = as_vector3_array(value, "points")

    @property
    def normals(self) -> np.ndarray:
        return self._normals

    @normals.setter
    def normals(self, value: np.ndarray) -> None:
        self._normals = as_vector3_array(value, "normals")

    @property
    def colors(self) -> np.ndarray:
        return self._colors

    @colors.setter
    def colors(self, value: np.ndarray) -> None:
        self._colors = as_vector3_array(value, "colors")

    def set_points(self, points: np.ndarray) -> "PointCloud":
        self.points = points
        return self

    def set_normals(self, normals: np.ndarray) -> "PointCloud":
        self.normals = normals
        return self

    def set_colors(self, colors: np.ndarray) -> "PointCloud":
        self.colors = colors
        return self

    def has_points(self) -> bool:
        return len(self._points) > 0

    def has_normals(self) -> bool:
        return len(self._normals) > 0

    def has_colors(self) -> bool:
        return len(self._colors) > 0

    def is_empty(self) -> bool:
        return not self.has_points()

    def dimension(self) -> int:
        return 3

    def __len__(self) -> int:
        return len(self._points)

    def __repr__(self) -> str:
        return (f"PointCloud(points={len(self._points)}, normals={len(self._normals)}, "
                f"colors={len(self._colors)})")

    def clear(self) -> "PointCloud":
        self._points = np.zeros((0, 3), dtype=np.float64)
        self._normals = np.zeros((0, 3), dtype=np.float64)
        self._colors = np.zeros((0, 3), dtype=np.float64)
        return self

    def copy(self) -> "PointCloud":
        return PointCloud(self._points, self._normals, self._colors)

    # -- pairing helpers --
    def normals_paired(self) -> bool:
        """True when normals exist and line up with the points."""
        return self._is_paired(self._normals, "normals")

    def colors_paired(self) -> bool:
        return self._is_paired(self._colors, "colors")

    def _is_paired(self, arr: np.ndarray, name: str) -> bool:
        if len(arr) == 0:
            return False
        if len(arr) != len(self._points):
            _log.warning("Ignoring %s: %d entries for %d points.", name, len(arr), len(self._points))
            return False
        return True

    def gather(self, indices: np.ndarray) -> "PointCloud":
        """New cloud made of the rows at ``indices`` of every paired attribute."""
        idx = np.asarray(indices, dtype=np.int64)
        out = PointCloud(self._points[idx])
        if self.normals_paired():
            out._normals = self._normals[idx]
        if self.colors_paired():
            out._colors = self._colors[idx]
        return out

    # -- bounds --
    def get_min_bound(self) -> np.ndarray:
        if self.is_empty():
            return np.zeros(3, dtype=np.float64)
        return self._points.min(axis=0)

    def get_max_bound(self) -> np.ndarray:
        if self.is_empty():
            return np.zeros(3, dtype=np.float64)
        return self._points.max(axis=0)

    def get_center(self) -> np.ndarray:
        if self.is_empty():
            return np.zeros(3, dtype=np.float64)
        return self._points.mean(axis=0)

    def get_axis_aligned_bounding_box(self) -> AxisAlignedBoundingBox:
        return AxisAlignedBoundingBox(self.get_min_bound(), self.get_max_bound())

    def paint_uniform_color(self, color: Sequence[float]) -> "PointCloud":
        c = as_vector3(color, "color")
        self._colors = np.tile(c, (len(self._points), 1))
        return self

    # -- concatenation --
    def __iadd__(self, other: "PointCloud") -> "PointCloud":
        if not isinstance(other, PointCloud):
            return NotImplemented
        if self.is_empty():
            self._points = other._points.copy()
            self._normals = other._normals.copy()
            self._colors = other._colors.copy()
            return self
        if other.is_empty():
            return self
        # An attribute survives only when both sides carry it.
        normals = np.concatenate([self._normals, other._normals]) \
            if self.normals_paired() and other.normals_paired() else np.zeros((0, 3))
        colors = np.concatenate([self._colors, other._colors]) \
            if self.colors_paired() and other.colors_paired() else np.zeros((0, 3))
        self._points = np.concatenate([self._points, other._points])
        self._normals = normals
        self._colors = colors
        return self

    def __add__(self, other: "PointCloud") -> "PointCloud":
        if not isinstance(other, PointCloud):
            return NotImplemented
        out = self.copy()
        out += other
        return out

    # -- engine entry points --
    def transform(self, transformation: np.ndarray) -> "PointCloud":
        from .transform import transform
        return transform(self, transformation)

    def translate(self, translation: Sequence[float], relative: bool = True) -> "PointCloud":
        from .transform import translate
        return translate(self, translation, relative=relative)

    def scale(self, scale: float, center: Optional[Sequence[float]] = None) -> "PointCloud":
        from .transform import scale as _scale
        return _scale(self, scale, center=center)

    def rotate(self, R: np.ndarray, center: Optional[Sequence[float]] = None) -> "PointCloud":
        from .transform import rotate
        return rotate(self, R, center=center)

    def uniform_down_sample(self, every_k_points: int) -> "PointCloud":
        from .downsample import uniform_down_sample
        return uniform_down_sample(self, every_k_points)

    def voxel_down_sample(self, voxel_size: float) -> "PointCloud":
        from .downsample import voxel_down_sample
        return voxel_down_sample(self, voxel_size)

    def select_by_index(self, indices: Iterable[int], invert: bool = False) -> "PointCloud":
        from .selection import select_by_index
        return select_by_index(self, indices, invert=invert)

    def crop(self, aabb: AxisAlignedBoundingBox) -> "PointCloud":
        from .selection import crop
        return crop(self, aabb)

    def remove_non_finite_points(self, remove_nan: bool = True, remove_infinite: bool = True) -> Tuple["PointCloud", np.ndarray]:
        from .selection import remove_non_finite_points
        return remove_non_finite_points(self, remove_nan=remove_nan, remove_infinite=remove_infinite)

    def remove_radius_outliers(self, nb_points: int, radius: float) -> Tuple["PointCloud", np.ndarray]:
        from .selection import remove_radius_outliers
        return remove_radius_outliers(self, nb_points, radius)

    def remove_statistical_outliers(self, nb_neighbors: int, std_ratio: float) -> Tuple["PointCloud", np.ndarray]:
        from .selection import remove_statistical_outliers
        return remove_statistical_outliers(self, nb_neighbors, std_ratio)

    def compute_nearest_neighbor_distance(self) -> np.ndarray:
        from .selection import compute_nearest_neighbor_distance
        return compute_nearest_neighbor_distance(self)

    def build_kdtree(self, leaf_size: int = 16) -> "KDTree":
        from .kdtree import KDTree
        return KDTree(self._points, leaf_size=leaf_size)

    def estimate_normals(self, search_param: Optional["SearchParam"] = None) -> "PointCloud":
        from .normals import estimate_normals
        return estimate_normals(self, search_param)

    def normalize_normals(self) -> "PointCloud":
        from .normals import normalize_normals
        return normalize_normals(self)

    def orient_normals_to_align_with_direction(self, orientation_reference: Sequence[float] = (0.0, 0.0, 1.0)) -> "PointCloud":
        from .normals import orient_normals_to_align_with_direction
        return orient_normals_to_align_with_direction(self, orientation_reference)

    def orient_normals_towards_camera_location(self, camera_location: Sequence[float] = (0.0, 0.0, 0.0)) -> "PointCloud":
        from .normals import orient_normals_towards_camera_location
        return orient_normals_towards_camera_location(self, camera_location)

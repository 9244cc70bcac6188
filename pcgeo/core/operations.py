from __future__ import annotations
from typing import Iterable, Optional, Sequence
import numpy as np

from .boundingvolume import AxisAlignedBoundingBox
from .downsample import uniform_down_sample, voxel_down_sample
from .normals import (
    estimate_normals, normalize_normals, orient_normals_to_align_with_direction,
    orient_normals_towards_camera_location,
)
from .pointcloud import PointCloud
from .search import SearchParam
from .selection import (
    _as_index_array, crop, remove_non_finite_points, remove_radius_outliers, remove_statistical_outliers,
    select_by_index,
)
from .transform import _as_matrix, transform


class Operation:
    """One step of a processing chain.

    ``apply`` returns the resulting cloud: a new one for operations that
    produce fresh clouds, the (mutated) input for in-place ones.
    """
    name: str = "base"
    in_place: bool = False

    def apply(self, cloud: PointCloud) -> PointCloud:  # pragma: no cover - abstract
        raise NotImplementedError


class TransformOp(Operation):
    name = "transform"
    in_place = True
    def __init__(self, matrix: np.ndarray) -> None:
        self.matrix = _as_matrix(matrix, (4, 4), "matrix")
    def apply(self, cloud: PointCloud) -> PointCloud:
        return transform(cloud, self.matrix)


class UniformDownSampleOp(Operation):
    name = "uniform_down_sample"
    def __init__(self, every_k_points: int) -> None:
        self.every_k_points = every_k_points
    def apply(self, cloud: PointCloud) -> PointCloud:
        return uniform_down_sample(cloud, self.every_k_points)


class VoxelDownSampleOp(Operation):
    name = "voxel_down_sample"
    def __init__(self, voxel_size: float) -> None:
        self.voxel_size = voxel_size
    def apply(self, cloud: PointCloud) -> PointCloud:
        return voxel_down_sample(cloud, self.voxel_size)


class SelectByIndexOp(Operation):
    name = "select_by_index"
    def __init__(self, indices: Iterable[int], invert: bool = False) -> None:
        self.indices = _as_index_array(indices)
        self.invert = bool(invert)
    def apply(self, cloud: PointCloud) -> PointCloud:
        return select_by_index(cloud, self.indices, invert=self.invert)


class CropOp(Operation):
    name = "crop"
    def __init__(self, aabb: AxisAlignedBoundingBox) -> None:
        self.aabb = aabb
    def apply(self, cloud: PointCloud) -> PointCloud:
        return crop(cloud, self.aabb)


class RemoveNonFiniteOp(Operation):
    name = "remove_non_finite"
    def apply(self, cloud: PointCloud) -> PointCloud:
        return remove_non_finite_points(cloud)[0]


class RadiusOutlierOp(Operation):
    name = "remove_radius_outliers"
    def __init__(self, nb_points: int, radius: float) -> None:
        self.nb_points = nb_points
        self.radius = radius
    def apply(self, cloud: PointCloud) -> PointCloud:
        return remove_radius_outliers(cloud, self.nb_points, self.radius)[0]


class StatisticalOutlierOp(Operation):
    name = "remove_statistical_outliers"
    def __init__(self, nb_neighbors: int, std_ratio: float) -> None:
        self.nb_neighbors = nb_neighbors
        self.std_ratio = std_ratio
    def apply(self, cloud: PointCloud) -> PointCloud:
        return remove_statistical_outliers(cloud, self.nb_neighbors, self.std_ratio)[0]


class EstimateNormalsOp(Operation):
    name = "estimate_normals"
    in_place = True
    def __init__(self, search_param: Optional[SearchParam] = None) -> None:
        self.search_param = search_param
    def apply(self, cloud: PointCloud) -> PointCloud:
        return estimate_normals(cloud, self.search_param)


class NormalizeNormalsOp(Operation):
    name = "normalize_normals"
    in_place = True
    def apply(self, cloud: PointCloud) -> PointCloud:
        return normalize_normals(cloud)


class OrientNormalsOp(Operation):
    """Align normals with a fixed direction, or face them towards a camera."""
    name = "orient_normals"
    in_place = True
    def __init__(self, direction: Optional[Sequence[float]] = None,
                 camera_location: Optional[Sequence[float]] = None) -> None:
        if direction is not None and camera_location is not None:
            raise ValueError("OrientNormalsOp takes either direction or camera_location, not both.")
        self.direction = direction
        self.camera_location = camera_location
    def apply(self, cloud: PointCloud) -> PointCloud:
        if self.camera_location is not None:
            return orient_normals_towards_camera_location(cloud, self.camera_location)
        direction = (0.0, 0.0, 1.0) if self.direction is None else self.direction
        return orient_normals_to_align_with_direction(cloud, direction)

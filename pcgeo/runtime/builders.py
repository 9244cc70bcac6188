from __future__ import annotations

from typing import List

import numpy as np

from ..config import ProcessingConfig
from ..config.schema import SearchConfig, StepConfig
from ..core.boundingvolume import AxisAlignedBoundingBox
from ..core.operations import (
    CropOp, EstimateNormalsOp, NormalizeNormalsOp, Operation, OrientNormalsOp, RadiusOutlierOp,
    RemoveNonFiniteOp, SelectByIndexOp, StatisticalOutlierOp, TransformOp, UniformDownSampleOp,
    VoxelDownSampleOp,
)
from ..core.pipeline import Pipeline
from ..core.search import (
    KDTreeSearchParamHybrid, KDTreeSearchParamKNN, KDTreeSearchParamRadius, SearchParam,
)
from ..core.transform import rotation_matrix_from_rpy


def build_search_param(search_cfg: SearchConfig) -> SearchParam:
    if search_cfg.kind == "knn":
        return KDTreeSearchParamKNN(knn=search_cfg.knn)
    if search_cfg.kind == "radius":
        return KDTreeSearchParamRadius(radius=search_cfg.radius)
    if search_cfg.kind == "hybrid":
        return KDTreeSearchParamHybrid(radius=search_cfg.radius, max_nn=search_cfg.max_nn)
    raise ValueError(f"Unsupported search kind: {search_cfg.kind}")


def build_transform_matrix(step_cfg) -> np.ndarray:
    if step_cfg.matrix is not None:
        return np.asarray(step_cfg.matrix, dtype=np.float64)
    M = np.eye(4)
    M[:3, :3] = rotation_matrix_from_rpy(step_cfg.rpy_deg)
    M[:3, 3] = np.asarray(step_cfg.xyz, dtype=np.float64)
    return M


def build_operation(step_cfg: StepConfig) -> Operation:
    kind = step_cfg.kind
    if kind == "transform":
        return TransformOp(build_transform_matrix(step_cfg))
    if kind == "uniform_down_sample":
        return UniformDownSampleOp(step_cfg.every_k_points)
    if kind == "voxel_down_sample":
        return VoxelDownSampleOp(step_cfg.voxel_size)
    if kind == "select_by_index":
        return SelectByIndexOp(step_cfg.indices, invert=step_cfg.invert)
    if kind == "crop":
        return CropOp(AxisAlignedBoundingBox(step_cfg.min_bound, step_cfg.max_bound))
    if kind == "remove_non_finite":
        return RemoveNonFiniteOp()
    if kind == "remove_radius_outliers":
        return RadiusOutlierOp(step_cfg.nb_points, step_cfg.radius)
    if kind == "remove_statistical_outliers":
        return StatisticalOutlierOp(step_cfg.nb_neighbors, step_cfg.std_ratio)
    if kind == "estimate_normals":
        return EstimateNormalsOp(build_search_param(step_cfg.search))
    if kind == "normalize_normals":
        return NormalizeNormalsOp()
    if kind == "orient_normals":
        return OrientNormalsOp(direction=step_cfg.direction, camera_location=step_cfg.camera_location)
    raise ValueError(f"Unsupported step kind: {kind}")


def build_pipeline(cfg: ProcessingConfig) -> Pipeline:
    operations: List[Operation] = [build_operation(step) for step in cfg.steps]
    return Pipeline(operations)

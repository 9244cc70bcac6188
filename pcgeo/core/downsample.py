from __future__ import annotations
import numbers
import numpy as np

from .errors import InvalidArgumentError
from .pointcloud import PointCloud
from .utils import get_logger

_log = get_logger()


def uniform_down_sample(cloud: PointCloud, every_k_points: int) -> PointCloud:
    """Keep points ``0, k, 2k, ...`` in their original order."""
    if isinstance(every_k_points, bool) or not isinstance(every_k_points, numbers.Integral) or every_k_points <= 0:
        raise InvalidArgumentError(f"every_k_points must be a positive integer, got {every_k_points!r}")
    if cloud.is_empty():
        return PointCloud()
    keep = np.arange(0, len(cloud), int(every_k_points), dtype=np.int64)
    return cloud.gather(keep)


def voxel_keys(points: np.ndarray, voxel_size: float, origin: np.ndarray) -> np.ndarray:
    """Integer (N, 3) grid coordinates of each point."""
    return np.floor((points - origin) / voxel_size).astype(np.int64)


def voxel_down_sample(cloud: PointCloud, voxel_size: float) -> PointCloud:
    """Average all points (and their paired normals/colors) sharing a voxel.

    The grid origin is the cloud's minimum bound. Voxels are grouped by
    sorting the keys lexicographically and reducing each run, so the output is
    ordered by voxel key. Averaged normals are not renormalized.
    """
    try:
        size = float(voxel_size)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"voxel_size must be a number, got {voxel_size!r}") from exc
    if not np.isfinite(size) or size <= 0.0:
        raise InvalidArgumentError(f"voxel_size must be positive, got {voxel_size!r}")
    if cloud.is_empty():
        return PointCloud()

    keys = voxel_keys(cloud.points, size, cloud.get_min_bound())
    order = np.lexsort((keys[:, 2], keys[:, 1], keys[:, 0]))
    sorted_keys = keys[order]
    # A new segment starts wherever the key differs from its predecessor.
    boundary = np.ones(len(order), dtype=bool)
    boundary[1:] = np.any(sorted_keys[1:] != sorted_keys[:-1], axis=1)
    starts = np.flatnonzero(boundary)
    counts = np.diff(np.append(starts, len(order))).astype(np.float64)[:, None]

    def segment_mean(values: np.ndarray) -> np.ndarray:
        return np.add.reduceat(values[order], starts, axis=0) / counts

    out = PointCloud(segment_mean(cloud.points))
    if cloud.normals_paired():
        out.normals = segment_mean(cloud.normals)
    if cloud.colors_paired():
        out.colors = segment_mean(cloud.colors)
    _log.debug("Voxel down-sampling (size=%g): %d -> %d points", size, len(cloud), len(out))
    return out

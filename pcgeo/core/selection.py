from __future__ import annotations
from typing import Iterable, Tuple
import numpy as np

from .boundingvolume import AxisAlignedBoundingBox
from .errors import IndexOutOfRangeError, InvalidArgumentError
from .kdtree import DEFAULT_CHUNK_SIZE, KDTree
from .pointcloud import PointCloud
from .search import KDTreeSearchParamKNN, KDTreeSearchParamRadius, _check_count, _check_radius
from .utils import get_logger

_log = get_logger()


def _as_index_array(indices: Iterable[int]) -> np.ndarray:
    if not isinstance(indices, np.ndarray):
        # Sets, ranges and generators become arrays through a list.
        try:
            indices = list(indices)
        except TypeError as exc:
            raise InvalidArgumentError(f"indices must be an iterable of integers, got {indices!r}") from exc
    arr = np.asarray(indices)
    if arr.size == 0:
        return np.zeros(0, dtype=np.int64)
    if arr.dtype == bool or not np.issubdtype(arr.dtype, np.integer):
        raise InvalidArgumentError(f"indices must be integers, got dtype {arr.dtype}")
    return arr.astype(np.int64).reshape(-1)


def select_by_index(cloud: PointCloud, indices: Iterable[int], invert: bool = False) -> PointCloud:
    """New cloud holding the points at ``indices`` (or all others if ``invert``).

    Indices are treated as a set: duplicates collapse and the output follows
    ascending index order.
    """
    idx = _as_index_array(indices)
    n = len(cloud)
    bad = (idx < 0) | (idx >= n)
    if np.any(bad):
        raise IndexOutOfRangeError(
            f"{int(bad.sum())} index(es) outside [0, {n}), e.g. {int(idx[bad][0])}"
        )
    mask = np.zeros(n, dtype=bool)
    mask[idx] = True
    if invert:
        mask = ~mask
    out = cloud.gather(np.flatnonzero(mask))
    _log.debug("Selected %d of %d points (invert=%s)", len(out), n, invert)
    return out


def crop(cloud: PointCloud, aabb: AxisAlignedBoundingBox) -> PointCloud:
    """Keep points inside ``aabb``; both bounds are inclusive."""
    if not isinstance(aabb, AxisAlignedBoundingBox):
        raise InvalidArgumentError(f"crop expects an AxisAlignedBoundingBox, got {type(aabb).__name__}")
    if cloud.is_empty():
        return PointCloud()
    return cloud.gather(np.flatnonzero(aabb.contains(cloud.points)))


def remove_non_finite_points(
    cloud: PointCloud, remove_nan: bool = True, remove_infinite: bool = True
) -> Tuple[PointCloud, np.ndarray]:
    pts = cloud.points
    bad = np.zeros(len(pts), dtype=bool)
    if remove_nan:
        bad |= np.any(np.isnan(pts), axis=1)
    if remove_infinite:
        bad |= np.any(np.isinf(pts), axis=1)
    kept = np.flatnonzero(~bad)
    if bad.any():
        _log.info("Removed %d non-finite points", int(bad.sum()))
    return cloud.gather(kept), kept


def remove_radius_outliers(cloud: PointCloud, nb_points: int, radius: float) -> Tuple[PointCloud, np.ndarray]:
    """Drop points with fewer than ``nb_points`` neighbors (self included) within ``radius``."""
    need = _check_count("nb_points", nb_points)
    param = KDTreeSearchParamRadius(_check_radius(radius))
    if cloud.is_empty():
        return PointCloud(), np.zeros(0, dtype=np.int64)
    pts = cloud.points
    tree = KDTree(pts)
    # Only counts are needed, so neighbor lists are reduced one chunk at a time.
    counts = np.zeros(len(pts), dtype=np.int64)
    for s in range(0, len(pts), DEFAULT_CHUNK_SIZE):
        block = pts[s:s + DEFAULT_CHUNK_SIZE]
        query_ids = tree.search_batch_pairs(block, param)[0]
        counts[s:s + len(block)] = np.bincount(query_ids, minlength=len(block))
    kept = np.flatnonzero(counts >= need)
    _log.info("Radius outlier removal kept %d of %d points", len(kept), len(cloud))
    return cloud.gather(kept), kept


def _mean_neighbor_distance(cloud: PointCloud, nb_neighbors: int) -> np.ndarray:
    tree = KDTree(cloud.points)
    # One extra neighbor because every point finds itself first.
    result = tree.search_batch(cloud.points, KDTreeSearchParamKNN(nb_neighbors + 1))
    dist = np.sqrt(result.distances2[:, 1:])
    valid = np.isfinite(dist)
    counts = valid.sum(axis=1)
    total = np.where(valid, dist, 0.0).sum(axis=1)
    out = np.zeros(len(cloud), dtype=np.float64)
    np.divide(total, counts, out=out, where=counts > 0)
    return out


def remove_statistical_outliers(
    cloud: PointCloud, nb_neighbors: int, std_ratio: float
) -> Tuple[PointCloud, np.ndarray]:
    """Drop points whose mean neighbor distance exceeds ``mean + std_ratio * std``."""
    k = _check_count("nb_neighbors", nb_neighbors)
    ratio = float(std_ratio)
    if not np.isfinite(ratio) or ratio <= 0.0:
        raise InvalidArgumentError(f"std_ratio must be positive, got {std_ratio!r}")
    if len(cloud) < 2:
        kept = np.arange(len(cloud), dtype=np.int64)
        return cloud.gather(kept), kept
    avg = _mean_neighbor_distance(cloud, k)
    threshold = avg.mean() + ratio * avg.std(ddof=1)
    kept = np.flatnonzero(avg <= threshold)
    _log.info("Statistical outlier removal kept %d of %d points", len(kept), len(cloud))
    return cloud.gather(kept), kept


def compute_nearest_neighbor_distance(cloud: PointCloud) -> np.ndarray:
    """Distance from each point to its closest other point (0 for a lone point)."""
    if len(cloud) < 2:
        return np.zeros(len(cloud), dtype=np.float64)
    return _mean_neighbor_distance(cloud, 1)

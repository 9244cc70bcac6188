"""Normal estimation and orientation passes.

Normals are fitted per point by PCA over the neighborhood returned by a
:class:`~pcgeo.core.kdtree.KDTree` query: the normal is the eigenvector of the
smallest eigenvalue of the neighborhood covariance. Eigen-decomposition leaves
the sign arbitrary; the orientation helpers below are separate, purely local
passes that flip normals against a reference.
"""
from __future__ import annotations
from typing import Optional, Sequence, Tuple
import numpy as np

from .errors import InvalidArgumentError
from .kdtree import DEFAULT_CHUNK_SIZE, KDTree
from .pointcloud import PointCloud
from .search import KDTreeSearchParamHybrid, KDTreeSearchParamKNN, KDTreeSearchParamRadius, SearchParam
from .utils import as_vector3, get_logger, safe_unit_vectors

_log = get_logger()

MIN_NEIGHBORS = 3


def neighborhood_covariances(
    points: np.ndarray, query_ids: np.ndarray, indices: np.ndarray, n_queries: int
) -> Tuple[np.ndarray, np.ndarray]:
    """Covariance of each neighborhood about its centroid, plus neighbor counts.

    Neighborhoods come as flat ``(query_ids, indices)`` pairs and are reduced
    with ``np.bincount``, so memory follows the total number of pairs rather
    than the largest neighborhood.
    """
    counts = np.bincount(query_ids, minlength=n_queries)
    denom = np.maximum(counts, 1).astype(np.float64)
    nbrs = points[indices]
    centroid = np.column_stack([
        np.bincount(query_ids, weights=nbrs[:, a], minlength=n_queries) for a in range(3)
    ]) / denom[:, None]
    centered = nbrs - centroid[query_ids]
    cov = np.empty((n_queries, 3, 3), dtype=np.float64)
    for a in range(3):
        for b in range(a, 3):
            s = np.bincount(query_ids, weights=centered[:, a] * centered[:, b], minlength=n_queries) / denom
            cov[:, a, b] = s
            cov[:, b, a] = s
    return cov, counts


def normals_from_covariances(cov: np.ndarray) -> np.ndarray:
    # eigh sorts eigenvalues ascending; column 0 is the least-variance axis.
    _, vecs = np.linalg.eigh(cov)
    return vecs[:, :, 0]


def estimate_normals(
    cloud: PointCloud,
    search_param: Optional[SearchParam] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> PointCloud:
    """Estimate a unit normal for every point, in place.

    Points whose neighborhood has fewer than three members get a zero normal.
    If the cloud already carried normals, each new normal is flipped to agree
    with the previous one at the same point.
    """
    param = KDTreeSearchParamKNN() if search_param is None else search_param
    if not isinstance(param, (KDTreeSearchParamKNN, KDTreeSearchParamRadius, KDTreeSearchParamHybrid)):
        raise InvalidArgumentError(f"Unsupported search parameter: {param!r}")
    if chunk_size <= 0:
        raise InvalidArgumentError(f"chunk_size must be positive, got {chunk_size!r}")
    if cloud.is_empty():
        return cloud

    pts = cloud.points
    previous = cloud.normals if cloud.normals_paired() else None
    tree = KDTree(pts)
    normals = np.zeros_like(pts)
    degenerate = 0
    for start in range(0, len(pts), chunk_size):
        stop = min(start + chunk_size, len(pts))
        query_ids, indices, _ = tree.search_batch_pairs(pts[start:stop], param, chunk_size)
        cov, counts = neighborhood_covariances(pts, query_ids, indices, stop - start)
        ok = counts >= MIN_NEIGHBORS
        degenerate += int((~ok).sum())
        if np.any(ok):
            normals[start:stop][ok] = normals_from_covariances(cov[ok])

    if previous is not None:
        flip = np.einsum("ij,ij->i", normals, previous) < 0.0
        normals[flip] *= -1.0
    if degenerate:
        _log.warning("%d points had fewer than %d neighbors; their normals are zero.", degenerate, MIN_NEIGHBORS)
    cloud.normals = normals
    return cloud


def normalize_normals(cloud: PointCloud) -> PointCloud:
    """Rescale normals to unit length; zero normals stay zero."""
    if cloud.has_normals():
        cloud.normals = safe_unit_vectors(cloud.normals)
    return cloud


def orient_normals_to_align_with_direction(
    cloud: PointCloud, orientation_reference: Sequence[float] = (0.0, 0.0, 1.0)
) -> PointCloud:
    """Negate every normal whose dot product with the reference is negative.

    A zero reference flips nothing.
    """
    d = as_vector3(orientation_reference, "orientation_reference")
    if not cloud.has_normals():
        _log.warning("No normals to orient; call estimate_normals first.")
        return cloud
    normals = cloud.normals.copy()
    flip = normals @ d < 0.0
    normals[flip] *= -1.0
    cloud.normals = normals
    return cloud


def orient_normals_towards_camera_location(
    cloud: PointCloud, camera_location: Sequence[float] = (0.0, 0.0, 0.0)
) -> PointCloud:
    """Flip normals so each one faces ``camera_location`` from its point."""
    cam = as_vector3(camera_location, "camera_location")
    if not cloud.has_normals():
        _log.warning("No normals to orient; call estimate_normals first.")
        return cloud
    if not cloud.normals_paired():
        return cloud
    normals = cloud.normals.copy()
    flip = np.einsum("ij,ij->i", normals, cam - cloud.points) < 0.0
    normals[flip] *= -1.0
    cloud.normals = normals
    return cloud

from __future__ import annotations
from typing import Optional, Sequence
import numpy as np

from .errors import InvalidArgumentError
from .pointcloud import PointCloud
from .utils import as_vector3, get_logger

_log = get_logger()


def _as_matrix(m: np.ndarray, shape: tuple[int, int], name: str) -> np.ndarray:
    arr = np.asarray(m, dtype=np.float64)
    if arr.shape != shape:
        raise InvalidArgumentError(f"{name} must have shape {shape}, got {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise InvalidArgumentError(f"{name} must be finite")
    return arr


def rotation_matrix_from_rpy(rpy_deg: Sequence[float]) -> np.ndarray:
    """Rotation ``Rz @ Ry @ Rx`` from roll/pitch/yaw in degrees."""
    rx, ry, rz = np.deg2rad(as_vector3(rpy_deg, "rpy_deg"))
    cx, sx = np.cos(rx), np.sin(rx)
    cy, sy = np.cos(ry), np.sin(ry)
    cz, sz = np.cos(rz), np.sin(rz)
    Rx = np.array([[1,0,0],[0,cx,-sx],[0,sx,cx]])
    Ry = np.array([[cy,0,sy],[0,1,0],[-sy,0,cy]])
    Rz = np.array([[cz,-sz,0],[sz,cz,0],[0,0,1]])
    return (Rz @ Ry @ Rx).astype(float)


def transform_points(points: np.ndarray, transformation: np.ndarray) -> np.ndarray:
    """Apply a 4x4 matrix to (N, 3) points in homogeneous coordinates.

    The result is divided by the homogeneous coordinate wherever it is
    neither 1 nor 0. Points whose coordinate is exactly 0 map to a direction
    at infinity; they are returned as the undivided ``M[:3] @ [p; 1]``
    rather than as inf/nan.
    """
    M = _as_matrix(transformation, (4, 4), "transformation")
    h = points @ M[:3, :3].T + M[:3, 3]
    w = points @ M[3, :3] + M[3, 3]
    divide = (w != 1.0) & (w != 0.0)
    if np.any(divide):
        h[divide] /= w[divide, None]
    return h


def transform(cloud: PointCloud, transformation: np.ndarray) -> PointCloud:
    """Transform ``cloud`` in place.

    Points get the full homogeneous transform; a point whose homogeneous
    coordinate comes out as exactly 0 is left undivided (see
    :func:`transform_points`). Normals only get the upper-left 3x3 block and
    are not renormalized; call ``normalize_normals`` afterwards if unit length
    matters. Colors are untouched.
    """
    M = _as_matrix(transformation, (4, 4), "transformation")
    if cloud.is_empty():
        return cloud
    transform_normals = cloud.normals_paired()
    cloud.points = transform_points(cloud.points, M)
    if transform_normals:
        cloud.normals = cloud.normals @ M[:3, :3].T
    return cloud


def translate(cloud: PointCloud, translation: Sequence[float], relative: bool = True) -> PointCloud:
    """Shift points by ``translation``, or move the center onto it when ``relative`` is false."""
    t = as_vector3(translation, "translation")
    if cloud.is_empty():
        return cloud
    if not relative:
        t = t - cloud.get_center()
    cloud.points = cloud.points + t
    return cloud


def scale(cloud: PointCloud, scale: float, center: Optional[Sequence[float]] = None) -> PointCloud:
    s = float(scale)
    if not np.isfinite(s):
        raise InvalidArgumentError(f"scale must be finite, got {scale!r}")
    if cloud.is_empty():
        return cloud
    c = cloud.get_center() if center is None else as_vector3(center, "center")
    cloud.points = (cloud.points - c) * s + c
    return cloud


def rotate(cloud: PointCloud, R: np.ndarray, center: Optional[Sequence[float]] = None) -> PointCloud:
    """Rotate points about ``center`` (defaults to the cloud center); normals rotate too."""
    R = _as_matrix(R, (3, 3), "R")
    if cloud.is_empty():
        return cloud
    c = cloud.get_center() if center is None else as_vector3(center, "center")
    rotate_normals = cloud.normals_paired()
    cloud.points = (cloud.points - c) @ R.T + c
    if rotate_normals:
        cloud.normals = cloud.normals @ R.T
    return cloud

"""Hand-off of point buffers stored as NumPy ``.npz`` archives.

This is the boundary with the outside world used by the SDK and CLI; the
core engine itself only ever sees in-memory arrays.
"""
from __future__ import annotations

from pathlib import Path
from typing import Union

import numpy as np

from ..core.pointcloud import PointCloud
from ..core.utils import get_logger

_log = get_logger()


def load_cloud_npz(
    path: Union[str, Path],
    points_key: str = "points",
    normals_key: str = "normals",
    colors_key: str = "colors",
) -> PointCloud:
    path = Path(path)
    with np.load(path) as data:
        if points_key not in data.files:
            raise ValueError(f"'{path.name}' has no '{points_key}' array (found {sorted(data.files)})")
        cloud = PointCloud(data[points_key])
        if normals_key in data.files:
            cloud.normals = data[normals_key]
        if colors_key in data.files:
            cloud.colors = data[colors_key]
    _log.info("Loaded %d points from %s", len(cloud), path.name)
    return cloud


def save_cloud_npz(cloud: PointCloud, path: Union[str, Path], compress: bool = False) -> Path:
    """Write ``points`` plus whichever of ``normals``/``colors`` are present."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    arrays = {"points": cloud.points}
    if cloud.has_normals():
        arrays["normals"] = cloud.normals
    if cloud.has_colors():
        arrays["colors"] = cloud.colors
    save = np.savez_compressed if compress else np.savez
    with open(path, "wb") as f:
        save(f, **arrays)
    _log.info("Wrote %d points to %s", len(cloud), path.name)
    return path

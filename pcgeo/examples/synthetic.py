from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from ..core.pointcloud import PointCloud


def _uniform_cube(n: int, size: float, rng: np.random.Generator) -> Tuple[np.ndarray, np.ndarray]:
    points = rng.uniform(0.0, size, size=(n, 3))
    return points, np.zeros((0, 3))


def _grid_plane(n: int, size: float, rng: np.random.Generator, noise: float) -> Tuple[np.ndarray, np.ndarray]:
    side = max(int(np.ceil(np.sqrt(n))), 2)
    lin = np.linspace(-size / 2.0, size / 2.0, side)
    xv, yv = np.meshgrid(lin, lin, indexing="ij")
    z = rng.normal(scale=noise, size=xv.size) if noise > 0 else np.zeros(xv.size)
    points = np.column_stack([xv.ravel(), yv.ravel(), z])[:n]
    normals = np.tile(np.array([0.0, 0.0, 1.0]), (len(points), 1))
    return points, normals


def _sphere(n: int, size: float, rng: np.random.Generator, noise: float) -> Tuple[np.ndarray, np.ndarray]:
    # Fibonacci lattice gives an even spread without clustering at the poles.
    i = np.arange(n, dtype=np.float64) + 0.5
    phi = np.arccos(1.0 - 2.0 * i / n)
    theta = np.pi * (1.0 + 5.0 ** 0.5) * i
    normals = np.column_stack([np.cos(theta) * np.sin(phi), np.sin(theta) * np.sin(phi), np.cos(phi)])
    radius = size / 2.0
    if noise > 0:
        radius = radius + rng.normal(scale=noise, size=(n, 1))
    return normals * radius, normals


def generate_cloud(
    preset: str,
    n: int = 1000,
    size: float = 10.0,
    seed: Optional[int] = 0,
    noise: float = 0.0,
    with_colors: bool = False,
) -> PointCloud:
    """Synthetic cloud for demos and tests.

    Presets: ``cube`` (uniform in ``[0, size]^3``), ``plane`` (grid on z=0 with
    +z normals) and ``sphere`` (diameter ``size`` with outward normals).
    """
    if n <= 0:
        raise ValueError("n must be positive.")
    rng = np.random.default_rng(seed)
    preset = preset.lower()
    if preset == "cube":
        points, normals = _uniform_cube(n, size, rng)
    elif preset == "plane":
        points, normals = _grid_plane(n, size, rng, noise)
    elif preset == "sphere":
        points, normals = _sphere(n, size, rng, noise)
    else:
        raise ValueError(f"Unknown synthetic cloud preset '{preset}'.")
    cloud = PointCloud(points, normals)
    if with_colors:
        lo, hi = cloud.get_min_bound(), cloud.get_max_bound()
        span = np.where(hi > lo, hi - lo, 1.0)
        cloud.colors = (points - lo) / span
    return cloud

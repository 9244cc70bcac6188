from __future__ import annotations
from dataclasses import dataclass, field
import numpy as np

from .errors import InvalidArgumentError
from .utils import as_vector3, as_vector3_array


@dataclass
class AxisAlignedBoundingBox:
    """Axis-aligned box given by its min/max corners (bounds are inclusive)."""
    min_bound: np.ndarray = field(default_factory=lambda: np.zeros(3))   # (3,)
    max_bound: np.ndarray = field(default_factory=lambda: np.zeros(3))   # (3,)

    def __post_init__(self) -> None:
        self.min_bound = as_vector3(self.min_bound, "min_bound")
        self.max_bound = as_vector3(self.max_bound, "max_bound")
        if np.any(self.min_bound > self.max_bound):
            raise InvalidArgumentError(
                f"min_bound {self.min_bound.tolist()} exceeds max_bound {self.max_bound.tolist()}"
            )

    @classmethod
    def create_from_points(cls, points: np.ndarray) -> "AxisAlignedBoundingBox":
        pts = as_vector3_array(points, "points")
        if len(pts) == 0:
            return cls()
        return cls(pts.min(axis=0), pts.max(axis=0))

    def get_center(self) -> np.ndarray:
        return 0.5 * (self.min_bound + self.max_bound)

    def get_extent(self) -> np.ndarray:
        return self.max_bound - self.min_bound

    def volume(self) -> float:
        return float(np.prod(self.get_extent()))

    def contains(self, points: np.ndarray) -> np.ndarray:
        """Boolean mask of the rows of ``points`` lying inside the box."""
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        inside = (pts >= self.min_bound) & (pts <= self.max_bound)
        return np.all(inside, axis=1)

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence
import time

from .operations import Operation
from .pointcloud import PointCloud
from .utils import get_logger

_log = get_logger()


@dataclass
class StepStats:
    name: str
    points_in: int
    points_out: int
    seconds: float


@dataclass
class PipelineResult:
    cloud: PointCloud
    steps: List[StepStats] = field(default_factory=list)

    def stats(self) -> Dict[str, Any]:
        points_in = self.steps[0].points_in if self.steps else len(self.cloud)
        return {
            "points_in": points_in,
            "points_out": len(self.cloud),
            "steps": [s.name for s in self.steps],
            "has_normals": self.cloud.has_normals(),
            "has_colors": self.cloud.has_colors(),
        }


class Pipeline:
    """Runs an ordered chain of operations over one cloud.

    The input cloud is copied first, so in-place steps never mutate the
    caller's cloud and a failing step leaves it untouched.
    """
    def __init__(self, operations: Sequence[Operation]) -> None:
        self.operations = list(operations)

    def run(self, cloud: PointCloud) -> PipelineResult:
        current = cloud.copy()
        steps: List[StepStats] = []
        for op in self.operations:
            n_in = len(current)
            t0 = time.perf_counter()
            current = op.apply(current)
            elapsed = time.perf_counter() - t0
            steps.append(StepStats(op.name, n_in, len(current), elapsed))
            _log.debug("%s: %d -> %d points (%.3fs)", op.name, n_in, len(current), elapsed)
        result = PipelineResult(cloud=current, steps=steps)
        _log.info("Pipeline finished: %d steps, %d → %d points",
                  len(steps), len(cloud), len(current))
        return result

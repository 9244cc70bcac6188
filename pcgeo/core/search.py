from __future__ import annotations
from dataclasses import dataclass
from typing import Union
import math
import numbers

from .errors import InvalidArgumentError


def _check_count(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value <= 0:
        raise InvalidArgumentError(f"{name} must be a positive integer, got {value!r}")
    return int(value)


def _check_radius(value: float) -> float:
    try:
        r = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"radius must be a number, got {value!r}") from exc
    if not math.isfinite(r) or r <= 0.0:
        raise InvalidArgumentError(f"radius must be a positive finite number, got {value!r}")
    return r


@dataclass(frozen=True)
class KDTreeSearchParamKNN:
    """Fixed neighbor count."""
    knn: int = 30

    def __post_init__(self) -> None:
        object.__setattr__(self, "knn", _check_count("knn", self.knn))


@dataclass(frozen=True)
class KDTreeSearchParamRadius:
    """All neighbors within ``radius``."""
    radius: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "radius", _check_radius(self.radius))


@dataclass(frozen=True)
class KDTreeSearchParamHybrid:
    """Neighbors within ``radius``, capped at the ``max_nn`` closest."""
    radius: float
    max_nn: int = 30

    def __post_init__(self) -> None:
        object.__setattr__(self, "radius", _check_radius(self.radius))
        object.__setattr__(self, "max_nn", _check_count("max_nn", self.max_nn))


SearchParam = Union[KDTreeSearchParamKNN, KDTreeSearchParamRadius, KDTreeSearchParamHybrid]

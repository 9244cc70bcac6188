from __future__ import annotations


class PointCloudError(Exception):
    """Base class for errors raised by the geometry engine."""


class InvalidArgumentError(PointCloudError, ValueError):
    """A parameter is outside its valid domain (voxel size, stride, search parameter...)."""


class IndexOutOfRangeError(PointCloudError, IndexError):
    """A selection index lies outside ``[0, N)``."""

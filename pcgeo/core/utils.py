from __future__ import annotations
import numpy as np
import logging

from .errors import InvalidArgumentError

def get_logger(name: str = "pcgeo") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter("[%(levelname)s] %(message)s")
        handler.setFormatter(fmt)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger

def as_vector3(v, name: str = "vector") -> np.ndarray:
    arr = np.asarray(v, dtype=np.float64).reshape(-1)
    if arr.shape != (3,):
        raise InvalidArgumentError(f"{name} must have 3 components, got shape {np.shape(v)}")
    if not np.all(np.isfinite(arr)):
        raise InvalidArgumentError(f"{name} must be finite")
    return arr

def as_vector3_array(v, name: str = "array") -> np.ndarray:
    """Copy ``v`` into a fresh float64 (N, 3) array."""
    if v is None:
        return np.zeros((0, 3), dtype=np.float64)
    arr = np.array(v, dtype=np.float64, copy=True)
    if arr.size == 0:
        return np.zeros((0, 3), dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise InvalidArgumentError(f"{name} must have shape (N, 3), got {arr.shape}")
    return arr

def safe_unit_vectors(v: np.ndarray) -> np.ndarray:
    # Zero-length rows are returned unchanged.
    norms = np.linalg.norm(v, axis=1, keepdims=True)
    out = v.copy()
    np.divide(v, norms, out=out, where=norms > 0)
    return out

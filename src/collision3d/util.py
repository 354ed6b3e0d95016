# MIT License (see LICENSE)
"""
Utility functions for vector math and numeric operations.

Provides low-level 3D vector operations used by the collision code:
normalization, dot/cross helpers, orthogonal vector construction and
array conversion. All functions operate on 3D vectors represented as numpy
arrays of shape (3,).
"""
from __future__ import annotations

import numpy as np


def f64(x) -> np.ndarray:
    """
    Convert any array-like to a float64 numpy array.

    Used throughout the codebase to ensure consistent numeric precision
    and allow tuple/list inputs for points and directions.
    """
    return np.array(x, dtype=np.float64)


def nan3() -> np.ndarray:
    """A fresh 3D vector filled with NaN, the 'no value' sentinel."""
    return np.full(3, np.nan, dtype=np.float64)


def dot(a: np.ndarray, b: np.ndarray) -> float:
    """Dot product of two 3D vectors as a Python float."""
    return float(a[0] * b[0] + a[1] * b[1] + a[2] * b[2])


def norm2(v: np.ndarray) -> float:
    """Squared magnitude of a 3D vector. Avoids sqrt for performance."""
    return float(v[0] * v[0] + v[1] * v[1] + v[2] * v[2])


def norm(v: np.ndarray) -> float:
    """Magnitude (length) of a 3D vector."""
    return float(np.sqrt(norm2(v)))


def cross(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    3D cross product a × b.

    Written out by hand: np.cross carries noticeable overhead for single
    3-vectors and this sits in the inner loop of GJK and hull building.
    """
    return np.array(
        [
            a[1] * b[2] - a[2] * b[1],
            a[2] * b[0] - a[0] * b[2],
            a[0] * b[1] - a[1] * b[0],
        ],
        dtype=np.float64,
    )


def unit(v: np.ndarray, eps: float = 1e-12) -> np.ndarray:
    """
    Return a unit (normalized) vector in the same direction as v.

    Returns zero vector if |v| < eps to avoid division by zero.
    """
    n = norm(v)
    if n < eps:
        return np.zeros(3, dtype=np.float64)
    return v / n


def orthogonal(v: np.ndarray) -> np.ndarray:
    """
    Return a unit vector perpendicular to v.

    Crosses v with the coordinate axis it is least aligned with, which keeps
    the result well conditioned for any non-zero input.
    """
    axis = np.zeros(3, dtype=np.float64)
    axis[int(np.argmin(np.abs(v)))] = 1.0
    return unit(cross(v, axis))


def distance_squared(a: np.ndarray, b: np.ndarray) -> float:
    """Squared Euclidean distance between two points."""
    return norm2(a - b)


def is_finite(v) -> bool:
    """True if every component of v is finite (no NaN, no inf)."""
    return bool(np.all(np.isfinite(v)))

# MIT License (see LICENSE)
"""
Collision query result.

A CollisionResult is created once by the caller and overwritten in place by
every query, so repeated queries do not allocate. Conventions:

    separated:  signed_distance > 0, point_on_a - point_on_b is the shortest
                vector from B to A, normal_on_a points from A towards B;
    colliding:  signed_distance = -depth, translating B by depth * normal_on_a
                brings the shapes into touching contact.

normal_on_b is always -normal_on_a. Missing values are NaN.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from ..transform import RigidTransform
from ..util import nan3


@dataclass(eq=False)
class CollisionResult:
    """
    Outcome of a collision query between shapes A and B.

    Attributes:
        colliding: True if the shapes intersect.
        signed_distance: Separation (> 0) or minus the penetration depth.
        point_on_a: Witness point on A.
        normal_on_a: Unit normal at point_on_a.
        point_on_b: Witness point on B.
        normal_on_b: Unit normal at point_on_b.
        shape_a: Reference to the queried shape A (not owned).
        shape_b: Reference to the queried shape B (not owned).
        frame: Frame the points and normals are expressed in, for frame
            queries; None otherwise.
    """
    colliding: bool = False
    signed_distance: float = float("nan")
    point_on_a: np.ndarray = field(default_factory=nan3)
    normal_on_a: np.ndarray = field(default_factory=nan3)
    point_on_b: np.ndarray = field(default_factory=nan3)
    normal_on_b: np.ndarray = field(default_factory=nan3)
    shape_a: Any = None
    shape_b: Any = None
    frame: Any = None

    @property
    def distance(self) -> float:
        """Unsigned distance (separation or depth)."""
        return abs(self.signed_distance)

    @property
    def depth(self) -> float:
        """Penetration depth; 0 when separated."""
        return max(0.0, -self.signed_distance)

    def clear(self) -> None:
        """Reset to the 'no answer' sentinel: not colliding, everything NaN."""
        self.colliding = False
        self.signed_distance = float("nan")
        for array in (self.point_on_a, self.normal_on_a, self.point_on_b, self.normal_on_b):
            array.fill(np.nan)
        self.shape_a = None
        self.shape_b = None
        self.frame = None

    def set(self, other: CollisionResult) -> None:
        self.colliding = other.colliding
        self.signed_distance = other.signed_distance
        self.point_on_a[:] = other.point_on_a
        self.normal_on_a[:] = other.normal_on_a
        self.point_on_b[:] = other.point_on_b
        self.normal_on_b[:] = other.normal_on_b
        self.shape_a = other.shape_a
        self.shape_b = other.shape_b
        self.frame = other.frame

    def copy(self) -> CollisionResult:
        result = CollisionResult()
        result.set(self)
        return result

    def swap_shapes(self) -> None:
        """Exchange the roles of A and B in place."""
        self.shape_a, self.shape_b = self.shape_b, self.shape_a
        for a, b in ((self.point_on_a, self.point_on_b), (self.normal_on_a, self.normal_on_b)):
            tmp = a.copy()
            a[:] = b
            b[:] = tmp

    def apply_transform(self, transform: RigidTransform) -> None:
        """Re-express points and normals through `transform`."""
        self.point_on_a[:] = transform.transform_point(self.point_on_a)
        self.point_on_b[:] = transform.transform_point(self.point_on_b)
        self.normal_on_a[:] = transform.transform_vector(self.normal_on_a)
        self.normal_on_b[:] = transform.transform_vector(self.normal_on_b)

    def change_frame(self, desired) -> None:
        """
        Re-express the result in another reference frame.

        Raises:
            ValueError: If the result carries no frame.
        """
        if self.frame is None:
            raise ValueError("result has no reference frame")
        if desired is not self.frame:
            self.apply_transform(self.frame.transform_to(desired))
            self.frame = desired

    def contains_nan(self) -> bool:
        return bool(
            np.isnan(self.signed_distance)
            or np.any(np.isnan(self.point_on_a))
            or np.any(np.isnan(self.normal_on_a))
            or np.any(np.isnan(self.point_on_b))
            or np.any(np.isnan(self.normal_on_b))
        )

    def epsilon_equals(self, other: CollisionResult, eps: float) -> bool:
        """Component-wise comparison; NaN matches NaN."""
        if self.colliding != other.colliding:
            return False
        if not _close(self.signed_distance, other.signed_distance, eps):
            return False
        pairs = (
            (self.point_on_a, other.point_on_a),
            (self.normal_on_a, other.normal_on_a),
            (self.point_on_b, other.point_on_b),
            (self.normal_on_b, other.normal_on_b),
        )
        return all(np.allclose(a, b, rtol=0.0, atol=eps, equal_nan=True) for a, b in pairs)

    def geometrically_equals(
        self,
        other: CollisionResult,
        distance_eps: float,
        point_eps: float,
        normal_eps: float,
    ) -> bool:
        """
        Compare as geometric answers, tolerating swapped operands.

        If both results reference the same shapes in opposite order, A of one
        is compared against B of the other. Normals are compared by angle.
        """
        if self.colliding != other.colliding:
            return False
        if not _close(self.distance, other.distance, distance_eps):
            return False
        swapped = (
            self.shape_a is not None
            and self.shape_a is other.shape_b
            and self.shape_b is other.shape_a
            and self.shape_a is not self.shape_b
        )
        if swapped:
            other_a, other_b = (other.point_on_b, other.normal_on_b), (other.point_on_a, other.normal_on_a)
        else:
            other_a, other_b = (other.point_on_a, other.normal_on_a), (other.point_on_b, other.normal_on_b)
        for (p, n), (q, m) in (((self.point_on_a, self.normal_on_a), other_a), ((self.point_on_b, self.normal_on_b), other_b)):
            if not np.allclose(p, q, rtol=0.0, atol=point_eps, equal_nan=True):
                return False
            if not _normals_close(n, m, normal_eps):
                return False
        return True


def _close(a: float, b: float, eps: float) -> bool:
    if np.isnan(a) or np.isnan(b):
        return bool(np.isnan(a) and np.isnan(b))
    return abs(a - b) <= eps


def _normals_close(n: np.ndarray, m: np.ndarray, eps: float) -> bool:
    n_nan, m_nan = bool(np.any(np.isnan(n))), bool(np.any(np.isnan(m)))
    if n_nan or m_nan:
        return n_nan and m_nan
    nn, mm = np.linalg.norm(n), np.linalg.norm(m)
    if nn < 1e-12 or mm < 1e-12:
        return nn < 1e-12 and mm < 1e-12
    cos = float(np.clip(np.dot(n, m) / (nn * mm), -1.0, 1.0))
    return float(np.arccos(cos)) <= eps

# MIT License (see LICENSE)
"""
GJK simplices and the signed-volume sub-simplex search.

The reduction routines find, for a simplex of up to four Minkowski-difference
points, the smallest sub-simplex whose affine hull contains the point
closest to the origin, together with the barycentric coordinates of that
point. They follow Montanari, Petrinic and Barbieri, "Improving the GJK
algorithm for faster and more reliable distance queries between convex
objects" (2017): sub-simplices are selected by comparing the signs of the
cofactors (tetrahedron), of areas projected on the best Cartesian plane
(triangle) or of lengths projected on the best axis (segment).

The newest vertex is always the first argument and is never discarded:
GJK only adds a vertex after finding it beyond the previous simplex.
"""
from __future__ import annotations
from typing import Sequence

import numpy as np

from ..constants import SIMPLEX_ZERO_EPSILON
from ..util import cross, dot, norm2, unit


class SimplexVertex:
    """
    Point of the Minkowski difference A - B.

    Attributes:
        point: point_on_a - point_on_b.
        point_on_a: Support point of A.
        point_on_b: Support point of B.
    """

    __slots__ = ("point", "point_on_a", "point_on_b")

    def __init__(self, point_on_a: np.ndarray, point_on_b: np.ndarray) -> None:
        self.point_on_a = point_on_a
        self.point_on_b = point_on_b
        self.point = point_on_a - point_on_b

    def __repr__(self) -> str:
        return f"SimplexVertex({self.point.tolist()})"


class Simplex:
    """
    Up to four simplex vertices and the barycentric coordinates of the point
    of their convex hull closest to the origin.
    """

    def __init__(self, vertices: Sequence[SimplexVertex], lambdas: Sequence[float] | None = None) -> None:
        self.vertices = list(vertices)
        self.lambdas = [1.0] if lambdas is None else list(lambdas)
        self.closest_point = np.zeros(3)
        for vertex, weight in zip(self.vertices, self.lambdas):
            self.closest_point += weight * vertex.point
        self.distance_squared = norm2(self.closest_point)

    def __repr__(self) -> str:
        return f"Simplex(n={len(self.vertices)}, distance={np.sqrt(self.distance_squared):.3g})"

    @property
    def num_vertices(self) -> int:
        return len(self.vertices)

    @property
    def max_distance_squared(self) -> float:
        return max(norm2(v.point) for v in self.vertices)

    def contains(self, vertex: SimplexVertex) -> bool:
        return any(np.array_equal(v.point, vertex.point) for v in self.vertices)

    def witness_points(self) -> tuple[np.ndarray, np.ndarray]:
        """Barycentric combinations of the A and B support points."""
        on_a = np.zeros(3)
        on_b = np.zeros(3)
        for vertex, weight in zip(self.vertices, self.lambdas):
            on_a += weight * vertex.point_on_a
            on_b += weight * vertex.point_on_b
        return on_a, on_b

    def triangle_normal(self) -> np.ndarray:
        """Unit normal of a triangle simplex, oriented towards the origin."""
        s1, s2, s3 = (v.point for v in self.vertices[:3])
        n = cross(s2 - s1, s3 - s1)
        if dot(n, s1) > 0.0:
            n = -n
        return unit(n)


def compare_signs(a: float, b: float) -> bool:
    """True if a is non-zero and b has the same sign (b may be zero)."""
    if a > 0.0 and b >= 0.0:
        return True
    return a < 0.0 and b <= 0.0


def _is_zero(value: float) -> bool:
    return abs(value) <= SIMPLEX_ZERO_EPSILON


def simplex_closest_to_origin(
    old_vertices: Sequence[SimplexVertex], new_vertex: SimplexVertex
) -> Simplex | None:
    """
    Reduce the simplex old_vertices + new_vertex to the sub-simplex closest to the origin.

    Returns:
        The reduced simplex, or None when the reduction is degenerate (the
        origin lies on a flat tetrahedron or a zero-area triangle).
    """
    n = len(old_vertices)
    if n == 3:
        return closest_from_tetrahedron(new_vertex, old_vertices[2], old_vertices[1], old_vertices[0])
    if n == 2:
        return closest_from_triangle(new_vertex, old_vertices[1], old_vertices[0])
    if n == 1:
        return closest_from_segment(new_vertex, old_vertices[0])
    return Simplex([new_vertex])


def _det3(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> float:
    # determinant of the matrix with columns a, b, c
    return dot(a, cross(b, c))


def closest_from_tetrahedron(
    s1: SimplexVertex, s2: SimplexVertex, s3: SimplexVertex, s4: SimplexVertex
) -> Simplex | None:
    p1, p2, p3, p4 = s1.point, s2.point, s3.point, s4.point
    c41 = -_det3(p2, p3, p4)
    c42 = _det3(p1, p3, p4)
    c43 = -_det3(p1, p2, p4)
    c44 = _det3(p1, p2, p3)
    det_m = c41 + c42 + c43 + c44

    if all(compare_signs(det_m, c) for c in (c41, c42, c43, c44)):
        return Simplex([s1, s2, s3, s4], [c41 / det_m, c42 / det_m, c43 / det_m, c44 / det_m])

    best: Simplex | None = None
    for cofactor, face in ((c42, (s1, s3, s4)), (c43, (s1, s2, s4)), (c44, (s1, s2, s3))):
        if not compare_signs(det_m, -cofactor):
            continue
        if _is_zero(det_m) and _is_zero(cofactor):
            return None
        candidate = closest_from_triangle(*face)
        if candidate is not None and (best is None or candidate.distance_squared < best.distance_squared):
            best = candidate
    return best


def _projected_area(a: np.ndarray, b: np.ndarray, c: np.ndarray, i: int, j: int) -> float:
    # signed area (times two) of triangle abc projected on the (i, j) plane
    return a[i] * (b[j] - c[j]) + b[i] * (c[j] - a[j]) + c[i] * (a[j] - b[j])


def closest_from_triangle(s1: SimplexVertex, s2: SimplexVertex, s3: SimplexVertex) -> Simplex | None:
    p1, p2, p3 = s1.point, s2.point, s3.point
    normal = cross(p1 - p2, p1 - p3)
    normal_norm2 = norm2(normal)
    if normal_norm2 == 0.0:
        return _closest_from_degenerate_triangle(s1, s2, s3)
    p0 = (dot(normal, p1) / normal_norm2) * normal

    # Project on the Cartesian plane where the triangle has the largest area.
    mu_max, plane = 0.0, (1, 2)
    for i, j in ((1, 2), (2, 0), (0, 1)):
        mu = _projected_area(p1, p2, p3, i, j)
        if abs(mu) > abs(mu_max):
            mu_max, plane = mu, (i, j)
    i, j = plane
    c1 = _projected_area(p0, p2, p3, i, j)
    c2 = _projected_area(p1, p0, p3, i, j)
    c3 = _projected_area(p1, p2, p0, i, j)

    if compare_signs(mu_max, c1) and compare_signs(mu_max, c2) and compare_signs(mu_max, c3):
        if abs(c1) < 1e-16 and abs(c2) < 1e-16 and abs(c3) < 1e-16:
            return None
        return Simplex([s1, s2, s3], [c1 / mu_max, c2 / mu_max, c3 / mu_max])

    best: Simplex | None = None
    if compare_signs(mu_max, -c2):
        best = closest_from_segment(s1, s3)
    if compare_signs(mu_max, -c3):
        candidate = closest_from_segment(s1, s2)
        if best is None or candidate.distance_squared < best.distance_squared:
            best = candidate
    return best


def _closest_from_degenerate_triangle(s1: SimplexVertex, s2: SimplexVertex, s3: SimplexVertex) -> Simplex:
    # Collinear points: the newest vertex with whichever other one is closer.
    first = closest_from_segment(s1, s2)
    second = closest_from_segment(s1, s3)
    return first if first.distance_squared <= second.distance_squared else second


def closest_from_segment(s1: SimplexVertex, s2: SimplexVertex) -> Simplex:
    p1, p2 = s1.point, s2.point
    t = p2 - p1
    t_norm2 = norm2(t)
    if t_norm2 == 0.0:
        return Simplex([s1])
    p0 = p2 - (dot(t, p2) / t_norm2) * t

    # Project on the axis where the segment is longest.
    axis = int(np.argmax(np.abs(p1 - p2)))
    mu_max = p1[axis] - p2[axis]
    c1 = p0[axis] - p2[axis]
    if compare_signs(mu_max, c1):
        c2 = p1[axis] - p0[axis]
        if compare_signs(mu_max, c2):
            return Simplex([s1, s2], [c1 / mu_max, c2 / mu_max])
    return Simplex([s1])

# MIT License (see LICENSE)
"""
Polytope constructors for common solids.

These build ConvexPolytope3D meshes from the corners of primitives, which is
handy for testing (a box polytope must collide exactly like a Box) and for
giving STP adapters a mesh to round off.
"""
from __future__ import annotations

import numpy as np

from ..shapes import ramp_vertices
from ..transform import RigidTransform
from ..util import f64
from .convex import ConvexPolytope3D


def box_polytope(half_extents, pose: RigidTransform | None = None) -> ConvexPolytope3D:
    """
    Box with 8 vertices, 12 edges and 6 quadrilateral faces.

    Args:
        half_extents: (hx, hy, hz).
        pose: Optional transform applied to the corners.
    """
    h = f64(half_extents)
    corners = np.array([[sx, sy, sz] for sx in (-1, 1) for sy in (-1, 1) for sz in (-1, 1)]) * h
    if pose is not None:
        corners = np.array([pose.transform_point(c) for c in corners])
    return ConvexPolytope3D(corners)


def ramp_polytope(size, pose: RigidTransform | None = None) -> ConvexPolytope3D:
    """Ramp with the same layout as types.Ramp: 6 vertices, 5 faces."""
    corners = ramp_vertices(f64(size))
    if pose is not None:
        corners = np.array([pose.transform_point(c) for c in corners])
    return ConvexPolytope3D(corners)


def icosphere_polytope(radius: float = 1.0, subdivisions: int = 1, center=(0.0, 0.0, 0.0)) -> ConvexPolytope3D:
    """
    Sphere approximation from a subdivided icosahedron.

    Each subdivision splits every triangle into four and pushes the new
    midpoints onto the sphere.
    """
    t = 0.5 * (1.0 + np.sqrt(5.0))
    vertices = [
        (-1, t, 0), (1, t, 0), (-1, -t, 0), (1, -t, 0),
        (0, -1, t), (0, 1, t), (0, -1, -t), (0, 1, -t),
        (t, 0, -1), (t, 0, 1), (-t, 0, -1), (-t, 0, 1),
    ]
    faces = [
        (0, 11, 5), (0, 5, 1), (0, 1, 7), (0, 7, 10), (0, 10, 11),
        (1, 5, 9), (5, 11, 4), (11, 10, 2), (10, 7, 6), (7, 1, 8),
        (3, 9, 4), (3, 4, 2), (3, 2, 6), (3, 6, 8), (3, 8, 9),
        (4, 9, 5), (2, 4, 11), (6, 2, 10), (8, 6, 7), (9, 8, 1),
    ]
    points = [f64(v) / np.linalg.norm(v) for v in vertices]
    for _ in range(subdivisions):
        cache: dict[tuple[int, int], int] = {}

        def midpoint(i: int, j: int) -> int:
            key = (min(i, j), max(i, j))
            if key not in cache:
                m = points[i] + points[j]
                points.append(m / np.linalg.norm(m))
                cache[key] = len(points) - 1
            return cache[key]

        refined = []
        for a, b, c in faces:
            ab, bc, ca = midpoint(a, b), midpoint(b, c), midpoint(c, a)
            refined += [(a, ab, ca), (b, bc, ab), (c, ca, bc), (ab, bc, ca)]
        faces = refined
    return ConvexPolytope3D(np.array(points) * radius + f64(center))

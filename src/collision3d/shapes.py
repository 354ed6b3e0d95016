# MIT License (see LICENSE)
"""
Support functions for convex primitives.

A support function returns the point of a shape that is farthest along a
given direction. GJK and EPA only ever see shapes through this query, so
every primitive is described here by a pure function of the direction and
the primitive's local parameters.

All functions work in the primitive's local coordinates; shapes in types.py
wrap them with their pose. The direction does not need to be normalized.
A zero direction returns some point of the shape.
"""
from __future__ import annotations

import numpy as np

from .util import dot, norm, unit

Vec3 = np.ndarray  # Shape (3,), dtype float64


def support_sphere(direction: Vec3, center: Vec3, radius: float) -> Vec3:
    """
    Support function for a sphere.

    Args:
        direction: Direction to search.
        center: Sphere center.
        radius: Sphere radius.

    Returns:
        Point on the sphere surface farthest along `direction`.
    """
    return center + radius * unit(direction)


def support_box(direction: Vec3, half_extents: Vec3) -> Vec3:
    """
    Support function for a box centered at the origin and aligned with the axes.

    Picks the corner matching the sign of each direction component. Zero
    components pick the positive side so that the result is deterministic.
    """
    return np.where(direction >= 0.0, half_extents, -half_extents).astype(np.float64)


def support_capsule(direction: Vec3, position: Vec3, axis: Vec3, length: float, radius: float) -> Vec3:
    """
    Support function for a capsule.

    A capsule is the set of points within `radius` of the segment
    position ± axis·length/2.

    Args:
        direction: Direction to search.
        position: Center of the capsule segment.
        axis: Unit axis of the segment.
        length: Segment length, hemispherical caps excluded.
        radius: Capsule radius.
    """
    half = 0.5 * length if dot(direction, axis) >= 0.0 else -0.5 * length
    return position + half * axis + radius * unit(direction)


def support_cylinder(direction: Vec3, position: Vec3, axis: Vec3, length: float, radius: float) -> Vec3:
    """
    Support function for a solid cylinder.

    The support point lies on the rim of the cap facing `direction`; the rim
    point is chosen along the part of `direction` perpendicular to the axis.
    """
    along = dot(direction, axis)
    half = 0.5 * length if along >= 0.0 else -0.5 * length
    radial = unit(direction - along * axis)
    return position + half * axis + radius * radial


def support_ellipsoid(direction: Vec3, radii: Vec3) -> Vec3:
    """
    Support function for an axis-aligned ellipsoid centered at the origin.

    For x²/a² + y²/b² + z²/c² = 1 the support point along d is
    D² d / |D d| with D = diag(a, b, c).
    """
    scaled = radii * direction
    n = norm(scaled)
    if n < 1e-12:
        return np.array([radii[0], 0.0, 0.0], dtype=np.float64)
    return radii * scaled / n


def ramp_vertices(size: Vec3) -> np.ndarray:
    """
    The six corners of a ramp.

    The ramp sits on the XY plane, spans x in [0, size_x], y in
    [-size_y/2, size_y/2], and its inclined face rises from the edge at x=0
    to height size_z at x=size_x.
    """
    sx, sy, sz = size
    hy = 0.5 * sy
    return np.array(
        [
            [0.0, -hy, 0.0],
            [sx, -hy, 0.0],
            [sx, -hy, sz],
            [0.0, hy, 0.0],
            [sx, hy, 0.0],
            [sx, hy, sz],
        ],
        dtype=np.float64,
    )


def support_ramp(direction: Vec3, size: Vec3) -> Vec3:
    """
    Support function for a ramp (see ramp_vertices for the layout).

    The y coordinate follows the sign of direction_y; in the XZ plane the
    support is whichever of the three profile corners (0, 0), (sx, 0),
    (sx, sz) projects farthest.
    """
    sx, sy, sz = size
    y = 0.5 * sy if direction[1] >= 0.0 else -0.5 * sy
    if direction[0] * sx + max(direction[2], 0.0) * sz < 0.0:
        return np.array([0.0, y, 0.0], dtype=np.float64)
    z = sz if direction[2] >= 0.0 else 0.0
    return np.array([sx, y, z], dtype=np.float64)

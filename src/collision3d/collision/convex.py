# MIT License (see LICENSE)
"""
One-call collision queries.

These helpers build a fresh GJK + EPA pipeline per call, so they are safe to
use from anywhere but allocate; hot loops should keep their own detector.
"""
from __future__ import annotations
from typing import Any

import numpy as np

from ..frames import FrameShape
from ..types import Sphere
from ..util import norm, unit
from .epa import ExpandingPolytopeAlgorithm
from .frame_detector import FrameCollisionDetector
from .result import CollisionResult


def sphere_sphere_collision(a: Sphere, b: Sphere, result: CollisionResult) -> bool:
    """
    Closed-form sphere-sphere query, same conventions as GJK/EPA.

    Concentric spheres are pushed apart along +X.
    """
    offset = b.center - a.center
    distance = norm(offset)
    normal = unit(offset) if distance > 1e-12 else np.array([1.0, 0.0, 0.0])

    result.clear()
    result.shape_a = a
    result.shape_b = b
    result.signed_distance = distance - (a.radius + b.radius)
    result.colliding = result.signed_distance < 0.0
    result.point_on_a[:] = a.center + a.radius * normal
    result.point_on_b[:] = b.center - b.radius * normal
    result.normal_on_a[:] = normal
    result.normal_on_b[:] = -normal
    return result.colliding


def evaluate_collision_into(shape_a: Any, shape_b: Any, result: CollisionResult) -> bool:
    """
    Query two shapes (or two FrameShapes) with GJK + EPA, filling `result`.

    Returns:
        Whether the shapes collide.
    """
    if isinstance(shape_a, FrameShape) and isinstance(shape_b, FrameShape):
        return FrameCollisionDetector(ExpandingPolytopeAlgorithm()).evaluate_collision_into(shape_a, shape_b, result)
    if isinstance(shape_a, Sphere) and isinstance(shape_b, Sphere):
        return sphere_sphere_collision(shape_a, shape_b, result)
    return ExpandingPolytopeAlgorithm().evaluate_collision_into(shape_a, shape_b, result)


def evaluate_collision(shape_a: Any, shape_b: Any, result: CollisionResult | None = None) -> CollisionResult:
    """Query two shapes with GJK + EPA and return the result."""
    if result is None:
        result = CollisionResult()
    evaluate_collision_into(shape_a, shape_b, result)
    return result

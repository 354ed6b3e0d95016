# MIT License (see LICENSE)
"""
collision3d - Distance and penetration queries between convex 3D shapes.

This package answers, for a pair of convex shapes, whether they intersect,
how far apart they are and how deep they overlap, with witness points on
both shapes.

Main entry points:
    - evaluate_collision: one-call GJK + EPA query.
    - GJKCollisionDetector / ExpandingPolytopeAlgorithm: reusable detectors.
    - FrameCollisionDetector: queries across reference frames.
    - Sphere, Box, Capsule, Cylinder, Ellipsoid, Ramp: primitive shapes.
    - ConvexPolytope3D: general convex mesh.

Submodules:
    - collision: GJK, EPA, STP volumes, frame-aware wrapper.
    - polytope: DCEL convex polytope and factories.

Example:
    from collision3d import Box, Sphere, evaluate_collision

    result = evaluate_collision(Box([1, 1, 1]), Sphere(1.0, [0, 0, 3]))
    print(result.colliding, result.signed_distance)
"""
from .transform import RigidTransform
from .frames import FrameShape, ReferenceFrame
from .types import Box, Capsule, Cylinder, Ellipsoid, Ramp, ShapeKind, Sphere
from .polytope import ConvexPolytope3D, PolytopeStructureError
from .collision import (
    CollisionResult,
    ExpandingPolytopeAlgorithm,
    FrameCollisionDetector,
    GJKCollisionDetector,
    evaluate_collision,
    new_stp_bounding_volume,
)
from .profiler import Profiler

__all__ = [
    # Geometry
    "RigidTransform",
    "ReferenceFrame",
    "FrameShape",
    # Shapes
    "ShapeKind",
    "Sphere",
    "Box",
    "Capsule",
    "Cylinder",
    "Ellipsoid",
    "Ramp",
    "ConvexPolytope3D",
    "PolytopeStructureError",
    # Queries
    "CollisionResult",
    "GJKCollisionDetector",
    "ExpandingPolytopeAlgorithm",
    "FrameCollisionDetector",
    "evaluate_collision",
    "new_stp_bounding_volume",
    # Instrumentation
    "Profiler",
]

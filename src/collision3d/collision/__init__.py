# MIT License (see LICENSE)
"""
Convex collision queries.

This subpackage provides:
    - GJK: separation distance and intersection test.
    - EPA: penetration depth, direction and witness points.
    - STP: strictly convex bounding volumes for sharp-edged shapes.
    - Frames: queries between shapes living in different reference frames.

Typical usage:
    from collision3d.collision import ExpandingPolytopeAlgorithm, CollisionResult

    epa = ExpandingPolytopeAlgorithm()
    result = CollisionResult()
    for a, b in pairs:
        if epa.evaluate_collision_into(a, b, result):
            # handle penetration
"""
from .result import CollisionResult
from .simplex import Simplex, SimplexVertex
from .gjk import GJKCollisionDetector, GJKSettings, GJKWorkspace, run_gjk
from .epa import EPAWorkspace, ExpandingPolytopeAlgorithm
from .stp import (
    BoxSTPBoundingVolume,
    CapsuleSTPBoundingVolume,
    ConvexPolytope3DSTPBoundingVolume,
    CylinderSTPBoundingVolume,
    RampSTPBoundingVolume,
    STPBoundingVolume,
    new_stp_bounding_volume,
)
from .frame_detector import FrameCollisionDetector, SupportTransformer
from .convex import evaluate_collision, evaluate_collision_into, sphere_sphere_collision

__all__ = [
    # Result
    "CollisionResult",
    # GJK
    "Simplex",
    "SimplexVertex",
    "GJKCollisionDetector",
    "GJKSettings",
    "GJKWorkspace",
    "run_gjk",
    # EPA
    "EPAWorkspace",
    "ExpandingPolytopeAlgorithm",
    # STP
    "STPBoundingVolume",
    "BoxSTPBoundingVolume",
    "RampSTPBoundingVolume",
    "CapsuleSTPBoundingVolume",
    "CylinderSTPBoundingVolume",
    "ConvexPolytope3DSTPBoundingVolume",
    "new_stp_bounding_volume",
    # Frames
    "FrameCollisionDetector",
    "SupportTransformer",
    # One-call queries
    "evaluate_collision",
    "evaluate_collision_into",
    "sphere_sphere_collision",
]

# MIT License (see LICENSE)
"""
Convex polytope subsystem.

This subpackage provides:
    - ConvexPolytope3D: incrementally built convex hull stored as a DCEL.
    - Vertex3D, HalfEdge3D, Face3D: the mesh records.
    - Structural checks raising PolytopeStructureError.
    - Factories for box, ramp and icosphere polytopes.
"""
from .dcel import Face3D, HalfEdge3D, Vertex3D
from .convex import ConvexPolytope3D, convex_hull_2d, triangle_is_degenerate
from .invariants import PolytopeStructureError, check_faces, check_polytope
from .factory import box_polytope, icosphere_polytope, ramp_polytope

__all__ = [
    # Mesh
    "ConvexPolytope3D",
    "Vertex3D",
    "HalfEdge3D",
    "Face3D",
    "convex_hull_2d",
    "triangle_is_degenerate",
    # Checks
    "PolytopeStructureError",
    "check_faces",
    "check_polytope",
    # Factories
    "box_polytope",
    "ramp_polytope",
    "icosphere_polytope",
]

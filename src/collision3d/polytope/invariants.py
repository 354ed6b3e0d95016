# MIT License (see LICENSE)
"""
Structural checks for the half-edge mesh of a ConvexPolytope3D.

A violation means the polytope code itself is broken, so it is reported as
a PolytopeStructureError and never repaired or retried. The polytope runs
check_faces on the faces touched by every insertion; check_polytope walks
the whole mesh and is meant for tests and debugging.
"""
from __future__ import annotations
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from .convex import ConvexPolytope3D


class PolytopeStructureError(RuntimeError):
    """The half-edge links of a polytope are inconsistent."""


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise PolytopeStructureError(message)


def check_half_edge(polytope: ConvexPolytope3D, index: int, face: int) -> None:
    """Check the twin/next/previous/face links of one half-edge of `face`."""
    _require(polytope.has_edge(index), f"face {face} references dead edge {index}")
    edge = polytope.edge(index)
    _require(edge.face == face, f"edge {index} belongs to face {edge.face}, expected {face}")

    _require(polytope.has_edge(edge.twin), f"edge {index} has no twin")
    twin = polytope.edge(edge.twin)
    _require(twin.twin == index, f"twin of edge {index} does not point back")
    _require(
        twin.origin == edge.destination and twin.destination == edge.origin,
        f"edge {index} and its twin {edge.twin} do not share endpoints",
    )
    _require(twin.face != face, f"edge {index} and its twin lie on the same face {face}")

    _require(polytope.has_edge(edge.next), f"edge {index} has no next")
    nxt = polytope.edge(edge.next)
    _require(nxt.origin == edge.destination, f"next of edge {index} does not start at its destination")
    _require(nxt.previous == index, f"next of edge {index} does not link back")
    _require(nxt.face == face, f"next of edge {index} lies on face {nxt.face}")

    _require(polytope.has_edge(edge.previous), f"edge {index} has no previous")
    prv = polytope.edge(edge.previous)
    _require(prv.destination == edge.origin, f"previous of edge {index} does not end at its origin")
    _require(prv.next == index, f"previous of edge {index} does not link forward")

    _require(polytope.has_vertex(edge.origin), f"edge {index} starts at dead vertex {edge.origin}")
    _require(
        index in polytope.vertex(edge.origin).edges,
        f"edge {index} missing from the outgoing edges of vertex {edge.origin}",
    )


def check_faces(polytope: ConvexPolytope3D, faces: Iterable[int]) -> None:
    """Check every half-edge of the given faces."""
    for face in faces:
        _require(polytope.has_face(face), f"face {face} is not alive")
        edges = polytope.face_edges(face)
        _require(len(edges) >= 3, f"face {face} has only {len(edges)} edges")
        _require(polytope.face(face).num_edges == len(edges), f"face {face} has a stale edge count")
        for index in edges:
            check_half_edge(polytope, index, face)


def check_polytope(polytope: ConvexPolytope3D) -> None:
    """
    Full structural check.

    Besides the per-face checks: every half-edge belongs to a live face,
    every vertex lists only edges it originates, and a closed mesh satisfies
    Euler's formula V - E + F = 2.
    """
    faces = polytope.face_indices()
    check_faces(polytope, faces)
    for index in polytope.edge_indices():
        edge = polytope.edge(index)
        _require(polytope.has_face(edge.face), f"edge {index} belongs to dead face {edge.face}")
    for index in polytope.vertex_indices():
        for edge_index in polytope.vertex(index).edges:
            _require(
                polytope.has_edge(edge_index) and polytope.edge(edge_index).origin == index,
                f"vertex {index} lists edge {edge_index} it does not originate",
            )
        _require(
            not faces or polytope.vertex(index).edges,
            f"vertex {index} is not connected to the mesh",
        )
    if faces:
        euler = polytope.num_vertices - polytope.num_edges + polytope.num_faces
        _require(euler == 2, f"Euler characteristic is {euler}, expected 2")

# MIT License (see LICENSE)
"""
Expanding Polytope Algorithm (EPA) for penetration depth in 3D.

When GJK reports a collision, its final simplex encloses the origin inside
the Minkowski difference D = A - B. EPA grows that simplex into a convex
polytope (a ConvexPolytope3D workspace) until the face closest to the
origin lies on the boundary of D. That face gives:
    - depth: its distance to the origin;
    - normal: its outward normal, the direction to push B out of A;
    - witness points: the barycentric weights of the origin's projection on
      the face, applied to the A and B support points stored on its vertices.

Usage:
    epa = ExpandingPolytopeAlgorithm()
    result = epa.evaluate_collision(box_a, box_b)
    if result.colliding:
        push = result.depth * result.normal_on_a
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field

import numpy as np

from ..constants import EPA_MAX_ITERATIONS, EPA_TERMINAL_EPSILON, POLYTOPE_CONSTRUCTION_EPSILON
from ..polytope import ConvexPolytope3D
from ..profiler import Profiler
from ..types import SupportingVertexHolder
from ..util import cross, distance_squared, dot, norm2, orthogonal, unit
from .gjk import GJKCollisionDetector, minkowski_support
from .result import CollisionResult
from .simplex import SimplexVertex

logger = logging.getLogger(__name__)

_AXES = tuple(
    np.array(v, dtype=np.float64)
    for v in ((1, 0, 0), (-1, 0, 0), (0, 1, 0), (0, -1, 0), (0, 0, 1), (0, 0, -1))
)


@dataclass
class EPAWorkspace:
    """
    Scratch state of one EPA query, reused across queries.

    Attributes:
        polytope: Expanding polytope; vertices carry SimplexVertex payloads.
        closest_face: Index of the face closest to the origin, or None.
        iterations: Number of expansion iterations of the last query.
    """
    polytope: ConvexPolytope3D = field(default_factory=ConvexPolytope3D)
    closest_face: int | None = None
    iterations: int = 0

    def reset(self, construction_epsilon: float) -> None:
        self.polytope.clear()
        self.polytope.construction_epsilon = construction_epsilon
        self.closest_face = None
        self.iterations = 0


def pad_simplex(
    shape_a: SupportingVertexHolder,
    shape_b: SupportingVertexHolder,
    vertices: list[SimplexVertex],
    eps: float,
) -> list[SimplexVertex]:
    """
    Complete a GJK simplex into a point set whose hull encloses the origin.

    A single vertex is extended with support queries along the coordinate
    axes, a segment with queries around it, and a triangle with queries along
    both of its normals.
    """
    points = list(vertices)

    def add_support(direction: np.ndarray) -> bool:
        vertex = minkowski_support(shape_a, shape_b, direction)
        if vertex is None:
            return False
        if any(distance_squared(vertex.point, p.point) <= eps * eps for p in points):
            return False
        points.append(vertex)
        return True

    if len(points) == 1:
        for axis in _AXES:
            if add_support(axis):
                break
    if len(points) == 2:
        e = unit(points[1].point - points[0].point)
        u = orthogonal(e)
        w = cross(e, u)
        for k in range(6):
            angle = k * np.pi / 3.0
            if add_support(np.cos(angle) * u + np.sin(angle) * w):
                break
    if len(points) == 3:
        p1, p2, p3 = (p.point for p in points)
        normal = unit(cross(p2 - p1, p3 - p1))
        if norm2(normal) > 0.0:
            add_support(normal)
            add_support(-normal)
    return points


def closest_face_to_origin(polytope: ConvexPolytope3D, eps: float) -> tuple[int, float]:
    """
    Face of a polytope enclosing the origin that lies closest to it.

    Faces onto which the origin projects inside are preferred; the plain
    minimum plane distance is the fallback. Collapsed faces (area at most
    eps², or no normal) carry no plane and are skipped.

    Returns:
        (face index, distance from the origin to the face plane).
    """
    best, best_distance = -1, np.inf
    fallback, fallback_distance = -1, np.inf
    for f in polytope.face_indices():
        face = polytope.face(f)
        if face.area <= eps * eps or not np.any(face.normal):
            continue
        distance = dot(face.normal, face.centroid)
        if distance < fallback_distance:
            fallback, fallback_distance = f, distance
        if distance < best_distance and polytope.is_point_above_face(distance * face.normal, f, eps):
            best, best_distance = f, distance
    if best < 0:
        return fallback, fallback_distance
    return best, best_distance


def triangle_closest_weights(a: np.ndarray, b: np.ndarray, c: np.ndarray, p: np.ndarray) -> tuple[float, float, float]:
    """
    Barycentric weights of the point of triangle abc closest to p.

    Region-based search over vertices, edges and interior (Ericson,
    Real-Time Collision Detection, 5.1.5). Degenerate triangles reduce to
    their closest edge or vertex.
    """
    ab, ac, ap = b - a, c - a, p - a
    d1, d2 = dot(ab, ap), dot(ac, ap)
    if d1 <= 0.0 and d2 <= 0.0:
        return 1.0, 0.0, 0.0
    bp = p - b
    d3, d4 = dot(ab, bp), dot(ac, bp)
    if d3 >= 0.0 and d4 <= d3:
        return 0.0, 1.0, 0.0
    vc = d1 * d4 - d3 * d2
    if vc <= 0.0 and d1 >= 0.0 and d3 <= 0.0:
        v = d1 / (d1 - d3)
        return 1.0 - v, v, 0.0
    cp = p - c
    d5, d6 = dot(ab, cp), dot(ac, cp)
    if d6 >= 0.0 and d5 <= d6:
        return 0.0, 0.0, 1.0
    vb = d5 * d2 - d1 * d6
    if vb <= 0.0 and d2 >= 0.0 and d6 <= 0.0:
        w = d2 / (d2 - d6)
        return 1.0 - w, 0.0, w
    va = d3 * d6 - d5 * d4
    if va <= 0.0 and (d4 - d3) >= 0.0 and (d5 - d6) >= 0.0:
        w = (d4 - d3) / ((d4 - d3) + (d5 - d6))
        return 0.0, 1.0 - w, w
    denominator = va + vb + vc
    if denominator <= 0.0:
        # zero area: fall back to the closest vertex
        candidates = []
        for weights in ((1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0)):
            q = weights[0] * a + weights[1] * b + weights[2] * c
            candidates.append((distance_squared(q, p), weights))
        return min(candidates, key=lambda item: item[0])[1]
    v = vb / denominator
    w = vc / denominator
    return 1.0 - v - w, v, w


def face_witness_points(polytope: ConvexPolytope3D, face: int, target: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    Witness points on A and B for the point `target` of a polytope face.

    The face is fanned into triangles from its first vertex; the triangle
    closest to `target` provides the barycentric weights.
    """
    vertices = [polytope.vertex(v) for v in polytope.face_vertices(face)]
    best = None
    for i in range(1, len(vertices) - 1):
        tri = (vertices[0], vertices[i], vertices[i + 1])
        weights = triangle_closest_weights(tri[0].point, tri[1].point, tri[2].point, target)
        q = sum(wt * v.point for wt, v in zip(weights, tri))
        error = distance_squared(q, target)
        if best is None or error < best[0]:
            best = (error, weights, tri)
    _, weights, tri = best
    point_on_a = np.zeros(3)
    point_on_b = np.zeros(3)
    for wt, vertex in zip(weights, tri):
        point_on_a += wt * vertex.data.point_on_a
        point_on_b += wt * vertex.data.point_on_b
    return point_on_a, point_on_b


class ExpandingPolytopeAlgorithm:
    """
    Penetration depth solver built on top of GJK.

    Separated shapes get the GJK answer unchanged; colliding shapes get
    signed_distance = -depth, normal_on_a = penetration direction and the
    deepest witness points.

    Args:
        max_iterations: Safety cap on the expansion loop.
        terminal_epsilon: Stop when a new support point improves the closest
            face distance by less than eps·max(1, distance).
        construction_epsilon: Construction epsilon of the polytope workspace.
        gjk: GJK detector to use; a default one is created if None.
        profiler: Optional profiler; times the expansion under "epa".
    """

    def __init__(
        self,
        max_iterations: int = EPA_MAX_ITERATIONS,
        terminal_epsilon: float = EPA_TERMINAL_EPSILON,
        construction_epsilon: float = POLYTOPE_CONSTRUCTION_EPSILON,
        gjk: GJKCollisionDetector | None = None,
        profiler: Profiler | None = None,
    ) -> None:
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be positive, got {max_iterations}")
        self.max_iterations = int(max_iterations)
        self.terminal_epsilon = float(terminal_epsilon)
        self.construction_epsilon = float(construction_epsilon)
        self.gjk = gjk if gjk is not None else GJKCollisionDetector(profiler=profiler)
        self.workspace = EPAWorkspace()
        self.profiler = profiler

    # -- diagnostics --------------------------------------------------------

    @property
    def number_of_iterations(self) -> int:
        return self.workspace.iterations

    @property
    def polytope(self) -> ConvexPolytope3D:
        return self.workspace.polytope

    @property
    def closest_face(self) -> int | None:
        return self.workspace.closest_face

    def set_initial_support_direction(self, direction) -> None:
        self.gjk.set_initial_support_direction(direction)

    # -- queries ------------------------------------------------------------

    def evaluate_collision(
        self,
        shape_a: SupportingVertexHolder,
        shape_b: SupportingVertexHolder,
        result: CollisionResult | None = None,
    ) -> CollisionResult:
        if result is None:
            result = CollisionResult()
        self.evaluate_collision_into(shape_a, shape_b, result)
        return result

    def evaluate_collision_into(
        self,
        shape_a: SupportingVertexHolder,
        shape_b: SupportingVertexHolder,
        result: CollisionResult,
    ) -> bool:
        self.workspace.iterations = 0
        self.workspace.closest_face = None
        colliding = self.gjk.evaluate_collision_into(shape_a, shape_b, result)
        simplex = self.gjk.simplex
        if not colliding or simplex is None:
            return colliding
        if self.profiler is not None:
            with self.profiler.section("epa"):
                self.evaluate_penetration(shape_a, shape_b, simplex.vertices, result)
            self.profiler.stats.add_count("epa_iterations", self.workspace.iterations)
        else:
            self.evaluate_penetration(shape_a, shape_b, simplex.vertices, result)
        return result.colliding

    def evaluate_penetration(
        self,
        shape_a: SupportingVertexHolder,
        shape_b: SupportingVertexHolder,
        simplex_vertices: list[SimplexVertex],
        result: CollisionResult,
    ) -> bool:
        """
        Expand a GJK simplex enclosing the origin and fill `result`.

        Returns:
            Whether a penetration was found. A degenerate (zero-volume)
            starting polytope is reported as touching: not colliding, zero
            distance, NaN normals.
        """
        workspace = self.workspace
        workspace.reset(self.construction_epsilon)
        polytope = workspace.polytope
        result.clear()
        result.shape_a = shape_a
        result.shape_b = shape_b

        points = pad_simplex(shape_a, shape_b, list(simplex_vertices), self.construction_epsilon)
        for vertex in points:
            polytope.add_vertex(vertex.point, data=vertex)
        if polytope.is_flat or polytope.num_faces < 4 or polytope.volume <= 0.0:
            logger.debug("EPA could not build an initial polytope from %d points", len(points))
            self._pack_touching(list(simplex_vertices), result)
            return False

        for iteration in range(self.max_iterations):
            workspace.iterations = iteration + 1
            face, distance = closest_face_to_origin(polytope, self.construction_epsilon)
            normal = polytope.face(face).normal
            vertex = minkowski_support(shape_a, shape_b, normal)
            if vertex is None:
                break
            if dot(vertex.point, normal) - distance <= self.terminal_epsilon * max(1.0, distance):
                break
            if not polytope.add_vertex(vertex.point, data=vertex):
                break
        else:
            logger.debug("EPA reached the iteration cap (%d)", self.max_iterations)

        face, distance = closest_face_to_origin(polytope, self.construction_epsilon)
        workspace.closest_face = face
        normal = polytope.face(face).normal
        point_on_a, point_on_b = face_witness_points(polytope, face, distance * normal)

        result.colliding = True
        result.signed_distance = -float(distance)
        result.point_on_a[:] = point_on_a
        result.point_on_b[:] = point_on_b
        result.normal_on_a[:] = normal
        result.normal_on_b[:] = -normal
        return True

    @staticmethod
    def _pack_touching(points: list[SimplexVertex], result: CollisionResult) -> None:
        result.colliding = False
        result.signed_distance = 0.0
        if points:
            result.point_on_a[:] = np.mean([p.point_on_a for p in points], axis=0)
            result.point_on_b[:] = np.mean([p.point_on_b for p in points], axis=0)

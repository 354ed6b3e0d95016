# MIT License (see LICENSE)
"""
Convex polytope stored as a doubly-connected edge list (DCEL).

ConvexPolytope3D is both a general convex mesh shape and the expanding
polytope used by EPA. It is built incrementally: each added point either
lies inside (no-op) or extends the hull by replacing the faces it can see
with a fan of triangles around the new vertex.

Construction goes through three stages:
    1. fewer than three non-collinear points: vertices only, no faces;
    2. coplanar points: a flat polygon stored as two opposite faces;
    3. general case: a closed mesh with outward face normals.

Coplanar neighbouring faces (within the construction epsilon) are merged,
so a box built from its 8 corners has 6 quadrilateral faces.

Usage:
    poly = ConvexPolytope3D(points)
    poly.add_vertex((0.0, 0.0, 2.0))
    index = poly.get_supporting_vertex(direction)
"""
from __future__ import annotations
import copy
import logging
from typing import Any, ClassVar, Iterable

import numpy as np

from ..constants import POLYTOPE_CONSTRUCTION_EPSILON
from ..transform import RigidTransform
from ..types import ShapeKind
from ..util import cross, distance_squared, dot, f64, is_finite, norm, norm2, orthogonal
from .dcel import NO_INDEX, Arena, Face3D, HalfEdge3D, Vertex3D
from .invariants import PolytopeStructureError, check_faces, check_polytope

logger = logging.getLogger(__name__)


def convex_hull_2d(points: np.ndarray, eps: float) -> list[int]:
    """
    Monotone chain convex hull of planar points.

    A point is dropped when it lies within `eps` of the line through its
    hull neighbours, so nearly collinear points do not create slivers.

    Args:
        points: Array [N, 2].
        eps: Distance tolerance.

    Returns:
        Indices of the hull vertices in counter-clockwise order.
    """
    order = sorted(range(len(points)), key=lambda i: (points[i][0], points[i][1]))

    def convex_turn(o: int, a: int, b: int) -> bool:
        # True if a lies more than eps to the right of o -> b
        ob = points[b] - points[o]
        oa = points[a] - points[o]
        turn = oa[0] * ob[1] - oa[1] * ob[0]
        return turn > eps * float(np.hypot(ob[0], ob[1]))

    lower: list[int] = []
    for i in order:
        while len(lower) >= 2 and not convex_turn(lower[-2], lower[-1], i):
            lower.pop()
        lower.append(i)
    upper: list[int] = []
    for i in reversed(order):
        while len(upper) >= 2 and not convex_turn(upper[-2], upper[-1], i):
            upper.pop()
        upper.append(i)
    return lower[:-1] + upper[:-1]


def triangle_is_degenerate(a: np.ndarray, b: np.ndarray, c: np.ndarray, eps: float) -> bool:
    """True if the lowest altitude of triangle abc is at most `eps`."""
    longest = max(norm(b - a), norm(c - b), norm(a - c))
    return norm(cross(b - a, c - a)) <= eps * longest


class ConvexPolytope3D:
    """
    Incrementally built convex polytope.

    Args:
        points: Optional initial points, added in order.
        construction_epsilon: Distance under which a point counts as lying on
            a face plane or coinciding with a vertex.
    """

    kind: ClassVar[ShapeKind] = ShapeKind.POLYTOPE
    is_primitive: ClassVar[bool] = False
    is_defined_by_pose: ClassVar[bool] = False

    def __init__(
        self,
        points: Iterable | None = None,
        construction_epsilon: float = POLYTOPE_CONSTRUCTION_EPSILON,
    ) -> None:
        self.construction_epsilon = float(construction_epsilon)
        self._vertices: Arena[Vertex3D] = Arena()
        self._edges: Arena[HalfEdge3D] = Arena()
        self._faces: Arena[Face3D] = Arena()
        self._flat = False
        self._last_support = NO_INDEX
        self._centroid = np.zeros(3)
        self._volume = 0.0
        self._bbox_min = np.zeros(3)
        self._bbox_max = np.zeros(3)
        if points is not None:
            self.add_vertices(points)

    def __repr__(self) -> str:
        return (
            f"ConvexPolytope3D(vertices={self.num_vertices}, "
            f"edges={self.num_edges}, faces={self.num_faces})"
        )

    # =========================================================================
    # Element access
    # =========================================================================

    def vertex(self, index: int) -> Vertex3D:
        return self._vertices[index]

    def edge(self, index: int) -> HalfEdge3D:
        return self._edges[index]

    def face(self, index: int) -> Face3D:
        return self._faces[index]

    def has_vertex(self, index: int) -> bool:
        return index in self._vertices

    def has_edge(self, index: int) -> bool:
        return index in self._edges

    def has_face(self, index: int) -> bool:
        return index in self._faces

    def vertex_indices(self) -> list[int]:
        return self._vertices.indices()

    def edge_indices(self) -> list[int]:
        return self._edges.indices()

    def face_indices(self) -> list[int]:
        return self._faces.indices()

    @property
    def num_vertices(self) -> int:
        return len(self._vertices)

    @property
    def num_half_edges(self) -> int:
        return len(self._edges)

    @property
    def num_edges(self) -> int:
        """Number of undirected edges (half-edge pairs)."""
        return len(self._edges) // 2

    @property
    def num_faces(self) -> int:
        return len(self._faces)

    @property
    def is_empty(self) -> bool:
        return len(self._vertices) == 0

    @property
    def is_flat(self) -> bool:
        """True while the polytope is a two-sided planar polygon."""
        return self._flat

    def face_edges(self, face: int) -> list[int]:
        """Half-edges of a face in cycle order, starting at the face's first edge."""
        first = self._faces[face].edge
        edges = [first]
        limit = len(self._edges)
        index = self._edges[first].next
        while index != first:
            edges.append(index)
            if len(edges) > limit:
                raise PolytopeStructureError(f"edge cycle of face {face} does not close")
            index = self._edges[index].next
        return edges

    def face_vertices(self, face: int) -> list[int]:
        return [self._edges[e].origin for e in self.face_edges(face)]

    def face_points(self, face: int) -> np.ndarray:
        return np.array([self._vertices[v].point for v in self.face_vertices(face)])

    def vertex_faces(self, vertex: int) -> list[int]:
        """Faces around a vertex (one per outgoing half-edge)."""
        return [self._edges[e].face for e in self._vertices[vertex].edges]

    def points(self) -> np.ndarray:
        """All vertex positions as an [N, 3] array."""
        if not len(self._vertices):
            return np.zeros((0, 3))
        return np.array([v.point for _, v in self._vertices.items()])

    # =========================================================================
    # Geometry
    # =========================================================================

    @property
    def centroid(self) -> np.ndarray:
        return self._centroid.copy()

    @property
    def volume(self) -> float:
        return self._volume

    @property
    def bounding_box(self) -> tuple[np.ndarray, np.ndarray]:
        return self._bbox_min.copy(), self._bbox_max.copy()

    def plane_distance(self, point) -> float:
        """
        Largest signed distance from `point` to the face planes.

        Negative inside. For points inside this is minus the distance to the
        boundary; outside it is a lower bound of the true distance.
        """
        p = f64(point)
        if not len(self._faces):
            return float("nan")
        return max(face.signed_distance(p) for _, face in self._faces.items())

    def is_point_inside(self, point, epsilon: float = 0.0) -> bool:
        if not len(self._faces) or self._flat:
            return False
        return self.plane_distance(point) <= epsilon

    def is_point_above_face(self, point, face: int, epsilon: float = 0.0) -> bool:
        """True if the orthogonal projection of `point` on the face plane lies inside the face."""
        p = f64(point)
        normal = self._faces[face].normal
        if not np.any(normal):
            return False
        for e in self.face_edges(face):
            edge = self._edges[e]
            a = self._vertices[edge.origin].point
            b = self._vertices[edge.destination].point
            if dot(cross(b - a, p - a), normal) < -epsilon * norm(b - a):
                return False
        return True

    # =========================================================================
    # Supporting vertex
    # =========================================================================

    def get_supporting_vertex(self, direction) -> int | None:
        """
        Index of the vertex farthest along `direction`, or None when empty.

        Hill-climbs from the previous answer along outgoing edges; convexity
        makes any local maximum global.
        """
        if not len(self._vertices):
            return None
        d = f64(direction)
        if not len(self._edges):
            best, _ = max(self._vertices.items(), key=lambda item: dot(item[1].point, d))
            self._last_support = best
            return best

        best = self._last_support
        if best not in self._vertices or not self._vertices[best].edges:
            best = self._edges[self._edges.indices()[0]].origin
        best_dot = dot(self._vertices[best].point, d)
        improved = True
        while improved:
            improved = False
            for e in self._vertices[best].edges:
                candidate = self._edges[e].destination
                candidate_dot = dot(self._vertices[candidate].point, d)
                if candidate_dot > best_dot:
                    best, best_dot = candidate, candidate_dot
                    improved = True
        self._last_support = best
        return best

    def support(self, direction) -> np.ndarray | None:
        index = self.get_supporting_vertex(direction)
        if index is None:
            return None
        return self._vertices[index].point.copy()

    # =========================================================================
    # Construction
    # =========================================================================

    def add_vertices(self, points: Iterable) -> bool:
        changed = False
        for point in points:
            changed |= self.add_vertex(point)
        return changed

    def add_vertex(self, point, data: Any = None) -> bool:
        """
        Extend the polytope to include `point`.

        Args:
            point: Position [x, y, z].
            data: Optional payload stored on the new vertex.

        Returns:
            True if the polytope changed. Points that are not finite, coincide
            with a vertex, or lie inside or on the surface are skipped.
        """
        p = f64(point).reshape(3)
        if not is_finite(p):
            logger.debug("skipping non-finite point %s", p)
            return False
        eps2 = self.construction_epsilon * self.construction_epsilon
        for _, vertex in self._vertices.items():
            if distance_squared(vertex.point, p) <= eps2:
                return False

        if not len(self._faces):
            changed = self._add_to_segment(p, data)
        elif self._flat:
            changed = self._add_to_polygon(p, data)
        else:
            changed = self._add_to_hull(p, data)
        if changed:
            self._update_geometry()
        return changed

    def _add_to_segment(self, p: np.ndarray, data: Any) -> bool:
        # Zero to two vertices, no faces; only the extremes of collinear points are kept.
        indices = self._vertices.indices()
        if len(indices) < 2:
            self._vertices.add(Vertex3D(p.copy(), data=data))
            return True
        a = self._vertices[indices[0]].point
        b = self._vertices[indices[1]].point
        ab = b - a
        t = dot(p - a, ab) / norm2(ab)
        if norm(p - (a + t * ab)) <= self.construction_epsilon:
            if 0.0 <= t <= 1.0:
                return False
            self._vertices.remove(indices[0] if t < 0.0 else indices[1])
            self._vertices.add(Vertex3D(p.copy(), data=data))
            return True
        new = self._vertices.add(Vertex3D(p.copy(), data=data))
        self._build_polygon([indices[0], indices[1], new])
        return True

    def _add_to_polygon(self, p: np.ndarray, data: Any) -> bool:
        front = self._faces.indices()[0]
        face = self._faces[front]
        if abs(face.signed_distance(p)) > self.construction_epsilon:
            changed = self._add_to_hull(p, data)
            self._flat = not changed
            return changed

        ring = self.face_vertices(front)
        u = orthogonal(face.normal)
        w = cross(face.normal, u)
        points = [self._vertices[v].point for v in ring] + [p]
        planar = np.array([[dot(q, u), dot(q, w)] for q in points])
        hull = convex_hull_2d(planar, self.construction_epsilon)
        if len(ring) not in hull:
            return False
        new = self._vertices.add(Vertex3D(p.copy(), data=data))
        candidates = ring + [new]
        self._build_polygon([candidates[i] for i in hull])
        return True

    def _build_polygon(self, ring: list[int]) -> None:
        """Replace the mesh with a two-sided polygon through `ring` (convex, in order)."""
        for e in self._edges.indices():
            self._edges.remove(e)
        for f in self._faces.indices():
            self._faces.remove(f)
        keep = set(ring)
        for v, vertex in list(self._vertices.items()):
            if v in keep:
                vertex.edges.clear()
            else:
                self._vertices.remove(v)

        n = len(ring)
        front = [self._edges.add(HalfEdge3D(ring[i], ring[(i + 1) % n])) for i in range(n)]
        back = [self._edges.add(HalfEdge3D(ring[(i + 1) % n], ring[i])) for i in range(n)]
        front_face = self._faces.add(Face3D(front[0]))
        back_face = self._faces.add(Face3D(back[0]))
        for i in range(n):
            e = self._edges[front[i]]
            e.twin, e.face = back[i], front_face
            e.next, e.previous = front[(i + 1) % n], front[i - 1]
            t = self._edges[back[i]]
            t.twin, t.face = front[i], back_face
            t.next, t.previous = back[i - 1], back[(i + 1) % n]
            self._vertices[ring[i]].edges.append(front[i])
            self._vertices[ring[(i + 1) % n]].edges.append(back[i])
        self._flat = True
        self._update_face(front_face)
        self._update_face(back_face)
        check_faces(self, (front_face, back_face))

    def _add_to_hull(self, p: np.ndarray, data: Any) -> bool:
        eps = self.construction_epsilon
        seed, best = NO_INDEX, eps
        for f, face in self._faces.items():
            d = face.signed_distance(p)
            if d > best:
                seed, best = f, d
        if seed == NO_INDEX:
            return False

        visible = self._visible_region(seed, p)
        horizon = self._silhouette(visible)
        if horizon is None:
            logger.debug("skipping point %s: silhouette is not a single simple cycle", p)
            return False

        for h in horizon:
            edge = self._edges[h]
            a, b = self._vertices[edge.origin].point, self._vertices[edge.destination].point
            if triangle_is_degenerate(a, b, p, eps):
                logger.debug("skipping point %s: it would create a degenerate triangle", p)
                return False

        new = self._vertices.add(Vertex3D(p.copy(), data=data))
        base, up, down, new_faces = [], [], [], []
        for h in horizon:
            edge = self._edges[h]
            a, b, outer = edge.origin, edge.destination, edge.twin
            e0 = self._edges.add(HalfEdge3D(a, b))
            e1 = self._edges.add(HalfEdge3D(b, new))
            e2 = self._edges.add(HalfEdge3D(new, a))
            f = self._faces.add(Face3D(e0))
            for e, nxt, prv in ((e0, e1, e2), (e1, e2, e0), (e2, e0, e1)):
                half = self._edges[e]
                half.next, half.previous, half.face = nxt, prv, f
            self._edges[e0].twin = outer
            self._edges[outer].twin = e0
            base.append(e0)
            up.append(e1)
            down.append(e2)
            new_faces.append(f)
        n = len(horizon)
        for i in range(n):
            j = (i + 1) % n
            self._edges[up[i]].twin = down[j]
            self._edges[down[j]].twin = up[i]

        touched = set()
        for f in visible:
            for e in self.face_edges(f):
                origin = self._edges[e].origin
                self._vertices[origin].edges.remove(e)
                touched.add(origin)
            for e in self.face_edges(f):
                self._edges.remove(e)
            self._faces.remove(f)
        for i in range(n):
            self._vertices[self._edges[base[i]].origin].edges.append(base[i])
            self._vertices[self._edges[up[i]].origin].edges.append(up[i])
            self._vertices[new].edges.append(down[i])
        for v in touched:
            if not self._vertices[v].edges:
                self._vertices.remove(v)

        for f in new_faces:
            self._update_face(f)
        for e in base + up:
            if e in self._edges:
                self._merge_if_coplanar(e)

        faces = {self._edges[e].face for e in base + up if e in self._edges}
        if len(self._faces) > 2:
            for v in {v for f in faces if f in self._faces for v in self.face_vertices(f)}:
                if v in self._vertices and len(self._vertices[v].edges) == 2:
                    self._remove_collinear_vertex(v)
        check_faces(self, [f for f in faces if f in self._faces])
        return True

    def _visible_region(self, seed: int, p: np.ndarray) -> set[int]:
        """Flood fill from `seed` over faces whose plane has `p` strictly in front."""
        visible = {seed}
        stack = [seed]
        while stack:
            f = stack.pop()
            for e in self.face_edges(f):
                neighbour = self._edges[self._edges[e].twin].face
                if neighbour not in visible and self._faces[neighbour].signed_distance(p) > self.construction_epsilon:
                    visible.add(neighbour)
                    stack.append(neighbour)
        return visible

    def _silhouette(self, visible: set[int]) -> list[int] | None:
        """
        Ordered horizon half-edges of the visible region.

        Each returned edge lies on a visible face and has its twin on a hidden
        one; consecutive edges share a vertex. Returns None when the horizon
        is not one simple cycle.
        """
        start = NO_INDEX
        count = 0
        for f in visible:
            for e in self.face_edges(f):
                if self._edges[self._edges[e].twin].face not in visible:
                    count += 1
                    if start == NO_INDEX:
                        start = e
        if start == NO_INDEX:
            return None

        horizon = [start]
        origins = {self._edges[start].origin}
        limit = len(self._edges)
        current = start
        while True:
            e = self._edges[current].next
            steps = 0
            while self._edges[self._edges[e].twin].face in visible:
                e = self._edges[self._edges[e].twin].next
                steps += 1
                if steps > limit:
                    return None
            if e == start:
                break
            if self._edges[e].origin in origins or len(horizon) >= count:
                return None
            horizon.append(e)
            origins.add(self._edges[e].origin)
            current = e
        if len(horizon) != count:
            return None
        return horizon

    # =========================================================================
    # Face merging and cleanup
    # =========================================================================

    def _merge_if_coplanar(self, edge: int) -> None:
        first = self._edges[edge].face
        second = self._edges[self._edges[edge].twin].face
        if first == second:
            return
        keep, absorb = (first, second) if self._faces[first].area >= self._faces[second].area else (second, first)
        keep_face, absorb_face = self._faces[keep], self._faces[absorb]
        if absorb_face.area > self.construction_epsilon ** 2 and dot(keep_face.normal, absorb_face.normal) <= 0.0:
            return
        for v in self.face_vertices(absorb):
            if abs(keep_face.signed_distance(self._vertices[v].point)) > self.construction_epsilon:
                return
        shared = edge if self._edges[edge].face == absorb else self._edges[edge].twin
        self._merge_faces(keep, absorb, shared)

    def _merge_faces(self, keep: int, absorb: int, shared: int) -> None:
        """Merge face `absorb` into `keep` across the half-edge `shared` of `absorb`."""
        e = self._edges[shared]
        twin_index = e.twin
        t = self._edges[twin_index]
        self._edges[t.previous].next = e.next
        self._edges[e.next].previous = t.previous
        self._edges[e.previous].next = t.next
        self._edges[t.next].previous = e.previous
        self._vertices[e.origin].edges.remove(shared)
        self._vertices[t.origin].edges.remove(twin_index)
        start = t.next
        self._edges.remove(shared)
        self._edges.remove(twin_index)
        self._faces.remove(absorb)

        self._faces[keep].edge = start
        index = start
        while True:
            self._edges[index].face = keep
            index = self._edges[index].next
            if index == start:
                break
        self._remove_spikes(keep)
        self._update_face(keep)

    def _remove_spikes(self, face: int) -> None:
        """Remove dangling edge pairs u -> v -> u left inside a merged face."""
        found = True
        while found:
            found = False
            for index in self.face_edges(face):
                edge = self._edges[index]
                if edge.next != edge.twin:
                    continue
                back = self._edges[edge.twin]
                tip = edge.destination
                self._edges[edge.previous].next = back.next
                self._edges[back.next].previous = edge.previous
                self._vertices[edge.origin].edges.remove(index)
                self._vertices[tip].edges.remove(edge.twin)
                self._faces[face].edge = back.next
                self._edges.remove(edge.twin)
                self._edges.remove(index)
                if not self._vertices[tip].edges:
                    self._vertices.remove(tip)
                found = True
                break

    def _remove_collinear_vertex(self, vertex: int) -> None:
        """
        Remove a vertex shared by only two faces.

        Such a vertex lies on the intersection line of its two faces, so the
        edges u -> v -> w collapse to u -> w on both sides.
        """
        outgoing = self._vertices[vertex].edges
        b = outgoing[0]
        a = self._edges[b].previous
        ta = self._edges[a].twin
        if ta not in outgoing or ta == b:
            raise PolytopeStructureError(f"vertex {vertex} has inconsistent outgoing edges")
        tb = self._edges[b].twin
        left, right = self._edges[a].face, self._edges[ta].face
        if self._faces[left].num_edges <= 3 or self._faces[right].num_edges <= 3:
            return
        u = self._edges[a].origin
        w = self._edges[b].destination

        edge_a, edge_b = self._edges[a], self._edges[b]
        edge_a.destination = w
        edge_a.next = edge_b.next
        self._edges[edge_b.next].previous = a
        edge_tb, edge_ta = self._edges[tb], self._edges[ta]
        edge_tb.destination = u
        edge_tb.next = edge_ta.next
        self._edges[edge_ta.next].previous = tb
        edge_a.twin, edge_tb.twin = tb, a
        if self._faces[left].edge == b:
            self._faces[left].edge = a
        if self._faces[right].edge == ta:
            self._faces[right].edge = tb
        self._edges.remove(b)
        self._edges.remove(ta)
        self._vertices.remove(vertex)
        self._update_face(left)
        self._update_face(right)

    # =========================================================================
    # Derived geometry
    # =========================================================================

    def _update_face(self, face: int) -> None:
        """Recompute normal (Newell's method), area, centroid and bounds of a face."""
        record = self._faces[face]
        points = self.face_points(face)
        newell = np.cross(points, np.roll(points, -1, axis=0)).sum(axis=0)
        record.num_edges = len(points)
        length = norm(newell)
        record.area = 0.5 * length
        # thin faces keep their normal; only a fully collapsed face has none
        record.normal = newell / length if length > 0.0 else np.zeros(3)
        record.bbox_min = points.min(axis=0)
        record.bbox_max = points.max(axis=0)

        weights = np.array(
            [dot(cross(points[i] - points[0], points[i + 1] - points[0]), record.normal) for i in range(1, len(points) - 1)]
        )
        total = float(weights.sum()) if len(weights) else 0.0
        if total > 1e-300:
            centers = np.array([(points[0] + points[i] + points[i + 1]) / 3.0 for i in range(1, len(points) - 1)])
            record.centroid = (weights[:, None] * centers).sum(axis=0) / total
        else:
            record.centroid = points.mean(axis=0)

    def _update_geometry(self) -> None:
        points = self.points()
        self._bbox_min = points.min(axis=0)
        self._bbox_max = points.max(axis=0)
        self._volume = 0.0
        self._centroid = points.mean(axis=0)
        if not len(self._faces) or self._flat:
            return

        reference = self._centroid.copy()
        volume = 0.0
        moment = np.zeros(3)
        for f in self._faces.indices():
            fp = self.face_points(f)
            for i in range(1, len(fp) - 1):
                tetra = dot(fp[0] - reference, cross(fp[i] - reference, fp[i + 1] - reference)) / 6.0
                volume += tetra
                moment += tetra * (reference + fp[0] + fp[i] + fp[i + 1]) / 4.0
        if volume > 0.0:
            self._volume = volume
            self._centroid = moment / volume

    # =========================================================================
    # Whole-shape operations
    # =========================================================================

    def clear(self) -> None:
        self._vertices.clear()
        self._edges.clear()
        self._faces.clear()
        self._flat = False
        self._last_support = NO_INDEX
        self._centroid = np.zeros(3)
        self._volume = 0.0
        self._bbox_min = np.zeros(3)
        self._bbox_max = np.zeros(3)

    def copy(self) -> ConvexPolytope3D:
        return copy.deepcopy(self)

    def apply_transform(self, transform: RigidTransform) -> None:
        for _, vertex in self._vertices.items():
            vertex.point = transform.transform_point(vertex.point)
        for f in self._faces.indices():
            self._update_face(f)
        if len(self._vertices):
            self._update_geometry()

    def validate(self) -> None:
        """Run the full structural check; raises PolytopeStructureError."""
        check_polytope(self)

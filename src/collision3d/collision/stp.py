# MIT License (see LICENSE)
"""
Sphere-torus-patches (STP) bounding volumes.

GJK and EPA behave best on strictly convex shapes: flat faces and sharp
edges make the support function discontinuous, which slows convergence and
makes witness points jump. An STP volume wraps a shape with a slightly
larger, strictly convex surface built from three kinds of patches:

    - face:   sphere of radius R whose inner offset sphere (radius R - r)
              passes through the face corners;
    - edge:   inner part of a torus around the edge, tube radius R, ring
              radius sqrt((R - r)² - l²/4) for an edge of length l;
    - vertex: sphere of radius r around the vertex.

With r the minimum margin, g the maximum margin and L the longest feature
of the shape (face diagonal, or twice the largest face circumradius on
meshes), the large radius is

    R = (r² - g² - L²/4) / (2 (r - g)),

which puts the inflated surface between r and g away from the shape. It
only exists for g - r < L/2; larger maximum margins are clamped with a
warning.

Primitive adapters try the face patch, then edge patches, then fall back to
the vertex sphere, each tier only accepting its candidate when the candidate
lies within the patch. Meshes (polytopes and ramps) evaluate every patch
that accepts the direction and keep the farthest one.

Reference: Escande, Miossec, Benallegue and Kheddar, "A strictly convex hull
for computing proximity distances with continuous gradients" (2014).
"""
from __future__ import annotations
import logging
from typing import Any, ClassVar

import numpy as np

from ..constants import STP_MARGIN_CLAMP_FACTOR, STP_MAXIMUM_MARGIN, STP_MINIMUM_MARGIN
from ..polytope import ConvexPolytope3D, ramp_polytope
from ..shapes import support_box
from ..types import Box, Capsule, Cylinder, Ramp, ShapeKind
from ..util import cross, dot, f64, norm, norm2, unit

logger = logging.getLogger(__name__)


def inner_torus_support(
    direction: np.ndarray, center: np.ndarray, axis: np.ndarray, ring_radius: float, tube_radius: float
) -> np.ndarray:
    """
    Support point of the inner (spindle) part of a torus.

    The tube circle used is the one on the ring opposite to the direction,
    which is the part of the torus that bulges out between two vertices.

    Args:
        direction: Unit query direction.
        center: Torus center.
        axis: Unit torus axis.
        ring_radius: Distance from the center to the tube centers.
        tube_radius: Tube radius.
    """
    radial = unit(direction - dot(direction, axis) * axis)
    return center - ring_radius * radial + tube_radius * direction


def triangle_circumcenter(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> tuple[np.ndarray, float] | None:
    """Circumcenter and squared circumradius of a 3D triangle, None if degenerate."""
    ab, ac = b - a, c - a
    n = cross(ab, ac)
    n2 = norm2(n)
    if n2 < 1e-24:
        return None
    offset = (norm2(ac) * cross(n, ab) + norm2(ab) * cross(ac, n)) / (2.0 * n2)
    return a + offset, norm2(offset)


class STPMesh:
    """
    Patch layout of a convex polytope, precomputed for support queries.

    Faces are fanned into triangles. Each triangle carries a face sphere,
    each triangle side (face edge or fan diagonal) an edge torus and each
    vertex a sphere of radius r. A query returns the farthest point over
    all patches, i.e. the support of their convex hull. When R is small
    compared with the mesh curvature, neighbouring face spheres overlap in
    direction and meet along a crease instead of a torus; the hull handles
    both layouts.

    The layout copies the vertex positions; build a new one after moving
    the polytope.
    """

    def __init__(self, polytope: ConvexPolytope3D) -> None:
        order = polytope.vertex_indices()
        index = {v: i for i, v in enumerate(order)}
        self.points = np.array([polytope.vertex(v).point for v in order], dtype=np.float64).reshape(-1, 3)

        triangles: list[tuple[int, int, int]] = []
        normals: list[np.ndarray] = []
        sides: dict[tuple[int, int], list[int]] = {}
        for f in polytope.face_indices():
            ring = [index[v] for v in polytope.face_vertices(f)]
            for i in range(1, len(ring) - 1):
                triangle = (ring[0], ring[i], ring[i + 1])
                for k in range(3):
                    a, b = triangle[k], triangle[(k + 1) % 3]
                    sides.setdefault((min(a, b), max(a, b)), []).append(len(triangles))
                triangles.append(triangle)
                normals.append(polytope.face(f).normal)

        self.triangles = np.array(triangles, dtype=np.int64).reshape(-1, 3)
        self.normals = np.array(normals, dtype=np.float64).reshape(-1, 3)
        self.edges = [(a, b, ts[0], ts[1]) for (a, b), ts in sides.items() if len(ts) == 2]
        self.circles = [triangle_circumcenter(*self.points[t]) for t in self.triangles]
        self._radii: tuple[float, float] | None = None

    @property
    def feature_length_squared(self) -> float:
        """Squared diameter of the widest triangle circle, or of the point set when there are no faces."""
        radii = [circle[1] for circle in self.circles if circle is not None]
        if radii:
            return 4.0 * max(radii)
        if len(self.points) > 1:
            diffs = self.points[:, None, :] - self.points[None, :, :]
            return float((diffs * diffs).sum(axis=2).max())
        return 0.0

    def _prepare(self, large_radius: float, small_radius: float) -> None:
        rho = large_radius - small_radius
        count = len(self.triangles)
        centers = np.full((count, 3), np.nan)
        corners = np.zeros((count, 3, 3))
        limits = np.zeros((count, 3, 3))
        for t, circle in enumerate(self.circles):
            if circle is None or rho <= 0.0:
                continue
            circumcenter, radius2 = circle
            offset2 = rho * rho - radius2
            if offset2 < 0.0:
                continue
            center = circumcenter - float(np.sqrt(offset2)) * self.normals[t]
            rays = (self.points[self.triangles[t]] - center) / rho
            inside = rays.mean(axis=0)
            for k in range(3):
                limit = unit(cross(rays[k], rays[(k + 1) % 3]))
                limits[t, k] = limit if dot(limit, inside) >= 0.0 else -limit
            centers[t] = center
            corners[t] = rays

        rows = []
        for a, b, t1, t2 in self.edges:
            c1, c2 = centers[t1], centers[t2]
            if np.isnan(c1[0]) or np.isnan(c2[0]):
                continue
            pa, pb = self.points[a], self.points[b]
            length = norm(pb - pa)
            mid = 0.5 * (pa + pb)
            w1, w2 = unit(c1 - mid), unit(c2 - mid)
            wedge = cross(w1, w2)
            # both triangles share one sphere, no torus between them
            if norm2(wedge) < 1e-20:
                continue
            ring = float(np.sqrt(max(rho * rho - 0.25 * length * length, 0.0)))
            rows.append((mid, (pb - pa) / length, ring, 0.5 * length / rho, w1, w2, wedge))

        found = ~np.isnan(centers[:, 0])
        self._centers = centers[found]
        self._corners = corners[found]
        self._limits = limits[found]
        self._arcs = np.cross(self._corners, np.roll(self._corners, -1, axis=1))
        self._mids = np.array([row[0] for row in rows]).reshape(-1, 3)
        self._axes = np.array([row[1] for row in rows]).reshape(-1, 3)
        self._rings = np.array([row[2] for row in rows], dtype=np.float64)
        self._axial_limits = np.array([row[3] for row in rows], dtype=np.float64)
        self._w1 = np.array([row[4] for row in rows]).reshape(-1, 3)
        self._w2 = np.array([row[5] for row in rows]).reshape(-1, 3)
        self._wedges = np.array([row[6] for row in rows]).reshape(-1, 3)
        self._radii = (large_radius, small_radius)

    def _sphere_support(self, direction: np.ndarray, large_radius: float) -> tuple[np.ndarray, float]:
        """Farthest point over all face spheres, each clipped to its spherical triangle."""
        tol = 1e-12
        count = len(self._centers)
        along = self._limits @ direction
        inside = np.all(along >= -tol, axis=1)

        # off the triangle, the farthest ray lies on a side or at a corner
        sides = direction - along[..., None] * self._limits
        lengths = np.sqrt((sides * sides).sum(axis=2))
        sides = sides / np.where(lengths > tol, lengths, 1.0)[..., None]
        following = np.roll(self._corners, -1, axis=1)
        on_arc = (
            (lengths > tol)
            & ((np.cross(self._corners, sides) * self._arcs).sum(axis=2) >= -tol)
            & ((np.cross(sides, following) * self._arcs).sum(axis=2) >= -tol)
        )

        rays = np.concatenate([np.broadcast_to(direction, (count, 1, 3)), self._corners, sides], axis=1)
        valid = np.concatenate([inside[:, None], np.ones((count, 3), dtype=bool), on_arc], axis=1)
        reach = np.where(valid, rays @ direction, -np.inf)
        values = (self._centers @ direction)[:, None] + large_radius * reach
        t, k = np.unravel_index(int(np.argmax(values)), values.shape)
        return self._centers[t] + large_radius * rays[t, k], float(values[t, k])

    def _torus_support(self, direction: np.ndarray, large_radius: float) -> tuple[np.ndarray | None, float]:
        """Farthest edge torus point among the tori whose patch holds the direction."""
        tol = 1e-12
        axial = self._axes @ direction
        radial = direction - axial[:, None] * self._axes
        radial_norm = np.sqrt((radial * radial).sum(axis=1))
        inward = -radial / np.where(radial_norm > tol, radial_norm, 1.0)[:, None]
        accepted = (
            (np.abs(axial) <= self._axial_limits + tol)
            & (radial_norm > tol)
            & ((np.cross(self._w1, inward) * self._wedges).sum(axis=1) >= -tol)
            & ((np.cross(inward, self._w2) * self._wedges).sum(axis=1) >= -tol)
        )
        if not np.any(accepted):
            return None, -np.inf
        points = self._mids[accepted] + self._rings[accepted, None] * inward[accepted] + large_radius * direction
        values = points @ direction
        i = int(np.argmax(values))
        return points[i], float(values[i])

    def support(self, direction: np.ndarray, large_radius: float, small_radius: float) -> np.ndarray | None:
        """
        Support point of the hull of all patches.

        Vertex spheres and face spheres are evaluated exactly. A torus only
        contributes where its patch holds the direction: elsewhere its
        farthest point is on a patch border, which a face sphere or vertex
        sphere already covers.
        """
        if len(self.points) == 0:
            return None
        if self._radii != (large_radius, small_radius):
            self._prepare(large_radius, small_radius)

        best = self.points[int(np.argmax(self.points @ direction))] + small_radius * direction
        best_value = dot(best, direction)
        if len(self._centers):
            point, value = self._sphere_support(direction, large_radius)
            if value > best_value:
                best, best_value = point, value
        if len(self._mids):
            point, value = self._torus_support(direction, large_radius)
            if value > best_value:
                best = point
        return best


class STPBoundingVolume:
    """
    Base class of the STP adapters.

    Args:
        shape: The wrapped shape.
        minimum_margin: Small radius r, the margin at vertices.
        maximum_margin: Largest margin g, reached at face and edge centers.

    Call `update_radii` after changing the dimensions of the wrapped shape.
    """

    is_primitive: ClassVar[bool] = False
    is_defined_by_pose: ClassVar[bool] = False

    def __init__(
        self,
        shape: Any,
        minimum_margin: float = STP_MINIMUM_MARGIN,
        maximum_margin: float = STP_MAXIMUM_MARGIN,
    ) -> None:
        self.shape = shape
        self._small_radius = 0.0
        self._large_radius = 0.0
        self.set_margins(minimum_margin, maximum_margin)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.shape!r}, r={self._small_radius:.3g}, "
            f"R={self._large_radius:.3g})"
        )

    @property
    def minimum_margin(self) -> float:
        return self._minimum_margin

    @property
    def maximum_margin(self) -> float:
        return self._maximum_margin

    @property
    def small_radius(self) -> float:
        return self._small_radius

    @property
    def large_radius(self) -> float:
        return self._large_radius

    @property
    def centroid(self) -> np.ndarray:
        return self.shape.centroid

    def set_margins(self, minimum_margin: float, maximum_margin: float) -> None:
        """
        Set the margins and recompute the radii.

        Raises:
            ValueError: If minimum_margin < 0 or maximum_margin <= minimum_margin.
        """
        if minimum_margin < 0.0:
            raise ValueError(f"minimum margin must be non-negative, got {minimum_margin}")
        if maximum_margin <= minimum_margin:
            raise ValueError(
                f"maximum margin ({maximum_margin}) must be greater than the minimum margin ({minimum_margin})"
            )
        self._minimum_margin = float(minimum_margin)
        self._maximum_margin = float(maximum_margin)
        self.update_radii()

    def update_radii(self) -> None:
        r = self._minimum_margin
        g = self._maximum_margin
        length = float(np.sqrt(self._max_feature_length_squared()))
        self._small_radius = r
        if length <= 0.0:
            self._large_radius = r
            return
        if g - r >= 0.5 * length:
            clamped = r + STP_MARGIN_CLAMP_FACTOR * 0.5 * length
            logger.warning(
                "maximum margin %g is infeasible for %s with longest feature %g; using %g",
                g,
                type(self.shape).__name__,
                length,
                clamped,
            )
            g = clamped
        self._large_radius = (r * r - g * g - 0.25 * length * length) / (2.0 * (r - g))

    def support(self, direction) -> np.ndarray | None:
        d = unit(f64(direction))
        if not np.any(d):
            d = np.array([0.0, 0.0, 1.0])
        return self._support(d)

    def _max_feature_length_squared(self) -> float:
        raise NotImplementedError

    def _support(self, direction: np.ndarray) -> np.ndarray | None:
        raise NotImplementedError

    # -- shared patch logic ---------------------------------------------------

    def _edge_support(self, direction: np.ndarray, a: np.ndarray, b: np.ndarray) -> np.ndarray | None:
        """Torus patch support for edge ab, or None when outside the patch."""
        R, r = self._large_radius, self._small_radius
        axis = b - a
        length = norm(axis)
        if length <= 0.0:
            return None
        axis = axis / length
        ring2 = (R - r) ** 2 - 0.25 * length * length
        if ring2 < 0.0:
            return None
        center = 0.5 * (a + b)
        point = inner_torus_support(direction, center, axis, float(np.sqrt(ring2)), R)
        if abs(dot(point - center, axis)) <= 0.5 * length * R / (R - r):
            return point
        return None

    def _face_support(
        self,
        direction: np.ndarray,
        corners: np.ndarray,
        normal: np.ndarray,
        circumcenter: np.ndarray,
        circumradius_squared: float,
        sharp_vertex: np.ndarray,
    ) -> np.ndarray:
        """
        Three-tier support over one polygonal face.

        The face patch is valid when the direction lies inside every limit
        plane (sphere center + face edge). Each violated limit plane gives a
        chance to the edge torus; two violations mean a vertex region.
        """
        R, r = self._large_radius, self._small_radius
        offset2 = (R - r) ** 2 - circumradius_squared
        if offset2 < 0.0:
            return sharp_vertex + r * direction
        sphere_center = circumcenter - float(np.sqrt(offset2)) * normal
        to_centroid = corners.mean(axis=0) - sphere_center

        outside = 0
        n = len(corners)
        for k in range(n):
            a, b = corners[k], corners[(k + 1) % n]
            limit_normal = cross(0.5 * (a + b) - sphere_center, b - a)
            if dot(to_centroid, limit_normal) * dot(direction, limit_normal) >= 0.0:
                continue
            outside += 1
            point = self._edge_support(direction, a, b)
            if point is not None:
                return point
            if outside >= 2:
                break
        if outside == 0:
            return sphere_center + R * direction
        return sharp_vertex + r * direction


class BoxSTPBoundingVolume(STPBoundingVolume):
    """STP volume of a Box; faces are the six rectangles."""

    shape: Box

    def _max_feature_length_squared(self) -> float:
        sx, sy, sz = 2.0 * self.shape.half_extents
        return max(sx * sx + sy * sy, sx * sx + sz * sz, sy * sy + sz * sz)

    def _support(self, direction: np.ndarray) -> np.ndarray:
        pose = self.shape.pose
        d = pose.inverse_transform_vector(direction)
        h = self.shape.half_extents

        i = int(np.argmax(np.abs(d)))
        sign = 1.0 if d[i] >= 0.0 else -1.0
        j, k = (i + 1) % 3, (i + 2) % 3
        normal = np.zeros(3)
        normal[i] = sign
        center = h[i] * normal
        corners = []
        for sj, sk in ((1.0, 1.0), (-1.0, 1.0), (-1.0, -1.0), (1.0, -1.0)):
            corner = center.copy()
            corner[j] = sj * h[j]
            corner[k] = sk * h[k]
            corners.append(corner)
        local = self._face_support(
            d, np.array(corners), normal, center, h[j] * h[j] + h[k] * h[k], support_box(d, h)
        )
        return pose.transform_point(local)


class CapsuleSTPBoundingVolume(STPBoundingVolume):
    """
    STP volume of a Capsule.

    The core segment gets a torus patch along its length and vertex spheres
    at its ends; the result is then inflated by the capsule radius. This
    removes the flat direction of the cylindrical part.
    """

    shape: Capsule

    def _max_feature_length_squared(self) -> float:
        return self.shape.length * self.shape.length

    def _support(self, direction: np.ndarray) -> np.ndarray:
        capsule = self.shape
        top, bottom = capsule.top_center, capsule.bottom_center
        point = self._edge_support(direction, bottom, top)
        if point is None:
            end = top if dot(direction, capsule.axis) >= 0.0 else bottom
            point = end + self._small_radius * direction
        return point + capsule.radius * direction


class CylinderSTPBoundingVolume(STPBoundingVolume):
    """
    STP volume of a Cylinder.

    Face tier: spheres over the two caps and a surface of revolution over
    the side (a circular arc through both rims, revolved around the axis).
    Vertex tier: the rims, each inflated into a torus of tube radius r.
    """

    shape: Cylinder

    def _max_feature_length_squared(self) -> float:
        diameter = 2.0 * self.shape.radius
        return max(self.shape.length * self.shape.length, diameter * diameter)

    def _support(self, direction: np.ndarray) -> np.ndarray:
        cylinder = self.shape
        R, r = self._large_radius, self._small_radius
        axis = cylinder.axis
        along = dot(direction, axis)
        radial = direction - along * axis
        radial_norm = norm(radial)
        half = 0.5 * cylinder.length
        cap_center = cylinder.position + (half if along >= 0.0 else -half) * axis

        cap_offset2 = (R - r) ** 2 - cylinder.radius ** 2
        if cap_offset2 >= 0.0 and radial_norm * (R - r) <= cylinder.radius:
            sphere_center = cap_center - (1.0 if along >= 0.0 else -1.0) * float(np.sqrt(cap_offset2)) * axis
            return sphere_center + R * direction

        side_offset2 = (R - r) ** 2 - half * half
        if side_offset2 >= 0.0 and abs(along) * (R - r) <= half and radial_norm > 0.0:
            arc_center = cylinder.position + (cylinder.radius - float(np.sqrt(side_offset2))) * radial / radial_norm
            return arc_center + R * direction

        rim = cap_center + cylinder.radius * unit(radial)
        return rim + r * direction


class ConvexPolytope3DSTPBoundingVolume(STPBoundingVolume):
    """
    STP volume of a ConvexPolytope3D.

    The patch layout is read from the polytope whenever the radii are
    updated, so call `update_radii` after moving or growing the polytope.
    """

    shape: ConvexPolytope3D

    def update_radii(self) -> None:
        self._mesh = STPMesh(self._local_polytope())
        super().update_radii()

    def _local_polytope(self) -> ConvexPolytope3D:
        return self.shape

    def _max_feature_length_squared(self) -> float:
        return self._mesh.feature_length_squared

    def _support(self, direction: np.ndarray) -> np.ndarray | None:
        return self._mesh.support(direction, self._large_radius, self._small_radius)


class RampSTPBoundingVolume(ConvexPolytope3DSTPBoundingVolume):
    """STP volume of a Ramp, laid out on the ramp polytope in the ramp's local frame."""

    shape: Ramp

    def _local_polytope(self) -> ConvexPolytope3D:
        return ramp_polytope(self.shape.size)

    def _support(self, direction: np.ndarray) -> np.ndarray:
        pose = self.shape.pose
        local = super()._support(pose.inverse_transform_vector(direction))
        return pose.transform_point(local)


def new_stp_bounding_volume(
    shape: Any,
    minimum_margin: float = STP_MINIMUM_MARGIN,
    maximum_margin: float = STP_MAXIMUM_MARGIN,
) -> Any:
    """
    Wrap a shape in the STP volume matching its kind.

    Spheres and ellipsoids are already strictly convex and are returned
    unchanged.

    Raises:
        TypeError: For shapes without a ShapeKind tag.
    """
    kind = getattr(shape, "kind", None)
    match kind:
        case ShapeKind.BOX:
            return BoxSTPBoundingVolume(shape, minimum_margin, maximum_margin)
        case ShapeKind.RAMP:
            return RampSTPBoundingVolume(shape, minimum_margin, maximum_margin)
        case ShapeKind.CAPSULE:
            return CapsuleSTPBoundingVolume(shape, minimum_margin, maximum_margin)
        case ShapeKind.CYLINDER:
            return CylinderSTPBoundingVolume(shape, minimum_margin, maximum_margin)
        case ShapeKind.POLYTOPE:
            return ConvexPolytope3DSTPBoundingVolume(shape, minimum_margin, maximum_margin)
        case ShapeKind.SPHERE | ShapeKind.ELLIPSOID:
            return shape
        case _:
            raise TypeError(f"no STP bounding volume for {type(shape).__name__}")

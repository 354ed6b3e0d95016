# MIT License (see LICENSE)
"""
Core type definitions for 3D convex collision queries.

Defines:
- ShapeKind: tag used for exhaustive dispatch over shape types.
- SupportingVertexHolder: the protocol the algorithms rely on.
- Primitive shapes: Sphere, Box, Capsule, Cylinder, Ellipsoid, Ramp.

Primitives come in two flavours. Box, Ellipsoid and Ramp are defined by a
local shape plus a pose (`is_defined_by_pose`), which lets the frame-aware
detector run a query in the shape's local frame. Sphere, Capsule and
Cylinder store world-ish parameters (center, axis) directly and are moved by
transforming those parameters. The general mesh shape, ConvexPolytope3D,
lives in collision3d.polytope and is not a primitive.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Protocol, runtime_checkable

import numpy as np

from .shapes import (
    support_box,
    support_capsule,
    support_cylinder,
    support_ellipsoid,
    support_ramp,
    support_sphere,
)
from .transform import RigidTransform
from .util import f64, unit


class ShapeKind(Enum):
    SPHERE = "sphere"
    BOX = "box"
    CAPSULE = "capsule"
    CYLINDER = "cylinder"
    ELLIPSOID = "ellipsoid"
    RAMP = "ramp"
    POLYTOPE = "polytope"


# =============================================================================
# Protocols
# =============================================================================

@runtime_checkable
class SupportingVertexHolder(Protocol):
    """Anything GJK/EPA can query: returns the farthest point along a direction, or None if empty."""

    def support(self, direction: np.ndarray) -> np.ndarray | None: ...


# =============================================================================
# Primitives defined by position/axis
# =============================================================================

@dataclass
class Sphere:
    """
    Sphere shape.

    Attributes:
        radius: Sphere radius.
        center: Center position [x, y, z].
    """
    radius: float
    center: np.ndarray = field(default_factory=lambda: np.zeros(3))

    kind: ClassVar[ShapeKind] = ShapeKind.SPHERE
    is_primitive: ClassVar[bool] = True
    is_defined_by_pose: ClassVar[bool] = False

    def __post_init__(self) -> None:
        if self.radius < 0.0:
            raise ValueError(f"sphere radius must be non-negative, got {self.radius}")
        self.radius = float(self.radius)
        self.center = f64(self.center)

    def support(self, direction) -> np.ndarray:
        return support_sphere(f64(direction), self.center, self.radius)

    @property
    def centroid(self) -> np.ndarray:
        return self.center.copy()

    def copy(self) -> Sphere:
        return Sphere(self.radius, self.center.copy())

    def apply_transform(self, transform: RigidTransform) -> None:
        self.center = transform.transform_point(self.center)


@dataclass
class _AxisShape:
    """Shared storage for shapes swept along a segment (capsule, cylinder)."""
    length: float
    radius: float
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    axis: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 1.0]))

    is_primitive: ClassVar[bool] = True
    is_defined_by_pose: ClassVar[bool] = False

    def __post_init__(self) -> None:
        if self.length < 0.0 or self.radius < 0.0:
            raise ValueError(
                f"{type(self).__name__} length and radius must be non-negative, "
                f"got length={self.length}, radius={self.radius}"
            )
        self.length = float(self.length)
        self.radius = float(self.radius)
        self.position = f64(self.position)
        self.axis = unit(f64(self.axis))
        if not np.any(self.axis):
            raise ValueError(f"{type(self).__name__} axis must be non-zero")

    @property
    def centroid(self) -> np.ndarray:
        return self.position.copy()

    @property
    def top_center(self) -> np.ndarray:
        return self.position + 0.5 * self.length * self.axis

    @property
    def bottom_center(self) -> np.ndarray:
        return self.position - 0.5 * self.length * self.axis

    def copy(self):
        return type(self)(self.length, self.radius, self.position.copy(), self.axis.copy())

    def apply_transform(self, transform: RigidTransform) -> None:
        self.position = transform.transform_point(self.position)
        self.axis = transform.transform_vector(self.axis)


@dataclass
class Capsule(_AxisShape):
    """
    Capsule: all points within `radius` of the segment position ± axis·length/2.

    Attributes:
        length: Length of the core segment (caps excluded).
        radius: Radius of the capsule.
        position: Center of the core segment.
        axis: Unit axis of the segment, normalized on construction.
    """
    kind: ClassVar[ShapeKind] = ShapeKind.CAPSULE

    def support(self, direction) -> np.ndarray:
        return support_capsule(f64(direction), self.position, self.axis, self.length, self.radius)


@dataclass
class Cylinder(_AxisShape):
    """
    Solid cylinder with flat caps.

    Attributes:
        length: Distance between the two caps.
        radius: Cap radius.
        position: Center of the cylinder.
        axis: Unit revolution axis, normalized on construction.
    """
    kind: ClassVar[ShapeKind] = ShapeKind.CYLINDER

    def support(self, direction) -> np.ndarray:
        return support_cylinder(f64(direction), self.position, self.axis, self.length, self.radius)


# =============================================================================
# Primitives defined by a pose
# =============================================================================

class _PosedShape:
    """
    Mixin for shapes described by local parameters plus a pose.

    Subclasses provide `pose` and `_local_support`/`_local_centroid`.
    """
    pose: RigidTransform

    is_primitive: ClassVar[bool] = True
    is_defined_by_pose: ClassVar[bool] = True

    def _local_support(self, direction: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def _local_centroid(self) -> np.ndarray:
        return np.zeros(3, dtype=np.float64)

    def support(self, direction) -> np.ndarray:
        local = self.pose.inverse_transform_vector(direction)
        return self.pose.transform_point(self._local_support(local))

    @property
    def centroid(self) -> np.ndarray:
        return self.pose.transform_point(self._local_centroid())

    def with_identity_pose(self):
        """Copy of this shape sitting at the origin of its own local frame."""
        shape = self.copy()
        shape.pose = RigidTransform.identity()
        return shape

    def apply_transform(self, transform: RigidTransform) -> None:
        self.pose = transform @ self.pose


@dataclass
class Box(_PosedShape):
    """
    Oriented box defined by half-extents.

    The full size along each local axis is 2*half_extents.

    Attributes:
        half_extents: (hx, hy, hz) half sizes.
        pose: Transform from the box's local frame.
    """
    half_extents: np.ndarray
    pose: RigidTransform = field(default_factory=RigidTransform.identity)

    kind: ClassVar[ShapeKind] = ShapeKind.BOX

    def __post_init__(self) -> None:
        self.half_extents = f64(self.half_extents)
        if np.any(self.half_extents < 0.0):
            raise ValueError(f"box half extents must be non-negative, got {self.half_extents}")

    def _local_support(self, direction: np.ndarray) -> np.ndarray:
        return support_box(direction, self.half_extents)

    def copy(self) -> Box:
        return Box(self.half_extents.copy(), self.pose.copy())


@dataclass
class Ellipsoid(_PosedShape):
    """
    Ellipsoid defined by its three radii along the local axes.

    Attributes:
        radii: (rx, ry, rz).
        pose: Transform from the ellipsoid's local frame.
    """
    radii: np.ndarray
    pose: RigidTransform = field(default_factory=RigidTransform.identity)

    kind: ClassVar[ShapeKind] = ShapeKind.ELLIPSOID

    def __post_init__(self) -> None:
        self.radii = f64(self.radii)
        if np.any(self.radii < 0.0):
            raise ValueError(f"ellipsoid radii must be non-negative, got {self.radii}")

    def _local_support(self, direction: np.ndarray) -> np.ndarray:
        return support_ellipsoid(direction, self.radii)

    def copy(self) -> Ellipsoid:
        return Ellipsoid(self.radii.copy(), self.pose.copy())


@dataclass
class Ramp(_PosedShape):
    """
    Ramp (right triangular prism).

    Local layout: the base lies in the XY plane over x in [0, sx] and
    y in [-sy/2, sy/2]; the inclined face rises from the edge at x = 0 to
    height sz at x = sx, where a vertical face closes the shape.

    Attributes:
        size: (sx, sy, sz).
        pose: Transform from the ramp's local frame.
    """
    size: np.ndarray
    pose: RigidTransform = field(default_factory=RigidTransform.identity)

    kind: ClassVar[ShapeKind] = ShapeKind.RAMP

    def __post_init__(self) -> None:
        self.size = f64(self.size)
        if np.any(self.size < 0.0):
            raise ValueError(f"ramp size must be non-negative, got {self.size}")

    @property
    def ramp_length(self) -> float:
        return float(np.hypot(self.size[0], self.size[2]))

    def _local_support(self, direction: np.ndarray) -> np.ndarray:
        return support_ramp(direction, self.size)

    def _local_centroid(self) -> np.ndarray:
        return np.array([2.0 * self.size[0] / 3.0, 0.0, self.size[2] / 3.0], dtype=np.float64)

    def copy(self) -> Ramp:
        return Ramp(self.size.copy(), self.pose.copy())

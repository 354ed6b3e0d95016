# MIT License (see LICENSE)
"""
Collision queries between shapes expressed in different reference frames.

GJK and EPA need both operands in one frame. Rather than re-expressing both
shapes every query, FrameCollisionDetector picks the cheapest alignment:

    - same frame: query directly;
    - mesh vs mesh: wrap A in a SupportTransformer that maps every support
      query through the frame transform, leaving both meshes untouched;
    - mesh vs posed primitive (box, ellipsoid, ramp): run the query in the
      primitive's local frame by folding its pose into the transformer,
      then re-apply the pose to the result;
    - mesh vs other primitive: copy the (cheap) primitive into the mesh's frame;
    - primitive vs primitive: query in the local frame of the posed one if
      any, else copy A into B's frame.

A "mesh" here is anything with is_primitive False: polytopes, STP volumes or
custom support holders. When only B is a mesh, the operands are swapped for
the query and swapped back in the result.
"""
from __future__ import annotations
from typing import Any

import numpy as np

from ..frames import FrameShape, ReferenceFrame
from ..profiler import Profiler
from ..transform import RigidTransform
from ..util import f64
from .epa import ExpandingPolytopeAlgorithm
from .result import CollisionResult


class SupportTransformer:
    """
    Support holder presenting a shape through a rigid transform.

    Args:
        shape: Wrapped support holder.
        transform: Maps the shape's coordinates to the coordinates the
            queries are made in.
    """

    def __init__(self, shape: Any = None, transform: RigidTransform | None = None) -> None:
        self.shape = shape
        self.transform = transform if transform is not None else RigidTransform.identity()

    def set(self, shape: Any, transform: RigidTransform) -> None:
        self.shape = shape
        self.transform = transform

    def support(self, direction) -> np.ndarray | None:
        point = self.shape.support(self.transform.inverse_transform_vector(direction))
        if point is None:
            return None
        return self.transform.transform_point(point)

    @property
    def centroid(self) -> np.ndarray | None:
        centroid = getattr(self.shape, "centroid", None)
        if centroid is None:
            return None
        return self.transform.transform_point(centroid)


def _is_primitive(shape: Any) -> bool:
    return bool(getattr(shape, "is_primitive", False))


def _is_defined_by_pose(shape: Any) -> bool:
    return bool(getattr(shape, "is_defined_by_pose", False))


class FrameCollisionDetector:
    """
    Frame-aware front end for a GJK or EPA detector.

    Args:
        detector: Underlying detector; an ExpandingPolytopeAlgorithm if None.
        reporting_frame: If given, every result is re-expressed in this
            frame. Otherwise results stay in the frame the query ran in,
            available as `result.frame`.
        profiler: Optional profiler; times the alignment step under
            "frame_alignment".
    """

    def __init__(
        self,
        detector: Any = None,
        reporting_frame: ReferenceFrame | None = None,
        profiler: Profiler | None = None,
    ) -> None:
        self.detector = detector if detector is not None else ExpandingPolytopeAlgorithm()
        self.reporting_frame = reporting_frame
        self.profiler = profiler
        self._transformer = SupportTransformer()
        self._hint: tuple[np.ndarray, ReferenceFrame] | None = None

    def set_initial_support_direction(self, direction, frame: ReferenceFrame) -> None:
        """One-shot search direction (from A towards B) expressed in `frame`."""
        self._hint = (f64(direction), frame)

    def evaluate_collision(
        self, shape_a: FrameShape, shape_b: FrameShape, result: CollisionResult | None = None
    ) -> CollisionResult:
        if result is None:
            result = CollisionResult()
        self.evaluate_collision_into(shape_a, shape_b, result)
        return result

    def evaluate_collision_into(self, shape_a: FrameShape, shape_b: FrameShape, result: CollisionResult) -> bool:
        swapped = _is_primitive(shape_a.shape) and not _is_primitive(shape_b.shape)
        first, second = (shape_b, shape_a) if swapped else (shape_a, shape_b)

        if self.profiler is not None:
            with self.profiler.section("frame_alignment"):
                query_a, query_b, frame, pose = self._align(first, second)
        else:
            query_a, query_b, frame, pose = self._align(first, second)

        if self._hint is not None:
            direction, hint_frame = self._hint
            self._hint = None
            direction = hint_frame.transform_to(frame).transform_vector(direction)
            if pose is not None:
                direction = pose.inverse_transform_vector(direction)
            self.detector.set_initial_support_direction(-direction if swapped else direction)

        colliding = self.detector.evaluate_collision_into(query_a, query_b, result)
        if pose is not None:
            result.apply_transform(pose)
        if swapped:
            result.swap_shapes()
        result.shape_a = shape_a
        result.shape_b = shape_b
        result.frame = frame
        if self.reporting_frame is not None:
            result.change_frame(self.reporting_frame)
        return colliding

    def _align(
        self, shape_a: FrameShape, shape_b: FrameShape
    ) -> tuple[Any, Any, ReferenceFrame, RigidTransform | None]:
        """
        Bring both operands into one frame.

        Returns:
            (query shape A, query shape B, result frame, pose) where pose maps
            the query coordinates into the result frame, or None if they
            already coincide.
        """
        a, b = shape_a.shape, shape_b.shape
        if shape_a.frame is shape_b.frame:
            return a, b, shape_a.frame, None

        if not _is_primitive(a):
            if not _is_primitive(b):
                self._transformer.set(a, shape_a.frame.transform_to(shape_b.frame))
                return self._transformer, b, shape_b.frame, None
            if _is_defined_by_pose(b):
                pose = b.pose
                self._transformer.set(a, pose.inverse() @ shape_a.frame.transform_to(shape_b.frame))
                return self._transformer, b.with_identity_pose(), shape_b.frame, pose
            return a, shape_b.change_frame(shape_a.frame).shape, shape_a.frame, None

        if _is_defined_by_pose(a):
            pose = a.pose
            local_b = b.copy()
            local_b.apply_transform(pose.inverse() @ shape_b.frame.transform_to(shape_a.frame))
            return a.with_identity_pose(), local_b, shape_a.frame, pose
        if _is_defined_by_pose(b):
            pose = b.pose
            local_a = a.copy()
            local_a.apply_transform(pose.inverse() @ shape_a.frame.transform_to(shape_b.frame))
            return local_a, b.with_identity_pose(), shape_b.frame, pose
        return shape_a.change_frame(shape_b.frame).shape, b, shape_b.frame, None

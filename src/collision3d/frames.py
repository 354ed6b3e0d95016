# MIT License (see LICENSE)
"""
Reference frames and frame-tagged shapes.

A ReferenceFrame is a node in a tree rooted at a world frame; each non-root
frame stores the rigid transform from itself to its parent. Transforms
between any two frames of the same tree are obtained by walking to the root.

FrameShape pairs a shape with the frame its coordinates are expressed in and
is the operand type of FrameCollisionDetector.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from .transform import RigidTransform


class ReferenceFrame:
    """
    Node of a reference-frame tree.

    Args:
        name: Human readable identifier, used in error messages only.
        parent: Parent frame, or None for a root (world) frame.
        transform_to_parent: Pose of this frame in its parent. Ignored for roots.
    """

    def __init__(
        self,
        name: str,
        parent: ReferenceFrame | None = None,
        transform_to_parent: RigidTransform | None = None,
    ) -> None:
        self.name = name
        self.parent = parent
        if parent is None:
            self._transform_to_parent = RigidTransform.identity()
        else:
            self._transform_to_parent = (
                transform_to_parent.copy() if transform_to_parent is not None else RigidTransform.identity()
            )

    def __repr__(self) -> str:
        return f"ReferenceFrame({self.name!r})"

    @classmethod
    def world(cls, name: str = "world") -> ReferenceFrame:
        return cls(name)

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def root(self) -> ReferenceFrame:
        frame = self
        while frame.parent is not None:
            frame = frame.parent
        return frame

    @property
    def transform_to_parent(self) -> RigidTransform:
        return self._transform_to_parent

    def update_transform_to_parent(self, transform: RigidTransform) -> None:
        """Move this frame (and implicitly all its descendants) relative to its parent."""
        if self.parent is None:
            raise ValueError(f"cannot move root frame {self.name!r}")
        self._transform_to_parent = transform.copy()

    def transform_to_root(self) -> RigidTransform:
        """Transform mapping coordinates in this frame to coordinates in the root frame."""
        transform = RigidTransform.identity()
        frame = self
        while frame.parent is not None:
            transform = frame._transform_to_parent @ transform
            frame = frame.parent
        return transform

    def transform_to(self, desired: ReferenceFrame) -> RigidTransform:
        """
        Transform mapping coordinates in this frame to coordinates in `desired`.

        Raises:
            ValueError: If the two frames do not belong to the same tree.
        """
        if desired is self:
            return RigidTransform.identity()
        if desired.root is not self.root:
            raise ValueError(f"frames {self.name!r} and {desired.name!r} have different roots")
        return desired.transform_to_root().inverse() @ self.transform_to_root()

    def child(self, name: str, transform_to_parent: RigidTransform | None = None) -> ReferenceFrame:
        """Convenience constructor for a frame attached to this one."""
        return ReferenceFrame(name, self, transform_to_parent)


@dataclass
class FrameShape:
    """
    A shape together with the reference frame its data is expressed in.

    Attributes:
        shape: Any shape exposing the shape protocol (support, kind, ...).
        frame: Frame of the shape's coordinates.
    """
    shape: Any
    frame: ReferenceFrame

    def change_frame(self, desired: ReferenceFrame) -> FrameShape:
        """Return a copy of this shape re-expressed in `desired`."""
        copy = self.shape.copy()
        copy.apply_transform(self.frame.transform_to(desired))
        return FrameShape(copy, desired)

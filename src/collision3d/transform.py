# MIT License (see LICENSE)
"""
Rigid transforms (rotation + translation) in 3D.

A RigidTransform maps coordinates expressed in a child frame into its parent
frame: p_parent = R @ p_child + t. Rotations are kept as plain 3x3 matrices
for fast application; scipy's Rotation is used only to build them from
quaternions, Euler angles or rotation vectors.

Example:
    T = RigidTransform.from_euler("z", 90.0, translation=(1, 0, 0), degrees=True)
    T.transform_point((1, 0, 0))  # -> [1, 1, 0]
"""
from __future__ import annotations
from dataclasses import dataclass, field

import numpy as np
from scipy.spatial.transform import Rotation

from .util import f64


@dataclass
class RigidTransform:
    """
    Proper rigid transform.

    Attributes:
        rotation: 3x3 rotation matrix.
        translation: Translation vector [x, y, z].
    """
    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        self.rotation = f64(self.rotation).reshape(3, 3)
        self.translation = f64(self.translation).reshape(3)

    # -- construction -------------------------------------------------------

    @classmethod
    def identity(cls) -> RigidTransform:
        return cls()

    @classmethod
    def from_translation(cls, translation) -> RigidTransform:
        return cls(np.eye(3), translation)

    @classmethod
    def from_quaternion(cls, quaternion, translation=(0.0, 0.0, 0.0)) -> RigidTransform:
        """Build from a scalar-last quaternion (x, y, z, w)."""
        return cls(Rotation.from_quat(quaternion).as_matrix(), translation)

    @classmethod
    def from_euler(
        cls,
        seq: str,
        angles,
        translation=(0.0, 0.0, 0.0),
        degrees: bool = False,
    ) -> RigidTransform:
        return cls(Rotation.from_euler(seq, angles, degrees=degrees).as_matrix(), translation)

    @classmethod
    def from_rotvec(cls, rotvec, translation=(0.0, 0.0, 0.0)) -> RigidTransform:
        return cls(Rotation.from_rotvec(rotvec).as_matrix(), translation)

    @classmethod
    def random(cls, rng: np.random.Generator, max_translation: float = 1.0) -> RigidTransform:
        """Uniformly random rotation and a translation in a cube of half-size max_translation."""
        rotation = Rotation.random(None, rng).as_matrix()
        translation = rng.uniform(-max_translation, max_translation, size=3)
        return cls(rotation, translation)

    # -- queries ------------------------------------------------------------

    def copy(self) -> RigidTransform:
        return RigidTransform(self.rotation.copy(), self.translation.copy())

    def is_identity(self, eps: float = 1e-15) -> bool:
        return bool(np.allclose(self.rotation, np.eye(3), rtol=0.0, atol=eps) and np.all(np.abs(self.translation) <= eps))

    def as_quaternion(self) -> np.ndarray:
        """Scalar-last quaternion (x, y, z, w) of the rotation part."""
        return Rotation.from_matrix(self.rotation).as_quat()

    # -- application --------------------------------------------------------

    def transform_point(self, point) -> np.ndarray:
        return self.rotation @ f64(point) + self.translation

    def transform_vector(self, vector) -> np.ndarray:
        return self.rotation @ f64(vector)

    def inverse_transform_point(self, point) -> np.ndarray:
        return self.rotation.T @ (f64(point) - self.translation)

    def inverse_transform_vector(self, vector) -> np.ndarray:
        return self.rotation.T @ f64(vector)

    # -- algebra ------------------------------------------------------------

    def multiply(self, other: RigidTransform) -> RigidTransform:
        """
        Composition self ∘ other: apply other first, then self.

        Args:
            other: Transform from some frame C into this transform's child frame.

        Returns:
            Transform from C into this transform's parent frame.
        """
        return RigidTransform(
            self.rotation @ other.rotation,
            self.rotation @ other.translation + self.translation,
        )

    def __matmul__(self, other: RigidTransform) -> RigidTransform:
        return self.multiply(other)

    def inverse(self) -> RigidTransform:
        rt = self.rotation.T
        return RigidTransform(rt, -(rt @ self.translation))

    def epsilon_equals(self, other: RigidTransform, eps: float) -> bool:
        return bool(
            np.allclose(self.rotation, other.rotation, rtol=0.0, atol=eps)
            and np.allclose(self.translation, other.translation, rtol=0.0, atol=eps)
        )

import numpy as np
import pytest
from collision3d.shapes import ramp_vertices, support_ramp
from collision3d.transform import RigidTransform
from collision3d.types import Box, Capsule, Cylinder, Ellipsoid, Ramp, ShapeKind, Sphere


def _directions(seed=0, n=64):
    return np.random.default_rng(seed).normal(size=(n, 3))


def test_ramp_support_is_a_maximal_corner():
    size = np.array([2.0, 1.0, 0.7])
    corners = ramp_vertices(size)
    for d in _directions(1):
        p = support_ramp(d, size)
        assert abs(np.dot(p, d) - np.max(corners @ d)) < 1e-12


def test_box_support_with_pose():
    """Support of a posed box equals the best of its transformed corners."""
    pose = RigidTransform.from_euler("zyx", (0.4, 0.1, -0.3), translation=(1.0, -2.0, 0.5))
    box = Box((0.5, 1.0, 1.5), pose)
    h = box.half_extents
    corners = np.array([pose.transform_point(np.array([sx, sy, sz]) * h)
                        for sx in (-1, 1) for sy in (-1, 1) for sz in (-1, 1)])
    for d in _directions(2):
        assert abs(np.dot(box.support(d), d) - np.max(corners @ d)) < 1e-12


def test_sphere_capsule_cylinder_support_values():
    d = np.array([0.0, 0.0, 2.0])
    np.testing.assert_allclose(Sphere(1.0, (1.0, 2.0, 3.0)).support(d), (1.0, 2.0, 4.0))
    capsule = Capsule(2.0, 0.5, (0.0, 0.0, 0.0), (0.0, 0.0, 1.0))
    np.testing.assert_allclose(capsule.support(d), (0.0, 0.0, 1.5))
    cylinder = Cylinder(2.0, 0.5, (0.0, 0.0, 0.0), (0.0, 0.0, 1.0))
    np.testing.assert_allclose(cylinder.support((1.0, 0.0, 1.0)), (0.5, 0.0, 1.0))
    np.testing.assert_allclose(cylinder.support((0.0, -1.0, -1.0)), (0.0, -0.5, -1.0))


def test_ellipsoid_support_on_surface():
    ellipsoid = Ellipsoid((1.0, 2.0, 0.5))
    for d in _directions(3):
        p = ellipsoid.support(d)
        assert abs(np.sum((p / ellipsoid.radii) ** 2) - 1.0) < 1e-12
        # the surface normal at p is parallel to d
        normal = p / ellipsoid.radii ** 2
        assert np.linalg.norm(np.cross(normal, d)) < 1e-9 * np.linalg.norm(normal) * np.linalg.norm(d)


def test_ramp_centroid_and_kind():
    ramp = Ramp((3.0, 1.0, 1.5), RigidTransform.from_translation((1.0, 0.0, 0.0)))
    np.testing.assert_allclose(ramp.centroid, (3.0, 0.0, 0.5))
    assert ramp.kind is ShapeKind.RAMP
    assert ramp.is_primitive and ramp.is_defined_by_pose
    assert ramp.ramp_length == pytest.approx(np.hypot(3.0, 1.5))


def test_with_identity_pose_leaves_original():
    box = Box((1.0, 1.0, 1.0), RigidTransform.from_translation((5.0, 0.0, 0.0)))
    local = box.with_identity_pose()
    assert local.pose.is_identity()
    assert not box.pose.is_identity()


def test_negative_sizes_raise():
    with pytest.raises(ValueError):
        Sphere(-1.0)
    with pytest.raises(ValueError):
        Box((1.0, -1.0, 1.0))
    with pytest.raises(ValueError):
        Capsule(-1.0, 0.5)
    with pytest.raises(ValueError):
        Cylinder(1.0, 0.5, axis=(0.0, 0.0, 0.0))

import logging

import numpy as np
import pytest
from collision3d.collision import (
    BoxSTPBoundingVolume,
    CapsuleSTPBoundingVolume,
    ConvexPolytope3DSTPBoundingVolume,
    CylinderSTPBoundingVolume,
    GJKCollisionDetector,
    RampSTPBoundingVolume,
    new_stp_bounding_volume,
)
from collision3d.polytope import box_polytope, icosphere_polytope, ramp_polytope
from collision3d.transform import RigidTransform
from collision3d.types import Box, Capsule, Cylinder, Ellipsoid, Ramp, Sphere

R_MIN, R_MAX = 1e-3, 1e-2


def _directions(seed, n=400):
    d = np.random.default_rng(seed).normal(size=(n, 3))
    # include the axes and the diagonals, where regions meet
    extra = [np.eye(3)[i] * s for i in range(3) for s in (1.0, -1.0)]
    extra += [np.array([sx, sy, sz]) for sx in (-1, 1) for sy in (-1, 1) for sz in (-1, 1)]
    extra += [np.array([1.0, 1.0, 0.0]), np.array([0.0, -1.0, 1.0])]
    return np.vstack([d, extra])


def _check_margins(stp, shape, seed):
    """The rounded support stays between the minimum and maximum margin outside the shape."""
    low, high = np.inf, -np.inf
    for d in _directions(seed):
        d = d / np.linalg.norm(d)
        gap = np.dot(stp.support(d), d) - np.dot(shape.support(d), d)
        low, high = min(low, gap), max(high, gap)
    print(type(stp).__name__, "margin range", low, high)
    assert low >= R_MIN - 1e-9
    assert high <= R_MAX + 1e-9


def test_large_radius_formula():
    box = Box((0.5, 0.5, 0.5))
    stp = BoxSTPBoundingVolume(box, R_MIN, R_MAX)
    L2 = 2.0  # face diagonal of the unit cube
    expected = (R_MIN ** 2 - R_MAX ** 2 - L2 / 4.0) / (2.0 * (R_MIN - R_MAX))
    assert stp.large_radius == pytest.approx(expected)
    assert stp.small_radius == R_MIN


def test_face_center_reaches_maximum_margin():
    box = Box((0.5, 0.5, 0.5))
    stp = BoxSTPBoundingVolume(box, R_MIN, R_MAX)
    np.testing.assert_allclose(stp.support((0.0, 0.0, 1.0)), (0.0, 0.0, 0.5 + R_MAX), atol=1e-12)
    corner = stp.support((1.0, 1.0, 1.0))
    np.testing.assert_allclose(corner, 0.5 + R_MIN / np.sqrt(3.0), atol=1e-12)


def test_box_margins():
    box = Box((0.5, 0.3, 0.8), RigidTransform.from_euler("xyz", (0.3, 0.2, -0.6), translation=(1.0, 2.0, 0.0)))
    _check_margins(BoxSTPBoundingVolume(box, R_MIN, R_MAX), box, 1)


def test_ramp_margins():
    ramp = Ramp((1.0, 0.6, 0.4), RigidTransform.from_euler("z", 0.7, translation=(0.0, 1.0, 0.0)))
    _check_margins(RampSTPBoundingVolume(ramp, R_MIN, R_MAX), ramp, 2)


def test_capsule_margins():
    capsule = Capsule(1.2, 0.3, (0.5, 0.0, -1.0), (1.0, 2.0, 0.5))
    _check_margins(CapsuleSTPBoundingVolume(capsule, R_MIN, R_MAX), capsule, 3)


def test_cylinder_margins():
    cylinder = Cylinder(1.0, 0.4, (0.0, 0.0, 0.0), (0.0, 1.0, 1.0))
    _check_margins(CylinderSTPBoundingVolume(cylinder, R_MIN, R_MAX), cylinder, 4)


def test_polytope_margins():
    cube = box_polytope((0.5, 0.5, 0.5), RigidTransform.from_euler("y", 0.4))
    _check_margins(ConvexPolytope3DSTPBoundingVolume(cube, R_MIN, R_MAX), cube, 5)
    wedge = ramp_polytope((1.0, 0.5, 0.5))
    _check_margins(ConvexPolytope3DSTPBoundingVolume(wedge, R_MIN, R_MAX), wedge, 6)


def _check_maximal(stp, seed, n=300):
    """Each returned point is the farthest of all returned points along its own direction."""
    d = _directions(seed, n)
    d = d / np.linalg.norm(d, axis=1)[:, None]
    points = np.array([stp.support(v) for v in d])
    along = d @ points.T
    excess = (along.max(axis=1) - np.diag(along)).max()
    print(type(stp).__name__, stp.minimum_margin, stp.maximum_margin, "max excess", excess)
    assert excess <= 1e-9


def test_support_is_maximal():
    pose = RigidTransform.from_euler("xyz", (0.3, -0.5, 0.2), translation=(0.5, -1.0, 2.0))
    sphere_mesh = icosphere_polytope(0.5, subdivisions=1)
    for low, high in ((0.001, 0.05), (0.01, 0.1), (R_MIN, R_MAX)):
        _check_maximal(ConvexPolytope3DSTPBoundingVolume(sphere_mesh, low, high), 7)
    ramp = Ramp((1.0, 0.6, 0.4), pose)
    for low, high in ((0.02, 0.2), (0.05, 0.3), (R_MIN, R_MAX)):
        _check_maximal(RampSTPBoundingVolume(ramp, low, high), 8)
    wedge = ramp_polytope((1.0, 0.5, 0.5), pose)
    for low, high in ((0.02, 0.2), (R_MIN, R_MAX)):
        _check_maximal(ConvexPolytope3DSTPBoundingVolume(wedge, low, high), 9)
    box = Box((0.5, 0.3, 0.8), pose)
    for low, high in ((0.01, 0.1), (R_MIN, R_MAX)):
        _check_maximal(BoxSTPBoundingVolume(box, low, high), 10)
    _check_maximal(CapsuleSTPBoundingVolume(Capsule(1.2, 0.3, (0.5, 0.0, -1.0), (1.0, 2.0, 0.5)), 0.01, 0.1), 11)
    _check_maximal(CylinderSTPBoundingVolume(Cylinder(1.0, 0.4, (0.0, 0.0, 0.0), (0.0, 1.0, 1.0)), 0.01, 0.1), 12)


def test_icosphere_margins():
    sphere_mesh = icosphere_polytope(0.5, subdivisions=1)
    _check_margins(ConvexPolytope3DSTPBoundingVolume(sphere_mesh, R_MIN, R_MAX), sphere_mesh, 13)


def test_polytope_matches_box_volume():
    """A cube mesh and a Box get the same rounding at face centers."""
    box = Box((0.5, 0.5, 0.5))
    a = BoxSTPBoundingVolume(box, R_MIN, R_MAX)
    b = ConvexPolytope3DSTPBoundingVolume(box_polytope((0.5, 0.5, 0.5)), R_MIN, R_MAX)
    for d in np.eye(3):
        np.testing.assert_allclose(a.support(d), b.support(d), atol=1e-12)


def test_infeasible_margin_is_clamped(caplog):
    box = Box((0.1, 0.1, 0.1))
    with caplog.at_level(logging.WARNING, logger="collision3d.collision.stp"):
        stp = BoxSTPBoundingVolume(box, 1e-3, 0.5)
    assert any("infeasible" in record.getMessage() for record in caplog.records)
    L = np.sqrt(0.08)
    g = 1e-3 + 0.99 * 0.5 * L
    expected = (1e-6 - g * g - 0.25 * L * L) / (2.0 * (1e-3 - g))
    assert stp.large_radius == pytest.approx(expected)
    assert stp.maximum_margin == 0.5


def test_invalid_margins_raise():
    box = Box((1.0, 1.0, 1.0))
    with pytest.raises(ValueError):
        BoxSTPBoundingVolume(box, -1e-3, 1e-2)
    with pytest.raises(ValueError):
        BoxSTPBoundingVolume(box, 1e-2, 1e-2)
    stp = BoxSTPBoundingVolume(box)
    with pytest.raises(ValueError):
        stp.set_margins(0.1, 0.05)


def test_factory_dispatch():
    assert isinstance(new_stp_bounding_volume(Box((1.0, 1.0, 1.0))), BoxSTPBoundingVolume)
    assert isinstance(new_stp_bounding_volume(Ramp((1.0, 1.0, 1.0))), RampSTPBoundingVolume)
    assert isinstance(new_stp_bounding_volume(Capsule(1.0, 0.2)), CapsuleSTPBoundingVolume)
    assert isinstance(new_stp_bounding_volume(Cylinder(1.0, 0.2)), CylinderSTPBoundingVolume)
    assert isinstance(new_stp_bounding_volume(box_polytope((1.0, 1.0, 1.0))), ConvexPolytope3DSTPBoundingVolume)
    sphere = Sphere(1.0)
    ellipsoid = Ellipsoid((1.0, 2.0, 3.0))
    assert new_stp_bounding_volume(sphere) is sphere
    assert new_stp_bounding_volume(ellipsoid) is ellipsoid
    with pytest.raises(TypeError):
        new_stp_bounding_volume(object())


def test_gjk_on_stp_volume():
    """Distance to a rounded box is the box distance minus the face margin."""
    box = Box((0.5, 0.5, 0.5))
    sphere = Sphere(0.5, (0.0, 0.0, 2.0))
    detector = GJKCollisionDetector()
    result = detector.evaluate_collision(new_stp_bounding_volume(box), sphere)
    assert not result.colliding
    assert result.signed_distance == pytest.approx(1.0 - R_MAX, abs=1e-6)

import numpy as np
import pytest
from collision3d.collision import CollisionResult, ExpandingPolytopeAlgorithm, evaluate_collision
from collision3d.polytope import ConvexPolytope3D, box_polytope
from collision3d.profiler import Profiler
from collision3d.transform import RigidTransform
from collision3d.types import Box, Capsule, Cylinder, Ellipsoid, Sphere


def test_scenario_overlapping_spheres():
    """Unit spheres one apart overlap by one, pushed apart along +x."""
    epa = ExpandingPolytopeAlgorithm()
    result = epa.evaluate_collision(Sphere(1.0, (0.0, 0.0, 0.0)), Sphere(1.0, (1.0, 0.0, 0.0)))
    print("sphere depth", result.depth, "iterations", epa.number_of_iterations)
    assert result.colliding
    assert result.depth == pytest.approx(1.0, abs=1e-4)
    np.testing.assert_allclose(result.normal_on_a, (1.0, 0.0, 0.0), atol=1e-3)
    np.testing.assert_allclose(result.normal_on_b, -result.normal_on_a)
    np.testing.assert_allclose(result.point_on_a, (1.0, 0.0, 0.0), atol=1e-2)
    np.testing.assert_allclose(result.point_on_b, (0.0, 0.0, 0.0), atol=1e-2)


def test_one_call_sphere_pair():
    result = evaluate_collision(Sphere(1.0), Sphere(1.0, (1.0, 0.0, 0.0)))
    assert result.colliding
    assert result.signed_distance == pytest.approx(-1.0)
    np.testing.assert_allclose(result.point_on_a - result.point_on_b, result.depth * result.normal_on_a)


def test_box_box_penetration():
    a = Box((1.0, 1.0, 1.0))
    b = Box((1.0, 1.0, 1.0), RigidTransform.from_translation((1.5, 0.2, 0.1)))
    epa = ExpandingPolytopeAlgorithm()
    result = epa.evaluate_collision(a, b)
    assert result.colliding
    assert result.depth == pytest.approx(0.5, abs=1e-9)
    np.testing.assert_allclose(result.normal_on_a, (1.0, 0.0, 0.0), atol=1e-9)
    assert epa.closest_face is not None
    epa.polytope.validate()


def test_penetration_consistency():
    """Moving B by depth along the normal leaves the shapes just touching."""
    pairs = [
        (Box((1.0, 0.7, 0.5), RigidTransform.from_euler("z", 0.3)),
         Box((0.6, 0.6, 0.6), RigidTransform.from_euler("xy", (0.2, 0.5), translation=(1.2, 0.3, 0.2)))),
        (box_polytope((1.0, 1.0, 1.0)), Capsule(1.0, 0.5, (0.2, 0.1, 1.3), (1.0, 1.0, 0.0))),
        (Sphere(1.0, (0.0, 0.0, 0.0)), box_polytope((0.5, 0.5, 0.5), RigidTransform.from_translation((1.0, 0.4, 0.0)))),
    ]
    epa = ExpandingPolytopeAlgorithm()
    for a, b in pairs:
        result = epa.evaluate_collision(a, b)
        assert result.colliding
        np.testing.assert_allclose(result.point_on_a - result.point_on_b, result.depth * result.normal_on_a, atol=1e-6)

        moved = b.copy()
        moved.apply_transform(RigidTransform.from_translation(result.depth * result.normal_on_a))
        touching = epa.evaluate_collision(a, moved)
        print("residual", touching.signed_distance)
        assert abs(touching.signed_distance) < 1e-4


def test_symmetry_of_penetration():
    a = Box((1.0, 1.0, 1.0))
    b = Box((1.0, 1.0, 1.0), RigidTransform.from_translation((1.5, 0.2, 0.1)))
    epa = ExpandingPolytopeAlgorithm()
    ab = epa.evaluate_collision(a, b)
    ba = epa.evaluate_collision(b, a)
    assert ab.colliding and ba.colliding
    assert ab.signed_distance == pytest.approx(ba.signed_distance, abs=1e-9)
    np.testing.assert_allclose(ab.normal_on_a, ba.normal_on_b, atol=1e-9)


def _overlapping_pairs(seed, count):
    """Random primitives placed close enough to each other to mostly overlap."""
    rng = np.random.default_rng(seed)

    def shape(center):
        pose = RigidTransform.random(rng, max_translation=0.0)
        pose = RigidTransform.from_translation(center) @ pose
        kind = rng.integers(5)
        if kind == 0:
            return Sphere(rng.uniform(0.3, 1.0), center)
        if kind == 1:
            return Box(rng.uniform(0.3, 1.0, size=3), pose)
        if kind == 2:
            return Capsule(rng.uniform(0.3, 1.5), rng.uniform(0.2, 0.6), center, rng.normal(size=3))
        if kind == 3:
            return Cylinder(rng.uniform(0.3, 1.5), rng.uniform(0.2, 0.6), center, rng.normal(size=3))
        return Ellipsoid(rng.uniform(0.3, 1.0, size=3), pose)

    return [(shape(np.zeros(3)), shape(rng.uniform(-0.6, 0.6, size=3))) for _ in range(count)]


def test_random_overlaps_are_symmetric_and_consistent():
    """Mixed primitive overlaps: same depth both ways, unit normals, and touching once B is pushed out."""
    epa = ExpandingPolytopeAlgorithm()
    checked = 0
    for a, b in _overlapping_pairs(7, 80):
        ab = epa.evaluate_collision(a, b)
        ba = epa.evaluate_collision(b, a)
        assert ab.colliding == ba.colliding
        if not ab.colliding:
            continue
        checked += 1
        assert ab.signed_distance == pytest.approx(ba.signed_distance, abs=1e-3)
        assert ab.depth > 0.0
        assert np.linalg.norm(ab.normal_on_a) == pytest.approx(1.0, abs=1e-9)
        assert np.linalg.norm(ba.normal_on_a) == pytest.approx(1.0, abs=1e-9)
        for f in epa.polytope.face_indices():
            assert np.linalg.norm(epa.polytope.face(f).normal) == pytest.approx(1.0, abs=1e-9)

        moved = b.copy()
        moved.apply_transform(RigidTransform.from_translation(ab.depth * ab.normal_on_a))
        touching = epa.evaluate_collision(a, moved)
        assert abs(touching.signed_distance) < 1e-3, (type(a).__name__, type(b).__name__, touching.signed_distance)
    print("overlapping pairs checked", checked)
    assert checked > 30


def test_separated_pair_is_plain_gjk():
    epa = ExpandingPolytopeAlgorithm()
    result = epa.evaluate_collision(Sphere(1.0), Sphere(1.0, (3.0, 0.0, 0.0)))
    assert not result.colliding
    assert result.signed_distance == pytest.approx(1.0, abs=1e-9)
    assert epa.number_of_iterations == 0


def test_empty_shape_is_not_colliding():
    result = ExpandingPolytopeAlgorithm().evaluate_collision(Sphere(1.0), ConvexPolytope3D())
    assert not result.colliding
    assert np.isnan(result.signed_distance)


def test_result_reuse_and_profiler():
    profiler = Profiler()
    epa = ExpandingPolytopeAlgorithm(profiler=profiler)
    result = CollisionResult()
    a = Box((1.0, 1.0, 1.0))
    b = Box((1.0, 1.0, 1.0), RigidTransform.from_translation((1.5, 0.2, 0.1)))
    assert epa.evaluate_collision_into(a, b, result)
    first = result.copy()
    assert epa.evaluate_collision_into(a, b, result)
    assert first.epsilon_equals(result, 0.0)
    assert result.shape_a is a and result.shape_b is b
    stats = profiler.stats.summary()
    assert stats["epa"]["n"] == 2
    assert stats["gjk"]["n"] == 2

    profiler.reset()
    assert profiler.stats.summary() == {}
    assert epa.evaluate_collision_into(a, b, result)
    assert profiler.stats.summary()["epa"]["n"] == 1


def test_bad_iteration_cap():
    with pytest.raises(ValueError):
        ExpandingPolytopeAlgorithm(max_iterations=0)

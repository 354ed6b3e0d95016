import numpy as np
import pytest
from collision3d.collision import CollisionResult, GJKCollisionDetector
from collision3d.collision.gjk import direction_unchanged
from collision3d.collision.simplex import SimplexVertex, closest_from_segment, closest_from_triangle
from collision3d.polytope import ConvexPolytope3D, box_polytope, icosphere_polytope
from collision3d.profiler import Profiler
from collision3d.transform import RigidTransform
from collision3d.types import Box, Capsule, Cylinder, Ellipsoid, Ramp, Sphere


def _vertex(p):
    return SimplexVertex(np.asarray(p, dtype=np.float64), np.zeros(3))


def test_segment_reduction():
    s = closest_from_segment(_vertex((-3.0, 1.0, 0.0)), _vertex((1.0, 1.0, 0.0)))
    assert s.num_vertices == 2
    np.testing.assert_allclose(s.closest_point, (0.0, 1.0, 0.0), atol=1e-12)
    assert sum(s.lambdas) == pytest.approx(1.0)

    s = closest_from_segment(_vertex((1.0, 1.0, 0.0)), _vertex((3.0, 1.0, 0.0)))
    assert s.num_vertices == 1
    np.testing.assert_allclose(s.closest_point, (1.0, 1.0, 0.0))


def test_triangle_reduction():
    s = closest_from_triangle(_vertex((1.0, -1.0, 2.0)), _vertex((-1.0, -1.0, 2.0)), _vertex((0.0, 2.0, 2.0)))
    assert s.num_vertices == 3
    np.testing.assert_allclose(s.closest_point, (0.0, 0.0, 2.0), atol=1e-12)
    assert s.distance_squared == pytest.approx(4.0)


def test_scenario_spheres_apart():
    """Unit spheres 3 apart: distance 1, witness points on the facing poles."""
    detector = GJKCollisionDetector()
    result = detector.evaluate_collision(Sphere(1.0, (0.0, 0.0, 0.0)), Sphere(1.0, (3.0, 0.0, 0.0)))
    assert not result.colliding
    assert result.signed_distance == pytest.approx(1.0, abs=1e-9)
    np.testing.assert_allclose(result.point_on_a, (1.0, 0.0, 0.0), atol=1e-9)
    np.testing.assert_allclose(result.point_on_b, (2.0, 0.0, 0.0), atol=1e-9)
    np.testing.assert_allclose(result.normal_on_a, (1.0, 0.0, 0.0), atol=1e-9)
    np.testing.assert_allclose(result.normal_on_b, (-1.0, 0.0, 0.0), atol=1e-9)


def test_scenario_box_and_sphere():
    detector = GJKCollisionDetector()
    result = detector.evaluate_collision(Box((1.0, 1.0, 1.0)), Sphere(1.0, (0.0, 0.0, 3.0)))
    print("box-sphere", result.signed_distance, "iterations", detector.number_of_iterations)
    assert not result.colliding
    assert result.signed_distance == pytest.approx(1.0, abs=1e-6)
    np.testing.assert_allclose(result.point_on_b, (0.0, 0.0, 2.0), atol=1e-5)
    assert result.point_on_a[2] == pytest.approx(1.0, abs=1e-6)


def test_overlapping_shapes_collide():
    detector = GJKCollisionDetector()
    result = detector.evaluate_collision(Sphere(1.0), Sphere(1.0, (1.0, 0.0, 0.0)))
    assert result.colliding
    # GJK alone knows nothing about the penetration
    assert np.isnan(result.signed_distance)
    assert detector.simplex is not None


def _random_pairs(seed):
    rng = np.random.default_rng(seed)
    shapes = []
    for _ in range(12):
        pose = RigidTransform.random(rng, max_translation=4.0)
        kind = rng.integers(6)
        if kind == 0:
            shapes.append(Sphere(rng.uniform(0.2, 1.0), pose.translation))
        elif kind == 1:
            shapes.append(Box(rng.uniform(0.2, 1.0, size=3), pose))
        elif kind == 2:
            shapes.append(Capsule(rng.uniform(0.2, 1.5), rng.uniform(0.1, 0.6), pose.translation, rng.normal(size=3)))
        elif kind == 3:
            shapes.append(Cylinder(rng.uniform(0.2, 1.5), rng.uniform(0.1, 0.6), pose.translation, rng.normal(size=3)))
        elif kind == 4:
            shapes.append(Ellipsoid(rng.uniform(0.2, 1.0, size=3), pose))
        else:
            shapes.append(Ramp(rng.uniform(0.3, 1.5, size=3), pose))
    return [(a, b) for i, a in enumerate(shapes) for b in shapes[i + 1:]]


def test_separation_consistency():
    """For separated pairs: distance = |pA - pB|, unit antiparallel normals along pB - pA."""
    detector = GJKCollisionDetector()
    result = CollisionResult()
    checked = 0
    for a, b in _random_pairs(5):
        if detector.evaluate_collision_into(a, b, result):
            continue
        checked += 1
        gap = result.point_on_b - result.point_on_a
        assert result.signed_distance == pytest.approx(np.linalg.norm(gap), abs=1e-9)
        assert np.linalg.norm(result.normal_on_a) == pytest.approx(1.0)
        np.testing.assert_allclose(result.normal_on_b, -result.normal_on_a)
        np.testing.assert_allclose(result.normal_on_a * result.signed_distance, gap, atol=1e-9)
        # the witness points are real support points: nothing of B lies beyond the separating plane
        n = result.normal_on_a
        assert np.dot(a.support(n), n) <= np.dot(result.point_on_a, n) + 1e-6
        assert np.dot(b.support(-n), n) >= np.dot(result.point_on_b, n) - 1e-6
    assert checked > 10


def test_symmetry():
    detector = GJKCollisionDetector()
    for a, b in _random_pairs(9):
        ab = detector.evaluate_collision(a, b)
        ba = detector.evaluate_collision(b, a)
        assert ab.colliding == ba.colliding
        if not ab.colliding:
            assert ab.signed_distance == pytest.approx(ba.signed_distance, abs=1e-6)
            np.testing.assert_allclose(ab.point_on_b - ab.point_on_a, ba.point_on_a - ba.point_on_b, atol=1e-5)


def test_idempotence():
    """Same inputs on the same detector give bit-identical results."""
    detector = GJKCollisionDetector()
    a = Box((1.0, 0.5, 0.25), RigidTransform.from_euler("xyz", (0.1, 0.2, 0.3)))
    b = Ellipsoid((0.5, 0.7, 0.3), RigidTransform.from_euler("z", 1.0, translation=(2.0, 1.0, -0.5)))
    first = CollisionResult()
    detector.evaluate_collision_into(a, b, first)
    iterations = detector.number_of_iterations
    second = CollisionResult()
    detector.evaluate_collision(Sphere(0.1), Sphere(0.1, (5.0, 0.0, 0.0)))
    detector.evaluate_collision_into(a, b, second)
    assert first.epsilon_equals(second, 0.0)
    assert detector.number_of_iterations == iterations


def test_polytope_matches_primitive():
    """A box polytope and a Box have the same distance to anything."""
    pose = RigidTransform.from_euler("xyz", (0.3, -0.4, 0.2), translation=(0.2, 0.1, -0.3))
    box = Box((1.0, 0.5, 0.8), pose)
    mesh = box_polytope((1.0, 0.5, 0.8), pose)
    ball = icosphere_polytope(0.5, subdivisions=2, center=(2.5, 1.0, 1.0))
    detector = GJKCollisionDetector()
    d_box = detector.evaluate_collision(box, ball).signed_distance
    d_mesh = detector.evaluate_collision(mesh, ball).signed_distance
    assert d_box == pytest.approx(d_mesh, abs=1e-9)


def test_empty_shape_gives_sentinel():
    detector = GJKCollisionDetector()
    result = detector.evaluate_collision(ConvexPolytope3D(), Sphere(1.0))
    assert not result.colliding
    assert result.contains_nan()


def test_initial_direction_hint_is_consumed():
    detector = GJKCollisionDetector()
    a, b = Sphere(1.0), Sphere(1.0, (3.0, 0.0, 0.0))
    detector.set_initial_support_direction((0.0, 0.0, 1.0))
    hinted = detector.evaluate_collision(a, b)
    assert detector.workspace.initial_direction is None
    assert hinted.signed_distance == pytest.approx(1.0, abs=1e-9)
    detector.evaluate_collision(a, b)
    assert detector.number_of_iterations == 1


def test_settings_validation_and_profiler():
    profiler = Profiler()
    detector = GJKCollisionDetector(profiler=profiler)
    with pytest.raises(ValueError):
        detector.max_iterations = 0
    detector.max_iterations = 50
    detector.evaluate_collision(Box((1.0, 1.0, 1.0)), Sphere(1.0, (0.0, 0.0, 3.0)))
    stats = profiler.stats.summary()
    assert stats["gjk"]["n"] == 1
    assert 1 <= stats["gjk_iterations"]["max"] <= 50


def test_direction_unchanged_within_round_off():
    d = np.array([0.3, -1.2, 2.5])
    assert direction_unchanged(d, 4.0 * d)
    assert direction_unchanged(d, d + np.array([1e-15, -2e-15, 0.0]))
    assert not direction_unchanged(d, d + np.array([0.0, 1e-6, 0.0]))
    assert not direction_unchanged(d, -d)

import numpy as np
import pytest
from collision3d.frames import FrameShape, ReferenceFrame
from collision3d.transform import RigidTransform
from collision3d.types import Box, Sphere


def test_euler_rotation_and_translation():
    T = RigidTransform.from_euler("z", 90.0, translation=(1.0, 0.0, 0.0), degrees=True)
    np.testing.assert_allclose(T.transform_point((1.0, 0.0, 0.0)), (1.0, 1.0, 0.0), atol=1e-12)
    np.testing.assert_allclose(T.transform_vector((1.0, 0.0, 0.0)), (0.0, 1.0, 0.0), atol=1e-12)


def test_inverse_and_composition():
    rng = np.random.default_rng(11)
    A = RigidTransform.random(rng, max_translation=3.0)
    B = RigidTransform.random(rng, max_translation=3.0)
    assert (A @ A.inverse()).is_identity(1e-12)
    p = rng.normal(size=3)
    np.testing.assert_allclose((A @ B).transform_point(p), A.transform_point(B.transform_point(p)), atol=1e-12)
    np.testing.assert_allclose(A.inverse_transform_point(A.transform_point(p)), p, atol=1e-12)
    np.testing.assert_allclose(A.rotation @ A.rotation.T, np.eye(3), atol=1e-12)
    assert np.linalg.det(A.rotation) == pytest.approx(1.0)


def test_quaternion_round_trip():
    q = np.array([0.1, -0.3, 0.2, 0.9])
    q /= np.linalg.norm(q)
    T = RigidTransform.from_quaternion(q)
    out = T.as_quaternion()
    assert min(np.linalg.norm(out - q), np.linalg.norm(out + q)) < 1e-12


def test_frame_tree_transforms():
    world = ReferenceFrame.world()
    a = world.child("a", RigidTransform.from_translation((1.0, 0.0, 0.0)))
    b = a.child("b", RigidTransform.from_euler("z", 90.0, degrees=True))
    c = world.child("c", RigidTransform.from_translation((0.0, 0.0, 2.0)))

    np.testing.assert_allclose(b.transform_to(world).transform_point((1.0, 0.0, 0.0)), (1.0, 1.0, 0.0), atol=1e-12)
    np.testing.assert_allclose(b.transform_to(c).transform_point((0.0, 0.0, 0.0)), (1.0, 0.0, -2.0), atol=1e-12)
    assert b.transform_to(c).epsilon_equals(c.transform_to(b).inverse(), 1e-12)
    assert b.root is world
    assert b.transform_to(b).is_identity()


def test_frames_of_different_trees():
    a = ReferenceFrame.world("a")
    b = ReferenceFrame.world("b")
    with pytest.raises(ValueError):
        a.transform_to(b)
    with pytest.raises(ValueError):
        a.update_transform_to_parent(RigidTransform.identity())


def test_moving_a_frame_moves_its_children():
    world = ReferenceFrame.world()
    parent = world.child("parent")
    child = parent.child("child", RigidTransform.from_translation((0.0, 1.0, 0.0)))
    parent.update_transform_to_parent(RigidTransform.from_translation((5.0, 0.0, 0.0)))
    np.testing.assert_allclose(child.transform_to_root().translation, (5.0, 1.0, 0.0))
    assert world.is_root and not child.is_root
    assert child.root is world
    with pytest.raises(ValueError):
        world.update_transform_to_parent(RigidTransform.identity())


def test_frame_shape_change_frame_copies():
    world = ReferenceFrame.world()
    frame = world.child("f", RigidTransform.from_translation((0.0, 0.0, 3.0)))
    sphere = FrameShape(Sphere(1.0), frame)
    moved = sphere.change_frame(world)
    np.testing.assert_allclose(moved.shape.center, (0.0, 0.0, 3.0))
    np.testing.assert_allclose(sphere.shape.center, np.zeros(3))

    box = FrameShape(Box((1.0, 1.0, 1.0)), frame).change_frame(world)
    np.testing.assert_allclose(box.shape.pose.translation, (0.0, 0.0, 3.0))

# examples/frames_penetration.py
from collision3d import FrameCollisionDetector, FrameShape, ReferenceFrame
from collision3d.polytope import box_polytope, icosphere_polytope
from collision3d.transform import RigidTransform

world = ReferenceFrame.world()
arm = world.child("arm", RigidTransform.from_euler("y", 20.0, translation=(0.0, 0.0, 1.0), degrees=True))
gripper = arm.child("gripper", RigidTransform.from_translation((0.8, 0.0, 0.0)))

table = FrameShape(box_polytope((2.0, 2.0, 0.5), RigidTransform.from_translation((0.0, 0.0, -0.5))), world)
finger = FrameShape(icosphere_polytope(0.2, subdivisions=2), gripper)

detector = FrameCollisionDetector(reporting_frame=world)
for drop in (0.0, 0.4, 0.8, 1.2):
    arm.update_transform_to_parent(
        RigidTransform.from_euler("y", 20.0, translation=(0.0, 0.0, 1.0 - drop), degrees=True)
    )
    result = detector.evaluate_collision(finger, table)
    print("drop:", drop, "colliding:", result.colliding, "signed distance:", round(result.signed_distance, 6))
    print("  normal on finger:", result.normal_on_a)

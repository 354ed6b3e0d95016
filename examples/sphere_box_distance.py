# examples/sphere_box_distance.py
from collision3d import Box, Sphere, evaluate_collision
from collision3d.transform import RigidTransform

box = Box(half_extents=(1.0, 1.0, 1.0), pose=RigidTransform.from_euler("z", 30.0, degrees=True))

for height in (4.0, 3.0, 2.5, 1.5):
    ball = Sphere(radius=1.0, center=(0.0, 0.0, height))
    result = evaluate_collision(box, ball)
    print("height:", height, "colliding:", result.colliding, "signed distance:", round(result.signed_distance, 6))
    print("  on box:", result.point_on_a, "on ball:", result.point_on_b)

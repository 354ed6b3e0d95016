"""
Microbenchmark: time per query vs shape pair and algorithm.
Run:
  python benchmarks/bench_queries.py
"""
import time
import numpy as np
from collision3d.collision import ExpandingPolytopeAlgorithm, GJKCollisionDetector, new_stp_bounding_volume
from collision3d.polytope import box_polytope, icosphere_polytope
from collision3d.profiler import Profiler
from collision3d.transform import RigidTransform
from collision3d.types import Box, Capsule, Ellipsoid, Sphere


def make_pairs(n: int, seed: int = 12345):
    rng = np.random.default_rng(seed)  # determinism (no randomness elsewhere)
    mesh = icosphere_polytope(0.5, subdivisions=2)
    pairs = []
    for _ in range(n):
        pose = RigidTransform.random(rng, max_translation=1.5)
        other = mesh.copy()
        other.apply_transform(pose)
        pairs.append(("box/ellipsoid", Box((0.5, 0.4, 0.3)), Ellipsoid((0.4, 0.3, 0.5), pose)))
        pairs.append(("capsule/sphere", Capsule(1.0, 0.3), Sphere(0.5, pose.translation)))
        pairs.append(("mesh/mesh", box_polytope((0.5, 0.5, 0.5)), other))
        pairs.append(("stp/box", new_stp_bounding_volume(Box((0.5, 0.5, 0.5))), Box((0.3, 0.3, 0.3), pose)))
    return pairs


def run(detector, pairs, repeats: int = 5):
    timings = {}
    for _ in range(repeats):
        for name, a, b in pairs:
            t0 = time.perf_counter()
            detector.evaluate_collision(a, b)
            t1 = time.perf_counter()
            timings.setdefault(name, []).append(t1 - t0)
    return {name: float(np.mean(ts)) for name, ts in timings.items()}


if __name__ == "__main__":
    pairs = make_pairs(50)
    for label, cls in [("GJK", GJKCollisionDetector), ("EPA", ExpandingPolytopeAlgorithm)]:
        prof = Profiler()
        detector = cls(profiler=prof)
        means = run(detector, pairs)
        print(label)
        for name, t in means.items():
            print(f"  {name:16s} query={1e6*t:8.1f} us")
        summary = prof.stats.summary()
        # print top sections
        for k in ["gjk", "gjk_iterations", "epa", "epa_iterations"]:
            if k in summary:
                print(" ", k, summary[k])
        print()

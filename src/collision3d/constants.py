# MIT License (see LICENSE)
"""
Default tolerances and iteration caps used by the collision algorithms.

Every detector takes keyword arguments that override these values; the
constants only document the defaults in one place.
"""
from __future__ import annotations

# Safety valve on the GJK loop. Convergence normally takes a handful of
# iterations; the cap only matters for pathological inputs.
GJK_MAX_ITERATIONS: int = 1000

# GJK stops once an iteration improves the squared distance by less than
# this fraction of it: |v|² - v·w <= eps·|v|².
GJK_TERMINAL_EPSILON: float = 1.0e-12

# Below this distance to the origin a triangle simplex searches along its
# normal instead of -v, whose direction is no longer reliable.
GJK_TRIANGLE_NORMAL_SWITCH_EPSILON: float = 1.0e-10

# GJK gives up when the next search direction differs from the current one
# by less than this squared distance between the unit directions.
GJK_DIRECTION_UNCHANGED_EPSILON: float = 1.0e-20

# Tolerance for comparing the sign of the sub-simplex determinants in the
# signed-volume reduction.
SIMPLEX_ZERO_EPSILON: float = 1.0e-13

# Initial search direction when no hint and no centroid guess are usable.
DEFAULT_SUPPORT_DIRECTION: tuple[float, float, float] = (0.0, 1.0, 0.0)

EPA_MAX_ITERATIONS: int = 1000

# EPA stops when a new support point improves the closest face distance by
# less than eps·max(1, distance).
EPA_TERMINAL_EPSILON: float = 1.0e-10

# Distance under which a point counts as lying on a polytope face.
POLYTOPE_CONSTRUCTION_EPSILON: float = 1.0e-10

# Default margins of the sphere-torus-patches bounding volumes.
STP_MINIMUM_MARGIN: float = 1.0e-3
STP_MAXIMUM_MARGIN: float = 1.0e-2

# Fraction of the largest feasible margin gap used when the requested
# margins cannot be realized.
STP_MARGIN_CLAMP_FACTOR: float = 0.99

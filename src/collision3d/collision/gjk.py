# MIT License (see LICENSE)
"""
Gilbert-Johnson-Keerthi (GJK) algorithm for convex distance queries in 3D.

GJK works on the Minkowski difference D = A - B, which contains the origin
iff A and B intersect. Each iteration queries the support point of D
towards the origin and reduces the simplex to the sub-simplex closest to it
(see simplex.py). When the shapes are separated the loop converges to the
point v of D closest to the origin: |v| is the separation distance and the
barycentric weights of v give the witness points on A and B.

Key concepts:
- Support function: the farthest point of a shape in a given direction.
- Simplex: 1-4 points of D whose hull contains the current closest point.
- Terminal condition: |v|² - v·w <= eps·|v|², i.e. the new support point w
  cannot bring the simplex meaningfully closer to the origin.

Usage:
    detector = GJKCollisionDetector()
    result = detector.evaluate_collision(sphere, box)
    if not result.colliding:
        print(result.signed_distance)
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from ..constants import (
    DEFAULT_SUPPORT_DIRECTION,
    GJK_DIRECTION_UNCHANGED_EPSILON,
    GJK_MAX_ITERATIONS,
    GJK_TERMINAL_EPSILON,
    GJK_TRIANGLE_NORMAL_SWITCH_EPSILON,
)
from ..profiler import Profiler
from ..types import SupportingVertexHolder
from ..util import dot, f64, is_finite, norm2, unit
from .result import CollisionResult
from .simplex import Simplex, SimplexVertex, simplex_closest_to_origin

logger = logging.getLogger(__name__)


@dataclass
class GJKSettings:
    """Tunable parameters of the GJK loop."""
    max_iterations: int = GJK_MAX_ITERATIONS
    terminal_epsilon: float = GJK_TERMINAL_EPSILON
    triangle_normal_switch_epsilon: float = GJK_TRIANGLE_NORMAL_SWITCH_EPSILON


@dataclass
class GJKWorkspace:
    """
    Scratch state of one GJK query, reused across queries.

    Attributes:
        simplex: Last simplex of the loop, None before the first iteration.
        support_direction: Last direction used to query the support functions.
        initial_direction: One-shot hint for the next query, or None.
        iterations: Number of iterations performed by the last query.
    """
    simplex: Simplex | None = None
    support_direction: np.ndarray = field(default_factory=lambda: np.full(3, np.nan))
    initial_direction: np.ndarray | None = None
    iterations: int = 0

    def reset(self) -> None:
        self.simplex = None
        self.support_direction = np.full(3, np.nan)
        self.iterations = 0


def minkowski_support(
    shape_a: SupportingVertexHolder, shape_b: SupportingVertexHolder, direction: np.ndarray
) -> SimplexVertex | None:
    """
    Support point of A - B along `direction`: supA(d) - supB(-d).

    Returns:
        The simplex vertex, or None if either shape has no geometry.
    """
    point_on_a = shape_a.support(direction)
    if point_on_a is None:
        return None
    point_on_b = shape_b.support(-direction)
    if point_on_b is None:
        return None
    return SimplexVertex(f64(point_on_a), f64(point_on_b))


def initial_support_direction(
    shape_a: Any, shape_b: Any, workspace: GJKWorkspace
) -> np.ndarray:
    """
    Pick the first search direction.

    Uses (and clears) the workspace hint if set, otherwise the centroid
    difference centroid(B) - centroid(A), otherwise a fixed axis.
    """
    hint = workspace.initial_direction
    workspace.initial_direction = None
    if hint is not None and is_finite(hint) and norm2(hint) > 0.0:
        return f64(hint)
    centroid_a = getattr(shape_a, "centroid", None)
    centroid_b = getattr(shape_b, "centroid", None)
    if centroid_a is not None and centroid_b is not None:
        guess = f64(centroid_b) - f64(centroid_a)
        if is_finite(guess) and norm2(guess) > 1e-24:
            return guess
    return f64(DEFAULT_SUPPORT_DIRECTION)


def direction_unchanged(new: np.ndarray, old: np.ndarray) -> bool:
    """True if two search directions agree up to round-off."""
    return norm2(unit(new) - unit(old)) <= GJK_DIRECTION_UNCHANGED_EPSILON


def run_gjk(
    shape_a: SupportingVertexHolder,
    shape_b: SupportingVertexHolder,
    workspace: GJKWorkspace,
    settings: GJKSettings,
) -> bool | None:
    """
    Run the GJK loop.

    Args:
        shape_a: Shape A (support function provider).
        shape_b: Shape B (support function provider).
        workspace: Scratch state; holds the final simplex afterwards.
        settings: Loop parameters.

    Returns:
        True if colliding, False if separated, None if a shape is empty.
    """
    direction = initial_support_direction(shape_a, shape_b, workspace)
    workspace.reset()
    vertices: list[SimplexVertex] = []
    simplex: Simplex | None = None
    eps = settings.terminal_epsilon

    for iteration in range(settings.max_iterations):
        workspace.iterations = iteration + 1
        workspace.support_direction = direction
        vertex = minkowski_support(shape_a, shape_b, direction)
        if vertex is None:
            return None

        if simplex is not None:
            distance_squared = simplex.distance_squared
            if distance_squared - dot(simplex.closest_point, vertex.point) <= eps * distance_squared:
                return False
            if simplex.contains(vertex):
                return False

        reduced = simplex_closest_to_origin(vertices, vertex)
        if reduced is None:
            # Degenerate simplex with the origin on it; trust the last good one.
            return simplex is None or simplex.distance_squared <= eps * simplex.max_distance_squared
        simplex = reduced
        workspace.simplex = simplex

        if simplex.num_vertices == 4:
            return True
        if simplex.distance_squared <= eps * simplex.max_distance_squared:
            return True

        vertices = simplex.vertices
        if (
            simplex.num_vertices == 3
            and simplex.distance_squared < settings.triangle_normal_switch_epsilon ** 2
        ):
            new_direction = simplex.triangle_normal()
        else:
            new_direction = -simplex.closest_point
        if direction_unchanged(new_direction, direction):
            return False
        direction = new_direction

    logger.debug("GJK reached the iteration cap (%d)", settings.max_iterations)
    return False


class GJKCollisionDetector:
    """
    Distance and intersection queries between two convex shapes.

    The detector owns its workspace: an instance must not be shared between
    threads, but may be reused for any number of sequential queries.

    Args:
        max_iterations: Safety cap on the GJK loop.
        terminal_epsilon: Relative progress below which the loop stops.
        triangle_normal_switch_epsilon: Distance below which a triangle
            simplex searches along its normal.
        profiler: Optional profiler; times each query under "gjk".
    """

    def __init__(
        self,
        max_iterations: int = GJK_MAX_ITERATIONS,
        terminal_epsilon: float = GJK_TERMINAL_EPSILON,
        triangle_normal_switch_epsilon: float = GJK_TRIANGLE_NORMAL_SWITCH_EPSILON,
        profiler: Profiler | None = None,
    ) -> None:
        self.settings = GJKSettings(max_iterations, terminal_epsilon, triangle_normal_switch_epsilon)
        self.workspace = GJKWorkspace()
        self.profiler = profiler

    # -- configuration ------------------------------------------------------

    @property
    def max_iterations(self) -> int:
        return self.settings.max_iterations

    @max_iterations.setter
    def max_iterations(self, value: int) -> None:
        if value < 1:
            raise ValueError(f"max_iterations must be positive, got {value}")
        self.settings.max_iterations = int(value)

    @property
    def terminal_epsilon(self) -> float:
        return self.settings.terminal_epsilon

    @terminal_epsilon.setter
    def terminal_epsilon(self, value: float) -> None:
        self.settings.terminal_epsilon = float(value)

    @property
    def triangle_normal_switch_epsilon(self) -> float:
        return self.settings.triangle_normal_switch_epsilon

    @triangle_normal_switch_epsilon.setter
    def triangle_normal_switch_epsilon(self, value: float) -> None:
        self.settings.triangle_normal_switch_epsilon = float(value)

    def set_initial_support_direction(self, direction) -> None:
        """Search direction for the next query only (from A's side towards B)."""
        self.workspace.initial_direction = f64(direction)

    # -- diagnostics --------------------------------------------------------

    @property
    def number_of_iterations(self) -> int:
        return self.workspace.iterations

    @property
    def simplex(self) -> Simplex | None:
        return self.workspace.simplex

    @property
    def support_direction(self) -> np.ndarray:
        return self.workspace.support_direction.copy()

    # -- queries ------------------------------------------------------------

    def evaluate_collision(
        self,
        shape_a: SupportingVertexHolder,
        shape_b: SupportingVertexHolder,
        result: CollisionResult | None = None,
    ) -> CollisionResult:
        """Run a query and return the result (allocated if not given)."""
        if result is None:
            result = CollisionResult()
        self.evaluate_collision_into(shape_a, shape_b, result)
        return result

    def evaluate_collision_into(
        self,
        shape_a: SupportingVertexHolder,
        shape_b: SupportingVertexHolder,
        result: CollisionResult,
    ) -> bool:
        """
        Run a query, overwrite `result` in place and return whether the shapes collide.

        For colliding shapes GJK alone does not know the penetration, so the
        distance, points and normals are NaN; use ExpandingPolytopeAlgorithm
        for those.
        """
        if self.profiler is not None:
            with self.profiler.section("gjk"):
                colliding = run_gjk(shape_a, shape_b, self.workspace, self.settings)
            self.profiler.stats.add_count("gjk_iterations", self.workspace.iterations)
        else:
            colliding = run_gjk(shape_a, shape_b, self.workspace, self.settings)
        pack_gjk_result(colliding, self.workspace.simplex, result)
        result.shape_a = shape_a
        result.shape_b = shape_b
        return result.colliding


def pack_gjk_result(colliding: bool | None, simplex: Simplex | None, result: CollisionResult) -> None:
    """Fill `result` from the outcome of run_gjk."""
    result.clear()
    if colliding is None or simplex is None:
        return
    result.colliding = colliding
    if colliding:
        return
    point_on_a, point_on_b = simplex.witness_points()
    result.signed_distance = float(np.sqrt(simplex.distance_squared))
    result.point_on_a[:] = point_on_a
    result.point_on_b[:] = point_on_b
    normal = unit(point_on_b - point_on_a)
    result.normal_on_a[:] = normal
    result.normal_on_b[:] = -normal

# MIT License (see LICENSE)
"""
Doubly-connected edge list records and their index arena.

Vertices, half-edges and faces reference each other by integer index into
arenas owned by a single ConvexPolytope3D, never by object reference. Slots
freed by hull updates are recycled through a free list, so an index stays
valid for as long as the element it names is alive.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Generic, Iterator, TypeVar

import numpy as np

T = TypeVar("T")

NO_INDEX = -1


@dataclass(eq=False)
class Vertex3D:
    """
    Polytope vertex.

    Attributes:
        point: Position [x, y, z].
        edges: Indices of the half-edges whose origin is this vertex.
        data: Optional payload. EPA stores the simplex vertex the point came from.
    """
    point: np.ndarray
    edges: list[int] = field(default_factory=list)
    data: Any = None


@dataclass(eq=False)
class HalfEdge3D:
    """
    Directed edge of exactly one face.

    The face lies on the left of origin -> destination when seen from outside
    the polytope, i.e. face edge cycles are counter-clockwise around the
    outward normal.
    """
    origin: int
    destination: int
    twin: int = NO_INDEX
    next: int = NO_INDEX
    previous: int = NO_INDEX
    face: int = NO_INDEX


@dataclass(eq=False)
class Face3D:
    """
    Planar convex polygon of the polytope boundary.

    Attributes:
        edge: Index of one half-edge of the face's cycle.
        num_edges: Cycle length.
        normal: Outward unit normal.
        centroid: Area-weighted centroid.
        area: Polygon area.
        bbox_min / bbox_max: Axis-aligned bounds of the face vertices.
    """
    edge: int
    num_edges: int = 0
    normal: np.ndarray = field(default_factory=lambda: np.zeros(3))
    centroid: np.ndarray = field(default_factory=lambda: np.zeros(3))
    area: float = 0.0
    bbox_min: np.ndarray = field(default_factory=lambda: np.zeros(3))
    bbox_max: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def signed_distance(self, point: np.ndarray) -> float:
        """Distance from the face plane, positive on the outer side."""
        n = self.normal
        c = self.centroid
        return float(n[0] * (point[0] - c[0]) + n[1] * (point[1] - c[1]) + n[2] * (point[2] - c[2]))


class Arena(Generic[T]):
    """
    Slot storage with stable indices.

    Removed slots are set to None and pushed on a free list; `add` reuses them
    before growing the backing list.
    """

    def __init__(self) -> None:
        self._items: list[T | None] = []
        self._free: list[int] = []
        self._alive = 0

    def add(self, item: T) -> int:
        self._alive += 1
        if self._free:
            index = self._free.pop()
            self._items[index] = item
            return index
        self._items.append(item)
        return len(self._items) - 1

    def remove(self, index: int) -> None:
        if self._items[index] is None:
            raise KeyError(f"slot {index} is already free")
        self._items[index] = None
        self._free.append(index)
        self._alive -= 1

    def __getitem__(self, index: int) -> T:
        item = self._items[index] if 0 <= index < len(self._items) else None
        if item is None:
            raise KeyError(f"no element at index {index}")
        return item

    def __contains__(self, index: int) -> bool:
        return 0 <= index < len(self._items) and self._items[index] is not None

    def __len__(self) -> int:
        return self._alive

    def indices(self) -> list[int]:
        return [i for i, item in enumerate(self._items) if item is not None]

    def items(self) -> Iterator[tuple[int, T]]:
        for i, item in enumerate(self._items):
            if item is not None:
                yield i, item

    def clear(self) -> None:
        self._items.clear()
        self._free.clear()
        self._alive = 0

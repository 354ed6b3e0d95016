# MIT License (see LICENSE)
"""
Simple profiling utilities for collision queries.

Measures the execution time of query phases (GJK, EPA, frame alignment) and
accumulates iteration counts, without external dependencies. Detectors take
an optional Profiler and report into it when one is given.

Example:
    profiler = Profiler()
    detector = ExpandingPolytopeAlgorithm(profiler=profiler)
    detector.evaluate_collision(box, sphere)
    print(profiler.stats.summary())
"""
from __future__ import annotations
import time
from dataclasses import dataclass, field


@dataclass
class ProfileStats:
    """
    Accumulates timing samples and counters for named sections.

    Timing samples are in seconds; counters hold one integer per query
    (typically an iteration count).
    """
    samples: dict[str, list[float]] = field(default_factory=dict)
    counts: dict[str, list[int]] = field(default_factory=dict)

    def add(self, name: str, dt: float) -> None:
        """Record a timing sample (in seconds) for a named section."""
        self.samples.setdefault(name, []).append(dt)

    def add_count(self, name: str, value: int) -> None:
        """Record an integer sample, e.g. the iterations of one query."""
        self.counts.setdefault(name, []).append(int(value))

    def summary(self) -> dict[str, dict[str, float]]:
        """
        Compute summary statistics for all recorded sections.

        Returns:
            Dict mapping section name to a stats dict. Timed sections have
            'n', 'mean_ms' and 'max_ms'; counters have 'n', 'mean' and 'max'.
        """
        out = {}
        for name, times in self.samples.items():
            n = len(times)
            out[name] = {
                "n": n,
                "mean_ms": 1e3 * (sum(times) / n),
                "max_ms": 1e3 * max(times),
            }
        for name, values in self.counts.items():
            n = len(values)
            out[name] = {"n": n, "mean": sum(values) / n, "max": max(values)}
        return out


class Profiler:
    """
    Context-manager based profiler for timing code sections.

    Usage:
        profiler = Profiler()
        with profiler.section("my_query"):
            detector.evaluate_collision(a, b)

        stats = profiler.stats.summary()
        print(f"my_query avg: {stats['my_query']['mean_ms']:.3f}ms")
    """

    def __init__(self) -> None:
        self.stats = ProfileStats()

    def section(self, name: str):
        """
        Return a context manager that times the enclosed code.

        Args:
            name: Identifier for this timed section.
        """
        profiler = self

        class _Section:
            def __enter__(self):
                self.t0 = time.perf_counter()

            def __exit__(self, exc_type, exc, tb):
                elapsed = time.perf_counter() - self.t0
                profiler.stats.add(name, elapsed)

        return _Section()

    def reset(self) -> None:
        """Drop all recorded samples and start a fresh ProfileStats."""
        self.stats = ProfileStats()

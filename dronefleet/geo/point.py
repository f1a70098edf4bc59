"""Planar coordinates for the delivery grid.

The simulation runs on a flat 50 x 50 km grid, so positions are plain
Cartesian points and distances are Euclidean.
"""

from __future__ import annotations

from dataclasses import dataclass
import math


@dataclass(frozen=True)
class Point:
    """Immutable 2D position on the delivery grid (km)."""

    x: float
    y: float

    def distance_to(self, other: Point) -> float:
        """Calculate Euclidean distance to another point."""
        return distance(self, other)

    def towards(self, target: Point, step: float) -> Point:
        """Return the point ``step`` km from here along the line to ``target``.

        The step is capped at the remaining distance, so the result never
        overshoots the target.
        """
        remaining = distance(self, target)
        if remaining == 0.0 or step >= remaining:
            return target
        ratio = step / remaining
        return Point(
            self.x + (target.x - self.x) * ratio,
            self.y + (target.y - self.y) * ratio,
        )

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)

    def __repr__(self) -> str:
        return f"Point({self.x:.2f}, {self.y:.2f})"


def distance(a: Point, b: Point) -> float:
    """Euclidean distance between two points."""
    return math.sqrt((b.x - a.x) ** 2 + (b.y - a.y) ** 2)

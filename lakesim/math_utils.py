"""Math utilities for the lake simulation.

The world is a vertical slice of water: ``x`` runs along the shore and
``depth`` grows downward from the surface. Everything positional in the
simulation uses :class:`Vector2` in that frame.
"""

from __future__ import annotations

import math

GOLDEN_ANGLE = math.pi * (3.0 - math.sqrt(5.0))


class Vector2:
    """A 2D vector in (x, depth) world coordinates."""

    __slots__ = ("x", "depth")

    def __init__(self, x: float = 0.0, depth: float = 0.0) -> None:
        self.x: float = float(x)
        self.depth: float = float(depth)

    def __add__(self, other: "Vector2") -> "Vector2":
        return Vector2(self.x + other.x, self.depth + other.depth)

    def __sub__(self, other: "Vector2") -> "Vector2":
        return Vector2(self.x - other.x, self.depth - other.depth)

    def __mul__(self, scalar: float) -> "Vector2":
        return Vector2(self.x * scalar, self.depth * scalar)

    def __truediv__(self, scalar: float) -> "Vector2":
        return Vector2(self.x / scalar, self.depth / scalar)

    def length(self) -> float:
        return math.hypot(self.x, self.depth)

    def length_squared(self) -> float:
        return self.x * self.x + self.depth * self.depth

    def distance_to(self, other: "Vector2") -> float:
        return math.hypot(self.x - other.x, self.depth - other.depth)

    def normalize(self) -> "Vector2":
        length = math.hypot(self.x, self.depth)
        if length == 0:
            return Vector2(0, 0)
        return Vector2(self.x / length, self.depth / length)

    def dot(self, other: "Vector2") -> float:
        return self.x * other.x + self.depth * other.depth

    def update(self, x: float, depth: float) -> None:
        self.x = float(x)
        self.depth = float(depth)

    def copy(self) -> "Vector2":
        return Vector2(self.x, self.depth)

    def as_tuple(self) -> tuple:
        return (self.x, self.depth)

    def __eq__(self, other: object) -> bool:
        if other.__class__ is not Vector2:
            return False
        return abs(self.x - other.x) < 1e-9 and abs(self.depth - other.depth) < 1e-9

    def __ne__(self, other: object) -> bool:
        return not self.__eq__(other)

    def __repr__(self) -> str:
        return f"Vector2({self.x}, {self.depth})"

    def add_inplace(self, other: "Vector2") -> "Vector2":
        """Add another vector to this one in-place."""
        self.x += other.x
        self.depth += other.depth
        return self

    def mul_inplace(self, scalar: float) -> "Vector2":
        """Multiply this vector by a scalar in-place."""
        self.x *= scalar
        self.depth *= scalar
        return self

    def limit_inplace(self, max_length: float) -> "Vector2":
        """Limit the length of this vector in-place."""
        length_sq = self.x * self.x + self.depth * self.depth
        if length_sq > max_length * max_length and length_sq > 0:
            length = math.sqrt(length_sq)
            self.x = (self.x / length) * max_length
            self.depth = (self.depth / length) * max_length
        return self

    def clamp_components_inplace(self, max_x: float, max_depth: float) -> "Vector2":
        """Clamp each axis independently (schools use separate horizontal/vertical caps)."""
        self.x = max(-max_x, min(max_x, self.x))
        self.depth = max(-max_depth, min(max_depth, self.depth))
        return self


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def heading_alignment(heading: Vector2, from_pos: Vector2, to_pos: Vector2) -> float:
    """Cosine between a heading and the direction from ``from_pos`` to ``to_pos``.

    Returns 0.0 when either direction is degenerate.
    """
    direction = to_pos - from_pos
    if heading.length_squared() == 0 or direction.length_squared() == 0:
        return 0.0
    return heading.normalize().dot(direction.normalize())


def spiral_offset(index: int, spacing: float) -> Vector2:
    """Vogel spiral slot ``index`` for a school member.

    Sunflower packing keeps members evenly spread without the ring-shaped
    "bloom" that a uniform random scatter produces.
    """
    radius = spacing * math.sqrt(index + 0.5)
    theta = index * GOLDEN_ANGLE
    return Vector2(radius * math.cos(theta), radius * math.sin(theta) * 0.6)


__all__ = ["Vector2", "clamp", "heading_alignment", "spiral_offset", "GOLDEN_ANGLE"]

"""Water column geometry and boundary queries."""

from lakesim.config.simulation_config import WorldConfig
from lakesim.math_utils import Vector2


class WaterBounds:
    """
    The visible slice of lake plus an off-screen buffer.

    Agents may leave the visible area horizontally and come back; once they
    pass the buffer zone they expire. Depth is always clamped between the
    surface and bottom margins.
    """

    def __init__(self, world: WorldConfig) -> None:
        self.width = world.width
        self.max_depth = world.max_depth
        self.buffer_zone = world.buffer_zone
        self.min_depth = world.surface_margin
        self.floor_depth = world.max_depth - world.bottom_margin

    def is_visible(self, position: Vector2) -> bool:
        return 0.0 <= position.x <= self.width and 0.0 <= position.depth <= self.max_depth

    def is_expired(self, position: Vector2) -> bool:
        """True once a position is beyond the horizontal buffer zone."""
        return position.x < -self.buffer_zone or position.x > self.width + self.buffer_zone

    def clamp_depth(self, position: Vector2) -> bool:
        """Clamp depth in place. Returns True if the position was clamped."""
        if position.depth < self.min_depth:
            position.depth = self.min_depth
            return True
        if position.depth > self.floor_depth:
            position.depth = self.floor_depth
            return True
        return False

    def away_from_nearest_edge(self, position: Vector2) -> int:
        """Horizontal direction (-1 or +1) pointing away from the closer side wall."""
        return 1 if position.x <= self.width / 2 else -1

"""Per-tick player input intents."""

import logging
from dataclasses import dataclass
from typing import Optional

from lakesim.math_utils import Vector2, clamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickInput:
    """Normalized input for one tick.

    Attributes:
        player_position: Lure location, or None when no lure is in the water.
        reel_input: Reel intensity, clamped to [0, 1].
        hookset_attempt: One-shot signal that a qualifying hookset input occurred.
    """

    player_position: Optional[Vector2] = None
    reel_input: float = 0.0
    hookset_attempt: bool = False

    def __post_init__(self) -> None:
        clamped = clamp(float(self.reel_input), 0.0, 1.0)
        if clamped != self.reel_input:
            logger.debug(f"reel_input {self.reel_input} clamped to {clamped}")
            object.__setattr__(self, "reel_input", clamped)


IDLE_INPUT = TickInput()

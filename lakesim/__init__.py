"""lakesim - a deterministic, headless freshwater lake simulation.

Predators hunt, baitfish school, forage gets grazed, and an angler's lure can
turn a strike into a hookset and a line-tension fight. The core consumes
normalized input intents and emits domain events; it renders nothing.
"""

from lakesim.config.simulation_config import SimulationConfig
from lakesim.config.species import SizeClass
from lakesim.config.tackle import LineConfig, ReelConfig
from lakesim.logging_config import configure_logging
from lakesim.math_utils import Vector2
from lakesim.simulation.engine import SimulationEngine, TickReport
from lakesim.simulation.inputs import TickInput

__version__ = "0.1.0"

__all__ = [
    "LineConfig",
    "ReelConfig",
    "SimulationConfig",
    "SimulationEngine",
    "SizeClass",
    "TickInput",
    "TickReport",
    "Vector2",
    "configure_logging",
]

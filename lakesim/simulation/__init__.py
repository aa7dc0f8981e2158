"""Simulation package: registry, per-tick context, inputs and the engine.

The engine is imported from :mod:`lakesim.simulation.engine` (or the package
root) rather than re-exported here, since the systems import this package's
submodules and the engine imports the systems.
"""

from lakesim.simulation.context import Disturbance, SimulationContext, StrikeRequest
from lakesim.simulation.inputs import IDLE_INPUT, TickInput
from lakesim.simulation.registry import AgentRegistry
from lakesim.simulation.removal_queue import RemovalQueue, RemovalRequest

__all__ = [
    "AgentRegistry",
    "Disturbance",
    "IDLE_INPUT",
    "RemovalQueue",
    "RemovalRequest",
    "SimulationContext",
    "StrikeRequest",
    "TickInput",
]

"""LakeSim exception hierarchy.

Centralised base classes so failures inside the simulation can be caught
narrowly and diagnosed by type rather than by message.
"""


class LakeSimError(Exception):
    """Root of all LakeSim domain exceptions."""


class SimulationError(LakeSimError):
    """Errors during simulation execution (engine, systems, agents)."""


class AgentError(SimulationError):
    """An agent-level failure (unknown id, invalid state, bad target)."""


class CaptureError(SimulationError):
    """Errors in the hookset/fight contest."""


class MutationLockError(SimulationError):
    """Structural registry change attempted while a tick phase holds the lock."""


class CapacityError(LakeSimError):
    """Agent or school capacity exhausted."""


class ConfigurationError(LakeSimError):
    """Invalid or missing configuration."""

"""Tick phase definitions for explicit execution ordering.

A lake tick always runs the same five phases in the same order. Registry
writes are only legal inside the phase that owns them, so the order here is
part of the simulation's contract, not a convenience:

    1. SCHOOL_KINEMATICS: clustering, flock drift, member positioning
    2. BEHAVIOR: per-predator decisions and movement
    3. FOOD_CHAIN: hunger economics, consumption, frenzy
    4. CAPTURE: hookset window and fight resolution
    5. CLEANUP: deferred removal of consumed/caught/expired agents

Systems declare their phase with :func:`runs_in_phase`; the engine drives the
phases explicitly and uses the declaration for diagnostics and validation.
"""

from enum import Enum, auto
from typing import Callable, Dict, Optional

__all__ = [
    "TickPhase",
    "PHASE_DESCRIPTIONS",
    "PHASE_ORDER",
    "runs_in_phase",
    "get_system_phase",
]


class TickPhase(Enum):
    """Phases of a simulation tick, in execution order."""

    SCHOOL_KINEMATICS = auto()
    BEHAVIOR = auto()
    FOOD_CHAIN = auto()
    CAPTURE = auto()
    CLEANUP = auto()


PHASE_ORDER = tuple(TickPhase)

# Human-readable descriptions for debugging
PHASE_DESCRIPTIONS: Dict[TickPhase, str] = {
    TickPhase.SCHOOL_KINEMATICS: "Forming schools and moving flocks",
    TickPhase.BEHAVIOR: "Predators making decisions",
    TickPhase.FOOD_CHAIN: "Resolving hunger and consumption",
    TickPhase.CAPTURE: "Running hookset window and fight",
    TickPhase.CLEANUP: "Removing consumed, caught and expired agents",
}


def runs_in_phase(phase: TickPhase) -> Callable:
    """Decorator to declare which phase a system runs in.

    Example:
        @runs_in_phase(TickPhase.FOOD_CHAIN)
        class FoodChainResolver(BaseSystem):
            ...
    """

    def decorator(cls):
        cls._phase = phase
        return cls

    return decorator


def get_system_phase(system: object) -> Optional[TickPhase]:
    """Get the phase a system is declared to run in."""
    return getattr(system, "_phase", None)

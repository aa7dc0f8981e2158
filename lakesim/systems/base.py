"""Base class for tick systems.

Every system owns one slice of the tick (see :mod:`lakesim.update_phases`)
and follows the same contract:

- it is constructed with the simulation config, nothing else shared
- ``update(ctx)`` does nothing when disabled, otherwise calls ``_do_update``
- it returns a :class:`SystemResult` describing what it did
- it reports its state through ``get_debug_info()``

Per-agent work goes through :meth:`BaseSystem.guard_agent`, which isolates a
fault to the agent that raised it: the error is logged, the agent is forced to
Idle, and the rest of the tick carries on.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from lakesim.config.simulation_config import SimulationConfig
from lakesim.update_phases import TickPhase

if TYPE_CHECKING:
    from lakesim.entities.agent import Agent
    from lakesim.simulation.context import SimulationContext

__all__ = [
    "SystemResult",
    "BaseSystem",
]

logger = logging.getLogger(__name__)


@dataclass
class SystemResult:
    """Result of one system update.

    Attributes:
        agents_affected: Number of agents whose state was modified
        agents_removed: Number of agents removed from the registry
        events_emitted: Number of events appended to the queue
        faults: Number of agents isolated after raising
        skipped: Whether the update was skipped (system disabled)
        details: System-specific counters (e.g. {"consumptions": 2})
    """

    agents_affected: int = 0
    agents_removed: int = 0
    events_emitted: int = 0
    faults: int = 0
    skipped: bool = False
    details: Dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def skipped_result() -> "SystemResult":
        return SystemResult(skipped=True)

    @staticmethod
    def empty() -> "SystemResult":
        return SystemResult()


class BaseSystem(ABC):
    """Abstract base class for all tick systems."""

    # Set by @runs_in_phase
    _phase: Optional[TickPhase] = None

    def __init__(self, config: SimulationConfig, name: str) -> None:
        self._config = config
        self._name = name
        self._enabled = True
        self._update_count = 0
        self._fault_count = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = value

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def phase(self) -> Optional[TickPhase]:
        return self._phase

    @property
    def update_count(self) -> int:
        return self._update_count

    def update(self, ctx: "SimulationContext") -> SystemResult:
        """Run this system's slice of the tick.

        Returns:
            SystemResult describing what the system did
        """
        if not self._enabled:
            return SystemResult.skipped_result()

        events_before = ctx.events.emitted_total
        faults_before = self._fault_count
        result = self._do_update(ctx)
        self._update_count += 1

        if result is None:
            result = SystemResult.empty()
        result.events_emitted = ctx.events.emitted_total - events_before
        result.faults = self._fault_count - faults_before
        return result

    @abstractmethod
    def _do_update(self, ctx: "SimulationContext") -> Optional[SystemResult]:
        """Implement system-specific update logic."""

    def guard_agent(
        self,
        ctx: "SimulationContext",
        agent: "Agent",
        action: Callable[["Agent"], Any],
    ) -> Any:
        """Run ``action(agent)``, isolating any fault to that agent.

        Returns the action's result, or None if it raised.
        """
        try:
            return action(agent)
        except Exception:
            self._fault_count += 1
            logger.exception(
                f"{self._name}: agent {agent.agent_id} ({agent.species.name}) faulted at tick {ctx.tick}; forcing IDLE"
            )
            ctx.force_idle(agent, f"{self._name} fault")
            return None

    def get_debug_info(self) -> Dict[str, Any]:
        """Return debug information about this system's state."""
        return {
            "name": self._name,
            "enabled": self._enabled,
            "update_count": self._update_count,
            "faults": self._fault_count,
            "phase": self._phase.name if self._phase else None,
        }

    def __repr__(self) -> str:
        phase_str = f", phase={self._phase.name}" if self._phase else ""
        return f"{self.__class__.__name__}(name={self._name!r}, enabled={self._enabled}{phase_str})"

"""AgentRegistry: the canonical store of simulated organisms.

Agents are keyed by integer id in insertion (= id) order, so iteration order
is stable and runs are reproducible. Structural changes (add/remove) are
refused while a tick phase holds the mutation lock; only cleanup and the
between-tick spawn API may change membership.
"""

import logging
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from lakesim.config.species import Role
from lakesim.entities.agent import Agent
from lakesim.exceptions import AgentError, CapacityError, MutationLockError

logger = logging.getLogger(__name__)


class AgentRegistry:
    """Owns every Agent for the lifetime of a simulation."""

    def __init__(self, max_agents: int) -> None:
        self._agents: Dict[int, Agent] = {}
        self._max_agents = max_agents
        self._next_id = 1
        self._locked = False

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def allocate_id(self) -> int:
        agent_id = self._next_id
        self._next_id += 1
        return agent_id

    @property
    def capacity_remaining(self) -> int:
        return max(0, self._max_agents - len(self._agents))

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    @property
    def is_locked(self) -> bool:
        return self._locked

    def lock_mutations(self) -> None:
        self._locked = True

    def unlock_mutations(self) -> None:
        self._locked = False

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the mutation lock for the duration of a phase."""
        previous = self._locked
        self._locked = True
        try:
            yield
        finally:
            self._locked = previous

    def add(self, agent: Agent) -> None:
        """Register an agent.

        Raises:
            MutationLockError: If a phase holds the mutation lock.
            CapacityError: If the registry is full.
            AgentError: If the id is already registered.
        """
        if self._locked:
            raise MutationLockError(f"Cannot add agent {agent.agent_id} while registry is locked")
        if len(self._agents) >= self._max_agents:
            raise CapacityError(f"Agent capacity reached ({self._max_agents})")
        if agent.agent_id in self._agents:
            raise AgentError(f"Agent {agent.agent_id} already registered")
        self._agents[agent.agent_id] = agent

    def remove(self, agent_id: int) -> Optional[Agent]:
        """Remove an agent; returns it, or None if it was not registered.

        Raises:
            MutationLockError: If a phase holds the mutation lock.
        """
        if self._locked:
            raise MutationLockError(f"Cannot remove agent {agent_id} while registry is locked")
        return self._agents.pop(agent_id, None)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, agent_id: int) -> Optional[Agent]:
        return self._agents.get(agent_id)

    def require(self, agent_id: int) -> Agent:
        """Get an agent or raise AgentError."""
        agent = self._agents.get(agent_id)
        if agent is None:
            raise AgentError(f"Unknown agent id {agent_id}")
        return agent

    def is_live(self, agent_id: int) -> bool:
        """True if the id resolves to an agent that is not consumed, caught or expired."""
        agent = self._agents.get(agent_id)
        return agent is not None and agent.is_alive

    def all_agents(self) -> List[Agent]:
        """Every registered agent, including ones pending removal."""
        return list(self._agents.values())

    def live_agents(self, role: Optional[Role] = None) -> List[Agent]:
        """Live agents in id order, optionally filtered by role."""
        return [
            agent
            for agent in self._agents.values()
            if agent.is_alive and (role is None or agent.role is role)
        ]

    def predators(self) -> List[Agent]:
        return self.live_agents(Role.PREDATOR)

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._agents

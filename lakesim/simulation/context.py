"""SimulationContext - explicit per-tick state passed to every system.

The context is created at the start of each tick and handed to each phase in
turn. It replaces any process-wide registry: systems read and write shared
state only through the context they are given, and keep nothing shared
between ticks.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional

from lakesim.config.simulation_config import SimulationConfig
from lakesim.config.species import diet_allows
from lakesim.config.tackle import LineConfig, ReelConfig
from lakesim.entities.agent import ActionKind, Agent
from lakesim.entities.school import SOLO_ID_PREFIX, PreyGroup, School, SoloPreyGroup
from lakesim.events.domain_events import AgentStateChanged
from lakesim.events.event_queue import EventQueue
from lakesim.math_utils import Vector2
from lakesim.simulation.inputs import TickInput
from lakesim.simulation.registry import AgentRegistry
from lakesim.simulation.removal_queue import RemovalQueue
from lakesim.spatial.bounds import WaterBounds
from lakesim.state_machine import BehaviorState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StrikeRequest:
    """A predator committed to a strike on the lure this tick."""

    agent_id: int
    tick: int


@dataclass(frozen=True)
class Disturbance:
    """Something that scares fish within ``radius`` of ``position``."""

    position: Vector2
    radius: float
    source: str = "external"


class SimulationContext:
    """Explicit per-tick state.

    Attributes:
        tick: Current tick number.
        rng: The simulation's seeded random source (the only one systems may use).
        schools: Live schools keyed by id, shared by reference with the engine.
        strike_requests: Lure strikes queued by behavior for the capture phase.
        disturbances: External disturbances to apply in the behavior phase.
        held_agent_id: Agent currently owned by the capture engine, if any.
        lure_available: True when the capture engine would accept a strike.
    """

    def __init__(
        self,
        *,
        tick: int,
        rng: random.Random,
        config: SimulationConfig,
        bounds: WaterBounds,
        registry: AgentRegistry,
        schools: Dict[str, School],
        events: EventQueue,
        removals: RemovalQueue,
        inputs: TickInput,
        line_config: LineConfig,
        reel_config: ReelConfig,
        disturbances: Optional[List[Disturbance]] = None,
        held_agent_id: Optional[int] = None,
        lure_available: bool = True,
    ) -> None:
        self.tick = tick
        self.rng = rng
        self.config = config
        self.bounds = bounds
        self.registry = registry
        self.schools = schools
        self.events = events
        self.removals = removals
        self.inputs = inputs
        self.line_config = line_config
        self.reel_config = reel_config
        self.disturbances: List[Disturbance] = list(disturbances or [])
        self.strike_requests: List[StrikeRequest] = []
        self.held_agent_id = held_agent_id
        self.lure_available = lure_available

    # ------------------------------------------------------------------
    # Prey groups
    # ------------------------------------------------------------------

    def prey_group(self, group_id: str) -> Optional[PreyGroup]:
        """Resolve a group id to a live PreyGroup, or None if it is gone."""
        if group_id.startswith(SOLO_ID_PREFIX):
            try:
                agent_id = int(group_id[len(SOLO_ID_PREFIX):])
            except ValueError:
                return None
            agent = self.registry.get(agent_id)
            if agent is None or not agent.is_alive or agent.school_id is not None:
                return None
            return SoloPreyGroup(agent_id, agent.species)
        school = self.schools.get(group_id)
        if school is None or school.live_count(self.registry) == 0:
            return None
        return school

    def prey_groups_for(self, predator: Agent) -> List[PreyGroup]:
        """Every live prey group ``predator`` may eat, schools first (by id)."""
        groups: List[PreyGroup] = [
            school
            for school in self.schools.values()
            if diet_allows(predator.species, school.species) and school.live_count(self.registry) > 0
        ]
        for agent in self.registry.live_agents():
            if agent.school_id is None and self.can_eat(predator, agent):
                groups.append(SoloPreyGroup(agent.agent_id, agent.species))
        return groups

    def can_eat(self, consumer: Agent, prey: Agent) -> bool:
        """Diet, liveness and size test for one consumer/prey pair."""
        if prey is consumer or not prey.is_alive or self.is_held(prey):
            return False
        if not diet_allows(consumer.species, prey.species):
            return False
        if prey.tier >= consumer.tier:
            return prey.weight <= consumer.weight * self.config.food_chain.same_tier_max_weight_ratio
        return True

    # ------------------------------------------------------------------
    # Behavior transitions
    # ------------------------------------------------------------------

    def is_held(self, agent: Agent) -> bool:
        return agent.frozen or agent.agent_id == self.held_agent_id

    def transition(self, agent: Agent, target: BehaviorState, reason: str = "") -> bool:
        """Move an agent to ``target``, emitting AgentStateChanged.

        An undeclared transition is logged and the agent is forced to IDLE;
        returns False in that case.
        """
        old_state = agent.state
        if old_state is target:
            return True
        result = agent.machine.try_transition(target, frame=self.tick, reason=reason)
        if result.is_err():
            logger.warning(f"Agent {agent.agent_id}: {result.error} ({reason}); forcing IDLE")
            self.force_idle(agent, f"invalid transition: {reason}")
            return False
        self.events.emit(
            AgentStateChanged(
                agent_id=agent.agent_id,
                old_state=old_state.value,
                new_state=target.value,
                reason=reason,
                tick=self.tick,
            )
        )
        logger.debug(f"Agent {agent.agent_id} {old_state.value} -> {target.value} ({reason})")
        return True

    def flee(self, agent: Agent, reason: str, origin: Optional[Vector2] = None) -> bool:
        """Send an agent to FLEEING and (re)schedule its calm-down.

        A fleeing agent that is disturbed again only has its calm-down pushed
        back. Frenzy never overlays Fleeing, so it is cleared here.
        """
        agent.flee_origin = origin.copy() if origin is not None else None
        agent.schedule(ActionKind.CALM_DOWN, self.tick + self.config.behavior.flee_duration_ticks)
        agent.cancel(ActionKind.GIVE_UP_HUNT)
        if agent.frenzy:
            agent.frenzy = False
            agent.cancel(ActionKind.END_FRENZY)
        if agent.state is BehaviorState.FLEEING:
            return True
        self.clear_target(agent)
        return self.transition(agent, BehaviorState.FLEEING, reason)

    def force_idle(self, agent: Agent, reason: str) -> None:
        """Recovery path: drop the target and put the agent back to IDLE."""
        old_state = agent.state
        self._clear_group_target(agent)
        agent.target = None
        agent.decision_cooldown = 0
        agent.cancel(ActionKind.GIVE_UP_HUNT)
        agent.machine.force_state(BehaviorState.IDLE, frame=self.tick, reason=reason)
        if old_state is not BehaviorState.IDLE:
            self.events.emit(
                AgentStateChanged(
                    agent_id=agent.agent_id,
                    old_state=old_state.value,
                    new_state=BehaviorState.IDLE.value,
                    reason=reason,
                    tick=self.tick,
                )
            )

    def _clear_group_target(self, agent: Agent) -> None:
        if agent.target is None or agent.target.is_lure:
            return
        school = self.schools.get(agent.target.group_id)
        if school is not None:
            school.clear_target(agent.agent_id)

    def clear_target(self, agent: Agent) -> None:
        self._clear_group_target(agent)
        agent.target = None

"""Predator behavior state machine system.

Each live predator is evaluated once per tick:

    1. Scheduled actions that fell due (calm down, give up a hunt, end frenzy)
    2. Disturbances and low health, which can send any state to FLEEING
    3. The state rule for the current state (acquire, confirm, close, strike)
    4. Movement toward (or away from) whatever the state is about

Agents held by the capture engine are frozen: this system neither decides
for them nor moves them. A lure strike only queues a StrikeRequest for the
capture phase; a strike on a prey group is resolved by the food chain.

Lures are judged per fish. Each predator carries an aggressiveness and a
preferred depth; a lure far from that depth, or a timid fish, may be ignored
outright, and even a chasing fish rolls before it commits. Frenzy and
desperation override the interest check and raise the strike chance.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from lakesim.config.species import size_rank
from lakesim.entities.agent import ActionKind, Agent, TargetRef
from lakesim.math_utils import Vector2, heading_alignment
from lakesim.simulation.context import StrikeRequest
from lakesim.state_machine import BehaviorState
from lakesim.systems.base import BaseSystem, SystemResult
from lakesim.update_phases import TickPhase, runs_in_phase

if TYPE_CHECKING:
    from lakesim.config.simulation_config import SimulationConfig
    from lakesim.simulation.context import SimulationContext

logger = logging.getLogger(__name__)

_RUSHING_STATES = (BehaviorState.CHASING, BehaviorState.STRIKING)
HUNT_SPEED_FACTOR = 1.5  # Hunting closes at 1.5x cruise, capped by chase speed
STRIKE_BURST_FACTOR = 1.3


@runs_in_phase(TickPhase.BEHAVIOR)
class BehaviorStateMachine(BaseSystem):
    """Decides and moves every free predator."""

    def __init__(self, config: "SimulationConfig") -> None:
        super().__init__(config, "BehaviorStateMachine")
        self._strikes_requested = 0
        self._balks = 0

    def _do_update(self, ctx: "SimulationContext") -> SystemResult:
        affected = 0
        for agent in ctx.registry.predators():
            if ctx.is_held(agent):
                continue
            self.guard_agent(ctx, agent, lambda a: self._update_agent(ctx, a))
            affected += 1
        return SystemResult(
            agents_affected=affected,
            details={"strike_requests": len(ctx.strike_requests)},
        )

    # ------------------------------------------------------------------
    # Per-agent update
    # ------------------------------------------------------------------

    def _update_agent(self, ctx: "SimulationContext", agent: Agent) -> None:
        self._run_scheduled(ctx, agent)
        if agent.decision_cooldown > 0:
            agent.decision_cooldown -= 1

        if not self._check_threats(ctx, agent):
            state = agent.state
            if state is BehaviorState.IDLE:
                self._idle(ctx, agent)
            elif state is BehaviorState.HUNTING:
                self._hunting(ctx, agent)
            elif state is BehaviorState.CHASING:
                self._chasing(ctx, agent)
            elif state is BehaviorState.STRIKING:
                self._striking(ctx, agent)

        self._move(ctx, agent)

    def _run_scheduled(self, ctx: "SimulationContext", agent: Agent) -> None:
        for action in agent.pop_due_actions(ctx.tick):
            if action.kind is ActionKind.CALM_DOWN:
                if agent.state is BehaviorState.FLEEING:
                    agent.flee_origin = None
                    ctx.transition(agent, BehaviorState.IDLE, "calmed down")
            elif action.kind is ActionKind.GIVE_UP_HUNT:
                if agent.state is BehaviorState.HUNTING:
                    ctx.clear_target(agent)
                    agent.decision_cooldown = self._config.behavior.decision_cooldown_ticks
                    ctx.transition(agent, BehaviorState.IDLE, "hunt grace expired")
            elif action.kind is ActionKind.END_FRENZY:
                agent.frenzy = False

    def _check_threats(self, ctx: "SimulationContext", agent: Agent) -> bool:
        """Apply disturbances and low health. Returns True if the agent is (now) fleeing."""
        cfg = self._config.behavior

        threat = self._find_disturbance(ctx, agent)
        if threat is not None:
            origin, source = threat
            ctx.flee(agent, f"disturbed by {source}", origin)
            return True

        if agent.health < cfg.low_health_threshold:
            if not agent.low_health_fled:
                agent.low_health_fled = True
                ctx.flee(agent, "low health")
                return True
        else:
            agent.low_health_fled = False

        return agent.state is BehaviorState.FLEEING

    def _find_disturbance(
        self, ctx: "SimulationContext", agent: Agent
    ) -> Optional[Tuple[Vector2, str]]:
        for disturbance in ctx.disturbances:
            if agent.position.distance_to(disturbance.position) <= disturbance.radius:
                return disturbance.position, disturbance.source

        radius = self._config.behavior.rushing_predator_radius
        my_rank = size_rank(agent.size_class)
        for other in ctx.registry.predators():
            if other is agent or other.state not in _RUSHING_STATES:
                continue
            if size_rank(other.size_class) <= my_rank:
                continue
            if agent.position.distance_to(other.position) <= radius:
                return other.position, f"predator {other.agent_id}"
        return None

    # ------------------------------------------------------------------
    # State rules
    # ------------------------------------------------------------------

    def _idle(self, ctx: "SimulationContext", agent: Agent) -> None:
        if agent.decision_cooldown > 0:
            return
        if not agent.frenzy and agent.hunger <= agent.species.hunger_threshold:
            return
        candidate = self._acquire_target(ctx, agent)
        if candidate is None:
            return
        target, distance = candidate
        agent.target = target
        if ctx.transition(agent, BehaviorState.HUNTING, f"detected {target} at {distance:.0f}"):
            agent.schedule(ActionKind.GIVE_UP_HUNT, ctx.tick + self._config.behavior.hunt_grace_ticks)

    def _hunting(self, ctx: "SimulationContext", agent: Agent) -> None:
        located = self._locate_target(ctx, agent)
        if located is None:
            self._stale_target(ctx, agent)
            return
        _, distance = located
        if distance <= self.detection_radius(agent) * self._config.behavior.chase_radius_ratio:
            agent.cancel(ActionKind.GIVE_UP_HUNT)
            ctx.transition(agent, BehaviorState.CHASING, f"target confirmed at {distance:.0f}")

    def _chasing(self, ctx: "SimulationContext", agent: Agent) -> None:
        cfg = self._config.behavior
        located = self._locate_target(ctx, agent)
        if located is None:
            self._stale_target(ctx, agent)
            return
        _, distance = located

        if distance > self.detection_radius(agent) * cfg.lost_target_ratio:
            ctx.clear_target(agent)
            agent.decision_cooldown = cfg.decision_cooldown_ticks
            ctx.transition(agent, BehaviorState.IDLE, "target lost")
            return
        if agent.ticks_in_state(ctx.tick) > cfg.chase_timeout_ticks:
            ctx.clear_target(agent)
            agent.decision_cooldown = cfg.decision_cooldown_ticks
            ctx.transition(agent, BehaviorState.IDLE, "chase timed out")
            return

        if distance <= agent.species.strike_radius and agent.decision_cooldown == 0:
            if agent.target.is_lure and not self._commits_to_lure(ctx, agent):
                return
            if ctx.transition(agent, BehaviorState.STRIKING, f"strike at {distance:.0f}"):
                agent.decision_cooldown = cfg.decision_cooldown_ticks
                if agent.target.is_lure:
                    ctx.strike_requests.append(StrikeRequest(agent_id=agent.agent_id, tick=ctx.tick))
                    self._strikes_requested += 1

    def _commits_to_lure(self, ctx: "SimulationContext", agent: Agent) -> bool:
        """Roll the strike; a fish that balks circles for a few ticks first."""
        chance = self.lure_strike_chance(agent)
        if ctx.rng.random() < chance:
            return True
        agent.decision_cooldown = self._config.behavior.strike_hesitation_ticks
        self._balks += 1
        logger.debug(f"Agent {agent.agent_id} balked at the lure (chance {chance:.2f})")
        return False

    def _striking(self, ctx: "SimulationContext", agent: Agent) -> None:
        # Unheld strikers are normally resolved the same tick; this catches leftovers
        if agent.ticks_in_state(ctx.tick) > self._config.behavior.strike_timeout_ticks:
            ctx.flee(agent, "strike unresolved")
            return
        if self._locate_target(ctx, agent) is None:
            self._stale_target(ctx, agent)

    def _stale_target(self, ctx: "SimulationContext", agent: Agent) -> None:
        """The target vanished: back to Idle with the cooldown reset (Striking can only flee)."""
        logger.debug(f"Agent {agent.agent_id} lost stale target {agent.target}")
        if agent.state is BehaviorState.STRIKING:
            ctx.flee(agent, "strike target vanished")
            return
        ctx.clear_target(agent)
        agent.decision_cooldown = 0
        agent.cancel(ActionKind.GIVE_UP_HUNT)
        ctx.transition(agent, BehaviorState.IDLE, "stale target")

    # ------------------------------------------------------------------
    # Targets
    # ------------------------------------------------------------------

    def detection_radius(self, agent: Agent) -> float:
        cfg = self._config.behavior
        radius = agent.species.detection_radius
        if self._is_desperate(agent):
            radius *= cfg.desperate_detection_multiplier
        if agent.frenzy:
            radius *= cfg.frenzy_detection_multiplier
        return radius

    def _is_desperate(self, agent: Agent) -> bool:
        return agent.hunger > self._config.food_chain.critical_hunger

    def lure_strike_chance(self, agent: Agent) -> float:
        """Chance a chasing fish in range actually hits the lure."""
        cfg = self._config.behavior
        chance = cfg.lure_strike_chance * agent.aggressiveness
        if agent.frenzy:
            chance += cfg.frenzy_strike_bonus
        if self._is_desperate(agent):
            chance += cfg.desperate_strike_bonus
        return min(1.0, chance)

    def lure_interest(self, agent: Agent, lure: Vector2) -> float:
        """How appealing the lure is: aggressiveness, halved at worst by a depth mismatch."""
        if agent.preferred_depth is None:
            depth_fit = 1.0
        else:
            mismatch = abs(lure.depth - agent.preferred_depth) / self._config.behavior.lure_depth_tolerance
            depth_fit = 1.0 - 0.5 * min(1.0, mismatch)
        return agent.aggressiveness * depth_fit

    def _wants_lure(self, agent: Agent, lure: Vector2) -> bool:
        if agent.frenzy or self._is_desperate(agent):
            return True
        return self.lure_interest(agent, lure) >= self._config.behavior.lure_interest_threshold

    def _heading(self, agent: Agent) -> Vector2:
        if agent.velocity.length_squared() > 0:
            return agent.velocity
        return Vector2(float(agent.idle_direction), 0.0)

    def _acquire_target(
        self, ctx: "SimulationContext", agent: Agent
    ) -> Optional[Tuple[TargetRef, float]]:
        """Nearest candidate within detection; equidistant ties go to the best-aligned one."""
        detection = self.detection_radius(agent)
        candidates: List[Tuple[TargetRef, Vector2, float]] = []

        lure = ctx.inputs.player_position
        if lure is not None and ctx.lure_available and self._wants_lure(agent, lure):
            candidates.append((TargetRef.lure(), lure, agent.position.distance_to(lure)))

        for group in ctx.prey_groups_for(agent):
            center = group.locate(ctx.registry)
            if center is None:
                continue
            candidates.append((TargetRef.group(group.group_id), center, agent.position.distance_to(center)))

        in_range = [c for c in candidates if c[2] <= detection]
        if not in_range:
            return None

        nearest = min(c[2] for c in in_range)
        epsilon = self._config.behavior.equidistant_epsilon
        tied = [c for c in in_range if c[2] - nearest <= epsilon]
        if len(tied) > 1:
            heading = self._heading(agent)
            tied.sort(key=lambda c: -heading_alignment(heading, agent.position, c[1]))
        target, _, distance = tied[0]
        return target, distance

    def _locate_target(
        self, ctx: "SimulationContext", agent: Agent
    ) -> Optional[Tuple[Vector2, float]]:
        """Resolve the agent's target to (position, distance), or None if stale."""
        target = agent.target
        if target is None:
            return None
        if target.is_lure:
            lure = ctx.inputs.player_position
            if lure is None or not ctx.lure_available:
                return None
            return lure, agent.position.distance_to(lure)

        group = ctx.prey_group(target.group_id)
        if group is None:
            return None
        member_id, distance = group.get_closest_baitfish(
            ctx.registry, agent.position, agent.agent_id, self._config.scoring
        )
        if member_id is None:
            return None
        return ctx.registry.get(member_id).position, distance

    # ------------------------------------------------------------------
    # Movement
    # ------------------------------------------------------------------

    def _speed_multiplier(self, agent: Agent) -> float:
        cfg = self._config.behavior
        multiplier = 1.0
        if agent.frenzy:
            multiplier *= cfg.frenzy_speed_multiplier
        if self._is_desperate(agent):
            multiplier *= cfg.desperate_speed_multiplier
        return multiplier

    def _move(self, ctx: "SimulationContext", agent: Agent) -> None:
        cfg = self._config.behavior
        species = agent.species
        state = agent.state
        desired: Vector2

        if state is BehaviorState.FLEEING:
            if agent.flee_origin is not None:
                away = (agent.position - agent.flee_origin).normalize()
            else:
                away = Vector2(0.0, 0.0)
            if away.length_squared() == 0:
                away = Vector2(float(-agent.idle_direction), 0.0)
            desired = away * species.panic_speed
        elif state is BehaviorState.IDLE:
            desired = self._cruise_velocity(ctx, agent)
        else:
            located = self._locate_target(ctx, agent) if agent.target is not None else None
            if located is None:
                desired = Vector2(0.0, 0.0)
            else:
                position, distance = located
                if state is BehaviorState.HUNTING:
                    speed = min(species.cruise_speed * HUNT_SPEED_FACTOR, species.chase_speed)
                elif state is BehaviorState.CHASING:
                    speed = species.chase_speed
                else:
                    speed = species.chase_speed * STRIKE_BURST_FACTOR
                speed = min(speed * self._speed_multiplier(agent), distance)
                desired = (position - agent.position).normalize() * speed

        if state in (BehaviorState.CHASING, BehaviorState.STRIKING):
            # Committed predators take the desired line outright
            agent.velocity = desired
        else:
            agent.velocity.add_inplace((desired - agent.velocity) * cfg.steering_rate)
        agent.position.add_inplace(agent.velocity)
        ctx.bounds.clamp_depth(agent.position)

    def _cruise_velocity(self, ctx: "SimulationContext", agent: Agent) -> Vector2:
        cfg = self._config.behavior
        rng = ctx.rng
        if rng.random() < cfg.idle_turn_chance:
            agent.idle_direction = -agent.idle_direction
        if agent.position.x < 0:
            agent.idle_direction = 1
        elif agent.position.x > ctx.bounds.width:
            agent.idle_direction = -1

        low, high = agent.species.depth_range
        if agent.position.depth < low:
            vertical = cfg.idle_depth_wander
        elif agent.position.depth > high:
            vertical = -cfg.idle_depth_wander
        else:
            vertical = rng.uniform(-cfg.idle_depth_wander, cfg.idle_depth_wander)
        return Vector2(agent.idle_direction * agent.species.cruise_speed, vertical)

    # ------------------------------------------------------------------
    # Debug
    # ------------------------------------------------------------------

    def get_debug_info(self) -> Dict[str, Any]:
        return {
            **super().get_debug_info(),
            "strikes_requested": self._strikes_requested,
            "lure_balks": self._balks,
        }

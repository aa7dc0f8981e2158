"""Food chain resolution system.

Turns proximity plus state into consumption, and runs the hunger economy.

Tier rule: an agent eats prey exactly one tier below it
(forage -> baitfish/crayfish -> predator), adjusted by per-species diet
overrides: big predators also take much smaller same-tier fish such as perch,
and perch leave crayfish alone. Predators resolve first, then the mid tier
grazes, so a baitfish eaten this tick can never also feed this tick and no
tier is skipped within a single resolution pass.

Feeding frenzy: when a prey group loses members quickly (several
consumptions inside a sliding window) or a school is nearly wiped out,
same-species predators near the feeding predator get the frenzy flag.
Eating the last member of any school always counts as wiping it out.
"""

import logging
from collections import deque
from typing import TYPE_CHECKING, Any, Deque, Dict, List, Optional

from lakesim.config.species import GRAZING_ROLES, SIZE_NUTRITION_MULTIPLIER, Role
from lakesim.entities.agent import ActionKind, Agent
from lakesim.entities.school import School
from lakesim.events.domain_events import ConsumptionEvent, FrenzyTriggered
from lakesim.state_machine import BehaviorState
from lakesim.systems.base import BaseSystem, SystemResult
from lakesim.update_phases import TickPhase, runs_in_phase

if TYPE_CHECKING:
    from lakesim.config.simulation_config import SimulationConfig
    from lakesim.simulation.context import SimulationContext

logger = logging.getLogger(__name__)


@runs_in_phase(TickPhase.FOOD_CHAIN)
class FoodChainResolver(BaseSystem):
    """Hunger, starvation, predation, grazing and frenzy."""

    def __init__(self, config: "SimulationConfig") -> None:
        super().__init__(config, "FoodChainResolver")
        # group id -> ticks of recent consumptions from that group
        self._recent: Dict[str, Deque[int]] = {}
        self._consumptions_total = 0
        self._grazes_total = 0
        self._frenzies_total = 0
        self._starved_total = 0

    def _do_update(self, ctx: "SimulationContext") -> SystemResult:
        self._prune_window(ctx.tick)

        starved = self._apply_hunger(ctx)
        consumptions = 0
        for predator in ctx.registry.predators():
            if ctx.is_held(predator) or predator.state is not BehaviorState.STRIKING:
                continue
            if predator.target is None or predator.target.is_lure:
                continue
            if self.guard_agent(ctx, predator, lambda p: self.resolve_strike(ctx, p)):
                consumptions += 1

        grazes = self._graze(ctx)
        return SystemResult(
            agents_affected=consumptions + grazes,
            details={"consumptions": consumptions, "grazes": grazes, "starved": starved},
        )

    # ------------------------------------------------------------------
    # Hunger economy
    # ------------------------------------------------------------------

    def _apply_hunger(self, ctx: "SimulationContext") -> int:
        cfg = self._config.food_chain
        starved = 0
        for agent in ctx.registry.live_agents():
            if agent.role is Role.FORAGE:
                continue
            agent.hunger = min(100.0, agent.hunger + agent.species.hunger_rate)
            if agent.hunger > cfg.terminal_hunger:
                agent.health = max(0.0, agent.health - cfg.starvation_health_decay)
                if agent.health <= 0.0 and not ctx.is_held(agent):
                    agent.mark_removed("starved")
                    ctx.removals.request_remove(agent.agent_id, reason="starved")
                    starved += 1
                    logger.info(f"Agent {agent.agent_id} ({agent.species.name}) starved")
        self._starved_total += starved
        return starved

    def consume_chance(self, predator: Agent) -> float:
        cfg = self._config.food_chain
        chance = cfg.base_consume_chance
        if predator.frenzy:
            chance += cfg.frenzy_consume_bonus
        if predator.hunger > cfg.critical_hunger:
            chance += cfg.desperation_consume_bonus
        return min(1.0, chance)

    # ------------------------------------------------------------------
    # Predation
    # ------------------------------------------------------------------

    def resolve_strike(self, ctx: "SimulationContext", predator: Agent) -> bool:
        """Resolve a striking predator against its prey group.

        The predator flees afterwards whether or not it fed. Returns True on
        a consumption.
        """
        group_id = predator.target.group_id
        group = ctx.prey_group(group_id)
        prey_id = group.cached_target(ctx.registry, predator.agent_id) if group is not None else None
        prey = ctx.registry.get(prey_id) if prey_id is not None else None

        if prey is None or not ctx.can_eat(predator, prey):
            ctx.flee(predator, "strike missed: no prey")
            return False
        if predator.position.distance_to(prey.position) > predator.species.strike_radius:
            ctx.flee(predator, "strike missed: out of reach")
            return False
        if ctx.rng.random() >= self.consume_chance(predator):
            ctx.flee(predator, "strike missed")
            return False

        self._consume(ctx, predator, prey, group_id)
        ctx.flee(predator, "fed")
        self._check_frenzy(ctx, predator, group_id)
        return True

    def _consume(self, ctx: "SimulationContext", consumer: Agent, prey: Agent, group_id: Optional[str]) -> None:
        cfg = self._config.food_chain
        prey.mark_removed("consumed")
        consumer.stomach_contents += 1
        nutrition = prey.species.nutrition_value * SIZE_NUTRITION_MULTIPLIER[prey.size_class]
        consumer.hunger = max(0.0, consumer.hunger - nutrition * cfg.nutrition_scale)

        if prey.school_id is not None:
            school = ctx.schools.get(prey.school_id)
            if school is not None:
                school.clear_target(consumer.agent_id)
        if group_id is not None:
            self._recent.setdefault(group_id, deque()).append(ctx.tick)

        self._consumptions_total += 1
        ctx.events.emit(
            ConsumptionEvent(
                predator_id=consumer.agent_id,
                prey_id=prey.agent_id,
                prey_species=prey.species.name,
                tick=ctx.tick,
            )
        )
        logger.debug(
            f"Agent {consumer.agent_id} ({consumer.species.name}) ate {prey.agent_id} "
            f"({prey.species.name}); hunger {consumer.hunger:.1f}"
        )

    # ------------------------------------------------------------------
    # Frenzy
    # ------------------------------------------------------------------

    def _prune_window(self, tick: int) -> None:
        window = self._config.food_chain.frenzy_window_ticks
        for group_id in list(self._recent):
            ticks = self._recent[group_id]
            while ticks and tick - ticks[0] >= window:
                ticks.popleft()
            if not ticks:
                del self._recent[group_id]

    def _is_depleting(self, ctx: "SimulationContext", group_id: str) -> bool:
        cfg = self._config.food_chain
        if len(self._recent.get(group_id, ())) >= cfg.frenzy_consumption_threshold:
            return True
        school = ctx.schools.get(group_id)
        if not isinstance(school, School):
            return False
        remaining = school.live_count(ctx.registry)
        if remaining == 0:
            # Last member eaten, however small the school was
            return True
        if school.peak_size >= cfg.frenzy_min_peak_size:
            return remaining / school.peak_size <= cfg.frenzy_depletion_ratio
        return False

    def _check_frenzy(self, ctx: "SimulationContext", consumer: Agent, group_id: str) -> List[int]:
        """Flag nearby same-species predators if the group is being depleted."""
        if not self._is_depleting(ctx, group_id):
            return []

        duration = self._config.behavior.frenzy_duration_ticks
        affected: List[int] = []
        for other in ctx.registry.predators():
            if other is consumer or other.species is not consumer.species:
                continue
            if ctx.is_held(other) or other.state is BehaviorState.FLEEING:
                continue
            if other.position.distance_to(consumer.position) > other.species.detection_radius:
                continue
            other.frenzy = True
            other.schedule(ActionKind.END_FRENZY, ctx.tick + duration)
            affected.append(other.agent_id)

        if affected:
            self._frenzies_total += 1
            ctx.events.emit(
                FrenzyTriggered(
                    trigger_id=consumer.agent_id,
                    group_id=group_id,
                    affected_ids=tuple(affected),
                    tick=ctx.tick,
                )
            )
            logger.info(f"Feeding frenzy at {group_id}: {len(affected)} {consumer.species.name} excited")
        return affected

    # ------------------------------------------------------------------
    # Grazing
    # ------------------------------------------------------------------

    def _graze(self, ctx: "SimulationContext") -> int:
        """Baitfish and crayfish eat forage within reach, one item per feed cooldown."""
        cfg = self._config.food_chain
        forage = ctx.registry.live_agents(Role.FORAGE)
        if not forage:
            return 0
        grazes = 0
        grazers = [a for a in ctx.registry.live_agents() if a.role in GRAZING_ROLES]
        for grazer in grazers:
            if ctx.is_held(grazer) or grazer.hunger <= grazer.species.hunger_threshold:
                continue
            if ctx.tick - grazer.last_graze_tick < cfg.graze_cooldown_ticks:
                continue
            meal = self._nearest_edible(ctx, grazer, forage, cfg.graze_radius)
            if meal is None:
                continue
            self._consume(ctx, grazer, meal, None)
            grazer.last_graze_tick = ctx.tick
            self._grazes_total += 1
            grazes += 1
        return grazes

    def _nearest_edible(
        self, ctx: "SimulationContext", grazer: Agent, forage: List[Agent], radius: float
    ) -> Optional[Agent]:
        best: Optional[Agent] = None
        best_distance = radius
        for item in forage:
            if not ctx.can_eat(grazer, item):
                continue
            distance = grazer.position.distance_to(item.position)
            if distance <= best_distance:
                best, best_distance = item, distance
        return best

    def get_debug_info(self) -> Dict[str, Any]:
        return {
            **super().get_debug_info(),
            "consumptions": self._consumptions_total,
            "grazes": self._grazes_total,
            "frenzies": self._frenzies_total,
            "starved": self._starved_total,
            "tracked_groups": len(self._recent),
        }

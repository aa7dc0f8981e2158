"""School coordination system.

This module owns everything schooling: forming and dissolving schools,
tracking the food around each school, migration, predator scatter, and the
flock motion of school centers and their members.

Phase order within a tick:
    1. Purge dead members; disband schools that emptied
    2. Every ``detection_interval_ticks``: release strays, cluster unschooled fish
    3. Food tracking and migration
    4. Predator scatter (panic)
    5. Center kinematics, then member positioning
    6. Drift for unschooled prey, with burst escapes for species that have one
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from lakesim.config.species import Role, SpeciesProfile, diet_allows
from lakesim.entities.agent import Agent
from lakesim.entities.school import SCHOOL_ID_PREFIX, School
from lakesim.events.domain_events import SchoolDisbanded, SchoolFormed, SchoolMigrationStarted
from lakesim.math_utils import Vector2
from lakesim.state_machine import BehaviorState
from lakesim.systems.base import BaseSystem, SystemResult
from lakesim.update_phases import TickPhase, runs_in_phase

if TYPE_CHECKING:
    from lakesim.config.simulation_config import SimulationConfig
    from lakesim.events.event_queue import EventQueue
    from lakesim.simulation.context import SimulationContext
    from lakesim.simulation.registry import AgentRegistry

logger = logging.getLogger(__name__)

# Predator states that scatter a school
_THREATENING_STATES = (BehaviorState.HUNTING, BehaviorState.CHASING, BehaviorState.STRIKING)


class _UnionFind:
    """Disjoint sets over agent ids."""

    def __init__(self, ids: List[int]) -> None:
        self._parent = {i: i for i in ids}

    def find(self, item: int) -> int:
        root = item
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[item] != root:
            self._parent[item], item = root, self._parent[item]
        return root

    def union(self, a: int, b: int) -> None:
        root_a, root_b = self.find(a), self.find(b)
        if root_a != root_b:
            # Smaller id becomes the root so components are stable across runs
            if root_b < root_a:
                root_a, root_b = root_b, root_a
            self._parent[root_b] = root_a

    def components(self) -> List[List[int]]:
        groups: Dict[int, List[int]] = {}
        for item in self._parent:
            groups.setdefault(self.find(item), []).append(item)
        return [sorted(members) for _, members in sorted(groups.items())]


@runs_in_phase(TickPhase.SCHOOL_KINEMATICS)
class SchoolCoordinator(BaseSystem):
    """Forms, moves and dissolves baitfish schools."""

    def __init__(self, config: "SimulationConfig") -> None:
        super().__init__(config, "SchoolCoordinator")
        self._school_counter = 0
        self._formed_total = 0
        self._disbanded_total = 0
        self._migrations_total = 0
        self._bursts_total = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def form_school(
        self,
        schools: Dict[str, School],
        species: SpeciesProfile,
        members: List[Agent],
        events: "EventQueue",
        tick: int,
    ) -> School:
        """Create a school from ``members`` (all unschooled, same species)."""
        self._school_counter += 1
        school_id = f"{SCHOOL_ID_PREFIX}{self._school_counter}"

        center = Vector2(0.0, 0.0)
        velocity = Vector2(0.0, 0.0)
        for agent in members:
            center.add_inplace(agent.position)
            velocity.add_inplace(agent.velocity)
        center = center / len(members)

        school = School(school_id, species, center, created_tick=tick)
        school.velocity = velocity / len(members)
        for agent in sorted(members, key=lambda a: a.agent_id):
            school.add_member(agent, self._config.schooling.offset_spacing)
        schools[school_id] = school
        self._formed_total += 1

        events.emit(
            SchoolFormed(
                school_id=school_id,
                species=species.name,
                member_count=len(school.members),
                tick=tick,
            )
        )
        logger.info(f"School {school_id} formed: {len(school.members)} {species.name}")
        return school

    def disband(
        self,
        schools: Dict[str, School],
        school: School,
        registry: "AgentRegistry",
        events: "EventQueue",
        tick: int,
        reason: str,
    ) -> None:
        """Remove a school and release whatever members remain."""
        for agent_id in school.members:
            agent = registry.get(agent_id)
            if agent is not None and agent.school_id == school.school_id:
                agent.school_id = None
        school.members = []
        schools.pop(school.school_id, None)
        self._disbanded_total += 1
        events.emit(SchoolDisbanded(school_id=school.school_id, reason=reason, tick=tick))
        logger.info(f"School {school.school_id} disbanded ({reason})")

    def purge_and_disband(
        self,
        schools: Dict[str, School],
        registry: "AgentRegistry",
        events: "EventQueue",
        tick: int,
    ) -> Tuple[int, int]:
        """Purge dead members from every school and disband the empty ones.

        Returns:
            (members purged, schools disbanded)
        """
        purged = 0
        disbanded = 0
        for school in list(schools.values()):
            purged += len(school.purge(registry))
            if not school.members:
                self.disband(schools, school, registry, events, tick, reason="empty")
                disbanded += 1
        return purged, disbanded

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def _do_update(self, ctx: "SimulationContext") -> SystemResult:
        cfg = self._config.schooling
        purged, disbanded = self.purge_and_disband(ctx.schools, ctx.registry, ctx.events, ctx.tick)

        released = 0
        formed = 0
        joined = 0
        if ctx.tick % cfg.detection_interval_ticks == 0:
            released = self._release_strays(ctx)
            joined, formed = self._cluster(ctx)
            _, extra = self.purge_and_disband(ctx.schools, ctx.registry, ctx.events, ctx.tick)
            disbanded += extra

        migrations = 0
        for school in list(ctx.schools.values()):
            if self._track_food(ctx, school):
                migrations += 1
            self._check_scatter(ctx, school)
            self._move_school(ctx, school)
            self._position_members(ctx, school)

        drifted = self._drift_unschooled(ctx)

        return SystemResult(
            agents_affected=sum(len(s.members) for s in ctx.schools.values()) + drifted,
            details={
                "schools": len(ctx.schools),
                "purged": purged,
                "released": released,
                "joined": joined,
                "formed": formed,
                "disbanded": disbanded,
                "migrations": migrations,
            },
        )

    # ------------------------------------------------------------------
    # Clustering
    # ------------------------------------------------------------------

    def _release_strays(self, ctx: "SimulationContext") -> int:
        """Release members that drifted beyond the still-belongs radius."""
        radius = self._config.schooling.fragmentation_radius
        released = 0
        for school in ctx.schools.values():
            for agent_id in list(school.members):
                agent = ctx.registry.get(agent_id)
                if agent is None or ctx.is_held(agent):
                    continue
                if agent.position.distance_to(school.center) > radius:
                    school.remove_member(agent_id)
                    agent.school_id = None
                    released += 1
                    logger.debug(f"Agent {agent_id} strayed from {school.school_id}")
        return released

    def _cluster(self, ctx: "SimulationContext") -> Tuple[int, int]:
        """Merge unschooled fish into existing schools or new ones.

        Returns:
            (agents that joined existing schools, schools formed)
        """
        cfg = self._config.schooling
        by_species: Dict[str, List[Agent]] = {}
        for agent in ctx.registry.live_agents():
            if agent.school_id is None and agent.species.schooling is not None and not ctx.is_held(agent):
                by_species.setdefault(agent.species.name, []).append(agent)

        joined = 0
        formed = 0
        for species_name in sorted(by_species):
            candidates = by_species[species_name]
            species = candidates[0].species
            profile = species.schooling
            search_radius = profile.search_radius

            # Existing schools first, oldest wins
            remaining: List[Agent] = []
            for agent in candidates:
                school = self._school_to_join(ctx, agent, species, search_radius, profile.max_school_size)
                if school is not None:
                    school.add_member(agent, cfg.offset_spacing)
                    joined += 1
                else:
                    remaining.append(agent)

            if len(remaining) < cfg.min_school_size:
                continue

            uf = _UnionFind([a.agent_id for a in remaining])
            for i, a in enumerate(remaining):
                for b in remaining[i + 1 :]:
                    if a.position.distance_to(b.position) <= search_radius:
                        uf.union(a.agent_id, b.agent_id)

            by_id = {a.agent_id: a for a in remaining}
            for component in uf.components():
                if len(component) < cfg.min_school_size:
                    continue
                if len(ctx.schools) >= self._config.capacity.max_schools:
                    logger.debug(f"School capacity reached; {species_name} cluster left unschooled")
                    break
                members = [by_id[i] for i in component[: profile.max_school_size]]
                self.form_school(ctx.schools, species, members, ctx.events, ctx.tick)
                formed += 1
        return joined, formed

    def _school_to_join(
        self,
        ctx: "SimulationContext",
        agent: Agent,
        species: SpeciesProfile,
        radius: float,
        max_size: int,
    ) -> Optional[School]:
        for school in ctx.schools.values():
            if school.species is not species or len(school.members) >= max_size:
                continue
            if agent.position.distance_to(school.center) <= radius:
                return school
        return None

    # ------------------------------------------------------------------
    # Food / migration
    # ------------------------------------------------------------------

    def _track_food(self, ctx: "SimulationContext", school: School) -> bool:
        """Update food counters; returns True if migration started this tick."""
        cfg = self._config.schooling
        food_tier = school.species.tier - 1
        if food_tier < 0:
            return False

        count = 0
        total = Vector2(0.0, 0.0)
        for agent in ctx.registry.live_agents():
            if agent.tier != food_tier:
                continue
            if agent.position.distance_to(school.center) <= cfg.food_detection_radius:
                count += 1
                total.add_inplace(agent.position)
        school.nearby_food_count = count
        school.food_centroid = total / count if count else None

        if count < cfg.food_depletion_threshold:
            school.low_food_ticks += 1
            if school.low_food_ticks == cfg.migration_trigger_ticks and not school.migrating:
                school.migrating = True
                school.migration_direction = ctx.bounds.away_from_nearest_edge(school.center)
                self._migrations_total += 1
                ctx.events.emit(
                    SchoolMigrationStarted(
                        school_id=school.school_id,
                        direction=school.migration_direction,
                        tick=ctx.tick,
                    )
                )
                logger.info(
                    f"School {school.school_id} food depleted - migrating "
                    f"{'right' if school.migration_direction > 0 else 'left'}"
                )
                return True
        else:
            school.low_food_ticks = 0
            if school.migrating and count >= cfg.food_depletion_threshold * 2:
                school.migrating = False
                school.migration_direction = 0
                logger.info(f"School {school.school_id} found food - stopping migration")
        return False

    def _check_scatter(self, ctx: "SimulationContext", school: School) -> None:
        """Track the nearest threatening predator and the school's fear of it."""
        cfg = self._config.schooling
        threat = self._nearest_threat(ctx, school)
        if threat is not None:
            school.threat_position = threat.position.copy()
            school.scared_level = min(1.0, school.scared_level + cfg.scare_rise)
            school.panic_until = ctx.tick + cfg.panic_duration_ticks
        else:
            school.threat_position = None
            school.scared_level = max(0.0, school.scared_level - cfg.scare_decay)

        if school.scared_level > cfg.scared_spread_threshold:
            school.spread = max(cfg.min_spread, cfg.scared_spread - school.scared_level * cfg.scared_spread_per_level)
        else:
            school.spread = 1.0

    def _nearest_threat(self, ctx: "SimulationContext", school: School) -> Optional[Agent]:
        radius = self._config.schooling.panic_radius
        best: Optional[Agent] = None
        best_distance = radius
        for predator in ctx.registry.predators():
            if predator.state not in _THREATENING_STATES or ctx.is_held(predator):
                continue
            if not diet_allows(predator.species, school.species):
                continue
            distance = predator.position.distance_to(school.center)
            if distance <= best_distance:
                best, best_distance = predator, distance
        return best

    # ------------------------------------------------------------------
    # Kinematics
    # ------------------------------------------------------------------

    def _speed_caps(self, ctx: "SimulationContext", school: School, food_seeking: bool) -> Tuple[float, float]:
        cfg = self._config.schooling
        if school.migrating:
            cap_x, cap_y = cfg.migrating_max_speed
        elif food_seeking:
            cap_x, cap_y = cfg.food_seeking_max_speed
        else:
            cap_x, cap_y = cfg.wander_max_speed
        scale = school.species.cruise_speed
        if school.is_panicked(ctx.tick):
            scale *= cfg.panic_speed_multiplier
        return cap_x * scale, cap_y * scale

    def _is_hungry(self, ctx: "SimulationContext", school: School) -> bool:
        hungers = [ctx.registry.get(i).hunger for i in school.members if ctx.registry.is_live(i)]
        if not hungers:
            return False
        return sum(hungers) / len(hungers) > school.species.hunger_threshold

    def _move_school(self, ctx: "SimulationContext", school: School) -> None:
        cfg = self._config.schooling
        rng = ctx.rng
        fleeing = school.threat_position is not None
        food_seeking = (
            not fleeing
            and not school.migrating
            and school.food_centroid is not None
            and self._is_hungry(ctx, school)
        )

        if fleeing:
            school.velocity.add_inplace(self._flee_impulse(school))
        elif food_seeking:
            pull = (school.food_centroid - school.center).normalize()
            school.velocity.add_inplace(pull * cfg.food_attraction)
        elif not school.migrating:
            school.velocity.add_inplace(
                Vector2(
                    rng.uniform(-cfg.wander_impulse, cfg.wander_impulse),
                    rng.uniform(-cfg.wander_impulse, cfg.wander_impulse) * 0.5,
                )
            )
        if school.migrating:
            school.velocity.x += school.migration_direction * cfg.migration_impulse

        school.velocity.mul_inplace(cfg.velocity_decay)
        cap_x, cap_y = self._speed_caps(ctx, school, food_seeking)
        school.velocity.clamp_components_inplace(cap_x, cap_y)

        school.center.add_inplace(school.velocity)
        ctx.bounds.clamp_depth(school.center)

    def _flee_impulse(self, school: School) -> Vector2:
        """Push away from the threat, stronger the closer it is."""
        cfg = self._config.schooling
        away = school.center - school.threat_position
        distance = away.length()
        if distance == 0:
            away = Vector2(-float(school.migration_direction or 1), 0.0)
        else:
            away = away / distance
        urgency = max(0.0, (cfg.panic_radius - distance) / cfg.panic_radius)
        return away * (cfg.flee_impulse * urgency)

    def _position_members(self, ctx: "SimulationContext", school: School) -> None:
        cfg = self._config.schooling
        profile = school.species.schooling
        members = [ctx.registry.get(i) for i in school.members if ctx.registry.is_live(i)]
        members = [m for m in members if not ctx.is_held(m)]
        max_speed = school.species.cruise_speed * cfg.member_speed_multiplier
        if school.is_panicked(ctx.tick):
            max_speed = school.species.panic_speed * cfg.member_speed_multiplier

        sep_radius = profile.separation_radius if profile else 10.0
        align_radius = profile.alignment_radius if profile else 30.0
        sep_weight = profile.separation_weight if profile else 1.0
        align_weight = profile.alignment_weight if profile else 1.0

        # Compute every steer from the same snapshot, then apply
        steers: List[Tuple[Agent, Vector2]] = []
        for agent in members:
            desired = school.center + agent.school_offset * school.spread
            steer = school.velocity + (desired - agent.position) * cfg.offset_pull

            separation = Vector2(0.0, 0.0)
            heading_sum = Vector2(0.0, 0.0)
            neighbors = 0
            for other in members:
                if other is agent:
                    continue
                gap = agent.position - other.position
                dist = gap.length()
                if 0 < dist < sep_radius:
                    separation.add_inplace(gap.normalize() * ((sep_radius - dist) / sep_radius))
                if dist < align_radius:
                    heading_sum.add_inplace(other.velocity)
                    neighbors += 1
            steer.add_inplace(separation * (cfg.separation_strength * sep_weight))
            if neighbors:
                mean_heading = heading_sum / neighbors
                steer.add_inplace((mean_heading - agent.velocity) * (cfg.alignment_strength * align_weight))
            steers.append((agent, steer.limit_inplace(max_speed)))

        for agent, velocity in steers:
            agent.velocity = velocity
            agent.position.add_inplace(velocity)
            ctx.bounds.clamp_depth(agent.position)
            if velocity.x != 0:
                agent.idle_direction = 1 if velocity.x > 0 else -1

    def _drift_unschooled(self, ctx: "SimulationContext") -> int:
        cfg = self._config.schooling
        rng = ctx.rng
        drifted = 0
        for agent in ctx.registry.live_agents():
            if agent.role is Role.PREDATOR or agent.school_id is not None or ctx.is_held(agent):
                continue
            if self._burst_escape(ctx, agent):
                agent.position.add_inplace(agent.velocity)
                ctx.bounds.clamp_depth(agent.position)
                drifted += 1
                continue
            agent.velocity.add_inplace(
                Vector2(
                    rng.uniform(-cfg.drift_jitter, cfg.drift_jitter),
                    rng.uniform(-cfg.drift_jitter, cfg.drift_jitter) * 0.5,
                )
            )
            agent.velocity.mul_inplace(cfg.drift_decay)
            agent.velocity.limit_inplace(agent.species.cruise_speed)
            agent.position.add_inplace(agent.velocity)
            ctx.bounds.clamp_depth(agent.position)
            drifted += 1
        return drifted

    def _burst_escape(self, ctx: "SimulationContext", agent: Agent) -> bool:
        """Dart straight away from a nearby predator; True while a burst is on.

        A burst holds its velocity for its duration and cannot retrigger until
        the cooldown has passed.
        """
        profile = agent.species.burst_escape
        if profile is None:
            return False
        if ctx.tick < agent.burst_until:
            return True
        if ctx.tick < agent.burst_ready_tick:
            return False

        threat: Optional[Agent] = None
        best_distance = profile.trigger_radius
        for predator in ctx.registry.predators():
            if ctx.is_held(predator) or not diet_allows(predator.species, agent.species):
                continue
            distance = predator.position.distance_to(agent.position)
            if distance <= best_distance:
                threat, best_distance = predator, distance
        if threat is None:
            return False

        away = agent.position - threat.position
        if away.length() == 0:
            away = Vector2(-float(agent.idle_direction), 0.0)
        agent.velocity = away.normalize() * profile.speed
        agent.burst_until = ctx.tick + profile.duration_ticks
        agent.burst_ready_tick = ctx.tick + profile.cooldown_ticks
        self._bursts_total += 1
        logger.debug(
            f"Agent {agent.agent_id} ({agent.species.name}) burst away from {threat.agent_id} "
            f"at {best_distance:.0f}"
        )
        return True

    # ------------------------------------------------------------------
    # Debug
    # ------------------------------------------------------------------

    def get_debug_info(self) -> Dict[str, Any]:
        return {
            **super().get_debug_info(),
            "schools_formed": self._formed_total,
            "schools_disbanded": self._disbanded_total,
            "migrations": self._migrations_total,
            "burst_escapes": self._bursts_total,
        }

"""Simulation engine - the fixed-tick orchestrator.

The engine is a coordinator, not a doer. It owns the registry, the schools,
the event queue and one system per tick phase, and runs the phases in the
order declared in :mod:`lakesim.update_phases`. All business logic lives in
the systems.

Design decisions:
-----------------
1. Determinism: every random draw goes through one ``random.Random`` owned by
   the engine. Same seed, same spawns, same inputs -> same event stream.

2. Mutation discipline: the registry is locked for every phase except
   CLEANUP. Spawning and external removal happen between ticks only; removal
   is deferred to the next cleanup.

3. Fault isolation: each phase runs inside a guard. A system that raises is
   logged and reported in the TickReport; the tick (and the loop) continues.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from lakesim.config.simulation_config import SimulationConfig
from lakesim.config.species import SIZE_CLASS_ORDER, Role, SizeClass, SpeciesProfile, get_species
from lakesim.config.tackle import LineConfig, ReelConfig, parse_line_config, parse_reel_config
from lakesim.entities.agent import Agent
from lakesim.entities.school import School
from lakesim.events.event_queue import EventQueue
from lakesim.exceptions import CapacityError, MutationLockError
from lakesim.math_utils import Vector2, spiral_offset
from lakesim.result import Err, Ok, Result
from lakesim.simulation.context import Disturbance, SimulationContext
from lakesim.simulation.inputs import IDLE_INPUT, TickInput
from lakesim.simulation.registry import AgentRegistry
from lakesim.simulation.removal_queue import RemovalQueue
from lakesim.snapshots import AgentSnapshot, SchoolSnapshot
from lakesim.spatial.bounds import WaterBounds
from lakesim.systems.base import BaseSystem, SystemResult
from lakesim.systems.behavior import BehaviorStateMachine
from lakesim.systems.capture import CaptureEngine, CaptureRecord, FightView
from lakesim.systems.cleanup import CleanupSystem
from lakesim.systems.food_chain import FoodChainResolver
from lakesim.systems.schooling import SchoolCoordinator
from lakesim.update_phases import PHASE_DESCRIPTIONS, PHASE_ORDER, TickPhase, get_system_phase

logger = logging.getLogger(__name__)

SpeciesLike = Union[str, SpeciesProfile]
SizeLike = Union[str, SizeClass, None]
LineLike = Union[LineConfig, Mapping[str, Any], None]
ReelLike = Union[ReelConfig, Mapping[str, Any], None]


@dataclass
class TickReport:
    """What happened during one ``step()``."""

    tick: int
    results: Dict[TickPhase, SystemResult] = field(default_factory=dict)
    events_emitted: int = 0
    agent_count: int = 0
    school_count: int = 0

    @property
    def faults(self) -> int:
        return sum(result.faults for result in self.results.values())


class SimulationEngine:
    """A headless, deterministic lake simulation.

    Architecture:
        SimulationEngine (coordinator)
        ├── AgentRegistry (agents by id)
        ├── schools (School by id, owned by SchoolCoordinator)
        ├── EventQueue (outbound domain events)
        └── Systems, one per phase:
            SchoolCoordinator -> BehaviorStateMachine -> FoodChainResolver
            -> CaptureEngine -> CleanupSystem

    Attributes:
        config: Aggregate simulation configuration
        rng: The only random source used by the simulation
        line_config: Session line settings
        reel_config: Session reel settings
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        *,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
        line_config: LineLike = None,
        reel_config: ReelLike = None,
    ) -> None:
        """Initialize the simulation engine.

        Args:
            config: Aggregate simulation configuration
            seed: Optional seed (used if rng is not provided)
            rng: Shared random number generator for deterministic runs
            line_config: LineConfig or raw mapping (validated and clamped)
            reel_config: ReelConfig or raw mapping (validated and clamped)

        Raises:
            ConfigurationError: If the config or tackle settings are invalid.
        """
        self.config = config or SimulationConfig()
        self.config.validate()

        # RNG handling: prefer explicit rng, then seed, then fresh RNG
        if rng is not None:
            self.rng: random.Random = rng
            self.seed: Optional[int] = None
        else:
            self.rng = random.Random(seed)
            self.seed = seed

        self.line_config = line_config if isinstance(line_config, LineConfig) else parse_line_config(line_config)
        self.reel_config = reel_config if isinstance(reel_config, ReelConfig) else parse_reel_config(reel_config)

        self._tick = 0
        self._bounds = WaterBounds(self.config.world)
        self._registry = AgentRegistry(self.config.capacity.max_agents)
        self._schools: Dict[str, School] = {}
        self._events = EventQueue()
        self._removals = RemovalQueue()
        self._pending_disturbances: List[Disturbance] = []
        self._last_report: Optional[TickReport] = None

        self._school_coordinator = SchoolCoordinator(self.config)
        self._behavior = BehaviorStateMachine(self.config)
        self._food_chain = FoodChainResolver(self.config)
        self._capture = CaptureEngine(self.config)
        self._cleanup = CleanupSystem(self.config, self._school_coordinator)

        self._systems: Dict[TickPhase, BaseSystem] = {}
        for system in (self._school_coordinator, self._behavior, self._food_chain, self._capture, self._cleanup):
            self._systems[get_system_phase(system)] = system

        logger.info(
            f"SimulationEngine started: seed={self.seed}, line={self.line_config.test_strength_lb:.0f} lb "
            f"{self.line_config.material.value}, reel={self.reel_config.reel_type.value} "
            f"drag={self.reel_config.drag_setting:.2f}"
        )

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def registry(self) -> AgentRegistry:
        return self._registry

    @property
    def schools(self) -> Dict[str, School]:
        return self._schools

    @property
    def bounds(self) -> WaterBounds:
        return self._bounds

    @property
    def capture(self) -> CaptureEngine:
        return self._capture

    @property
    def fight(self) -> Optional[FightView]:
        """Read-only view of the active fight, or None."""
        return self._capture.fight_view()

    @property
    def last_report(self) -> Optional[TickReport]:
        return self._last_report

    def get_systems(self) -> List[BaseSystem]:
        return [self._systems[phase] for phase in PHASE_ORDER]

    def get_system(self, name: str) -> Optional[BaseSystem]:
        for system in self._systems.values():
            if system.name == name:
                return system
        return None

    # ------------------------------------------------------------------
    # Spawning (between ticks only)
    # ------------------------------------------------------------------

    def spawn_agent(
        self,
        species: SpeciesLike,
        size_class: SizeLike,
        position: Vector2,
        *,
        hunger: Optional[float] = None,
    ) -> Result[int, str]:
        """Create one agent and register it.

        Weight and length are drawn inside the size class band; hunger from the
        configured spawn range unless given.

        Returns:
            Ok(agent_id), or Err(reason) for an unknown species/size class,
            a locked registry, or exhausted capacity.
        """
        profile = self._resolve_species(species)
        if profile is None:
            return Err(f"Unknown species: {species}")
        size = self._resolve_size(size_class)
        if size is None:
            return Err(f"Unknown size class: {size_class}")

        agent = self._build_agent(profile, size, position, hunger)
        try:
            self._registry.add(agent)
        except (MutationLockError, CapacityError) as e:
            logger.warning(f"spawn_agent({profile.name}) refused: {e}")
            return Err(str(e))
        logger.debug(f"Spawned agent {agent.agent_id} ({profile.name}, {size.value})")
        return Ok(agent.agent_id)

    def spawn_school(
        self,
        species: SpeciesLike,
        count: int,
        position: Vector2,
        *,
        size_class: SizeLike = None,
    ) -> Result[str, str]:
        """Create ``count`` schooling baitfish around ``position`` as one school.

        Members are laid out on a spiral so the school does not bloom from a
        single point.

        Returns:
            Ok(school_id), or Err(reason). Nothing is spawned on failure.
        """
        profile = self._resolve_species(species)
        if profile is None:
            return Err(f"Unknown species: {species}")
        if profile.schooling is None:
            return Err(f"{profile.name} does not school")
        limit = min(self.config.capacity.max_spawn_school_count, profile.schooling.max_school_size)
        if count < 1 or count > limit:
            return Err(f"School size {count} outside 1..{limit}")
        if size_class is not None and self._resolve_size(size_class) is None:
            return Err(f"Unknown size class: {size_class}")
        if self._registry.is_locked:
            return Err("Registry is locked")
        if self._registry.capacity_remaining < count:
            return Err(f"Agent capacity exhausted ({self._registry.capacity_remaining} free, {count} requested)")
        if len(self._schools) >= self.config.capacity.max_schools:
            return Err(f"School capacity reached ({self.config.capacity.max_schools})")

        members: List[Agent] = []
        spacing = self.config.schooling.offset_spacing
        for index in range(count):
            size = self._resolve_size(size_class)
            agent = self._build_agent(profile, size, position + spiral_offset(index, spacing), None)
            self._registry.add(agent)
            members.append(agent)

        school = self._school_coordinator.form_school(self._schools, profile, members, self._events, self._tick)
        return Ok(school.school_id)

    def _resolve_species(self, species: SpeciesLike) -> Optional[SpeciesProfile]:
        if isinstance(species, SpeciesProfile):
            return species
        return get_species(species)

    def _resolve_size(self, size_class: SizeLike) -> Optional[SizeClass]:
        if size_class is None:
            return self.rng.choice(SIZE_CLASS_ORDER)
        if isinstance(size_class, SizeClass):
            return size_class
        try:
            return SizeClass(size_class)
        except ValueError:
            return None

    def _build_agent(
        self,
        profile: SpeciesProfile,
        size: SizeClass,
        position: Vector2,
        hunger: Optional[float],
    ) -> Agent:
        low, high = self.config.food_chain.spawn_hunger_range
        if hunger is None:
            hunger = self.rng.uniform(low, high)
        spawn_position = position.copy()
        self._bounds.clamp_depth(spawn_position)
        agent = Agent(
            agent_id=self._registry.allocate_id(),
            species=profile,
            size_class=size,
            position=spawn_position,
            weight=profile.weight_for(size, self.rng.random()),
            length=profile.length_for(size, self.rng.random()),
            hunger=hunger,
            idle_direction=self.rng.choice((-1, 1)),
            spawn_tick=self._tick,
        )
        if profile.role is Role.PREDATOR:
            # Personality: how readily this fish commits to a lure, and where it likes to hold
            agent.aggressiveness = self.rng.uniform(*self.config.behavior.aggressiveness_range)
            agent.preferred_depth = self.rng.uniform(*profile.depth_range)
        return agent

    # ------------------------------------------------------------------
    # External signals
    # ------------------------------------------------------------------

    def remove_agent(self, agent_id: int, reason: str = "despawned") -> bool:
        """Force-remove an agent. It stops being live now and leaves the
        registry at the next cleanup. Returns False for an unknown id."""
        agent = self._registry.get(agent_id)
        if agent is None or not agent.is_alive:
            return False
        agent.mark_removed(reason)
        self._removals.request_remove(agent_id, reason=reason)
        logger.debug(f"Agent {agent_id} force-removed ({reason})")
        return True

    def disturb(self, position: Vector2, radius: Optional[float] = None) -> None:
        """Scare fish near ``position`` during the next behavior phase."""
        if radius is None:
            radius = self.config.behavior.default_disturbance_radius
        self._pending_disturbances.append(Disturbance(position=position.copy(), radius=radius))

    def force_end_fight(self, reason: str = "force_end") -> bool:
        """Cancel any running contest at this tick boundary."""
        ctx = self._make_context(IDLE_INPUT, [])
        ended = self._capture.force_end(ctx, reason)
        if ended:
            logger.info(f"Contest force-ended at tick {self._tick} ({reason})")
        return ended

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def _make_context(self, inputs: TickInput, disturbances: List[Disturbance]) -> SimulationContext:
        return SimulationContext(
            tick=self._tick,
            rng=self.rng,
            config=self.config,
            bounds=self._bounds,
            registry=self._registry,
            schools=self._schools,
            events=self._events,
            removals=self._removals,
            inputs=inputs,
            line_config=self.line_config,
            reel_config=self.reel_config,
            disturbances=disturbances,
            held_agent_id=self._capture.held_agent_id,
            lure_available=self._capture.is_idle,
        )

    def step(self, inputs: Optional[TickInput] = None) -> TickReport:
        """Advance the simulation by one tick.

        Phase Order:
            1. SCHOOL_KINEMATICS
            2. BEHAVIOR
            3. FOOD_CHAIN
            4. CAPTURE
            5. CLEANUP
        """
        self._tick += 1
        ctx = self._make_context(inputs or IDLE_INPUT, self._pending_disturbances)
        self._pending_disturbances = []
        events_before = self._events.emitted_total

        report = TickReport(tick=self._tick)
        for phase in PHASE_ORDER:
            report.results[phase] = self._run_phase(phase, ctx)
            ctx.held_agent_id = self._capture.held_agent_id

        report.events_emitted = self._events.emitted_total - events_before
        report.agent_count = len(self._registry)
        report.school_count = len(self._schools)
        self._last_report = report
        return report

    def run(self, ticks: int, inputs: Optional[TickInput] = None) -> List[TickReport]:
        """Step ``ticks`` times with the same input."""
        return [self.step(inputs) for _ in range(ticks)]

    def _run_phase(self, phase: TickPhase, ctx: SimulationContext) -> SystemResult:
        system = self._systems[phase]
        try:
            if phase is TickPhase.CLEANUP:
                return system.update(ctx)
            with self._registry.locked():
                return system.update(ctx)
        except Exception as e:
            logger.exception(f"{system.name} failed during {PHASE_DESCRIPTIONS[phase].lower()} at tick {ctx.tick}")
            return SystemResult(faults=1, details={"error": str(e)})

    # ------------------------------------------------------------------
    # Outputs
    # ------------------------------------------------------------------

    def drain_events(self) -> List[object]:
        return self._events.drain()

    def drain_capture_records(self) -> List[CaptureRecord]:
        return self._capture.drain_capture_records()

    def list_visible_agents(self) -> List[AgentSnapshot]:
        return [
            AgentSnapshot.from_agent(agent)
            for agent in self._registry.live_agents()
            if self._bounds.is_visible(agent.position)
        ]

    def get_agent_snapshot(self, agent_id: int) -> Optional[AgentSnapshot]:
        agent = self._registry.get(agent_id)
        if agent is None or not agent.is_alive:
            return None
        return AgentSnapshot.from_agent(agent)

    def get_school_snapshot(self, school_id: str) -> Optional[SchoolSnapshot]:
        school = self._schools.get(school_id)
        if school is None:
            return None
        return SchoolSnapshot.from_school(school, self._registry, self._tick)

    def get_debug_info(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "tick": self._tick,
            "seed": self.seed,
            "agents": len(self._registry),
            "live_agents": len(self._registry.live_agents()),
            "schools": len(self._schools),
            "pending_events": len(self._events),
            "events_by_type": self._events.counts_by_type(),
            "systems": {system.name: system.get_debug_info() for system in self.get_systems()},
        }
        if self._last_report is not None:
            info["last_tick"] = {
                phase.name: {
                    "affected": result.agents_affected,
                    "removed": result.agents_removed,
                    "events": result.events_emitted,
                    "faults": result.faults,
                    **result.details,
                }
                for phase, result in self._last_report.results.items()
            }
        return info

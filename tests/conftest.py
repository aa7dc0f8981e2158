"""Pytest configuration and fixtures for lake simulation tests."""

import random
from typing import Dict, Optional

import pytest

from lakesim.config.simulation_config import SimulationConfig
from lakesim.config.species import SizeClass, get_species
from lakesim.config.tackle import LineConfig, ReelConfig
from lakesim.entities.agent import Agent
from lakesim.entities.school import School
from lakesim.events.event_queue import EventQueue
from lakesim.math_utils import Vector2
from lakesim.simulation.context import SimulationContext
from lakesim.simulation.inputs import IDLE_INPUT, TickInput
from lakesim.simulation.registry import AgentRegistry
from lakesim.simulation.removal_queue import RemovalQueue
from lakesim.spatial.bounds import WaterBounds


@pytest.fixture
def seeded_rng():
    """Provide a deterministic RNG for tests."""
    return random.Random(42)


@pytest.fixture
def sim_config():
    return SimulationConfig()


@pytest.fixture
def bold_config():
    """Predators that always take the lure and never balk at it."""
    return SimulationConfig().with_overrides(
        behavior={
            "aggressiveness_range": (1.0, 1.0),
            "lure_strike_chance": 1.0,
            "lure_interest_threshold": 0.0,
        }
    )


@pytest.fixture
def engine():
    """Setup a simulation engine for testing with deterministic seed."""
    from lakesim.simulation.engine import SimulationEngine

    return SimulationEngine(seed=42)


class LakeHarness:
    """Registry, schools and queues wired together for driving one system by hand."""

    def __init__(self, config: SimulationConfig, rng: random.Random) -> None:
        self.config = config
        self.rng = rng
        self.bounds = WaterBounds(config.world)
        self.registry = AgentRegistry(config.capacity.max_agents)
        self.schools: Dict[str, School] = {}
        self.events = EventQueue()
        self.removals = RemovalQueue()
        self.line_config = LineConfig()
        self.reel_config = ReelConfig()
        self.tick = 0

    def add(
        self,
        species: str,
        x: float,
        depth: float,
        *,
        size_class: SizeClass = SizeClass.MEDIUM,
        weight: Optional[float] = None,
        hunger: float = 0.0,
    ) -> Agent:
        profile = get_species(species)
        agent = Agent(
            agent_id=self.registry.allocate_id(),
            species=profile,
            size_class=size_class,
            position=Vector2(x, depth),
            weight=weight if weight is not None else profile.weight_for(size_class, 0.5),
            length=profile.length_for(size_class, 0.5),
            hunger=hunger,
        )
        self.registry.add(agent)
        return agent

    def context(self, inputs: TickInput = IDLE_INPUT, **kwargs) -> SimulationContext:
        return SimulationContext(
            tick=kwargs.pop("tick", self.tick),
            rng=self.rng,
            config=self.config,
            bounds=self.bounds,
            registry=self.registry,
            schools=self.schools,
            events=self.events,
            removals=self.removals,
            inputs=inputs,
            line_config=kwargs.pop("line_config", self.line_config),
            reel_config=kwargs.pop("reel_config", self.reel_config),
            **kwargs,
        )


@pytest.fixture
def lake(sim_config, seeded_rng):
    """A bare lake for unit-testing systems without the engine."""
    return LakeHarness(sim_config, seeded_rng)


@pytest.fixture
def make_lake(seeded_rng):
    """Factory for a bare lake with a custom config."""

    def _make(config: Optional[SimulationConfig] = None) -> LakeHarness:
        return LakeHarness(config or SimulationConfig(), seeded_rng)

    return _make

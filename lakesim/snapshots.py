"""Read-only snapshots for the presentation layer.

Snapshots are frozen copies taken at query time. Holding one never keeps an
agent or school alive, and mutating the simulation afterwards never changes a
snapshot already handed out.
"""

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

import orjson

if TYPE_CHECKING:
    from lakesim.entities.agent import Agent
    from lakesim.entities.school import School
    from lakesim.simulation.registry import AgentRegistry


@dataclass(frozen=True)
class AgentSnapshot:
    agent_id: int
    species: str
    role: str
    size_class: str
    state: str
    position: Tuple[float, float]
    velocity: Tuple[float, float]
    weight: float
    length: float
    hunger: float
    health: float
    aggressiveness: float
    frenzy: bool
    held: bool
    school_id: Optional[str]
    target: Optional[str]

    @classmethod
    def from_agent(cls, agent: "Agent") -> "AgentSnapshot":
        return cls(
            agent_id=agent.agent_id,
            species=agent.species.name,
            role=agent.role.value,
            size_class=agent.size_class.value,
            state=agent.state.value,
            position=agent.position.as_tuple(),
            velocity=agent.velocity.as_tuple(),
            weight=agent.weight,
            length=agent.length,
            hunger=agent.hunger,
            health=agent.health,
            aggressiveness=agent.aggressiveness,
            frenzy=agent.frenzy,
            held=agent.frozen,
            school_id=agent.school_id,
            target=str(agent.target) if agent.target is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self) -> bytes:
        return orjson.dumps(self.to_dict())


@dataclass(frozen=True)
class SchoolSnapshot:
    school_id: str
    species: str
    center: Tuple[float, float]
    velocity: Tuple[float, float]
    member_ids: Tuple[int, ...]
    peak_size: int
    migrating: bool
    panicked: bool
    scared_level: float
    nearby_food_count: int

    @classmethod
    def from_school(cls, school: "School", registry: "AgentRegistry", tick: int) -> "SchoolSnapshot":
        return cls(
            school_id=school.school_id,
            species=school.species.name,
            center=school.center.as_tuple(),
            velocity=school.velocity.as_tuple(),
            member_ids=tuple(i for i in school.members if registry.is_live(i)),
            peak_size=school.peak_size,
            migrating=school.migrating,
            panicked=school.is_panicked(tick),
            scared_level=school.scared_level,
            nearby_food_count=school.nearby_food_count,
        )

    @property
    def member_count(self) -> int:
        return len(self.member_ids)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["member_count"] = self.member_count
        return data

    def to_json(self) -> bytes:
        return orjson.dumps(self.to_dict())

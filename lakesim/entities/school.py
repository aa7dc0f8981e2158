"""Prey groups: schools and solitary prey behind one interface.

Predators never branch on whether their prey is schooling. They hold a
group id, resolve it to a :class:`PreyGroup` each tick, and ask it for the
best member to strike at. :class:`School` scores its members; a
:class:`SoloPreyGroup` is a trivial wrapper around one unschooled fish.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from lakesim.config.simulation_config import TargetScoringWeights
from lakesim.config.species import SpeciesProfile
from lakesim.math_utils import Vector2, spiral_offset

if TYPE_CHECKING:
    from lakesim.simulation.registry import AgentRegistry

SCHOOL_ID_PREFIX = "school_"
SOLO_ID_PREFIX = "solo_"


@runtime_checkable
class PreyGroup(Protocol):
    """Uniform view of prey for predators."""

    @property
    def group_id(self) -> str: ...

    @property
    def species(self) -> SpeciesProfile: ...

    def locate(self, registry: "AgentRegistry") -> Optional[Vector2]:
        """Current center, or None if the group no longer has live members."""
        ...

    def live_count(self, registry: "AgentRegistry") -> int: ...

    def get_closest_baitfish(
        self,
        registry: "AgentRegistry",
        position: Vector2,
        predator_id: Optional[int] = None,
        weights: Optional[TargetScoringWeights] = None,
    ) -> Tuple[Optional[int], float]:
        """Pick a member for a predator at ``position``; returns (member_id, distance)."""
        ...

    def cached_target(self, registry: "AgentRegistry", predator_id: int) -> Optional[int]: ...

    def clear_target(self, predator_id: int) -> None: ...


class School:
    """An emergent group of same-species baitfish.

    Attributes:
        members: Ordered member ids, never containing duplicates.
        peak_size: Largest membership the school has reached.
        nearby_food_count: Forage agents within the food detection radius.
        low_food_ticks: Consecutive ticks with food below the depletion threshold.
        migrating: Set when low food persisted for the trigger duration.
        migration_direction: -1 (toward x=0) or +1 (toward x=width), 0 if not migrating.
        scared_level: Builds while a predator threatens, decays after; above a
            threshold members close ranks (``spread`` < 1).
    """

    def __init__(self, school_id: str, species: SpeciesProfile, center: Vector2, created_tick: int = 0) -> None:
        self._school_id = school_id
        self._species = species
        self.center: Vector2 = center.copy()
        self.velocity: Vector2 = Vector2(0.0, 0.0)
        self.members: List[int] = []
        self.peak_size: int = 0
        self.created_tick = created_tick

        # Foraging
        self.nearby_food_count: int = 0
        self.food_centroid: Optional[Vector2] = None
        self.low_food_ticks: int = 0
        self.migrating: bool = False
        self.migration_direction: int = 0

        # Predator scatter
        self.panic_until: int = -1
        self.scared_level: float = 0.0  # 0-1
        self.spread: float = 1.0  # Scale on member slot offsets
        self.threat_position: Optional[Vector2] = None

        self._next_slot = 0
        self._candidates: Dict[int, int] = {}

    @property
    def group_id(self) -> str:
        return self._school_id

    @property
    def school_id(self) -> str:
        return self._school_id

    @property
    def species(self) -> SpeciesProfile:
        return self._species

    def is_panicked(self, tick: int) -> bool:
        return tick < self.panic_until

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def add_member(self, agent, spacing: float) -> bool:
        """Add an agent and give it a spiral slot. Returns False if already a member."""
        if agent.agent_id in self.members:
            return False
        self.members.append(agent.agent_id)
        agent.school_id = self._school_id
        agent.school_offset = spiral_offset(self._next_slot, spacing)
        self._next_slot += 1
        self.peak_size = max(self.peak_size, len(self.members))
        return True

    def remove_member(self, agent_id: int) -> bool:
        if agent_id not in self.members:
            return False
        self.members.remove(agent_id)
        self._drop_candidate_member(agent_id)
        return True

    def purge(self, registry: "AgentRegistry") -> List[int]:
        """Drop members that are gone or no longer alive; returns the dropped ids.

        Also collapses any duplicate ids, keeping first occurrence order.
        """
        kept: List[int] = []
        dropped: List[int] = []
        seen = set()
        for agent_id in self.members:
            if agent_id in seen:
                continue
            seen.add(agent_id)
            agent = registry.get(agent_id)
            if agent is None or not agent.is_alive:
                dropped.append(agent_id)
            else:
                kept.append(agent_id)
        self.members = kept
        for agent_id in dropped:
            self._drop_candidate_member(agent_id)
        return dropped

    def live_count(self, registry: "AgentRegistry") -> int:
        return sum(1 for agent_id in self.members if registry.is_live(agent_id))

    def centroid(self, registry: "AgentRegistry") -> Optional[Vector2]:
        positions = [registry.get(i).position for i in self.members if registry.is_live(i)]
        if not positions:
            return None
        total = Vector2(0.0, 0.0)
        for pos in positions:
            total.add_inplace(pos)
        return total / len(positions)

    def locate(self, registry: "AgentRegistry") -> Optional[Vector2]:
        if self.live_count(registry) == 0:
            return None
        return self.center

    # ------------------------------------------------------------------
    # Target selection
    # ------------------------------------------------------------------

    def get_closest_baitfish(
        self,
        registry: "AgentRegistry",
        position: Vector2,
        predator_id: Optional[int] = None,
        weights: Optional[TargetScoringWeights] = None,
    ) -> Tuple[Optional[int], float]:
        """Score live members for a predator at ``position``.

        Favors members on the side facing the predator and on the edge of the
        school, with a small penalty for distance. Ties go to the lower id.
        The winner is cached per predator so a later consume call takes
        exactly this member.
        """
        weights = weights or TargetScoringWeights()
        live = [registry.get(i) for i in self.members if registry.is_live(i)]
        if not live:
            if predator_id is not None:
                self._candidates.pop(predator_id, None)
            return None, float("inf")

        approach = (self.center - position).normalize()
        offsets = {a.agent_id: a.position - self.center for a in live}
        distances = {a.agent_id: a.position.distance_to(position) for a in live}
        max_offset = max(o.length() for o in offsets.values()) or 1.0
        max_distance = max(distances.values()) or 1.0

        best_id: Optional[int] = None
        best_score = float("-inf")
        for agent in sorted(live, key=lambda a: a.agent_id):
            offset = offsets[agent.agent_id]
            facing = -offset.normalize().dot(approach)
            edge = offset.length() / max_offset
            proximity = distances[agent.agent_id] / max_distance
            score = weights.alignment * facing + weights.edge * edge - weights.proximity * proximity
            if score > best_score + 1e-12:
                best_score = score
                best_id = agent.agent_id

        if predator_id is not None and best_id is not None:
            self._candidates[predator_id] = best_id
        return best_id, distances[best_id]

    def cached_target(self, registry: "AgentRegistry", predator_id: int) -> Optional[int]:
        member_id = self._candidates.get(predator_id)
        if member_id is None:
            return None
        if member_id not in self.members or not registry.is_live(member_id):
            self._candidates.pop(predator_id, None)
            return None
        return member_id

    def clear_target(self, predator_id: int) -> None:
        self._candidates.pop(predator_id, None)

    def prune_candidates(self, registry: "AgentRegistry") -> int:
        """Drop cache entries whose predator or member is gone. Returns count dropped."""
        stale = [
            predator_id
            for predator_id, member_id in self._candidates.items()
            if not registry.is_live(predator_id)
            or member_id not in self.members
            or not registry.is_live(member_id)
        ]
        for predator_id in stale:
            del self._candidates[predator_id]
        return len(stale)

    @property
    def candidate_count(self) -> int:
        return len(self._candidates)

    def _drop_candidate_member(self, member_id: int) -> None:
        for predator_id in [p for p, m in self._candidates.items() if m == member_id]:
            del self._candidates[predator_id]

    def __repr__(self) -> str:
        return f"School(id={self._school_id}, species={self._species.name}, members={len(self.members)})"


class SoloPreyGroup:
    """A single unschooled prey fish seen through the PreyGroup interface."""

    def __init__(self, agent_id: int, species: SpeciesProfile) -> None:
        self.agent_id = agent_id
        self._species = species

    @staticmethod
    def id_for(agent_id: int) -> str:
        return f"{SOLO_ID_PREFIX}{agent_id}"

    @property
    def group_id(self) -> str:
        return self.id_for(self.agent_id)

    @property
    def species(self) -> SpeciesProfile:
        return self._species

    def locate(self, registry: "AgentRegistry") -> Optional[Vector2]:
        agent = registry.get(self.agent_id)
        if agent is None or not agent.is_alive:
            return None
        return agent.position

    def live_count(self, registry: "AgentRegistry") -> int:
        return 1 if registry.is_live(self.agent_id) else 0

    def get_closest_baitfish(
        self,
        registry: "AgentRegistry",
        position: Vector2,
        predator_id: Optional[int] = None,
        weights: Optional[TargetScoringWeights] = None,
    ) -> Tuple[Optional[int], float]:
        agent = registry.get(self.agent_id)
        if agent is None or not agent.is_alive:
            return None, float("inf")
        return self.agent_id, agent.position.distance_to(position)

    def cached_target(self, registry: "AgentRegistry", predator_id: int) -> Optional[int]:
        return self.agent_id if registry.is_live(self.agent_id) else None

    def clear_target(self, predator_id: int) -> None:
        pass

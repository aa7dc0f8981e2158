"""Agent: one simulated organism (predator, baitfish or forage).

Agents are plain mutable records owned by the AgentRegistry. Cross references
(school membership, hunt targets) are stored as ids and resolved through the
registry every tick, so removing an agent never leaves a dangling object.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from lakesim.config.species import Role, SizeClass, SpeciesProfile
from lakesim.math_utils import Vector2
from lakesim.state_machine import BehaviorState, StateMachine, create_behavior_state_machine


class TargetKind(Enum):
    LURE = "lure"
    GROUP = "group"


@dataclass(frozen=True)
class TargetRef:
    """What a predator is after: the player's lure or a prey group (by id)."""

    kind: TargetKind
    group_id: Optional[str] = None

    @staticmethod
    def lure() -> "TargetRef":
        return TargetRef(TargetKind.LURE)

    @staticmethod
    def group(group_id: str) -> "TargetRef":
        return TargetRef(TargetKind.GROUP, group_id)

    @property
    def is_lure(self) -> bool:
        return self.kind is TargetKind.LURE

    def __str__(self) -> str:
        return "lure" if self.is_lure else f"group:{self.group_id}"


class ActionKind(Enum):
    """Deferred per-agent actions, checked during the behavior phase."""

    CALM_DOWN = "calm_down"  # Fleeing -> Idle
    GIVE_UP_HUNT = "give_up_hunt"  # Hunting -> Idle after the grace period
    END_FRENZY = "end_frenzy"


@dataclass(frozen=True)
class ScheduledAction:
    due_tick: int
    kind: ActionKind


class Agent:
    """A single organism in the lake."""

    def __init__(
        self,
        agent_id: int,
        species: SpeciesProfile,
        size_class: SizeClass,
        position: Vector2,
        weight: float,
        length: float,
        hunger: float = 0.0,
        idle_direction: int = 1,
        spawn_tick: int = 0,
        aggressiveness: float = 1.0,
        preferred_depth: Optional[float] = None,
    ) -> None:
        self.agent_id = agent_id
        self.species = species
        self.size_class = size_class

        # Physical
        self.position: Vector2 = position.copy()
        self.velocity: Vector2 = Vector2(0.0, 0.0)
        self.weight: float = weight
        self.length: float = length

        # Vitals
        self.hunger: float = hunger
        self.health: float = 100.0
        self.spawn_tick: int = spawn_tick

        # Behavioral
        self._machine: StateMachine[BehaviorState] = create_behavior_state_machine()
        self.target: Optional[TargetRef] = None
        self.decision_cooldown: int = 0
        self.idle_direction: int = idle_direction
        self.aggressiveness: float = aggressiveness  # 0-1 personality, scales lure interest and strikes
        self.preferred_depth: Optional[float] = preferred_depth
        self.frenzy: bool = False
        self.frozen: bool = False  # Held by the capture engine
        self.low_health_fled: bool = False
        self.flee_origin: Optional[Vector2] = None
        self.burst_until: int = -1  # Crayfish dart; ticks are absolute
        self.burst_ready_tick: int = 0
        self._scheduled: List[ScheduledAction] = []

        # Social
        self.school_id: Optional[str] = None
        self.school_offset: Vector2 = Vector2(0.0, 0.0)

        # Consumption
        self.stomach_contents: int = 0
        self.last_graze_tick: int = -(10**9)

        # Terminal flags; removal happens in the cleanup phase
        self.consumed: bool = False
        self.caught: bool = False
        self.expired: bool = False
        self.removal_reason: Optional[str] = None

    # ------------------------------------------------------------------
    # Identity / classification
    # ------------------------------------------------------------------

    @property
    def role(self) -> Role:
        return self.species.role

    @property
    def tier(self) -> int:
        return self.species.tier

    @property
    def is_alive(self) -> bool:
        """False once the agent is consumed, caught or expired (pending removal)."""
        return not (self.consumed or self.caught or self.expired)

    # ------------------------------------------------------------------
    # Behavior state
    # ------------------------------------------------------------------

    @property
    def state(self) -> BehaviorState:
        return self._machine.state

    @property
    def machine(self) -> StateMachine[BehaviorState]:
        return self._machine

    def ticks_in_state(self, tick: int) -> int:
        return self._machine.ticks_in_state(tick)

    # ------------------------------------------------------------------
    # Scheduled actions
    # ------------------------------------------------------------------

    def schedule(self, kind: ActionKind, due_tick: int) -> None:
        """Schedule an action, replacing any pending action of the same kind."""
        self._scheduled = [a for a in self._scheduled if a.kind is not kind]
        self._scheduled.append(ScheduledAction(due_tick=due_tick, kind=kind))

    def cancel(self, kind: ActionKind) -> None:
        self._scheduled = [a for a in self._scheduled if a.kind is not kind]

    def has_scheduled(self, kind: ActionKind) -> bool:
        return any(a.kind is kind for a in self._scheduled)

    def pop_due_actions(self, tick: int) -> List[ScheduledAction]:
        """Remove and return actions due at or before ``tick``, earliest first."""
        due = [a for a in self._scheduled if a.due_tick <= tick]
        if due:
            self._scheduled = [a for a in self._scheduled if a.due_tick > tick]
        return sorted(due, key=lambda a: (a.due_tick, a.kind.value))

    # ------------------------------------------------------------------
    # Terminal flags
    # ------------------------------------------------------------------

    def mark_removed(self, reason: str) -> None:
        """Flag for removal at end of tick (idempotent, first reason wins)."""
        if reason == "consumed":
            self.consumed = True
        elif reason == "caught":
            self.caught = True
        else:
            self.expired = True
        if self.removal_reason is None:
            self.removal_reason = reason

    def __repr__(self) -> str:
        return (
            f"Agent(id={self.agent_id}, species={self.species.name}, "
            f"state={self.state.value}, pos=({self.position.x:.1f}, {self.position.depth:.1f}))"
        )

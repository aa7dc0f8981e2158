"""Domain events emitted by the simulation core.

Events are facts the presentation layer reacts to: frozen dataclasses that
carry everything a consumer needs, so nothing has to call back into the
simulation to interpret them. Every event records the tick it happened on.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict


class FightOutcome(str, Enum):
    CAUGHT = "caught"
    ESCAPED = "escaped"


class EscapeReason(str, Enum):
    """Why a contest ended. ``LANDED`` accompanies a catch."""

    LANDED = "landed"
    LINE_BREAK = "line_break"
    SLACK = "slack"
    HOOK_SPIT = "hook_spit"
    SPOOLED = "spooled"
    AGENT_REMOVED = "agent_removed"
    FORCE_END = "force_end"


@dataclass(frozen=True)
class AgentStateChanged:
    """A predator's behavior state changed."""

    agent_id: int
    old_state: str
    new_state: str
    reason: str
    tick: int


@dataclass(frozen=True)
class Strike:
    """A predator struck the lure; ``felt`` is the haptic decision."""

    agent_id: int
    felt: bool
    tick: int


@dataclass(frozen=True)
class Hookset:
    """The player set the hook.

    Attributes:
        quality: "barely", "bad", "good" or "great"; scales hook-spit risk.
    """

    agent_id: int
    felt: bool
    quality: str
    tick: int


@dataclass(frozen=True)
class HooksetMissed:
    agent_id: int
    tick: int


@dataclass(frozen=True)
class FightUpdate:
    """Per-tick fight telemetry.

    Attributes:
        tension: Current line tension in [0, tension ceiling].
        strain: Tension relative to the break threshold (0-1).
        line_out: Feet of line off the spool.
        mode: Fish struggle mode ("initial_run", "steady", "thrashing", "giving_up").
    """

    agent_id: int
    tension: float
    drag_setting: float
    elapsed: int
    strain: float
    line_out: float
    mode: str
    tick: int


@dataclass(frozen=True)
class TensionSpike:
    agent_id: int
    tension: float
    felt: bool
    tick: int


@dataclass(frozen=True)
class FightResolved:
    agent_id: int
    outcome: FightOutcome
    reason: EscapeReason
    weight: float
    length: float
    species: str
    tick: int


@dataclass(frozen=True)
class ConsumptionEvent:
    predator_id: int
    prey_id: int
    prey_species: str
    tick: int


@dataclass(frozen=True)
class FrenzyTriggered:
    """Same-species predators near a feeding event went into a frenzy.

    Attributes:
        trigger_id: The predator whose consumption triggered the frenzy.
        group_id: The prey group being depleted.
        affected_ids: Predators that received the frenzy flag.
    """

    trigger_id: int
    group_id: str
    affected_ids: tuple[int, ...]
    tick: int


@dataclass(frozen=True)
class SchoolFormed:
    school_id: str
    species: str
    member_count: int
    tick: int


@dataclass(frozen=True)
class SchoolDisbanded:
    school_id: str
    reason: str
    tick: int


@dataclass(frozen=True)
class SchoolMigrationStarted:
    school_id: str
    direction: int
    tick: int


@dataclass(frozen=True)
class AgentRemoved:
    """An agent left the simulation during cleanup."""

    agent_id: int
    species: str
    reason: str
    tick: int


def event_to_dict(event: object) -> Dict[str, Any]:
    """Flatten an event into a JSON-friendly dict with a ``type`` key."""
    payload = asdict(event)
    for key, value in payload.items():
        if isinstance(value, Enum):
            payload[key] = value.value
        elif isinstance(value, tuple):
            payload[key] = list(value)
    payload["type"] = type(event).__name__
    return payload

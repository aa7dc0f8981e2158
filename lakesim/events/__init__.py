"""Domain events and the outbound event queue."""

from lakesim.events.domain_events import (
    AgentRemoved,
    AgentStateChanged,
    ConsumptionEvent,
    EscapeReason,
    FightOutcome,
    FightResolved,
    FightUpdate,
    FrenzyTriggered,
    Hookset,
    HooksetMissed,
    SchoolDisbanded,
    SchoolFormed,
    SchoolMigrationStarted,
    Strike,
    TensionSpike,
    event_to_dict,
)
from lakesim.events.event_queue import EventQueue

__all__ = [
    "AgentRemoved",
    "AgentStateChanged",
    "ConsumptionEvent",
    "EscapeReason",
    "EventQueue",
    "FightOutcome",
    "FightResolved",
    "FightUpdate",
    "FrenzyTriggered",
    "Hookset",
    "HooksetMissed",
    "SchoolDisbanded",
    "SchoolFormed",
    "SchoolMigrationStarted",
    "Strike",
    "TensionSpike",
    "event_to_dict",
]

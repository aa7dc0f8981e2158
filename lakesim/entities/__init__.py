"""Entity package: agents and prey groups."""

from lakesim.config.species import Role, SizeClass
from lakesim.entities.agent import ActionKind, Agent, ScheduledAction, TargetKind, TargetRef
from lakesim.entities.school import PreyGroup, School, SoloPreyGroup

__all__ = [
    "ActionKind",
    "Agent",
    "PreyGroup",
    "Role",
    "ScheduledAction",
    "School",
    "SizeClass",
    "SoloPreyGroup",
    "TargetKind",
    "TargetRef",
]

"""Tick systems, one per phase."""

from lakesim.systems.base import BaseSystem, SystemResult
from lakesim.systems.behavior import BehaviorStateMachine
from lakesim.systems.capture import CaptureEngine, CaptureRecord, Fight, FightView, StruggleMode
from lakesim.systems.cleanup import CleanupSystem
from lakesim.systems.food_chain import FoodChainResolver
from lakesim.systems.schooling import SchoolCoordinator

__all__ = [
    "BaseSystem",
    "BehaviorStateMachine",
    "CaptureEngine",
    "CaptureRecord",
    "CleanupSystem",
    "Fight",
    "FightView",
    "FoodChainResolver",
    "SchoolCoordinator",
    "StruggleMode",
    "SystemResult",
]

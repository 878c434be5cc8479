"""Data models for the interactive video player."""

from .scene import EventDefinition, SceneDefinition
from .scenario import Scenario
from .session import PendingTimeout, RuntimeState, SchedulerState, Transition

__all__ = [
    "EventDefinition",
    "SceneDefinition",
    "Scenario",
    "PendingTimeout",
    "RuntimeState",
    "SchedulerState",
    "Transition",
]

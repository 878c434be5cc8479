"""Playback engine: registry, timers, clock samplers and the scene scheduler."""

from .registry import ScenarioRegistry
from .timers import TimerHandle, TimerService, LoopTimerService, VirtualTimerService
from .scheduler import SceneScheduler
from .clock import ClockSampler, MediaClockSampler, SimulatedClockSampler
from .session import PlaybackMode, Session
from .autopilot import Autopilot, walk

__all__ = [
    "ScenarioRegistry",
    # Timers
    "TimerHandle",
    "TimerService",
    "LoopTimerService",
    "VirtualTimerService",
    # Scheduling
    "SceneScheduler",
    "ClockSampler",
    "MediaClockSampler",
    "SimulatedClockSampler",
    # Sessions
    "PlaybackMode",
    "Session",
    "Autopilot",
    "walk",
]

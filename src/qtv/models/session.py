"""Runtime state owned by the scene scheduler."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Set

from .scene import SceneDefinition


class SchedulerState(str, Enum):
    """Scheduler state enum."""
    IDLE = "idle"
    PLAYING = "playing"
    EVENT_ARMED = "event_armed"
    TERMINAL = "terminal"


@dataclass
class PendingTimeout:
    """The single live prompt deadline, bound to one event of one scene."""

    scene_id: str
    event_id: str
    handle: Any = None

    def cancel(self) -> None:
        if self.handle is not None:
            self.handle.cancel()


@dataclass(frozen=True)
class Transition:
    """A scheduler state change, delivered to transition listeners."""

    source: SchedulerState
    target: SchedulerState
    scene_id: Optional[str]
    reason: str
    scene_loaded: bool = False


@dataclass
class RuntimeState:
    """Mutable per-scene state. Cleared on every scene load."""

    state: SchedulerState = SchedulerState.IDLE
    current_scene_id: Optional[str] = None
    current_scene: Optional[SceneDefinition] = None
    armed_event_ids: Set[str] = field(default_factory=set)
    fired_event_ids: Set[str] = field(default_factory=set)
    is_playing: bool = False
    pending_timeout: Optional[PendingTimeout] = None
    errors: List[str] = field(default_factory=list)

    def clear(self) -> None:
        """Reset every field except state, which only moves by transition.

        The pending timeout must already be cancelled.
        """
        self.current_scene_id = None
        self.current_scene = None
        self.armed_event_ids.clear()
        self.fired_event_ids.clear()
        self.is_playing = False
        self.pending_timeout = None
        self.errors.clear()

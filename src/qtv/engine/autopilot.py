"""Scripted player for unattended walkthroughs on virtual time."""

import logging
from functools import partial
from typing import Iterable, List, Optional

from ..models import SchedulerState, Transition
from .scheduler import SceneScheduler
from .session import Session
from .timers import TimerHandle, TimerService, VirtualTimerService

logger = logging.getLogger(__name__)


class Autopilot:
    """Activates chosen prompts a fixed reaction time after they appear.

    Choices name events either by bare id ("qte_1") or qualified by scene
    ("start/qte_1"), since event ids are only unique within a scene. A
    reaction time at or beyond an event's timeout lets the timeout win.
    """

    def __init__(
        self,
        scheduler: SceneScheduler,
        timers: TimerService,
        choices: Iterable[str] = (),
        reaction_time: float = 0.0,
    ) -> None:
        self._scheduler = scheduler
        self._timers = timers
        self._choices = set(choices)
        self._reaction_time = reaction_time
        self.transitions: List[Transition] = []
        self.scenes_visited: List[str] = []
        self._reactions: List[TimerHandle] = []
        self._attached = False

    def attach(self) -> None:
        if not self._attached:
            self._scheduler.add_listener(self._on_transition)
            self._attached = True

    def detach(self) -> None:
        self._cancel_reactions()
        if self._attached:
            self._scheduler.remove_listener(self._on_transition)
            self._attached = False

    def wants(self, scene_id: str, event_id: str) -> bool:
        return event_id in self._choices or f"{scene_id}/{event_id}" in self._choices

    def _on_transition(self, transition: Transition) -> None:
        self.transitions.append(transition)
        if transition.scene_loaded and transition.scene_id is not None:
            self.scenes_visited.append(transition.scene_id)

        # A reaction only applies to the prompt it was scheduled for.
        self._cancel_reactions()
        if transition.target != SchedulerState.EVENT_ARMED:
            return
        for event_id in sorted(self._scheduler.armed_event_ids):
            if self.wants(transition.scene_id, event_id):
                logger.debug(f"Autopilot will activate {event_id} in {self._reaction_time}s")
                self._reactions.append(self._timers.call_later(
                    self._reaction_time,
                    partial(self._scheduler.activate, event_id),
                ))

    def _cancel_reactions(self) -> None:
        for handle in self._reactions:
            handle.cancel()
        self._reactions = []


def walk(
    session: Session,
    timers: VirtualTimerService,
    autopilot: Autopilot,
    start_scene: Optional[str] = None,
    max_time: float = 600.0,
) -> SchedulerState:
    """Run a session on virtual time until it settles.

    Args:
        session: Session wired to the same virtual timers.
        timers: Virtual timer service driving the session.
        autopilot: Scripted player deciding which prompts to activate.
        start_scene: Entry scene, defaults to the scenario's start scene.
        max_time: Virtual seconds after which the walk gives up.

    Returns:
        The scheduler state at the end: TERMINAL for a finished scenario,
        IDLE when progression halted, or whatever was live at max_time.
    """
    autopilot.attach()
    try:
        session.start(start_scene)
        while session.scheduler.state != SchedulerState.TERMINAL:
            due = timers.next_due()
            if due is None or due > max_time:
                logger.warning(f"Walk stopped at {timers.now():.1f}s in {session.scheduler.state.value}")
                break
            timers.step()
    finally:
        autopilot.detach()
        session.close()
    return session.scheduler.state

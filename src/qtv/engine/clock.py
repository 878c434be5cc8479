"""Clock samplers: turn a playback-time signal into scheduler ticks.

The scheduler only sees a sequence of tick(time) and on_media_ended() calls.
Whether they come from a real playback cursor or a simulated one is decided
once, when the session is wired.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import SchedulerState, Transition
from ..presentation.base import PresentationAdapter, Unsubscribe
from .scheduler import SceneScheduler
from .timers import TimerHandle, TimerService

logger = logging.getLogger(__name__)


class ClockSampler(ABC):
    """Produces tick calls for a scheduler."""

    def __init__(self, scheduler: SceneScheduler) -> None:
        self._scheduler = scheduler

    @abstractmethod
    def start(self) -> None:
        ...

    @abstractmethod
    def stop(self) -> None:
        ...


class MediaClockSampler(ClockSampler):
    """Samples the real playback cursor on every time-changed notification."""

    def __init__(self, presentation: PresentationAdapter, scheduler: SceneScheduler) -> None:
        super().__init__(scheduler)
        self._presentation = presentation
        self._subscriptions: List[Unsubscribe] = []

    def start(self) -> None:
        if self._subscriptions:
            return
        self._subscriptions = [
            self._presentation.on_time_changed(self._scheduler.tick),
            self._presentation.on_ended(self._scheduler.on_media_ended),
        ]

    def stop(self) -> None:
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions = []


class SimulatedClockSampler(ClockSampler):
    """Fixed-period mock cursor for running scenarios without media.

    Every period the cursor advances by period seconds and the scheduler is
    ticked. The trigger runs only while the scheduler is PLAYING: it is
    cancelled outright when an event arms or the session idles or ends, and
    the cursor restarts at 0 on every scene load. Reaching duration reports a
    natural end, or wraps the cursor for a looping scene.
    """

    DEFAULT_PERIOD = 0.1  # seconds
    DEFAULT_DURATION = 10.0  # seconds of mock media per scene

    def __init__(
        self,
        scheduler: SceneScheduler,
        timers: TimerService,
        period: float = DEFAULT_PERIOD,
        duration: float = DEFAULT_DURATION,
    ) -> None:
        super().__init__(scheduler)
        if period <= 0:
            raise ValueError(f"Simulation period must be positive. Got: {period}")
        if duration <= 0:
            raise ValueError(f"Simulated duration must be positive. Got: {duration}")
        self._timers = timers
        self._period = period
        self._duration = duration
        self._mock_time = 0.0
        self._handle: Optional[TimerHandle] = None
        self._attached = False

    @property
    def mock_time(self) -> float:
        return self._mock_time

    @property
    def running(self) -> bool:
        """Return True while the repeating trigger is scheduled."""
        return self._handle is not None

    def start(self) -> None:
        if self._attached:
            return
        self._attached = True
        self._scheduler.add_listener(self._on_transition)
        if self._scheduler.state == SchedulerState.PLAYING:
            self._schedule()

    def stop(self) -> None:
        self._halt()
        if self._attached:
            self._scheduler.remove_listener(self._on_transition)
            self._attached = False

    def _on_transition(self, transition: Transition) -> None:
        if transition.scene_loaded:
            self._mock_time = 0.0
        if transition.target == SchedulerState.PLAYING:
            self._schedule()
        else:
            self._halt()

    def _schedule(self) -> None:
        if self._handle is None:
            self._handle = self._timers.call_later(self._period, self._on_period)

    def _halt(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _on_period(self) -> None:
        self._handle = None
        self._mock_time = round(self._mock_time + self._period, 6)
        logger.debug(f"Simulated clock: {self._mock_time:.1f}s")
        self._scheduler.tick(self._mock_time)

        # An event armed by this tick cancels the trigger via the transition.
        if self._scheduler.state != SchedulerState.PLAYING:
            return

        if self._mock_time >= self._duration:
            scene = self._scheduler.current_scene
            if scene is not None and scene.loop:
                self._mock_time = 0.0
            else:
                self._scheduler.on_media_ended()
                return

        self._schedule()

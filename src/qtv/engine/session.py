"""Session wiring: the scheduler, its collaborators and the chosen clock."""

import logging
from enum import Enum
from typing import Optional

from ..presentation.base import PresentationAdapter
from .clock import ClockSampler, MediaClockSampler, SimulatedClockSampler
from .registry import ScenarioRegistry
from .scheduler import SceneScheduler
from .timers import TimerService

logger = logging.getLogger(__name__)


class PlaybackMode(str, Enum):
    """Where scheduler ticks come from."""
    MEDIA = "media"
    SIMULATED = "simulated"


class Session:
    """One playthrough: a scheduler wired to a presentation, timers and clock."""

    def __init__(
        self,
        registry: ScenarioRegistry,
        presentation: PresentationAdapter,
        timers: TimerService,
        mode: PlaybackMode = PlaybackMode.MEDIA,
        simulation_period: float = SimulatedClockSampler.DEFAULT_PERIOD,
        simulated_duration: float = SimulatedClockSampler.DEFAULT_DURATION,
    ) -> None:
        """Initialize the session.

        Args:
            registry: Scene table.
            presentation: Adapter for playback and UI commands.
            timers: Timer service shared by the scheduler and the clock.
            mode: MEDIA samples the presentation's playback cursor;
                SIMULATED drives a fixed-period mock cursor instead.
            simulation_period: Seconds per simulated tick.
            simulated_duration: Mock media length per scene.
        """
        self.registry = registry
        self.presentation = presentation
        self.timers = timers
        self.mode = mode
        self.scheduler = SceneScheduler(registry, presentation, timers)

        if mode == PlaybackMode.SIMULATED:
            self.sampler: ClockSampler = SimulatedClockSampler(
                self.scheduler,
                timers,
                period=simulation_period,
                duration=simulated_duration,
            )
        else:
            self.sampler = MediaClockSampler(presentation, self.scheduler)
        logger.debug(f"Session clock: {mode.value}")

    def start(self, scene_id: Optional[str] = None) -> None:
        """Start the clock and load the entry scene.

        Args:
            scene_id: Entry scene. Defaults to the registry's start scene.

        Raises:
            SceneNotFound: If the entry scene does not exist.
        """
        scene_id = scene_id or self.registry.start_scene
        if not scene_id:
            raise ValueError("No start scene given and the scenario declares none")
        self.sampler.start()
        self.scheduler.start(scene_id)

    def restart(self) -> None:
        self.scheduler.restart()

    def close(self) -> None:
        """Stop the clock and cancel anything pending."""
        self.sampler.stop()
        self.scheduler.shutdown()

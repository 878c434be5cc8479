"""Scene scheduler: the playback state machine.

The scheduler owns the runtime state of the active scene, arms events as the
playback clock passes their arm time, resolves them on activation or timeout
and decides which scene plays next. Every side effect goes through the
presentation adapter; every delay goes through the timer service.
"""

import logging
from collections import deque
from functools import partial
from typing import Callable, Deque, FrozenSet, List, Optional, Tuple

from ..errors import PlaybackStartFailure, SceneNotFound
from ..models import (
    EventDefinition,
    PendingTimeout,
    RuntimeState,
    SceneDefinition,
    SchedulerState,
    Transition,
)
from ..presentation.base import PresentationAdapter
from .registry import ScenarioRegistry
from .timers import TimerService

logger = logging.getLogger(__name__)

TransitionListener = Callable[[Transition], None]

DEFAULT_TERMINAL_TITLE = "GAME OVER"
FALLBACK_TERMINAL_TITLE = "THE END"
FALLBACK_TERMINAL_MESSAGE = "Scenario Completed"


class SceneScheduler:
    """State machine driving scenes and their quick-time events.

    States: IDLE -> PLAYING <-> EVENT_ARMED, and TERMINAL once an end screen
    is shown. Entry points (load_scene, tick, activate, on_media_ended and
    timeout callbacks) run to completion; one arriving while another is in
    progress is queued and run right after it.

    Overlapping arm times: a tick arms at most one event, the first eligible
    one in list order. Later eligible events arm on the first tick after the
    armed one resolves.
    """

    def __init__(
        self,
        registry: ScenarioRegistry,
        presentation: PresentationAdapter,
        timers: TimerService,
    ) -> None:
        """Initialize the scheduler.

        Args:
            registry: Scene table to branch on.
            presentation: Adapter receiving playback and UI commands.
            timers: Source of cancellable prompt deadlines.
        """
        self._registry = registry
        self._presentation = presentation
        self._timers = timers
        self._runtime = RuntimeState()
        self._listeners: List[TransitionListener] = []
        self._deferred: Deque[Tuple[Callable, tuple]] = deque()
        self._busy = False
        self._entry_scene_id: Optional[str] = None

    # Read-only view of runtime state

    @property
    def state(self) -> SchedulerState:
        return self._runtime.state

    @property
    def current_scene_id(self) -> Optional[str]:
        return self._runtime.current_scene_id

    @property
    def current_scene(self) -> Optional[SceneDefinition]:
        return self._runtime.current_scene

    @property
    def armed_event_ids(self) -> FrozenSet[str]:
        return frozenset(self._runtime.armed_event_ids)

    @property
    def fired_event_ids(self) -> FrozenSet[str]:
        return frozenset(self._runtime.fired_event_ids)

    @property
    def is_playing(self) -> bool:
        return self._runtime.is_playing

    @property
    def has_pending_timeout(self) -> bool:
        return self._runtime.pending_timeout is not None

    @property
    def errors(self) -> List[str]:
        """Return non-fatal errors recorded since the last scene load."""
        return list(self._runtime.errors)

    # Listeners

    def add_listener(self, listener: TransitionListener) -> None:
        """Register a callback for every state change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: TransitionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # Entry points

    def start(self, scene_id: str) -> None:
        """Begin a session at scene_id and remember it for restart()."""
        self._run(self._load_scene, scene_id)
        self._entry_scene_id = scene_id

    def restart(self) -> None:
        """Reload the scene the session was started with."""
        if self._entry_scene_id is None:
            raise RuntimeError("Session was never started")
        self.load_scene(self._entry_scene_id)

    def load_scene(self, scene_id: str) -> None:
        """Load a scene, resetting all runtime state.

        Raises:
            SceneNotFound: If the id is absent. Runtime state is left as is.
        """
        self._run(self._load_scene, scene_id)

    def tick(self, current_time: float) -> None:
        """Evaluate the active scene's events against the playback clock."""
        self._run(self._tick, current_time)

    def activate(self, event_id: str) -> None:
        """Input dispatch: the player activated the prompt for event_id.

        Ignored unless that event is currently armed.
        """
        self._run(self._activate, event_id)

    def on_media_ended(self) -> None:
        """The active scene's media reached its natural end."""
        self._run(self._on_media_ended)

    def show_start_screen(self) -> None:
        """Tear down the active scene and return to the start screen."""
        self._run(self._show_start_screen)

    def shutdown(self) -> None:
        """Cancel outstanding timers and stop playback."""
        self._cancel_timeout()
        self._runtime.is_playing = False
        self._presentation.pause()

    def _run(self, action: Callable, *args) -> None:
        if self._busy:
            self._deferred.append((action, args))
            return
        self._busy = True
        try:
            action(*args)
            while self._deferred:
                deferred, deferred_args = self._deferred.popleft()
                deferred(*deferred_args)
        except Exception:
            # Drop work queued behind the failed action.
            self._deferred.clear()
            raise
        finally:
            self._busy = False

    # Transitions

    def _load_scene(self, scene_id: str) -> None:
        logger.info(f"Loading scene: {scene_id}")
        try:
            scene = self._registry.lookup(scene_id)
        except SceneNotFound:
            logger.error(f"Scene {scene_id} not found!")
            raise

        self._teardown_scene()
        runtime = self._runtime
        runtime.current_scene_id = scene_id
        runtime.current_scene = scene

        if scene.is_terminal and not scene.media_source:
            self._enter_terminal(scene.terminal_title, scene.terminal_message, scene_loaded=True)
            return

        self._presentation.set_source(scene.media_source)
        self._presentation.set_loop(scene.loop)

        if not self._presentation.play():
            failure = PlaybackStartFailure(scene_id, scene.media_source)
            logger.error(str(failure))
            runtime.errors.append(str(failure))
            self._set_state(SchedulerState.IDLE, "playback failed", scene_loaded=True)
            return

        runtime.is_playing = True
        self._set_state(SchedulerState.PLAYING, "scene loaded", scene_loaded=True)

    def _tick(self, current_time: float) -> None:
        runtime = self._runtime
        if runtime.state != SchedulerState.PLAYING or runtime.current_scene is None:
            return

        for event in runtime.current_scene.events:
            if current_time >= event.arm_time and event.id not in runtime.fired_event_ids:
                self._arm_event(event)
                break

    def _arm_event(self, event: EventDefinition) -> None:
        runtime = self._runtime
        runtime.armed_event_ids.add(event.id)
        runtime.fired_event_ids.add(event.id)
        logger.info(f"Triggering event: {event.id}")

        self._presentation.pause()
        runtime.is_playing = False

        self._cancel_timeout()
        pending = PendingTimeout(scene_id=runtime.current_scene_id, event_id=event.id)
        pending.handle = self._timers.call_later(
            event.timeout_duration,
            partial(self._run, self._on_timeout, pending),
        )
        runtime.pending_timeout = pending

        self._presentation.show_prompt(event.id, event.label, event.placement, self.activate)
        self._set_state(SchedulerState.EVENT_ARMED, f"event {event.id} armed")

    def _activate(self, event_id: str) -> None:
        runtime = self._runtime
        if event_id not in runtime.armed_event_ids:
            logger.debug(f"Ignoring activation of {event_id}: not armed")
            return
        event = runtime.current_scene.event(event_id)
        self._resolve_success(event)

    def _resolve_success(self, event: EventDefinition) -> None:
        logger.info(f"Event success: {event.id}")
        self._cancel_timeout()
        self._remove_prompt(event.id)

        if event.on_success:
            self._follow(event.on_success, f"event {event.id} succeeded")
        else:
            self._resume(f"event {event.id} succeeded")

    def _on_timeout(self, pending: PendingTimeout) -> None:
        runtime = self._runtime
        if runtime.pending_timeout is not pending:
            logger.debug(f"Ignoring stale timeout for {pending.scene_id}/{pending.event_id}")
            return
        runtime.pending_timeout = None
        self._resolve_timeout(pending.event_id)

    def _resolve_timeout(self, event_id: str) -> None:
        if event_id not in self._runtime.armed_event_ids:
            return
        logger.info(f"Event timeout: {event_id} - resuming")
        self._remove_prompt(event_id)
        self._resume(f"event {event_id} timed out")

    def _on_media_ended(self) -> None:
        runtime = self._runtime
        scene = runtime.current_scene
        if scene is None or runtime.state not in (SchedulerState.PLAYING, SchedulerState.EVENT_ARMED):
            logger.debug(f"Ignoring media end in {runtime.state.value}")
            return

        logger.info(f"Video ended: {scene.id}")
        if scene.is_terminal:
            self._enter_terminal(scene.terminal_title, scene.terminal_message)
        elif scene.next:
            self._follow(scene.next, "media ended")
        else:
            logger.warning("No next scene defined, ending.")
            self._enter_terminal(FALLBACK_TERMINAL_TITLE, FALLBACK_TERMINAL_MESSAGE)

    def _show_start_screen(self) -> None:
        self._teardown_scene()
        self._presentation.pause()
        self._presentation.show_start_screen()
        self._set_state(SchedulerState.IDLE, "start screen")

    # Helpers

    def _follow(self, scene_id: str, reason: str) -> None:
        """Load the next scene; halt on the current one if it is missing."""
        try:
            self._load_scene(scene_id)
        except SceneNotFound as e:
            self._runtime.errors.append(str(e))
            self._runtime.is_playing = False
            self._presentation.pause()
            self._set_state(SchedulerState.IDLE, f"{reason}; {e}")

    def _resume(self, reason: str) -> None:
        runtime = self._runtime
        if not self._presentation.play():
            scene = runtime.current_scene
            failure = PlaybackStartFailure(runtime.current_scene_id, scene.media_source if scene else None)
            logger.error(f"{failure} on resume")
            runtime.errors.append(str(failure))
            runtime.is_playing = False
            self._set_state(SchedulerState.IDLE, f"{reason}; playback failed")
            return
        runtime.is_playing = True
        self._set_state(SchedulerState.PLAYING, reason)

    def _enter_terminal(
        self,
        title: Optional[str],
        message: Optional[str],
        scene_loaded: bool = False,
    ) -> None:
        self._cancel_timeout()
        for event_id in sorted(self._runtime.armed_event_ids):
            self._remove_prompt(event_id)
        self._runtime.is_playing = False
        self._presentation.pause()
        self._presentation.show_terminal_screen(title or DEFAULT_TERMINAL_TITLE, message or "")
        self._set_state(SchedulerState.TERMINAL, "end screen", scene_loaded=scene_loaded)

    def _remove_prompt(self, event_id: str) -> None:
        self._runtime.armed_event_ids.discard(event_id)
        self._presentation.remove_prompt(event_id)

    def _cancel_timeout(self) -> None:
        pending = self._runtime.pending_timeout
        if pending is not None:
            pending.cancel()
            self._runtime.pending_timeout = None

    def _teardown_scene(self) -> None:
        """Cancel the deadline, clear live prompts and reset runtime state."""
        self._cancel_timeout()
        for event_id in sorted(self._runtime.armed_event_ids):
            self._presentation.remove_prompt(event_id)
        self._runtime.clear()

    def _set_state(self, target: SchedulerState, reason: str, scene_loaded: bool = False) -> None:
        source = self._runtime.state
        self._runtime.state = target
        transition = Transition(
            source=source,
            target=target,
            scene_id=self._runtime.current_scene_id,
            reason=reason,
            scene_loaded=scene_loaded,
        )
        logger.debug(f"{source.value} -> {target.value} ({reason})")
        for listener in list(self._listeners):
            listener(transition)

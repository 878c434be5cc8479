"""Shared fixtures: a recording presentation double and a demo scheduler."""

from typing import Callable, Dict, List, Optional, Tuple

import pytest

from qtv.engine import ScenarioRegistry, SceneScheduler, VirtualTimerService
from qtv.presentation import PresentationAdapter
from qtv.scenarios import demo_scenario


class FakePresentation(PresentationAdapter):
    """Records every command and lets tests drive playback notifications."""

    def __init__(self, playable: bool = True) -> None:
        self.playable = playable
        self.commands: List[Tuple] = []
        self.source: Optional[str] = None
        self.loop = False
        self.playing = False
        self.time = 0.0
        self.prompts: Dict[str, Callable[[str], None]] = {}
        self.terminal_screen: Optional[Tuple[str, str]] = None
        self._time_listeners: List[Callable[[float], None]] = []
        self._ended_listeners: List[Callable[[], None]] = []

    def set_source(self, locator: str) -> None:
        self.commands.append(("set_source", locator))
        self.source = locator
        self.time = 0.0
        self.playing = False

    def set_loop(self, loop: bool) -> None:
        self.commands.append(("set_loop", loop))
        self.loop = loop

    def play(self) -> bool:
        self.commands.append(("play",))
        if not self.playable:
            return False
        self.playing = True
        return True

    def pause(self) -> None:
        self.commands.append(("pause",))
        self.playing = False

    def current_time(self) -> float:
        return self.time

    def on_time_changed(self, callback):
        self._time_listeners.append(callback)
        return lambda: self._time_listeners.remove(callback)

    def on_ended(self, callback):
        self._ended_listeners.append(callback)
        return lambda: self._ended_listeners.remove(callback)

    def show_prompt(self, event_id, label, placement, on_activate) -> None:
        self.commands.append(("show_prompt", event_id, label, placement))
        self.prompts[event_id] = on_activate

    def remove_prompt(self, event_id: str) -> None:
        self.commands.append(("remove_prompt", event_id))
        self.prompts.pop(event_id, None)

    def show_terminal_screen(self, title: str, message: str) -> None:
        self.commands.append(("show_terminal_screen", title, message))
        self.terminal_screen = (title, message)

    def show_start_screen(self) -> None:
        self.commands.append(("show_start_screen",))

    # Test helpers

    def advance_to(self, seconds: float) -> None:
        """Move the playback cursor and notify time listeners."""
        self.time = seconds
        for listener in list(self._time_listeners):
            listener(seconds)

    def end_media(self) -> None:
        for listener in list(self._ended_listeners):
            listener()

    def click(self, event_id: str) -> None:
        """Activate a live prompt the way a pointer press would."""
        self.prompts[event_id](event_id)

    def names(self) -> List[str]:
        return [command[0] for command in self.commands]


@pytest.fixture
def registry() -> ScenarioRegistry:
    return ScenarioRegistry.from_scenario(demo_scenario())


@pytest.fixture
def presentation() -> FakePresentation:
    return FakePresentation()


@pytest.fixture
def timers() -> VirtualTimerService:
    return VirtualTimerService()


@pytest.fixture
def scheduler(registry, presentation, timers) -> SceneScheduler:
    return SceneScheduler(registry, presentation, timers)

"""Presentation adapter contract consumed by the scene scheduler."""

from abc import ABC, abstractmethod
from typing import Callable

from ..models.scene import Placement

TimeListener = Callable[[float], None]
EndedListener = Callable[[], None]
ActivateCallback = Callable[[str], None]
Unsubscribe = Callable[[], None]


class PresentationAdapter(ABC):
    """Abstract boundary between the scheduler and whatever renders the session.

    The media side exposes playback primitives and notifications. The command
    side receives UI commands. The scheduler never touches presentation state
    directly, so any implementation of this contract (a terminal, a window,
    a recording test double) can drive it.
    """

    # Media side

    @abstractmethod
    def set_source(self, locator: str) -> None:
        """Replace the current media and rewind the cursor to 0."""
        ...

    @abstractmethod
    def set_loop(self, loop: bool) -> None:
        ...

    @abstractmethod
    def play(self) -> bool:
        """Start or resume playback.

        Returns:
            True if playback began, False if the media could not be played.
        """
        ...

    @abstractmethod
    def pause(self) -> None:
        ...

    @abstractmethod
    def current_time(self) -> float:
        """Return the playback cursor in seconds from scene start."""
        ...

    @abstractmethod
    def on_time_changed(self, callback: TimeListener) -> Unsubscribe:
        """Subscribe to playback cursor updates."""
        ...

    @abstractmethod
    def on_ended(self, callback: EndedListener) -> Unsubscribe:
        """Subscribe to natural end-of-media notifications."""
        ...

    # Command side

    @abstractmethod
    def show_prompt(
        self,
        event_id: str,
        label: str,
        placement: Placement,
        on_activate: ActivateCallback,
    ) -> None:
        """Render an interactive prompt.

        Args:
            event_id: Event the prompt belongs to.
            label: Prompt text.
            placement: Authored positioning data, passed through untouched.
            on_activate: Input dispatch entry point; call it with event_id
                when the player activates the prompt.
        """
        ...

    @abstractmethod
    def remove_prompt(self, event_id: str) -> None:
        ...

    @abstractmethod
    def show_terminal_screen(self, title: str, message: str) -> None:
        ...

    @abstractmethod
    def show_start_screen(self) -> None:
        ...

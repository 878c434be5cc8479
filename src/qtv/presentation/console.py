"""Terminal presentation: prompts and screens rendered as console text."""

import logging
from typing import Callable, Dict, List, Optional

import typer

from ..models.scene import Placement
from .base import ActivateCallback, EndedListener, PresentationAdapter, TimeListener, Unsubscribe
from .media import MediaPlayer
from .placement import describe_placement

logger = logging.getLogger(__name__)

Echo = Callable[[str], None]


class MediaPresentation(PresentationAdapter):
    """Presentation adapter whose playback side is a MediaPlayer."""

    def __init__(self, player: MediaPlayer) -> None:
        self._player = player

    @property
    def player(self) -> MediaPlayer:
        return self._player

    def set_source(self, locator: str) -> None:
        self._player.set_source(locator)

    def set_loop(self, loop: bool) -> None:
        self._player.set_loop(loop)

    def play(self) -> bool:
        return self._player.play()

    def pause(self) -> None:
        self._player.pause()

    def current_time(self) -> float:
        return self._player.current_time()

    def on_time_changed(self, callback: TimeListener) -> Unsubscribe:
        return self._player.on_time_changed(callback)

    def on_ended(self, callback: EndedListener) -> Unsubscribe:
        return self._player.on_ended(callback)


class ConsolePresentation(MediaPresentation):
    """Renders the session as lines of terminal text.

    Live prompts are kept so keyboard input can be routed back through each
    prompt's activation callback.
    """

    def __init__(self, player: MediaPlayer, echo: Echo = typer.echo) -> None:
        super().__init__(player)
        self._echo = echo
        self._prompts: Dict[str, ActivateCallback] = {}
        self._screen = "start"

    @property
    def screen(self) -> str:
        """Return the visible screen: "start", "game" or "end"."""
        return self._screen

    @property
    def live_prompts(self) -> List[str]:
        return list(self._prompts)

    def set_source(self, locator: str) -> None:
        self._screen = "game"
        self._echo(f"🎬 Now playing: {locator}")
        super().set_source(locator)

    def show_prompt(
        self,
        event_id: str,
        label: str,
        placement: Placement,
        on_activate: ActivateCallback,
    ) -> None:
        self._prompts[event_id] = on_activate
        self._echo(f"⚡ {label}  [{event_id}] at {describe_placement(placement)}")
        self._echo("   Press Enter (or type the event id) to act!")

    def remove_prompt(self, event_id: str) -> None:
        if self._prompts.pop(event_id, None) is not None:
            self._echo(f"   ({event_id} closed)")

    def show_terminal_screen(self, title: str, message: str) -> None:
        self._screen = "end"
        self._prompts.clear()
        self._echo(f"\n🏁 {title}")
        if message:
            self._echo(f"   {message}")
        self._echo("   Press Enter or 'r' to restart, 'q' to quit.")

    def show_start_screen(self) -> None:
        self._screen = "start"
        self._prompts.clear()
        self._echo("▶️  Press Enter to start, 'q' to quit.")

    def activate(self, event_id: Optional[str] = None) -> bool:
        """Route player input to a live prompt.

        Args:
            event_id: Prompt to activate. Defaults to the oldest live prompt.

        Returns:
            True if a live prompt received the activation.
        """
        if event_id is None:
            if not self._prompts:
                return False
            event_id = next(iter(self._prompts))

        on_activate = self._prompts.get(event_id)
        if on_activate is None:
            logger.debug(f"No live prompt for {event_id}")
            return False
        on_activate(event_id)
        return True


class ConsoleInput:
    """Interprets lines typed on the terminal during a session."""

    def __init__(
        self,
        presentation: ConsolePresentation,
        on_start: Callable[[], None],
        on_restart: Callable[[], None],
    ) -> None:
        self._presentation = presentation
        self._on_start = on_start
        self._on_restart = on_restart

    def handle(self, line: str) -> bool:
        """Handle one line of input.

        Returns:
            False when the player asked to quit.
        """
        command = line.strip()
        if command.lower() in ("q", "quit", "exit"):
            return False

        if command.lower() in ("r", "restart"):
            self._on_restart()
            return True

        if not command:
            if self._presentation.live_prompts:
                self._presentation.activate()
            elif self._presentation.screen == "start":
                self._on_start()
            elif self._presentation.screen == "end":
                self._on_restart()
            return True

        if not self._presentation.activate(command):
            typer.echo(f"   No active prompt named '{command}'")
        return True

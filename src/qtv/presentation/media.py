"""Media players backing the presentation adapter's playback side."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from ..engine.timers import TimerHandle, TimerService
from .base import EndedListener, TimeListener, Unsubscribe

logger = logging.getLogger(__name__)


def probe_duration(clip_path: Path) -> float:
    """Read a video clip's duration.

    Args:
        clip_path: Path to the video clip file.

    Returns:
        Duration in seconds.

    Raises:
        FileNotFoundError: If the clip file doesn't exist.
        ValueError: If the clip reports no usable duration.
    """
    if not clip_path.exists():
        raise FileNotFoundError(f"Clip not found: {clip_path}")

    from moviepy import VideoFileClip

    clip = VideoFileClip(str(clip_path))
    try:
        duration = clip.duration
    finally:
        clip.close()

    if not duration or duration <= 0:
        raise ValueError(f"Clip has no duration: {clip_path}")
    return float(duration)


class MediaPlayer(ABC):
    """Playback primitives plus time-changed and ended notifications."""

    def __init__(self) -> None:
        self._time_listeners: List[TimeListener] = []
        self._ended_listeners: List[EndedListener] = []

    @abstractmethod
    def set_source(self, locator: str) -> None:
        ...

    @abstractmethod
    def set_loop(self, loop: bool) -> None:
        ...

    @abstractmethod
    def play(self) -> bool:
        ...

    @abstractmethod
    def pause(self) -> None:
        ...

    @abstractmethod
    def current_time(self) -> float:
        ...

    def on_time_changed(self, callback: TimeListener) -> Unsubscribe:
        self._time_listeners.append(callback)
        return lambda: self._discard(self._time_listeners, callback)

    def on_ended(self, callback: EndedListener) -> Unsubscribe:
        self._ended_listeners.append(callback)
        return lambda: self._discard(self._ended_listeners, callback)

    def _emit_time_changed(self, seconds: float) -> None:
        for listener in list(self._time_listeners):
            listener(seconds)

    def _emit_ended(self) -> None:
        for listener in list(self._ended_listeners):
            listener()

    @staticmethod
    def _discard(listeners: list, callback) -> None:
        if callback in listeners:
            listeners.remove(callback)


class ClipPlayer(MediaPlayer):
    """Headless player for video files on disk.

    The clip's duration is read with MoviePy when playback first starts; from
    then on the cursor follows elapsed timer-service time while playing.
    Time updates are emitted every update_interval seconds, and ended once the
    cursor reaches the clip's duration (unless looping).
    """

    DEFAULT_UPDATE_INTERVAL = 0.25  # seconds

    def __init__(
        self,
        timers: TimerService,
        assets_dir: Path = Path("."),
        update_interval: float = DEFAULT_UPDATE_INTERVAL,
    ) -> None:
        super().__init__()
        self._timers = timers
        self._assets_dir = assets_dir
        self._update_interval = update_interval
        self._source: Optional[str] = None
        self._duration: Optional[float] = None
        self._loop = False
        self._position = 0.0
        self._playing = False
        self._anchor_time = 0.0
        self._anchor_position = 0.0
        self._handle: Optional[TimerHandle] = None

    @property
    def duration(self) -> Optional[float]:
        return self._duration

    @property
    def playing(self) -> bool:
        return self._playing

    def resolve(self, locator: str) -> Path:
        """Resolve a media locator against the assets directory."""
        path = Path(locator)
        return path if path.is_absolute() else self._assets_dir / path

    def set_source(self, locator: str) -> None:
        self._stop_updates()
        self._playing = False
        self._source = locator
        self._duration = None
        self._position = 0.0

    def set_loop(self, loop: bool) -> None:
        self._loop = loop

    def play(self) -> bool:
        if self._source is None:
            logger.error("No media source set")
            return False

        if self._duration is None:
            clip_path = self.resolve(self._source)
            try:
                self._duration = probe_duration(clip_path)
            except Exception as e:
                logger.error(f"Failed to open clip {clip_path}: {e}")
                return False
            logger.debug(f"Opened {clip_path} ({self._duration:.2f}s)")

        if not self._playing:
            self._playing = True
            self._set_anchor()
            self._schedule_update()
        return True

    def pause(self) -> None:
        if not self._playing:
            return
        self._advance()
        self._playing = False
        self._stop_updates()

    def current_time(self) -> float:
        return self._position

    def _set_anchor(self) -> None:
        self._anchor_time = self._timers.now()
        self._anchor_position = self._position

    def _advance(self) -> None:
        self._position = self._anchor_position + (self._timers.now() - self._anchor_time)

    def _schedule_update(self) -> None:
        if self._handle is None:
            self._handle = self._timers.call_later(self._update_interval, self._on_update)

    def _stop_updates(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _on_update(self) -> None:
        self._handle = None
        if not self._playing:
            return

        self._advance()
        if self._position >= self._duration and self._loop:
            self._position %= self._duration
            self._set_anchor()
        ended = self._position >= self._duration
        if ended:
            self._position = self._duration

        self._emit_time_changed(self._position)
        # A listener may have paused playback (an event armed on this update).
        if not self._playing:
            return

        if ended:
            self._playing = False
            self._emit_ended()
            return
        self._schedule_update()


class SilentPlayer(MediaPlayer):
    """Stand-in player for runs without media.

    Playback always starts, the cursor never moves and the media never ends;
    time comes from a simulated clock sampler instead.
    """

    def __init__(self) -> None:
        super().__init__()
        self._source: Optional[str] = None
        self._loop = False
        self._playing = False

    @property
    def source(self) -> Optional[str]:
        return self._source

    @property
    def playing(self) -> bool:
        return self._playing

    def set_source(self, locator: str) -> None:
        self._source = locator
        self._playing = False

    def set_loop(self, loop: bool) -> None:
        self._loop = loop

    def play(self) -> bool:
        self._playing = True
        return True

    def pause(self) -> None:
        self._playing = False

    def current_time(self) -> float:
        return 0.0

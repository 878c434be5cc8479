"""Cancellable one-shot timers on an asyncio loop or on virtual time."""

import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Protocol, Tuple


class TimerHandle(Protocol):
    """A scheduled callback that can be cancelled before it fires."""

    def cancel(self) -> None:
        ...

    def cancelled(self) -> bool:
        ...


class TimerService(ABC):
    """Source of time and one-shot timers for the engine."""

    @abstractmethod
    def now(self) -> float:
        """Return the current time in seconds."""
        ...

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback once after delay seconds.

        Args:
            delay: Seconds from now. Negative values are treated as zero.
            callback: Zero-argument callable.

        Returns:
            A handle whose cancel() prevents the callback from running.
        """
        ...


class LoopTimerService(TimerService):
    """Timers backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

    def now(self) -> float:
        return self._loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self._loop.call_later(max(0.0, delay), callback)


class VirtualTimer:
    """Handle returned by VirtualTimerService."""

    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self._callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    def _run(self) -> None:
        self._callback()


class VirtualTimerService(TimerService):
    """Deterministic timers on a virtual clock that only moves when advanced.

    Used for unattended walkthroughs and tests: a scenario that would take
    minutes of wall time runs instantly, with timers firing in due order.
    Times are kept to nanosecond resolution so repeated fractional periods
    land on their nominal values.
    """

    RESOLUTION = 9  # decimal places

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: List[Tuple[float, int, VirtualTimer]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> VirtualTimer:
        timer = VirtualTimer(round(self._now + max(0.0, delay), self.RESOLUTION), callback)
        heapq.heappush(self._queue, (timer.due, next(self._sequence), timer))
        return timer

    @property
    def pending(self) -> int:
        """Return the number of live (uncancelled) timers."""
        return sum(1 for _, _, timer in self._queue if not timer.cancelled())

    def next_due(self) -> Optional[float]:
        """Return when the next live timer fires, or None when idle."""
        self._discard_cancelled()
        return self._queue[0][0] if self._queue else None

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing every timer that falls due.

        Timers scheduled by callbacks during the advance also fire if they
        fall within the window.

        Returns:
            The number of callbacks run.
        """
        return self.advance_to(round(self._now + seconds, self.RESOLUTION))

    def advance_to(self, deadline: float) -> int:
        """Move the clock to an absolute time, firing due timers in order."""
        fired = 0
        while True:
            due = self.next_due()
            if due is None or due > deadline:
                break
            _, _, timer = heapq.heappop(self._queue)
            self._now = max(self._now, timer.due)
            timer._run()
            fired += 1
        self._now = max(self._now, deadline)
        return fired

    def step(self) -> bool:
        """Jump to the next live timer and fire it.

        Returns:
            False if nothing was pending.
        """
        due = self.next_due()
        if due is None:
            return False
        _, _, timer = heapq.heappop(self._queue)
        self._now = max(self._now, timer.due)
        timer._run()
        return True

    def _discard_cancelled(self) -> None:
        while self._queue and self._queue[0][2].cancelled():
            heapq.heappop(self._queue)

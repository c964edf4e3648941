"""Frame schedulers: the animation-frame clock that drives the engine.

The engine only needs three things from its host: the current time, a way to
request one callback for the next frame, and a way to cancel that request.
At most one frame callback is in flight at a time.
"""

from __future__ import annotations

import itertools
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

FrameCallback = Callable[[float], None]  # receives the frame timestamp in seconds


@runtime_checkable
class Scheduler(Protocol):
    """Host capability used by the simulation engine."""

    def now(self) -> float:
        """Current time in seconds."""
        ...

    def schedule_next(self, callback: FrameCallback) -> int:
        """Request ``callback`` for the next frame; returns a cancel handle."""
        ...

    def cancel(self, handle: int) -> None:
        """Cancel a pending frame request. Unknown handles are ignored."""
        ...


class FrameQueue(ABC):
    """Pending frame callbacks shared by the concrete schedulers.

    Subclasses supply the clock through ``now``; ``run_pending`` fires every
    callback queued so far with that time.
    """

    def __init__(self) -> None:
        self._handles = itertools.count(1)
        self._pending: dict[int, FrameCallback] = {}

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds."""

    def schedule_next(self, callback: FrameCallback) -> int:
        handle = next(self._handles)
        self._pending[handle] = callback
        return handle

    def cancel(self, handle: int) -> None:
        self._pending.pop(handle, None)

    @property
    def pending(self) -> int:
        """Number of frame callbacks waiting to run."""
        return len(self._pending)

    def run_pending(self) -> int:
        """Fire the callbacks pending right now with the current time.

        Callbacks scheduled while running wait for the next call.

        Returns:
            Number of callbacks fired.
        """
        due = list(self._pending.items())
        self._pending.clear()
        for _handle, callback in due:
            callback(self.now())
        return len(due)


class ManualScheduler(FrameQueue):
    """Scheduler with a hand-driven clock.

    Frames only happen when ``advance`` is called, which makes it suitable for
    tests and headless runs.

    Example:
        >>> scheduler = ManualScheduler()
        >>> engine = SimulationEngine(layout, scheduler=scheduler)
        >>> engine.play()
        >>> scheduler.advance(0.5)  # one frame, 0.5 s after play()
    """

    def __init__(self, start_time: float = 0.0) -> None:
        super().__init__()
        self._time = start_time

    def now(self) -> float:
        return self._time

    def advance(self, seconds: float) -> int:
        """Move the clock forward by ``seconds`` and fire one frame."""
        if seconds < 0:
            raise ValueError("Cannot move the clock backwards")
        self._time += seconds
        return self.run_pending()

    def run_frames(self, count: int, frame_time: float) -> int:
        """Advance ``count`` frames of ``frame_time`` seconds each."""
        fired = 0
        for _ in range(count):
            fired += self.advance(frame_time)
        return fired


class RealtimeScheduler(FrameQueue):
    """Scheduler on the monotonic wall clock.

    The host loop calls ``pump`` once per frame (typically from a background
    thread) to fire the pending callback with the current time.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        super().__init__()
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    def pump(self) -> int:
        """Fire the pending frame callback, if any."""
        return self.run_pending()

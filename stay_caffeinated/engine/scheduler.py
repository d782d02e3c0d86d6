"""
Frame schedulers for the game loop.

A scheduler calls a callback once, some time later, with the current
timestamp in milliseconds. The loop re-requests a frame after every
frame it processes.
"""

import asyncio
import itertools
from typing import Any, Callable, Protocol


FrameCallback = Callable[[float], None]


class Scheduler(Protocol):
    """Per-frame callback source."""

    def request_frame(self, callback: FrameCallback) -> Any:
        """Schedule callback for the next frame. Returns a cancel handle."""
        ...

    def cancel_frame(self, handle: Any) -> None:
        """Cancel a pending frame. Unknown or already-run handles are ignored."""
        ...


class ManualScheduler:
    """
    Deterministic scheduler driven by hand, for tests and headless runs.

    Time only moves when step(), run_frames() or advance() is called.
    """

    def __init__(self, frame_interval: float = 1000 / 60, start_time: float = 0.0) -> None:
        self.frame_interval = frame_interval
        self._time = start_time
        self._pending: dict[int, FrameCallback] = {}
        self._handles = itertools.count(1)

    def clock(self) -> float:
        return self._time

    @property
    def pending(self) -> int:
        return len(self._pending)

    def request_frame(self, callback: FrameCallback) -> int:
        handle = next(self._handles)
        self._pending[handle] = callback
        return handle

    def cancel_frame(self, handle: Any) -> None:
        self._pending.pop(handle, None)

    def advance(self, ms: float) -> None:
        """Move the clock without running frames (a suspended tab)."""
        self._time += ms

    def step(self) -> int:
        """Advance one frame interval and run the frames due. Returns how many ran."""
        self._time += self.frame_interval
        due = self._pending
        self._pending = {}
        for callback in due.values():
            callback(self._time)
        return len(due)

    def run_frames(self, count: int) -> int:
        ran = 0
        for _ in range(count):
            ran += self.step()
        return ran

    def run_for(self, ms: float) -> int:
        """Run whole frames covering `ms` of scheduler time."""
        return self.run_frames(int(ms // self.frame_interval))


class AsyncioScheduler:
    """
    Fixed-rate timer on the running asyncio event loop.

    Frames are delivered frame_interval ms after they are requested; the
    timestamp passed to the callback is the event loop's clock.
    """

    def __init__(self, frame_interval: float = 1000 / 60) -> None:
        self.frame_interval = frame_interval

    def clock(self) -> float:
        return asyncio.get_running_loop().time() * 1000

    def request_frame(self, callback: FrameCallback) -> asyncio.TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(
            self.frame_interval / 1000,
            lambda: callback(loop.time() * 1000),
        )

    def cancel_frame(self, handle: Any) -> None:
        if handle is not None:
            handle.cancel()

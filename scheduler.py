from __future__ import annotations
import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

Callback = Callable[[], None]

class TimerHandle:
    """Opaque handle returned by a scheduler; only meaningful to the scheduler that issued it."""
    def __init__(self, interval: Optional[float] = None):
        self.interval = interval
        self.cancelled = False
        self.fired = False

    @property
    def repeating(self) -> bool:
        return self.interval is not None

    @property
    def active(self) -> bool:
        return not self.cancelled and (self.repeating or not self.fired)

class Scheduler(ABC):
    """
    Timer capability injected into the quiz controller.
    cancel() must accept None and handles that already fired or were cancelled.
    """
    @abstractmethod
    def schedule_repeating(self, interval: float, callback: Callback) -> TimerHandle: ...

    @abstractmethod
    def schedule_once(self, delay: float, callback: Callback) -> TimerHandle: ...

    @abstractmethod
    def cancel(self, handle: Optional[TimerHandle]) -> None: ...

# ---------- Real time ----------
class AsyncioScheduler(Scheduler):
    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._pending: dict[TimerHandle, asyncio.TimerHandle] = {}

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule_repeating(self, interval: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle(interval=interval)
        self._arm(handle, interval, callback)
        return handle

    def schedule_once(self, delay: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle()
        self._arm(handle, delay, callback)
        return handle

    def cancel(self, handle: Optional[TimerHandle]) -> None:
        if handle is None or handle.cancelled:
            return
        handle.cancelled = True
        inner = self._pending.pop(handle, None)
        if inner is not None:
            inner.cancel()

    def _arm(self, handle: TimerHandle, delay: float, callback: Callback) -> None:
        def _run() -> None:
            self._pending.pop(handle, None)
            if handle.cancelled:
                return
            handle.fired = True
            # re-arm before running so the callback may cancel its own handle
            if handle.repeating:
                self._arm(handle, handle.interval, callback)
            callback()

        self._pending[handle] = self.loop.call_later(delay, _run)

# ---------- Virtual clock ----------
class ManualScheduler(Scheduler):
    """
    Deterministic scheduler driven by advance(); used by tests and the auto-demo.
    Due callbacks fire in due-time order, ties in the order they were scheduled.
    """
    def __init__(self):
        self.now = 0.0
        self._queue: List[Tuple[float, int, TimerHandle, Callback]] = []
        self._seq = itertools.count()

    @property
    def pending(self) -> int:
        return sum(1 for _, _, h, _ in self._queue if not h.cancelled)

    def schedule_repeating(self, interval: float, callback: Callback) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        handle = TimerHandle(interval=interval)
        self._push(self.now + interval, handle, callback)
        return handle

    def schedule_once(self, delay: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle()
        self._push(self.now + max(0.0, delay), handle, callback)
        return handle

    def cancel(self, handle: Optional[TimerHandle]) -> None:
        if handle is not None:
            handle.cancelled = True

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target + 1e-9:
            due, _, handle, callback = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now = max(self.now, due)
            handle.fired = True
            if handle.repeating:
                self._push(due + handle.interval, handle, callback)
            callback()
        self.now = target

    def _push(self, due: float, handle: TimerHandle, callback: Callback) -> None:
        heapq.heappush(self._queue, (due, next(self._seq), handle, callback))

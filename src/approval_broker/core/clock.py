"""
Clock - time source and timer scheduling
=========================================

The approval lifecycle only needs two things from time: the current wall
clock in milliseconds and a way to run a callback after a delay that can be
cancelled. Both sit behind the ``Clock`` interface so the lifecycle can be
driven deterministically in tests.

Architecture:
    Clock (ABC)
        └─ AsyncioClock (default, event-loop timers)
"""

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Callable


class TimerHandle(ABC):
    """A scheduled callback that can be cancelled before it fires"""

    @abstractmethod
    def cancel(self) -> None:
        """Cancel the callback. Cancelling twice or after firing is a no-op."""
        pass


class Clock(ABC):
    """Abstract time source used by the approval manager"""

    @abstractmethod
    def now_ms(self) -> int:
        """Current wall-clock time in epoch milliseconds"""
        pass

    @abstractmethod
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        """
        Schedule ``callback`` to run once after ``delay_ms`` milliseconds

        Args:
            delay_ms: Delay in milliseconds (values <= 0 fire on the next tick)
            callback: Zero-argument callable

        Returns:
            Handle that cancels the callback
        """
        pass


class _AsyncioTimerHandle(TimerHandle):
    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()


class AsyncioClock(Clock):
    """
    Clock backed by the running asyncio event loop.

    ``call_later`` must be called from inside a running loop; callbacks run on
    that loop's thread, which keeps every registry mutation on one thread of
    control.
    """

    def now_ms(self) -> int:
        return int(time.time() * 1000)

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        loop = asyncio.get_running_loop()
        return _AsyncioTimerHandle(loop.call_later(max(delay_ms, 0) / 1000, callback))

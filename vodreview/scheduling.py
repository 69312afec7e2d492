"""
Timer ownership for the review view.

The view runs on a single cooperative event loop. Anything that exposes
``time()`` and ``call_later(delay, callback)`` returning a cancellable handle
can drive it: a running ``asyncio`` loop in production, or the
``ManualScheduler`` virtual clock for previews and tests.
"""

import heapq
import itertools
from typing import Callable, Optional, Protocol

from .logging import get_logger

logger = get_logger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def time(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class TimerSlot:
    """
    A named slot holding at most one armed timer.

    Arming always cancels whatever the slot held before, so a superseded
    callback can never fire. Once disposed the slot refuses to arm again.
    """

    def __init__(self, scheduler: Scheduler, name: str):
        self.name = name
        self._scheduler = scheduler
        self._handle: Optional[TimerHandle] = None
        self._disposed = False

    @property
    def armed(self) -> bool:
        return self._handle is not None

    @property
    def disposed(self) -> bool:
        return self._disposed

    def arm(self, delay: float, callback: Callable[[], None]) -> bool:
        """Fire ``callback`` once after ``delay`` seconds."""
        self.cancel()
        if self._disposed:
            logger.debug("Timer %s is disposed, not arming", self.name)
            return False

        def fire():
            self._handle = None
            callback()

        self._handle = self._scheduler.call_later(delay, fire)
        return True

    def arm_repeating(self, interval: float, callback: Callable[[], None]) -> bool:
        """Fire ``callback`` every ``interval`` seconds until cancelled."""
        self.cancel()
        if self._disposed:
            logger.debug("Timer %s is disposed, not arming", self.name)
            return False

        def tick():
            # Reschedule first so a failing callback doesn't stop the loop
            self._handle = self._scheduler.call_later(interval, tick)
            callback()

        self._handle = self._scheduler.call_later(interval, tick)
        return True

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def dispose(self) -> None:
        self.cancel()
        self._disposed = True


class ManualHandle:
    """Handle returned by ``ManualScheduler.call_later``."""

    def __init__(self, when: float, seq: int, callback: Callable[[], None]):
        self.when = when
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __lt__(self, other: "ManualHandle") -> bool:
        return (self.when, self.seq) < (other.when, other.seq)


class ManualScheduler:
    """
    Virtual clock that only moves when told to.

    Callbacks due at the same instant run in the order they were scheduled.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: list[ManualHandle] = []
        self._counter = itertools.count()

    def time(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(self._now + max(delay, 0.0), next(self._counter), callback)
        heapq.heappush(self._queue, handle)
        return handle

    @property
    def pending(self) -> int:
        """Number of timers still waiting to fire."""
        return sum(1 for handle in self._queue if not handle.cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every callback that falls due."""
        self.run_until(self._now + seconds)

    def run_until(self, when: float) -> None:
        while self._queue and self._queue[0].when <= when:
            handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = handle.when
            handle.callback()
        self._now = max(self._now, when)

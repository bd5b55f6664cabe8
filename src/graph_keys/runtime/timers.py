"""Single-shot timers used for the key sequence ambiguity window."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TimerScheduler(Protocol):
    """Anything able to run ``callback`` once after ``delay_ms``."""

    def call_later(
        self, delay_ms: int, callback: Callable[[], None]
    ) -> TimerHandle: ...


class AsyncioTimerScheduler:
    """Schedules callbacks on an asyncio event loop.

    Without an explicit loop the running loop is looked up at scheduling
    time, so this must be used from inside a coroutine or loop callback.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def call_later(
        self, delay_ms: int, callback: Callable[[], None]
    ) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay_ms / 1000.0, callback)


@dataclass
class PendingTimeout:
    deadline: float
    delay_ms: int
    generation: int
    callback: Callable[[], None]
    owner: Optional["PollingTimerScheduler"] = field(default=None, repr=False)

    def cancel(self) -> None:
        if self.owner is not None:
            self.owner._discard(self.generation)
            self.owner = None


class PollingTimerScheduler:
    """Deadline bookkeeping for hosts that poll on a tick.

    Nothing fires on its own; the host calls ``process_timeouts`` from its
    refresh loop (or ``force_timeout`` to expire everything immediately).
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._timers: Dict[int, PendingTimeout] = {}
        self._counter = 0

    @property
    def pending(self) -> int:
        return len(self._timers)

    def call_later(
        self, delay_ms: int, callback: Callable[[], None]
    ) -> PendingTimeout:
        self._counter += 1
        timer = PendingTimeout(
            deadline=self._clock() + (delay_ms / 1000.0),
            delay_ms=delay_ms,
            generation=self._counter,
            callback=callback,
            owner=self,
        )
        self._timers[timer.generation] = timer
        return timer

    def process_timeouts(self) -> int:
        """Fire every expired timer; returns how many fired."""

        now = self._clock()
        expired = [
            timer for timer in self._timers.values() if timer.deadline <= now
        ]
        return self._fire(expired)

    def force_timeout(self) -> int:
        return self._fire(list(self._timers.values()))

    def _fire(self, timers: list[PendingTimeout]) -> int:
        fired = 0
        for timer in sorted(timers, key=lambda t: t.generation):
            # an earlier callback may have cancelled this one
            if timer.generation not in self._timers:
                continue
            self._discard(timer.generation)
            timer.owner = None
            timer.callback()
            fired += 1
        return fired

    def _discard(self, generation: int) -> None:
        self._timers.pop(generation, None)


__all__ = [
    "AsyncioTimerScheduler",
    "PendingTimeout",
    "PollingTimerScheduler",
    "TimerHandle",
    "TimerScheduler",
]

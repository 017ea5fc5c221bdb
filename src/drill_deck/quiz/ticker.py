"""Cancellable one-second ticks for the timed-mode countdown.

A *scheduler* is any callable ``(interval, callback) -> TickHandle``. The
Textual front end passes ``App.set_interval`` directly; the Rich console loop
uses :class:`ClockTicker`, which replays elapsed intervals whenever it is
pumped between blocking reads.
"""

from __future__ import annotations

import time
from typing import Callable, List, Protocol

__all__ = [
    "TickHandle",
    "Scheduler",
    "ClockTicker",
]


class TickHandle(Protocol):
    def stop(self) -> None:
        """Cancel further callbacks. Safe to call more than once."""


Scheduler = Callable[[float, Callable[[], None]], TickHandle]


class _ClockTick:
    def __init__(
        self, interval: float, callback: Callable[[], None], started: float
    ) -> None:
        self.interval = interval
        self.callback = callback
        self.next_due = started + interval
        self.active = True

    def stop(self) -> None:
        self.active = False


class ClockTicker:
    """Scheduler driven by a monotonic clock instead of a background thread.

    Call :meth:`pump` from the owning loop; each registered tick fires once
    for every full interval that elapsed since it last fired.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._ticks: List[_ClockTick] = []

    def __call__(
        self, interval: float, callback: Callable[[], None]
    ) -> TickHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        tick = _ClockTick(interval, callback, self._clock())
        self._ticks.append(tick)
        return tick

    @property
    def active(self) -> bool:
        return any(tick.active for tick in self._ticks)

    def pump(self) -> int:
        """Fire every overdue callback and return how many ran."""

        now = self._clock()
        fired = 0
        for tick in list(self._ticks):
            while tick.active and tick.next_due <= now:
                tick.next_due += tick.interval
                tick.callback()
                fired += 1
        self._ticks = [tick for tick in self._ticks if tick.active]
        return fired

# src/bot_core/clock.py
"""
Clock primitives for bot_core.

Every "wait N ms, then move on" in the core is one Clock checked on later
ticks. Nothing here sleeps.

Time comes from an injectable millisecond source so tests can drive it
explicitly (see bot_core.testing.fakes.ManualTime).
"""

from __future__ import annotations

import time
from typing import Callable, Optional

# Signature of a time source: () -> milliseconds (monotonic)
TimeFn = Callable[[], float]


def monotonic_ms() -> float:
    """Default time source."""
    return time.monotonic() * 1000.0


class Clock:
    """
    Deadline timer.

    - schedule(ms): deadline = now + ms.
    - passed(): True once the deadline is reached, never while paused or
      before the first schedule().
    - pause()/resume(): keep the remaining time across the pause.
    """

    def __init__(self, time_fn: Optional[TimeFn] = None) -> None:
        self._time_fn: TimeFn = time_fn or monotonic_ms
        self._end_time: float = 0.0
        self._duration_ms: float = 0.0
        self._remaining_ms: float = 0.0
        self._scheduled: bool = False
        self._paused: bool = False

    def now(self) -> float:
        return self._time_fn()

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def schedule(self, ms: float) -> None:
        self._duration_ms = float(ms)
        self._end_time = self.now() + float(ms)
        self._remaining_ms = 0.0
        self._scheduled = True
        self._paused = False

    def passed(self) -> bool:
        if not self._scheduled or self._paused:
            return False
        return self.now() >= self._end_time

    def is_scheduled(self) -> bool:
        return self._scheduled

    def is_paused(self) -> bool:
        return self._paused

    def reset(self) -> None:
        self._end_time = 0.0
        self._duration_ms = 0.0
        self._remaining_ms = 0.0
        self._scheduled = False
        self._paused = False

    # ------------------------------------------------------------------
    # Pause / resume
    # ------------------------------------------------------------------

    def pause(self) -> None:
        if not self._scheduled or self._paused:
            return
        self._remaining_ms = max(0.0, self._end_time - self.now())
        self._paused = True

    def resume(self) -> None:
        if not self._paused:
            return
        self._end_time = self.now() + self._remaining_ms
        self._remaining_ms = 0.0
        self._paused = False

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def duration_ms(self) -> float:
        return self._duration_ms

    def remaining_ms(self) -> float:
        if not self._scheduled:
            return 0.0
        if self._paused:
            return self._remaining_ms
        return max(0.0, self._end_time - self.now())

    def elapsed_ms(self) -> float:
        """Time since the last schedule(), excluding the time spent paused."""
        if not self._scheduled:
            return 0.0
        return self._duration_ms - self.remaining_ms()

    def __repr__(self) -> str:
        return (
            f"Clock(scheduled={self._scheduled}, paused={self._paused}, "
            f"remaining_ms={self.remaining_ms():.0f})"
        )


class Stopwatch:
    """Accumulating stopwatch (macro uptime)."""

    def __init__(self, time_fn: Optional[TimeFn] = None) -> None:
        self._time_fn: TimeFn = time_fn or monotonic_ms
        self._started_at: float = 0.0
        self._accumulated: float = 0.0
        self._running: bool = False

    def start(self, reset: bool = False) -> None:
        if reset:
            self._accumulated = 0.0
        if not self._running:
            self._started_at = self._time_fn()
            self._running = True

    def stop(self, reset: bool = False) -> None:
        if self._running:
            self._accumulated += self._time_fn() - self._started_at
            self._running = False
        if reset:
            self._accumulated = 0.0

    def is_running(self) -> bool:
        return self._running

    def time_passed(self) -> float:
        if self._running:
            return self._accumulated + (self._time_fn() - self._started_at)
        return self._accumulated


__all__ = ["Clock", "Stopwatch", "TimeFn", "monotonic_ms"]
